# traps.py

# Copyright (C) 2025 The lc3vm authors. License: GNU GPL Version 3
# See README and LICENSE

# This file is part of lc3vm. lc3vm is free software: you can
# redistribute it and/or modify it under the terms of the GNU General
# Public License as published by the Free Software Foundation, either
# version 3 of the License, or (at your option) any later version.
# lc3vm is distributed in the hope that it will be useful, but
# WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the GNU
# General Public License for more details. You should have received
# a copy of the GNU General Public License along with lc3vm. If
# not, see <https://www.gnu.org/licenses/>.

# -------------------------------------------------------------------------
# traps.py defines the trap routines: console input and output, and
# halting the machine. The routines are implemented in Python rather
# than as machine code in a trap vector table, and they use the
# console held in the emulator state.
# -------------------------------------------------------------------------

import common
import architecture as arch
import arithmetic as arith

in_prompt = "Enter a character: "
halt_message = "HALT\n"

# -------------------------------------------------------------------------
# Console helpers
# -------------------------------------------------------------------------

def write_string(es, xs):
    for x in xs:
        es.console.write_char(ord(x))

# A blocking read. Output is flushed first so a prompt is visible
# before the machine waits; the status shows Blocked while waiting.

def read_blocking(es):
    es.console.flush()
    es.ab.write_scb(es, es.ab.SCB_STATUS, es.ab.SCB_BLOCKED)
    c = es.console.read_char()
    es.ab.write_scb(es, es.ab.SCB_STATUS, es.ab.SCB_RUNNING)
    return c

# -------------------------------------------------------------------------
# Trap routines
# -------------------------------------------------------------------------

# None of the routines changes the condition register.

def trap_getc(es):
    c = read_blocking(es)
    common.mode.devlog(f"trap getc c={c}")
    es.regfile[0].put(c)

def trap_out(es):
    c = es.regfile[0].get()
    es.console.write_char(c & 0x00FF)
    es.console.flush()

def trap_puts(es):
    a = es.regfile[0].get()
    x = es.ab.read_mem16(es, a)
    while x != 0:
        es.console.write_char(x & 0x00FF)
        a = arith.incr_address(a, 1)
        x = es.ab.read_mem16(es, a)
    es.console.flush()

def trap_in(es):
    write_string(es, in_prompt)
    c = read_blocking(es)
    common.mode.devlog(f"trap in c={c}")
    es.console.write_char(c)
    es.console.flush()
    es.regfile[0].put(c)

# Two characters per word, low byte first; the string ends at the
# first zero byte

def trap_putsp(es):
    a = es.regfile[0].get()
    x = es.ab.read_mem16(es, a)
    while x != 0:
        low, high = arith.split_bytes(x)
        if low == 0:
            break
        es.console.write_char(low)
        if high == 0:
            break
        es.console.write_char(high)
        a = arith.incr_address(a, 1)
        x = es.ab.read_mem16(es, a)
    es.console.flush()

def trap_halt(es):
    common.mode.devlog("trap halt")
    write_string(es, halt_message)
    es.console.flush()
    es.ab.write_scb(es, es.ab.SCB_STATUS, es.ab.SCB_HALTED)

dispatch_trap = {
    arch.TRAP_GETC: trap_getc,
    arch.TRAP_OUT: trap_out,
    arch.TRAP_PUTS: trap_puts,
    arch.TRAP_IN: trap_in,
    arch.TRAP_PUTSP: trap_putsp,
    arch.TRAP_HALT: trap_halt,
}

# -------------------------------------------------------------------------
# Dispatch
# -------------------------------------------------------------------------

def execute_trap(es, vector):
    f = dispatch_trap.get(vector)
    if f is None:
        raise common.UnknownTrapError(es.cur_instr_addr, vector)
    common.mode.devlog(f"trap {arch.trap_names[vector]}")
    f(es)
