# emulator.py

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
# emulator.py defines the machine language semantics
# -------------------------------------------------------------------------

import sys

import common
import architecture as arch
import arithmetic as arith
import arrbuf
import console as con
import loader
import traps

# -----------------------------------------------------------------------
# Default parameters
# -----------------------------------------------------------------------

default_instr_slice_size = 500

# ------------------------------------------------------------------------
# Emulator state
# ------------------------------------------------------------------------

# An EmulatorState owns the state vectors of one machine. Several can
# exist at once; nothing about a machine lives at module level.

class EmulatorState:
    def __init__(self, console=None, arrbuf_module=arrbuf):
        self.ab = arrbuf_module
        self.console = con.TerminalConsole() if console is None else console
        self.vec16 = self.ab.new_vec16()
        self.vec32 = self.ab.new_vec32()

        self.n_registers = 0
        self.register = []
        self.regfile = []
        for i in range(arch.n_gen_registers):
            self.regfile.append(GenRegister(self, arch.reg_names[i]))
        self.pc = GenRegister(self, 'PC')
        self.cond = GenRegister(self, 'COND')

        self.instr_code = 0
        self.cur_instr_addr = 0
        self.next_instr_addr = 0

        common.mode.devlog("em.EmulatorState initialized")
        proc_reset(self)

class GenRegister:
    def __init__(self, es, reg_name):
        self.es = es
        self.reg_number = es.n_registers
        es.n_registers += 1
        self.reg_name = reg_name
        es.register.append(self)

    def get(self):
        return self.es.ab.read_reg16(self.es, self.reg_number)

    def put(self, x):
        self.es.ab.write_reg16(self.es, self.reg_number, x)

def reset_registers(es):
    es.ab.clear_regs(es)

def limit_address(x):
    return arith.limit16(x)

# -------------------------------------------------------------------------
# Memory access
# -------------------------------------------------------------------------

# Data reads of the keyboard status register poll the console; when a
# key is waiting it is moved into the keyboard data register. Fetches
# and stores never touch the console.

def mem_fetch_instr(es, a):
    x = es.ab.read_mem16(es, a)
    return x

def mem_fetch_data(es, a):
    if limit_address(a) == arch.MR_KBSR:
        poll_keyboard(es)
    return es.ab.read_mem16(es, a)

def mem_store(es, a, x):
    common.mode.devlog(f"mem_store x{arith.word_to_hex4(a)} := {arith.word_to_hex4(x)}")
    es.ab.write_mem16(es, a, x)

def poll_keyboard(es):
    if es.console.key_ready():
        es.ab.write_mem16(es, arch.MR_KBSR, arch.kbsr_ready)
        es.ab.write_mem16(es, arch.MR_KBDR, es.console.read_char())
    else:
        es.ab.write_mem16(es, arch.MR_KBSR, 0)

# -------------------------------------------------------------------------
# Initialize machine state
# -------------------------------------------------------------------------

def proc_reset(es):
    common.mode.devlog("reset the processor")
    es.ab.reset_scb(es)
    reset_registers(es)
    es.ab.clear_mem(es)
    es.instr_code = 0
    es.cur_instr_addr = 0
    es.next_instr_addr = 0

# Prepare to run from origin: the condition register starts at Z

def boot(es, origin=arch.pc_start):
    common.mode.devlog(f"em.boot origin=x{arith.word_to_hex4(origin)}")
    es.pc.put(origin)
    es.cond.put(arch.FL_Z)
    es.next_instr_addr = origin
    es.cur_instr_addr = origin
    es.ab.write_scb(es, es.ab.SCB_STATUS, es.ab.SCB_READY)

# Reset, load each image in order, and boot at the origin of the
# first one. An ImageLoadError leaves the machine in Reset.

def boot_images(es, paths):
    proc_reset(es)
    origin = None
    for path in paths:
        x = loader.load_image(es, path)
        if origin is None:
            origin = x
    boot(es, arch.pc_start if origin is None else origin)
    return es.pc.get()

# -------------------------------------------------------------------------
# Machine language semantics
# -------------------------------------------------------------------------

# Each handler decodes its own fields from es.instr_code. When a
# handler runs, the pc already holds the address of the next
# instruction, and all pc-relative addresses are based on it.

def pc_relative(es, offset, k):
    return arith.bin_add(es.pc.get(), arith.sign_extend(offset, k))

def op_br(es):
    instr = es.instr_code
    cond = arch.cond_of(instr)
    if cond & es.cond.get():
        es.pc.put(pc_relative(es, arch.pcoffset9_of(instr), 9))

# Second operand of ADD and AND: a register, or imm5 sign extended

def operand2(es, instr):
    if arch.imm_flag_of(instr):
        return arith.sign_extend(arch.imm5_of(instr), 5)
    else:
        return es.regfile[arch.sr2_of(instr)].get()

def op_add(es):
    instr = es.instr_code
    dr = arch.dr_of(instr)
    a = es.regfile[arch.sr1_of(instr)].get()
    b = operand2(es, instr)
    es.regfile[dr].put(arith.op_add(a, b))
    arith.update_flags(es, dr)

def op_and(es):
    instr = es.instr_code
    dr = arch.dr_of(instr)
    a = es.regfile[arch.sr1_of(instr)].get()
    b = operand2(es, instr)
    es.regfile[dr].put(arith.op_and(a, b))
    arith.update_flags(es, dr)

def op_not(es):
    instr = es.instr_code
    dr = arch.dr_of(instr)
    a = es.regfile[arch.sr1_of(instr)].get()
    es.regfile[dr].put(arith.op_not(a))
    arith.update_flags(es, dr)

def op_ld(es):
    instr = es.instr_code
    dr = arch.dr_of(instr)
    ea = pc_relative(es, arch.pcoffset9_of(instr), 9)
    es.regfile[dr].put(mem_fetch_data(es, ea))
    arith.update_flags(es, dr)

def op_ldi(es):
    instr = es.instr_code
    dr = arch.dr_of(instr)
    ea = mem_fetch_data(es, pc_relative(es, arch.pcoffset9_of(instr), 9))
    es.regfile[dr].put(mem_fetch_data(es, ea))
    arith.update_flags(es, dr)

def op_ldr(es):
    instr = es.instr_code
    dr = arch.dr_of(instr)
    base = es.regfile[arch.base_of(instr)].get()
    ea = arith.bin_add(base, arith.sign_extend(arch.offset6_of(instr), 6))
    es.regfile[dr].put(mem_fetch_data(es, ea))
    arith.update_flags(es, dr)

def op_lea(es):
    instr = es.instr_code
    dr = arch.dr_of(instr)
    es.regfile[dr].put(pc_relative(es, arch.pcoffset9_of(instr), 9))
    arith.update_flags(es, dr)

def op_st(es):
    instr = es.instr_code
    x = es.regfile[arch.sr_of(instr)].get()
    mem_store(es, pc_relative(es, arch.pcoffset9_of(instr), 9), x)

def op_sti(es):
    instr = es.instr_code
    x = es.regfile[arch.sr_of(instr)].get()
    ea = mem_fetch_data(es, pc_relative(es, arch.pcoffset9_of(instr), 9))
    mem_store(es, ea, x)

def op_str(es):
    instr = es.instr_code
    x = es.regfile[arch.sr_of(instr)].get()
    base = es.regfile[arch.base_of(instr)].get()
    mem_store(es, arith.bin_add(base, arith.sign_extend(arch.offset6_of(instr), 6)), x)

def op_jmp(es):
    instr = es.instr_code
    es.pc.put(es.regfile[arch.base_of(instr)].get())

# The target is worked out before R7 receives the return address, so
# JSRR R7 jumps to the old contents of R7.

def op_jsr(es):
    instr = es.instr_code
    ret = es.pc.get()
    if arch.jsr_flag_of(instr):
        target = pc_relative(es, arch.pcoffset11_of(instr), 11)
    else:
        target = es.regfile[arch.base_of(instr)].get()
    es.regfile[7].put(ret)
    es.pc.put(target)

def op_trap(es):
    instr = es.instr_code
    es.regfile[7].put(es.pc.get())
    traps.execute_trap(es, arch.trapvect_of(instr))

def op_illegal(es):
    raise common.IllegalOpcodeError(es.cur_instr_addr, arch.opcode_of(es.instr_code))

dispatch_primary_opcode = [
    op_br,       # 0
    op_add,      # 1
    op_ld,       # 2
    op_st,       # 3
    op_jsr,      # 4
    op_and,      # 5
    op_ldr,      # 6
    op_str,      # 7
    op_illegal,  # 8 rti
    op_not,      # 9
    op_ldi,      # a
    op_sti,      # b
    op_jmp,      # c
    op_illegal,  # d res
    op_lea,      # e
    op_trap      # f
]

# -------------------------------------------------------------------------
# Executing an instruction
# -------------------------------------------------------------------------

def execute_instruction(es):
    es.cur_instr_addr = es.pc.get()
    es.ab.write_scb(es, es.ab.SCB_CUR_INSTR_ADDR, es.cur_instr_addr)

    es.instr_code = mem_fetch_instr(es, es.cur_instr_addr)
    es.next_instr_addr = arith.incr_address(es.cur_instr_addr, 1)
    es.pc.put(es.next_instr_addr)
    es.ab.write_scb(es, es.ab.SCB_NEXT_INSTR_ADDR, es.next_instr_addr)

    op = arch.opcode_of(es.instr_code)
    if common.mode.trace:
        common.mode.devlog(f"x{arith.word_to_hex4(es.cur_instr_addr)}"
                           f" {arith.word_to_hex4(es.instr_code)}"
                           f" {arch.mnemonic[op]}")
    dispatch_primary_opcode[op](es)
    es.ab.incr_instr_count(es)

# -------------------------------------------------------------------------
# Controlling instruction execution
# -------------------------------------------------------------------------

def status(es):
    return es.ab.read_scb(es, es.ab.SCB_STATUS)

def is_running(es):
    return status(es) == es.ab.SCB_RUNNING

def is_halted(es):
    return status(es) == es.ab.SCB_HALTED

# A stop request is checked between instructions; it does not
# interrupt a blocking read (close the console for that).

def request_stop(es):
    es.ab.write_scb(es, es.ab.SCB_STOP_REQUEST, 1)

def stop_requested(es):
    return es.ab.read_scb(es, es.ab.SCB_STOP_REQUEST) != 0

# Execute until the machine halts, a stop is requested, or limit
# instructions have run (no limit when limit is None). A VMError puts
# the machine in Fault and propagates. Returns the number of
# instructions executed.

def instruction_looper(es, limit=None):
    icount = 0
    while is_running(es):
        if stop_requested(es):
            common.mode.devlog("stop requested")
            break
        if limit is not None and icount >= limit:
            break
        try:
            execute_instruction(es)
        except common.VMError:
            es.ab.write_scb(es, es.ab.SCB_STATUS, es.ab.SCB_FAULT)
            raise
        icount += 1
    common.mode.devlog(f"discontinue instruction looper after {icount}, status={es.ab.show_scb_status(es)}")
    return icount

def start(es):
    es.ab.write_scb(es, es.ab.SCB_STOP_REQUEST, 0)
    es.ab.write_scb(es, es.ab.SCB_STATUS, es.ab.SCB_RUNNING)

def main_run(es, max_instructions=None):
    start(es)
    return instruction_looper(es, max_instructions)

# Run at most one slice of instructions; used by a caller that needs
# control back periodically. The machine must already be running.

def run_slice(es, slice_size=default_instr_slice_size):
    return instruction_looper(es, slice_size)

# -------------------------------------------------------------------------
# Debugging/Output functions
# -------------------------------------------------------------------------

def dump_registers(es, file=None):
    file = sys.stdout if file is None else file
    print("\n--- Registers ---", file=file)
    for reg in es.register:
        x = reg.get()
        if reg is es.cond:
            print(f"{reg.reg_name}: {arch.show_cc(x)}", file=file)
        else:
            print(f"{reg.reg_name}: {arith.word_to_hex4(x)} ({arith.word_to_int(x)})", file=file)
    print(f"status: {es.ab.show_scb_status(es)}"
          f"  instructions: {es.ab.read_instr_count(es)}", file=file)
    print("-----------------", file=file)

def dump_memory(es, start_addr, end_addr, file=None):
    file = sys.stdout if file is None else file
    print(f"\n--- Memory (Addresses {arith.word_to_hex4(start_addr)} to {arith.word_to_hex4(end_addr-1)}) ---", file=file)
    current_addr = start_addr
    while current_addr < end_addr:
        line_output = f"MEM[{arith.word_to_hex4(current_addr)}]: "
        for i in range(arch.words_per_line):
            if current_addr + i < end_addr:
                value = es.ab.read_mem16(es, current_addr + i)
                line_output += f"{arith.word_to_hex4(value)} "
            else:
                break
        print(line_output, file=file)
        current_addr += arch.words_per_line
    print("-----------------", file=file)
