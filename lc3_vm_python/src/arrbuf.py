# arrbuf.py

# Copyright (C) 2025 The lc3vm authors. License: GNU GPL
# Version 3. See README and LICENSE

# This file is part of lc3vm. lc3vm is free software:
# you can redistribute it and/or modify it under the terms
# of the GNU General Public License as published by the Free
# Software Foundation, Version 3 of the License. lc3vm is
# distributed in the hope that it will be useful, but
# WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See
# the GNU General Public License for more details. You
# should have received a copy of the GNU General Public
# License along with lc3vm. If not, see
# <https://www.gnu.org/licenses/>.

# arrbuf.py defines the system state vector: the system
# control block, the register file, and memory. Every access
# goes through an emulator state es, which owns the vectors;
# there is no module level machine state.

import arithmetic as arith
import architecture as arch

# -------------------------------------------------------------
# Memory map of the emulator state vectors
# -------------------------------------------------------------

# The system control block uses 32-bit elements in vec32.
# Registers and memory share vec16: the register file comes
# first, followed by the 65536 memory locations.

SCB_SIZE = 16  # emulator variables
REG_SIZE = arch.reg_count  # 8 gen, pc, cond
MEM_SIZE = arch.mem_size  # each location is 16 bits

SCB_OFFSET32 = 0
REG_OFFSET16 = 0
MEM_OFFSET16 = REG_OFFSET16 + REG_SIZE

STATE_VEC16_SIZE = REG_SIZE + MEM_SIZE
STATE_VEC32_SIZE = SCB_SIZE

def new_vec16():
    return [0] * STATE_VEC16_SIZE

def new_vec32():
    return [0] * STATE_VEC32_SIZE

# -------------------------------------------------------------
# General access functions
# -------------------------------------------------------------

def limit32(x):
    return x & 0xFFFFFFFF

def read16(es, a, k):
    return es.vec16[a + k]

def write16(es, a, k, x):
    es.vec16[a + k] = arith.limit16(x)

def read32(es, a, k):
    return es.vec32[a + k]

def write32(es, a, k, x):
    es.vec32[a + k] = limit32(x)

# -------------------------------------------------------------
# System control block
# -------------------------------------------------------------

SCB_N_INSTR_EXECUTED = 0  # count instr executed
SCB_STATUS = 1  # status of system
SCB_CUR_INSTR_ADDR = 2  # addr current instr
SCB_NEXT_INSTR_ADDR = 3  # address next instr
SCB_STOP_REQUEST = 4  # stop req pending

# SCB access functions

def write_scb(es, elt, x):
    write32(es, elt, SCB_OFFSET32, x)

def read_scb(es, elt):
    return read32(es, elt, SCB_OFFSET32)

# SCB_status codes specify the condition of the processor

SCB_RESET = 0  # after init or Reset
SCB_READY = 1  # after boot
SCB_RUNNING = 2  # executing instructions
SCB_BLOCKED = 3  # during blocking read
SCB_HALTED = 4  # after trap x25
SCB_FAULT = 5  # after a fatal error

# Clear the SCB, putting the system into initial state

def reset_scb(es):
    for i in range(SCB_SIZE):
        write_scb(es, i, 0)
    write_scb(es, SCB_STATUS, SCB_RESET)

# Convert the numeric status to a descriptive string

def show_scb_status(es):
    status = read_scb(es, SCB_STATUS)
    if status == SCB_RESET:
        return "Reset"
    elif status == SCB_READY:
        return "Ready"
    elif status == SCB_RUNNING:
        return "Running"
    elif status == SCB_BLOCKED:
        return "Blocked"
    elif status == SCB_HALTED:
        return "Halted"
    elif status == SCB_FAULT:
        return "Fault"
    else:
        return ""

def read_instr_count(es):
    return read_scb(es, SCB_N_INSTR_EXECUTED)

def incr_instr_count(es):
    write_scb(es, SCB_N_INSTR_EXECUTED, read_instr_count(es) + 1)

# -------------------------------------------------------------
# Registers
# -------------------------------------------------------------

def read_reg16(es, r):
    return read16(es, r, REG_OFFSET16)

def write_reg16(es, r, x):
    write16(es, r, REG_OFFSET16, x)

# -------------------------------------------------------------
# Memory
# -------------------------------------------------------------

# Addresses wrap around at 2^16

def read_mem16(es, a):
    return read16(es, arith.limit16(a), MEM_OFFSET16)

def write_mem16(es, a, x):
    write16(es, arith.limit16(a), MEM_OFFSET16, x)

def clear_mem(es):
    es.vec16[MEM_OFFSET16:MEM_OFFSET16 + MEM_SIZE] = [0] * MEM_SIZE

def clear_regs(es):
    es.vec16[REG_OFFSET16:REG_OFFSET16 + REG_SIZE] = [0] * REG_SIZE
