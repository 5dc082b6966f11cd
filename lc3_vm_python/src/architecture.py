# architecture.py

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

# --------------------------------------------------------------------
# architecture.py defines global constants and tables specifying
# registers, opcodes, mnemonics, condition flags, trap vectors, and
# the fields of an instruction word
# --------------------------------------------------------------------

# --------------------------------------------------------------------
# Bit indexing
# --------------------------------------------------------------------

# Bits are indexed Little End: the least significant bit of a word has
# index 0 and the most significant bit of a 16-bit word has index 15.
# An instruction field written [11:9] is bits 11 down to 9.

def get_bit_in_word_le(w, i):
    return (w >> i) & 0x0001

# Extract the field [hi:lo] of word w as an unsigned integer

def get_field_le(w, hi, lo):
    return (w >> lo) & ((1 << (hi - lo + 1)) - 1)

# --------------------------------------------------------------------
# Architecture constants
# --------------------------------------------------------------------

mem_size = 65536  # number of memory locations = 2^16
words_per_line = 8

# Programs are conventionally loaded at x3000 when nothing else is
# specified

pc_start = 0x3000

# Register file: eight general registers followed by the program
# counter and the condition register

R0 = 0
R1 = 1
R2 = 2
R3 = 3
R4 = 4
R5 = 5
R6 = 6
R7 = 7
R_PC = 8
R_COND = 9
reg_count = 10

n_gen_registers = 8

reg_names = ["R0", "R1", "R2", "R3", "R4", "R5", "R6", "R7", "PC", "COND"]

# Memory mapped device registers

MR_KBSR = 0xFE00  # keyboard status
MR_KBDR = 0xFE02  # keyboard data

kbsr_ready = 0x8000

# --------------------------------------------------------------------
# Condition flags
# --------------------------------------------------------------------

# The condition register holds exactly one flag. The bit positions
# match the n, z, p bits [11:9] of a BR instruction, so a branch is
# taken when (cond & flags) != 0.

FL_P = 1 << 0  # positive
FL_Z = 1 << 1  # zero
FL_N = 1 << 2  # negative

def show_cc(c):
    if c == FL_P:
        return "P"
    elif c == FL_Z:
        return "Z"
    elif c == FL_N:
        return "N"
    else:
        return "?"

# --------------------------------------------------------------------
# Opcodes
# --------------------------------------------------------------------

OP_BR = 0     # branch
OP_ADD = 1    # add
OP_LD = 2     # load
OP_ST = 3     # store
OP_JSR = 4    # jump to subroutine
OP_AND = 5    # bitwise and
OP_LDR = 6    # load base+offset
OP_STR = 7    # store base+offset
OP_RTI = 8    # return from interrupt (unused)
OP_NOT = 9    # bitwise not
OP_LDI = 10   # load indirect
OP_STI = 11   # store indirect
OP_JMP = 12   # jump, also ret
OP_RES = 13   # reserved
OP_LEA = 14   # load effective address
OP_TRAP = 15  # system call

mnemonic = [
    "BR", "ADD", "LD", "ST", "JSR", "AND", "LDR", "STR",
    "RTI", "NOT", "LDI", "STI", "JMP", "RES", "LEA", "TRAP"
]

# --------------------------------------------------------------------
# Trap vectors
# --------------------------------------------------------------------

TRAP_GETC = 0x20   # read char, no echo
TRAP_OUT = 0x21    # write char
TRAP_PUTS = 0x22   # write word string
TRAP_IN = 0x23     # prompt, read char, echo
TRAP_PUTSP = 0x24  # write byte string
TRAP_HALT = 0x25   # halt

trap_names = {
    TRAP_GETC: "GETC",
    TRAP_OUT: "OUT",
    TRAP_PUTS: "PUTS",
    TRAP_IN: "IN",
    TRAP_PUTSP: "PUTSP",
    TRAP_HALT: "HALT",
}

# --------------------------------------------------------------------
# Instruction fields
# --------------------------------------------------------------------

#   15..12  opcode
#   11..9   dr, sr (ST/STI/STR), or n z p (BR)
#   8..6    sr1, sr (NOT), base (LDR/STR/JMP/JSRR)
#   5       immediate flag (ADD/AND)
#   4..0    imm5
#   2..0    sr2
#   5..0    offset6
#   8..0    PCoffset9
#   11      JSR flag, 10..0 PCoffset11
#   7..0    trapvect8

# Offsets and immediates are returned raw; sign extension is done by
# arithmetic.sign_extend with the field width.

def opcode_of(instr):
    return get_field_le(instr, 15, 12)

def dr_of(instr):
    return get_field_le(instr, 11, 9)

def sr_of(instr):
    return get_field_le(instr, 11, 9)

def sr1_of(instr):
    return get_field_le(instr, 8, 6)

def sr2_of(instr):
    return get_field_le(instr, 2, 0)

def base_of(instr):
    return get_field_le(instr, 8, 6)

def imm_flag_of(instr):
    return get_bit_in_word_le(instr, 5)

def imm5_of(instr):
    return get_field_le(instr, 4, 0)

def offset6_of(instr):
    return get_field_le(instr, 5, 0)

def pcoffset9_of(instr):
    return get_field_le(instr, 8, 0)

def pcoffset11_of(instr):
    return get_field_le(instr, 10, 0)

def cond_of(instr):
    return get_field_le(instr, 11, 9)

def jsr_flag_of(instr):
    return get_bit_in_word_le(instr, 11)

def trapvect_of(instr):
    return get_field_le(instr, 7, 0)
