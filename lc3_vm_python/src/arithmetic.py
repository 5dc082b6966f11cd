# arithmetic.py

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

# ------------------------------------------------------------------------
# arithmetic.py defines arithmetic for the architecture using
# Python arithmetic. This includes word representation, data
# conversions, sign extension, the condition flags, and the
# operations required by the instruction set architecture.
# ------------------------------------------------------------------------

import common
import architecture as arch

word16mask = 0x0000FFFF

# ------------------------------------------------------------------------
# Ensuring validity of words
# ------------------------------------------------------------------------

# All operations that produce a word should produce a valid word,
# which is represented as a nonnegative integer x with 0 <= x < 2^16.
# Addresses are 16 bits; an address that exceeds this range wraps
# around. Wraparound is defined behavior and is never reported.

def limit16(x):
    return x & word16mask

def assert16(x):
    if 0 <= x < 2**16:
        return x
    else:
        common.indicate_error(f"assert16 fail: {x}")
        return x & word16mask

# ------------------------------------------------------------------------
# Words, binary numbers, and two's complement integers
# ------------------------------------------------------------------------

const8000 = 32768  # 2^15
const10000 = 65536  # 2^16

def word_to_int(w):
    x = assert16(w)
    return x if x < const8000 else x - const10000

# ------------------------------------------------------------------------
# Sign extension
# ------------------------------------------------------------------------

# The low k bits of x are a k-bit two's complement number. The result
# is the 16-bit word with the same signed value: bit k-1 is copied
# into bits 15..k. Offsets and immediates use k = 5, 6, 9, 11.

def sign_extend(x, k):
    x = x & ((1 << k) - 1)
    if arch.get_bit_in_word_le(x, k - 1):
        x |= (word16mask << k) & word16mask
    return x

# ------------------------------------------------------------------------
# Condition flags
# ------------------------------------------------------------------------

def flag_of(x):
    if x == 0:
        return arch.FL_Z
    elif arch.get_bit_in_word_le(x, 15):
        return arch.FL_N
    else:
        return arch.FL_P

# Set the condition register from register r. This must be called
# after r has been written, with the register that was written.

def update_flags(es, r):
    x = es.register[r].get()
    cc = flag_of(x)
    common.mode.devlog(f"update_flags R{r}={word_to_hex4(x)} cc={arch.show_cc(cc)}")
    es.register[arch.R_COND].put(cc)

# ------------------------------------------------------------------------
# Operating on fields of a word
# ------------------------------------------------------------------------

def split_word(x):
    y = limit16(x)
    s = y & 0x000F
    y = y >> 4
    r = y & 0x000F
    y = y >> 4
    q = y & 0x000F
    y = y >> 4
    p = y & 0x000F
    return [p, q, r, s]

# Split a word into its low and high bytes, used for packed strings

def split_bytes(x):
    y = limit16(x)
    return [y & 0x00FF, y >> 8]

# ------------------------------------------------------------------------
# Hexadecimal notation
# ------------------------------------------------------------------------

hex_digit = ['0', '1', '2', '3', '4', '5', '6', '7', '8', '9', 'A', 'B', 'C', 'D', 'E', 'F']

def word_to_hex4(x):
    p, q, r, s = split_word(x)
    return hex_digit[p] + hex_digit[q] + hex_digit[r] + hex_digit[s]

# ------------------------------------------------------------------------
# Bitwise logic and addition on words
# ------------------------------------------------------------------------

def word_invert(x):
    return x ^ word16mask

def bin_add(x, y):
    r = x + y
    return r & word16mask

def incr_address(x, i):
    return (x + i) & word16mask

# ------------------------------------------------------------------------
# Operations for the instructions
# ------------------------------------------------------------------------

def op_add(a, b):
    return bin_add(a, b)

def op_and(a, b):
    return a & b

def op_not(a):
    return word_invert(a)
