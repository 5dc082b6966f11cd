# common.py

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

# ----------------------------------------------------------------------
# common.py defines the trace mode, error reporting, and the errors
# raised by the machine
# ----------------------------------------------------------------------

import sys

# ----------------------------------------------------------------------
# Trace mode
# ----------------------------------------------------------------------

# Trace and error messages go to stderr; stdout belongs to the program
# running on the machine.

class Mode:
    def __init__(self):
        self.trace = False
        self.show_err = True

    def set_trace(self):
        self.trace = True

    def clear_trace(self):
        self.trace = False

    def devlog(self, xs):
        if self.trace:
            print(xs, file=sys.stderr)

    def errlog(self, xs):
        if self.show_err:
            print(xs, file=sys.stderr)

mode = Mode()

# ----------------------------------------------------------------------
# Logging error message
# ----------------------------------------------------------------------

def indicate_error(xs):
    if sys.stderr.isatty():
        xs = f"\033[91m\033[1m{xs}\033[0m" # ANSI escape codes for red and bold
    mode.errlog(xs)

# ----------------------------------------------------------------------
# Errors
# ----------------------------------------------------------------------

# Every error is fatal for the run: a misdecoded instruction
# invalidates all later machine state, so nothing is retried.

class VMError(Exception):
    pass

class ImageLoadError(VMError):
    pass

class IllegalOpcodeError(VMError):
    def __init__(self, address, opcode):
        self.address = address
        self.opcode = opcode
        super().__init__(f"illegal opcode {opcode:04b} at x{address:04X}")

class UnknownTrapError(VMError):
    def __init__(self, address, vector):
        self.address = address
        self.vector = vector
        super().__init__(f"unknown trap vector x{vector:02X} at x{address:04X}")

class ConsoleClosed(VMError):
    pass
