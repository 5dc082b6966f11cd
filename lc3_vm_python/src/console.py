# console.py

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
# console.py defines the consoles the machine reads and writes, and
# the terminal mode controller that brackets a run on a real terminal
# ----------------------------------------------------------------------

# A console is any object with these methods:
#   read_char()      block until a character is available, return its
#                    code; raise ConsoleClosed when input is exhausted
#   write_char(c)    write the character whose code is the low byte of c
#   flush()          make everything written so far visible
#   key_ready()      True if read_char would not block
# The trap routines and the keyboard device registers only use these.

import os
import sys
import queue
import select

import common

# ----------------------------------------------------------------------
# Terminal console
# ----------------------------------------------------------------------

# Reads single bytes from the input file descriptor without Python's
# text buffering, so one keypress is one read. Output is written as
# bytes so that codes 128..255 come out unchanged.

class TerminalConsole:
    def __init__(self, in_fd=None, out=None):
        self.in_fd = in_fd
        self.out = out

    # The standard streams are looked up on first use, not when the
    # console is made

    def input_fd(self):
        if self.in_fd is None:
            self.in_fd = sys.stdin.fileno()
        return self.in_fd

    def output(self):
        if self.out is None:
            self.out = sys.stdout.buffer
        return self.out

    def read_char(self):
        self.flush()
        b = os.read(self.input_fd(), 1)
        if not b:
            raise common.ConsoleClosed("end of console input")
        return b[0]

    def write_char(self, c):
        self.output().write(bytes([c & 0xFF]))

    def flush(self):
        self.output().flush()

    def key_ready(self):
        readable, _, _ = select.select([self.input_fd()], [], [], 0)
        return len(readable) > 0

# ----------------------------------------------------------------------
# In-memory console
# ----------------------------------------------------------------------

# Input is given up front; output is captured. n_flushed counts the
# output bytes that had been flushed, which lets a caller check that
# output was flushed before a read.

class BufferConsole:
    def __init__(self, input_text=b""):
        if isinstance(input_text, str):
            input_text = input_text.encode("latin-1")
        self.input = bytearray(input_text)
        self.output = bytearray()
        self.n_flushed = 0

    def read_char(self):
        self.flush()
        if not self.input:
            raise common.ConsoleClosed("end of console input")
        return self.input.pop(0)

    def write_char(self, c):
        self.output.append(c & 0xFF)

    def flush(self):
        self.n_flushed = len(self.output)

    def key_ready(self):
        return len(self.input) > 0

    def feed(self, text):
        if isinstance(text, str):
            text = text.encode("latin-1")
        self.input.extend(text)

    def text(self):
        return self.output.decode("latin-1")

# ----------------------------------------------------------------------
# Queue console
# ----------------------------------------------------------------------

# Used when the machine runs in a worker thread: another thread puts
# keys in, and flushed output is handed to on_output as a string.
# close() wakes a blocked reader, which then raises ConsoleClosed.

class QueueConsole:
    def __init__(self, on_output=None):
        self.keys = queue.Queue()
        self.on_output = on_output
        self.pending = []
        self.closed = False

    def put_key(self, c):
        self.keys.put(c & 0xFF)

    def close(self):
        self.closed = True
        self.keys.put(None)

    # Open the console again after close(); keys typed meanwhile are kept

    def reopen(self):
        kept = []
        while not self.keys.empty():
            c = self.keys.get_nowait()
            if c is not None:
                kept.append(c)
        for c in kept:
            self.keys.put(c)
        self.closed = False

    def read_char(self):
        self.flush()
        c = self.keys.get()
        if c is None:
            self.keys.put(None)  # stay closed for later reads
            raise common.ConsoleClosed("console closed")
        return c

    def write_char(self, c):
        self.pending.append(chr(c & 0xFF))

    def flush(self):
        if self.pending:
            text = "".join(self.pending)
            self.pending = []
            if self.on_output:
                self.on_output(text)

    def key_ready(self):
        return not self.keys.empty()

# ----------------------------------------------------------------------
# Terminal mode controller
# ----------------------------------------------------------------------

# enable_raw_mode puts the terminal in cbreak mode: no line buffering
# and no echo, but ^C still delivers SIGINT. restore_original_mode puts
# back the saved attributes and may be called more than once. Both do
# nothing when the stream is not a terminal.

class TerminalMode:
    def __init__(self, stream=None):
        self.stream = sys.stdin if stream is None else stream
        self.saved = None
        self.fd = None

    def enable_raw_mode(self):
        if sys.platform == "win32":
            return
        import termios
        import tty
        try:
            fd = self.stream.fileno()
        except (AttributeError, OSError, ValueError):
            return
        if not os.isatty(fd):
            return
        self.fd = fd
        self.saved = termios.tcgetattr(fd)
        tty.setcbreak(fd)
        common.mode.devlog("terminal: cbreak mode on")

    def restore_original_mode(self):
        if self.saved is None:
            return
        import termios
        termios.tcsetattr(self.fd, termios.TCSADRAIN, self.saved)
        self.saved = None
        common.mode.devlog("terminal: original mode restored")

    def __enter__(self):
        self.enable_raw_mode()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.restore_original_mode()
        return False
