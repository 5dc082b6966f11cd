# loader.py

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
# loader.py reads program images into memory
# -------------------------------------------------------------------------

# An image is a sequence of big-endian 16-bit words. The first word is
# the origin, the address where the remaining words are placed.

import struct

import common
import architecture as arch
import arithmetic as arith

def parse_image(data):
    if len(data) < 2:
        raise common.ImageLoadError("image is empty: no origin word")
    if len(data) % 2 != 0:
        raise common.ImageLoadError(f"image has an odd number of bytes ({len(data)})")
    n = len(data) // 2
    words = list(struct.unpack(f">{n}H", data))
    origin = words[0]
    code = words[1:]
    if origin + len(code) > arch.mem_size:
        raise common.ImageLoadError(
            f"image of {len(code)} words at x{arith.word_to_hex4(origin)} runs past the end of memory")
    return origin, code

def copy_image_to_memory(es, origin, code):
    common.mode.devlog(f"loading {len(code)} words at x{arith.word_to_hex4(origin)}")
    for i, x in enumerate(code):
        es.ab.write_mem16(es, origin + i, x)

def load_image_bytes(es, data):
    origin, code = parse_image(data)
    copy_image_to_memory(es, origin, code)
    return origin

def load_image(es, path):
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise common.ImageLoadError(f"failed to load image {path}: {e.strerror}") from e
    try:
        return load_image_bytes(es, data)
    except common.ImageLoadError as e:
        raise common.ImageLoadError(f"failed to load image {path}: {e}") from e
