# -*- coding: utf-8 -*-
#
# Copyright (c) 2021 Ian Ottoway <ian@ottoway.dev>
# Copyright (c) 2014 Agostino Ruscito <ruscito@gmail.com>
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.
#

import string
import threading
from struct import unpack_from
from typing import List

from ..const import HEADER_SIZE

__all__ = [
    "FrameBuffer",
    "print_bytes_msg",
    "PacketLazyFormatter",
]


class FrameBuffer:
    """
    Reassembles encapsulation messages from a byte stream.

    Data is buffered until a full message (24-byte header plus the length it
    declares) is available, so one delivery may complete several messages or
    none at all.
    """

    def __init__(self):
        self._buffer = bytearray()
        self._lock = threading.Lock()

    def feed(self, data: bytes) -> List[bytes]:
        """
        Adds ``data`` to the buffer and returns every message now complete
        """
        frames = []
        with self._lock:
            self._buffer += data
            while len(self._buffer) >= HEADER_SIZE:
                length = unpack_from("<H", self._buffer, 2)[0]
                end = HEADER_SIZE + length
                if len(self._buffer) < end:
                    break
                frames.append(bytes(self._buffer[:end]))
                del self._buffer[:end]

        return frames

    def clear(self):
        with self._lock:
            self._buffer.clear()

    def __len__(self):
        return len(self._buffer)


PRINTABLE = set(
    b"".join(bytes(x, "ascii") for x in (string.ascii_letters, string.digits, string.punctuation, " "))
)


def _to_hex(bites):
    return " ".join(f"{b:0>2x}" for b in bites)


def _to_ascii(bites):
    return "".join(f"{chr(b)}" if b in PRINTABLE else "•" for b in bites)


def print_bytes_msg(msg):
    line_len = 16
    lines = (msg[i : i + line_len] for i in range(0, len(msg), line_len))

    formatted_lines = (
        f"({i * line_len:0>4x}) {_to_hex(line): <48}    {_to_ascii(line)}"
        for i, line in enumerate(lines)
    )

    return "\n".join(formatted_lines)


class PacketLazyFormatter:
    def __init__(self, data):
        self._data = data

    def __str__(self):
        return print_bytes_msg(self._data)

    def __len__(self):
        return len(self._data)
