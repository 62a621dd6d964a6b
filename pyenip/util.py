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

"""
Various utility functions.
"""

import os
import struct
import threading
from typing import Iterable, List, Optional

from .const import DEFAULT_TAG_PREFIXES

__all__ = ["cycle", "new_sender_context", "tag_name_candidates"]


def cycle(stop, start=0):
    val = start
    while True:
        if val > stop:
            val = start

        yield val
        val += 1


_context_counter = cycle(0xFFFF_FFFF, start=1)
_context_lock = threading.Lock()


def new_sender_context() -> bytes:
    """
    Returns a new 8-byte sender context, a wrapping 32-bit sequence number
    followed by 4 random bytes.  Unique within the process, so it can be used
    to match a reply to the request that caused it.
    """
    with _context_lock:
        seq = next(_context_counter)
    return struct.pack("<I", seq) + os.urandom(4)


def tag_name_candidates(name: str, prefixes: Optional[Iterable[str]] = None) -> List[str]:
    """
    Ordered list of names to try for a bare tag name.

    Each prefix is prepended to ``name`` unless ``name`` already starts with it,
    duplicates are removed and the order of ``prefixes`` is kept.

    >>> tag_name_candidates('Speed', ['', 'GVL.'])
    ['Speed', 'GVL.Speed']
    """
    if prefixes is None:
        prefixes = DEFAULT_TAG_PREFIXES

    candidates = []
    for prefix in prefixes:
        candidate = name if (not prefix or name.startswith(prefix)) else f"{prefix}{name}"
        if candidate not in candidates:
            candidates.append(candidate)

    return candidates
