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
Building and parsing of CIP request paths (EPATH).

Symbolic paths split a tag name on ``.`` and encode one ANSI extended
symbolic segment per member::

    +------+-----+------------+
    | 0x91 | len | ASCII name |
    +------+-----+------------+

The segments are concatenated and one 0x00 pad byte is appended if the
whole path has an odd length.  ``PathFormats.padded_segments`` pads each odd
length segment instead, the form some targets expect for member access.
"""

from struct import unpack_from
from typing import List, NamedTuple, Optional, Union

from ..const import MAX_PATH_WORDS, MAX_SEGMENT_LEN
from ..exceptions import RequestError, TruncatedBufferError
from ..map import EnumMap
from .services import ClassCode

__all__ = [
    "PathFormats",
    "PathSegment",
    "ParsedPath",
    "MSG_ROUTER_PATH",
    "build_symbolic_path",
    "build_symbolic_path_16bit",
    "build_object_path",
    "build_tag_path",
    "path_size_words",
    "parse_path",
    "tag_name_from_path",
]

PAD = b"\x00"

ANSI_EXTENDED_SYMBOL = 0x91
ANSI_EXTENDED_SYMBOL_16BIT = 0x92

SEGMENT_TYPE_MASK = 0b_111_00000
LOGICAL_SEGMENT = 0b_001_00000
NETWORK_SEGMENT = 0b_010_00000
SYMBOLIC_SEGMENT = 0b_011_00000
DATA_SEGMENT = 0b_100_00000

LOGICAL_TYPES = {
    0b_000_000_00: "class_id",
    0b_000_001_00: "instance_id",
    0b_000_010_00: "member_id",
    0b_000_011_00: "connection_point",
    0b_000_100_00: "attribute_id",
    0b_000_101_00: "special",
    0b_000_110_00: "service_id",
}


class PathFormats(EnumMap):
    default = "default"
    symbolic = "symbolic"
    bit16 = "16bit"
    with_router = "with_router"
    padded_segments = "padded_segments"


class PathSegment(NamedTuple):
    kind: str  #: ``'logical'``, ``'symbolic'`` or ``'data'``
    value: Union[int, str, bytes]
    logical_type: Optional[str] = None  #: ``class_id``, ``instance_id``... for logical segments


class ParsedPath(NamedTuple):
    segments: List[PathSegment]
    length: int  #: number of bytes consumed


MSG_ROUTER_PATH = bytes([0x20, ClassCode.message_router, 0x24, 0x00])


def _encode_name(name: str) -> bytes:
    if not name:
        raise RequestError("Tag name contains an empty member")
    try:
        data = name.encode("ascii")
    except UnicodeEncodeError as err:
        raise RequestError(f"Tag name member {name!r} must be ASCII") from err
    if len(data) > MAX_SEGMENT_LEN:
        raise RequestError(f"Tag name member too long ({len(data)} > {MAX_SEGMENT_LEN}): {name!r}")
    return data


def _check_size(path: bytes) -> bytes:
    if path_size_words(path) > MAX_PATH_WORDS:
        raise RequestError(f"Request path too long: {len(path)} bytes (max {MAX_PATH_WORDS} words)")
    return path


def path_size_words(path: bytes) -> int:
    return (len(path) + 1) // 2


def _join_segments(segments: List[bytes], pad_segments: bool) -> bytes:
    if pad_segments:
        segments = [seg + PAD if len(seg) % 2 else seg for seg in segments]
    path = b"".join(segments)
    if len(path) % 2:
        path += PAD
    return _check_size(path)


def build_symbolic_path(tag_name: str, pad_segments: bool = False) -> bytes:
    """
    Encodes ``tag_name`` as a sequence of 8-bit length ANSI extended symbolic segments.

    The segments are concatenated and a single pad byte is added if the whole path is odd,
    ``pad_segments`` instead pads each odd length segment (``PathFormats.padded_segments``).
    """
    segments = []
    for member in tag_name.split("."):
        data = _encode_name(member)
        segments.append(bytes([ANSI_EXTENDED_SYMBOL, len(data)]) + data)

    return _join_segments(segments, pad_segments)


def build_symbolic_path_16bit(tag_name: str, pad_segments: bool = False) -> bytes:
    """
    Alternate encoding using a 16-bit length, accepted by some targets
    """
    segments = []
    for member in tag_name.split("."):
        data = _encode_name(member)
        segments.append(bytes([ANSI_EXTENDED_SYMBOL_16BIT]) + len(data).to_bytes(2, "little") + data)

    return _join_segments(segments, pad_segments)


def build_object_path(class_id: int, instance_id: int) -> bytes:
    """
    8-bit logical segments addressing ``instance_id`` of ``class_id``
    """
    if not (0 <= class_id <= 0xFF and 0 <= instance_id <= 0xFF):
        raise RequestError(f"Class/instance out of range for 8-bit segments: {class_id}/{instance_id}")
    return bytes([0x20, class_id, 0x24, instance_id])


def build_tag_path(
    tag_name: str,
    path_format: str = PathFormats.default,
    use_message_router: bool = False,
) -> bytes:
    """
    Builds the request path for ``tag_name``.

    ``path_format`` is one of ``PathFormats``: ``default``/``symbolic`` for 8-bit length
    symbolic segments, ``16bit`` for the 16-bit length form, ``with_router`` to
    route the request through the Message Router (same as ``use_message_router=True``)
    and ``padded_segments`` for targets expecting every odd length segment padded
    instead of the whole path.
    """
    formats = [v for _, v in PathFormats]
    if path_format not in formats:
        raise RequestError(
            f"Unknown path format {path_format!r}, expected one of: {', '.join(formats)}"
        )
    if path_format == PathFormats.bit16:
        path = build_symbolic_path_16bit(tag_name)
    else:
        path = build_symbolic_path(tag_name, pad_segments=path_format == PathFormats.padded_segments)

    if use_message_router or path_format == PathFormats.with_router:
        path = _check_size(MSG_ROUTER_PATH + path)

    return path


def _need(buffer: bytes, pos: int, size: int):
    if pos + size > len(buffer):
        raise TruncatedBufferError(f"Path segment at offset {pos} needs {size} bytes")


def _skip_pad(path: bytes, pos: int) -> int:
    """
    Steps over the pad byte after an odd length name, if there is one
    """
    if pos < len(path) and path[pos] == 0:
        return pos + 1
    return pos


def parse_path(path: bytes, offset: int = 0) -> ParsedPath:
    """
    Walks the segments of ``path`` using the segment type in the top 3 bits of
    each segment byte.  Logical, symbolic and data segments are returned, network
    segments are skipped and the walk stops at the first unknown segment type.
    """
    segments = []
    pos = offset

    while pos < len(path):
        seg = path[pos]
        seg_type = seg & SEGMENT_TYPE_MASK

        if seg_type == LOGICAL_SEGMENT:
            logical_type = LOGICAL_TYPES.get(seg & 0b_000_111_00)
            fmt = seg & 0b_11
            if fmt == 0:  # 8-bit
                _need(path, pos, 2)
                value = path[pos + 1]
                pos += 2
            elif fmt == 1:  # 16-bit, padded
                _need(path, pos, 4)
                value = unpack_from("<H", path, pos + 2)[0]
                pos += 4
            elif fmt == 2 or fmt == 3:  # 32-bit, padded
                _need(path, pos, 6)
                value = unpack_from("<I", path, pos + 2)[0]
                pos += 6
            segments.append(PathSegment("logical", value, logical_type))

        elif seg_type == NETWORK_SEGMENT:
            if seg == 0x5F:  # extended network segment, word count follows
                _need(path, pos, 2)
                pos += 2 + path[pos + 1] * 2
            else:
                pos += 2

        elif seg_type == SYMBOLIC_SEGMENT:
            size = seg & 0b_000_11111
            if not size:
                break  # extended string formats are not used here
            _need(path, pos, 1 + size)
            name = path[pos + 1 : pos + 1 + size].decode("ascii", errors="replace")
            segments.append(PathSegment("symbolic", name))
            pos += 1 + size
            if (1 + size) % 2:
                pos = _skip_pad(path, pos)

        elif seg == ANSI_EXTENDED_SYMBOL:
            _need(path, pos, 2)
            size = path[pos + 1]
            _need(path, pos, 2 + size)
            name = path[pos + 2 : pos + 2 + size].decode("ascii", errors="replace")
            segments.append(PathSegment("symbolic", name))
            pos += 2 + size
            if size % 2:
                pos = _skip_pad(path, pos)

        elif seg == ANSI_EXTENDED_SYMBOL_16BIT:
            _need(path, pos, 3)
            size = unpack_from("<H", path, pos + 1)[0]
            _need(path, pos, 3 + size)
            name = path[pos + 3 : pos + 3 + size].decode("ascii", errors="replace")
            segments.append(PathSegment("symbolic", name))
            pos += 3 + size
            if (3 + size) % 2:
                pos = _skip_pad(path, pos)

        elif seg_type == DATA_SEGMENT:
            # simple data segment, length in words
            _need(path, pos, 2)
            size = path[pos + 1] * 2
            _need(path, pos, 2 + size)
            segments.append(PathSegment("data", bytes(path[pos + 2 : pos + 2 + size])))
            pos += 2 + size

        elif seg == 0 and pos == len(path) - 1:
            pos += 1  # pad byte ending an odd length path

        else:
            break

    return ParsedPath(segments, min(pos, len(path)) - offset)


def tag_name_from_path(path: bytes) -> Optional[str]:
    """
    Joins the symbolic segments of ``path`` with ``.``, ``None`` if it has none
    """
    names = [seg.value for seg in parse_path(path).segments if seg.kind == "symbolic"]
    return ".".join(names) if names else None
