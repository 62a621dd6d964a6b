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
Request builders and reply parsers for the CIP services carried by SendRRData:
Read Tag, Write Tag, Get_Attributes_All and Find_Next.
"""

from struct import pack, unpack_from
from typing import Any, Dict, NamedTuple, Optional

from ..cip import Services, ClassCode, SHORT_STRING, get_data_type, infer_data_type, build_tag_path, build_object_path
from ..cip.path import PathFormats
from ..exceptions import TruncatedBufferError, DataError, RequestError
from .ethernetip import build_send_rr_data, parse_send_rr_data_response, InterfaceHandleFormat

__all__ = [
    "ReadTagReply",
    "FindNextReply",
    "WriteTagData",
    "build_read_tag_request",
    "parse_read_tag_response",
    "build_read_tag_reply_data",
    "build_write_tag_request",
    "parse_write_tag_data",
    "parse_write_tag_response",
    "build_get_attributes_all_request",
    "parse_identity_attributes",
    "build_find_next_request",
    "parse_find_next_response",
]


class ReadTagReply(NamedTuple):
    data_type: int
    element_count: int
    data: bytes


class WriteTagData(NamedTuple):
    element_count: int
    data_type: int
    data: bytes


class FindNextReply(NamedTuple):
    class_id: int
    instance_id: int
    name: str


def build_read_tag_request(
    session_handle: int,
    tag_name: str,
    element_count: int = 1,
    path_format: str = PathFormats.default,
    use_message_router: bool = False,
    interface_handle_format=InterfaceHandleFormat.split,
    sender_context: Optional[bytes] = None,
) -> bytes:
    path = build_tag_path(tag_name, path_format, use_message_router)
    return build_send_rr_data(
        session_handle,
        Services.read_tag,
        path,
        pack("<H", element_count),
        sender_context=sender_context,
        interface_handle_format=interface_handle_format,
    )


def build_read_tag_reply_data(data_type: int, element_count: int, raw: bytes) -> bytes:
    return pack("<BH", data_type, element_count) + raw


def parse_read_tag_response(data: bytes) -> ReadTagReply:
    """
    Splits a Read Tag reply into ``(data_type, element_count, data)``
    """
    reply = parse_send_rr_data_response(data)
    if len(reply.data) < 3:
        raise TruncatedBufferError(f"Read Tag reply needs at least 3 bytes, got {len(reply.data)}")
    data_type, element_count = unpack_from("<BH", reply.data, 0)
    return ReadTagReply(data_type, element_count, reply.data[3:])


def build_write_tag_request(
    session_handle: int,
    tag_name: str,
    data_type: Any,
    value: Any,
    element_count: int = 1,
    path_format: str = PathFormats.default,
    use_message_router: bool = False,
    interface_handle_format=InterfaceHandleFormat.split,
    sender_context: Optional[bytes] = None,
) -> bytes:
    """
    ``data_type`` may be a type code, name or class, ``None`` infers it from ``value``.
    A list ``value`` encodes every element, ``element_count`` must match the number of values.
    """
    _type = infer_data_type(value) if data_type is None else get_data_type(data_type)
    values = value if isinstance(value, (list, tuple)) else [value]
    if element_count != len(values):
        raise RequestError(f"element_count is {element_count} but {len(values)} values were given for {tag_name!r}")
    encoded = b"".join(_type.encode(v) for v in values)
    path = build_tag_path(tag_name, path_format, use_message_router)
    return build_send_rr_data(
        session_handle,
        Services.write_tag,
        path,
        pack("<HB", element_count, _type.code) + encoded,
        sender_context=sender_context,
        interface_handle_format=interface_handle_format,
    )


def parse_write_tag_data(data: bytes) -> WriteTagData:
    """
    Splits the request data of a Write Tag request, ``[count:u16][type:u8][values]``
    """
    if len(data) < 3:
        raise TruncatedBufferError(f"Write Tag data needs at least 3 bytes, got {len(data)}")
    element_count, data_type = unpack_from("<HB", data, 0)
    return WriteTagData(element_count, data_type, data[3:])


def parse_write_tag_response(data: bytes) -> int:
    return parse_send_rr_data_response(data).cip_status


def build_get_attributes_all_request(
    session_handle: int,
    class_id: int = ClassCode.identity_object,
    instance_id: int = 1,
    sender_context: Optional[bytes] = None,
) -> bytes:
    return build_send_rr_data(
        session_handle,
        Services.get_attributes_all,
        build_object_path(class_id, instance_id),
        sender_context=sender_context,
    )


def parse_identity_attributes(data: bytes) -> Dict[str, Any]:
    """
    Decodes the Identity object attributes from Get_Attributes_All reply data.
    Attributes are read in order until the data runs out, so a short reply
    yields a partial ``dict``.
    """
    attrs = {}
    fields = [
        ("vendor_id", "<H", 2),
        ("device_type", "<H", 2),
        ("product_code", "<H", 2),
        ("revision", "<BB", 2),
        ("status", "<H", 2),
        ("serial_number", "<I", 4),
    ]
    offset = 0
    for name, fmt, size in fields:
        if len(data) < offset + size:
            return attrs
        values = unpack_from(fmt, data, offset)
        attrs[name] = {"major": values[0], "minor": values[1]} if name == "revision" else values[0]
        offset += size

    try:
        attrs["product_name"] = SHORT_STRING.decode(data[offset:])
    except DataError:
        return attrs
    offset += 1 + len(attrs["product_name"])

    if len(data) > offset:
        attrs["state"] = data[offset]

    return attrs


def build_find_next_request(
    session_handle: int,
    class_id: int = ClassCode.symbol_object,
    instance_id: int = 0,
    starting_name: str = "",
    sender_context: Optional[bytes] = None,
) -> bytes:
    """
    Find_Next object instance request, data is the class followed by the
    null terminated name to start after
    """
    data = pack("<H", class_id) + starting_name.encode("ascii") + b"\x00"
    return build_send_rr_data(
        session_handle,
        Services.find_next_object_instance,
        build_object_path(class_id, instance_id),
        data,
        sender_context=sender_context,
    )


def parse_find_next_response(data: bytes) -> Optional[FindNextReply]:
    """
    Returns the next instance found, ``None`` if the reply does not describe one
    """
    reply = parse_send_rr_data_response(data)
    if len(reply.data) < 4:
        return None
    class_id, instance_id = unpack_from("<HH", reply.data, 0)
    name = reply.data[4:].split(b"\x00", 1)[0].decode("ascii", errors="replace")
    return FindNextReply(class_id, instance_id, name)
