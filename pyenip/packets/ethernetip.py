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
EtherNet/IP encapsulation messages.

Every message starts with the 24-byte encapsulation header::

    command:u16 length:u16 session_handle:u32 status:u32 sender_context:8 options:u32

followed by ``length`` bytes of command specific data.  SendRRData carries a
single unconnected CIP request or reply::

    interface_handle:4 cip_length:u16 service:u8 path_words:u8 path data   (request)
    interface_handle:4 cip_length:u16 cip_status:u8 data                   (reply)
"""

import ipaddress
from struct import pack, unpack_from, error as StructError
from typing import Any, Dict, NamedTuple, Optional, Union

from ..cip import EncapsulationCommands, SHORT_STRING, get_detailed_error, get_service_status
from ..cip.path import path_size_words
from ..const import (
    HEADER_SIZE,
    EMPTY_CONTEXT,
    SENDER_CONTEXT_SIZE,
    PROTOCOL_VERSION,
    MAX_PATH_WORDS,
    SUCCESS,
    CPF_ITEM_LIST_IDENTITY,
)
from ..exceptions import (
    RequestError,
    ResponseError,
    TruncatedBufferError,
    ProtocolStatusError,
    CipStatusError,
)
from ..map import EnumMap
from ..util import new_sender_context

__all__ = [
    "EIPHeader",
    "SendRRDataReply",
    "InterfaceHandleFormat",
    "build_header",
    "parse_header",
    "build_register_session",
    "parse_register_session_response",
    "build_unregister_session",
    "build_send_rr_data",
    "parse_send_rr_data_request",
    "build_send_rr_data_reply",
    "parse_send_rr_data_response",
    "build_list_identity_request",
    "build_list_identity_reply",
    "parse_list_identity_response",
    "check_status",
]


_HEADER_FORMAT = "<HHII8sI"


class EIPHeader(NamedTuple):
    command: int
    length: int
    session_handle: int
    status: int
    sender_context: bytes
    options: int


class SendRRDataReply(NamedTuple):
    session_handle: int
    interface_handle: bytes
    cip_status: int
    data: bytes


class SendRRDataRequest(NamedTuple):
    header: EIPHeader
    interface_handle: bytes
    service: int
    path: bytes
    data: bytes


class InterfaceHandleFormat(EnumMap):
    """
    Encodings of the 4-byte interface handle that starts the SendRRData payload.
    An ``int`` may be used instead to send handle 0 with that timeout in milliseconds.
    """

    split = "split"  #: UINT handle 0, UINT timeout 0
    single = "single"  #: UDINT 0


_InterfaceHandle = Union[str, int]


def build_header(
    command: int,
    length: int,
    session_handle: int = 0,
    status: int = 0,
    sender_context: bytes = EMPTY_CONTEXT,
    options: int = 0,
) -> bytes:
    if len(sender_context) != SENDER_CONTEXT_SIZE:
        raise RequestError(f"sender context must be {SENDER_CONTEXT_SIZE} bytes, got {len(sender_context)}")
    try:
        return pack(_HEADER_FORMAT, command, length, session_handle, status, sender_context, options)
    except StructError as err:
        raise RequestError(f"Invalid encapsulation header field: {err}") from err


def parse_header(data: bytes) -> EIPHeader:
    if len(data) < HEADER_SIZE:
        raise TruncatedBufferError(
            f"Encapsulation header needs {HEADER_SIZE} bytes, only {len(data)} available"
        )
    return EIPHeader(*unpack_from(_HEADER_FORMAT, data, 0))


def _payload(data: bytes, header: EIPHeader) -> bytes:
    end = HEADER_SIZE + header.length
    if len(data) < end:
        raise TruncatedBufferError(
            f"Message declares {header.length} payload bytes, only {len(data) - HEADER_SIZE} available"
        )
    return data[HEADER_SIZE:end]


def check_status(header: EIPHeader, context: str = "", response: Optional[bytes] = None):
    """
    Raises ``ProtocolStatusError`` if the encapsulation status of ``header`` is not success
    """
    if header.status != SUCCESS:
        details = get_detailed_error(header.status, context)
        raise ProtocolStatusError(
            header.status,
            details.message,
            suggestions=details.suggestions,
            context=context,
            response=response,
        )


def build_register_session(protocol_version: int = PROTOCOL_VERSION, options_flags: int = 0, sender_context: bytes = EMPTY_CONTEXT) -> bytes:
    payload = pack("<HH", protocol_version, options_flags)
    return build_header(EncapsulationCommands.register_session, len(payload), sender_context=sender_context) + payload


def parse_register_session_response(data: bytes) -> int:
    """
    Returns the session handle assigned by the target
    """
    header = parse_header(data)
    if header.command != EncapsulationCommands.register_session:
        raise ResponseError(f"Expected RegisterSession reply, got command 0x{header.command:04X}")
    check_status(header, "Register Session", data)
    return header.session_handle


def build_unregister_session(session_handle: int, sender_context: bytes = EMPTY_CONTEXT) -> bytes:
    return build_header(EncapsulationCommands.unregister_session, 0, session_handle, sender_context=sender_context)


def _interface_handle(fmt: _InterfaceHandle) -> bytes:
    if isinstance(fmt, bool):
        # bools are ints, keep them from being read as a 0/1 ms timeout
        fmt = InterfaceHandleFormat.single if fmt else InterfaceHandleFormat.split
    if isinstance(fmt, int):
        if not 0 <= fmt <= 0xFFFF:
            raise RequestError(f"Interface handle timeout must fit a UINT (ms), got {fmt}")
        return pack("<HH", 0, fmt)
    if fmt == InterfaceHandleFormat.split:
        return pack("<HH", 0, 0)
    if fmt == InterfaceHandleFormat.single:
        return pack("<I", 0)
    raise RequestError(f"Unknown interface handle format: {fmt!r}")


def build_send_rr_data(
    session_handle: int,
    service: int,
    path: bytes,
    data: bytes = b"",
    sender_context: Optional[bytes] = None,
    interface_handle_format: _InterfaceHandle = InterfaceHandleFormat.split,
) -> bytes:
    if len(path) % 2:
        path += b"\x00"
    path_words = path_size_words(path)
    if path_words > MAX_PATH_WORDS:
        raise RequestError(f"Request path too long: {path_words} words (max {MAX_PATH_WORDS})")

    cip = bytes([service, path_words]) + path + data
    payload = b"".join(
        [
            _interface_handle(interface_handle_format),
            pack("<H", len(cip)),
            cip,
        ]
    )
    if sender_context is None:
        sender_context = new_sender_context()

    return build_header(EncapsulationCommands.send_rr_data, len(payload), session_handle, sender_context=sender_context) + payload


def parse_send_rr_data_request(data: bytes) -> SendRRDataRequest:
    """
    Splits a SendRRData request into its parts, used by the simulator
    """
    header = parse_header(data)
    payload = _payload(data, header)
    if len(payload) < 8:
        raise TruncatedBufferError(f"SendRRData request too short: {len(payload)} bytes")
    interface_handle = payload[:4]
    cip_length = unpack_from("<H", payload, 4)[0]
    cip = payload[6 : 6 + cip_length]
    if len(cip) < cip_length or cip_length < 2:
        raise TruncatedBufferError(f"CIP request declares {cip_length} bytes, only {len(cip)} available")
    service, path_words = cip[0], cip[1]
    path_end = 2 + path_words * 2
    if len(cip) < path_end:
        raise TruncatedBufferError(f"CIP path declares {path_words} words, only {len(cip) - 2} bytes available")

    return SendRRDataRequest(header, interface_handle, service, cip[2:path_end], cip[path_end:])


def build_send_rr_data_reply(
    session_handle: int,
    sender_context: bytes,
    interface_handle: bytes,
    cip_status: int = SUCCESS,
    data: bytes = b"",
    status: int = SUCCESS,
) -> bytes:
    cip = bytes([cip_status]) + data
    payload = interface_handle + pack("<H", len(cip)) + cip
    return build_header(
        EncapsulationCommands.send_rr_data, len(payload), session_handle, status, sender_context
    ) + payload


def parse_send_rr_data_response(data: bytes) -> SendRRDataReply:
    """
    Validates a SendRRData reply and returns the CIP reply data.

    Raises ``ProtocolStatusError`` for a failed encapsulation status and
    ``CipStatusError`` for a failed CIP status, any bytes after the status
    are attached to the error as ``extended``.
    """
    header = parse_header(data)
    if header.command != EncapsulationCommands.send_rr_data:
        raise ResponseError(f"Expected SendRRData reply, got command 0x{header.command:04X}")
    check_status(header, "Send RR Data", data)

    payload = _payload(data, header)
    if len(payload) < 7:
        raise TruncatedBufferError(f"SendRRData reply too short: {len(payload)} bytes")

    interface_handle = payload[:4]
    cip_length = unpack_from("<H", payload, 4)[0]
    cip = payload[6 : 6 + cip_length]
    if cip_length < 1 or len(cip) < cip_length:
        raise TruncatedBufferError(f"CIP reply declares {cip_length} bytes, only {len(cip)} available")

    cip_status = cip[0]
    if cip_status != SUCCESS:
        raise CipStatusError(cip_status, get_service_status(cip_status), extended=cip[1:])

    return SendRRDataReply(header.session_handle, interface_handle, cip_status, cip[1:])


def build_list_identity_request(sender_context: bytes = EMPTY_CONTEXT) -> bytes:
    return build_header(EncapsulationCommands.list_identity, 0, sender_context=sender_context)


def build_list_identity_reply(
    identity: Dict[str, Any],
    ip_address: str = "0.0.0.0",
    port: int = 44818,
    sender_context: bytes = EMPTY_CONTEXT,
) -> bytes:
    """
    Builds a ListIdentity reply carrying one identity item::

        item_count:u16
        item_type:u16 (0x0C) item_length:u16
        encap_protocol_version:u16
        sin_family:i16be sin_port:u16be sin_addr:4 sin_zero:8
        vendor_id:u16 device_type:u16 product_code:u16 revision:u8.u8
        status:u16 serial_number:u32 product_name:SHORT_STRING state:u8
    """
    revision = identity.get("revision", {})
    item = b"".join(
        [
            pack("<H", identity.get("encap_protocol_version", PROTOCOL_VERSION)),
            pack(">hH", 2, port),  # AF_INET
            ipaddress.IPv4Address(ip_address).packed,
            b"\x00" * 8,
            pack(
                "<HHHBBHI",
                identity.get("vendor_id", 0),
                identity.get("device_type", 0),
                identity.get("product_code", 0),
                revision.get("major", 0),
                revision.get("minor", 0),
                identity.get("status", 0),
                identity.get("serial_number", 0),
            ),
            SHORT_STRING.encode(identity.get("product_name", "")),
            pack("<B", identity.get("state", 0)),
        ]
    )
    payload = pack("<HHH", 1, CPF_ITEM_LIST_IDENTITY, len(item)) + item
    return build_header(EncapsulationCommands.list_identity, len(payload), sender_context=sender_context) + payload


def parse_list_identity_response(data: bytes) -> Dict[str, Any]:
    """
    Decodes the first identity item of a ListIdentity reply into a ``dict``
    """
    header = parse_header(data)
    if header.command != EncapsulationCommands.list_identity:
        raise ResponseError(f"Expected ListIdentity reply, got command 0x{header.command:04X}")
    check_status(header, "List Identity", data)
    payload = _payload(data, header)

    try:
        item_count, item_type, item_len = unpack_from("<HHH", payload, 0)
    except StructError as err:
        raise TruncatedBufferError("ListIdentity reply has no item list") from err
    if not item_count:
        raise ResponseError("ListIdentity reply contains no items")
    if item_type != CPF_ITEM_LIST_IDENTITY:
        raise ResponseError(f"Unexpected ListIdentity item type 0x{item_type:04X}")

    item = payload[6 : 6 + item_len]
    if len(item) < 34:
        raise TruncatedBufferError(f"ListIdentity item too short: {len(item)} bytes")

    encap_version = unpack_from("<H", item, 0)[0]
    sin_port = unpack_from(">H", item, 4)[0]
    sin_addr = str(ipaddress.IPv4Address(item[6:10]))
    vendor, device_type, product_code, rev_major, rev_minor, status, serial = unpack_from("<HHHBBHI", item, 18)
    product_name = SHORT_STRING.decode(item[32:])
    name_end = 33 + len(product_name)
    state = item[name_end] if len(item) > name_end else 0

    return {
        "ip_address": sin_addr,
        "port": sin_port,
        "encap_protocol_version": encap_version,
        "vendor_id": vendor,
        "device_type": device_type,
        "product_code": product_code,
        "revision": {"major": rev_major, "minor": rev_minor},
        "status": status,
        "serial_number": serial,
        "product_name": product_name,
        "state": state,
    }
