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
Lookup tables turning encapsulation and CIP status codes into messages
and remediation suggestions.
"""

from typing import Dict, List, NamedTuple

__all__ = [
    "EIP_STATUS",
    "SERVICE_STATUS",
    "StatusDetails",
    "get_eip_status",
    "get_detailed_error",
    "get_service_status",
]

# Encapsulation header status codes
EIP_STATUS = {
    0x0000: "Success",
    0x0001: "Invalid or unsupported command",
    0x0002: "Insufficient memory in the target device",
    0x0003: "Invalid parameter value or malformed data",
    0x0064: "Invalid session handle",
    0x0065: "Invalid length",
    0x0069: "Unsupported protocol version",
}

# CIP general status codes
SERVICE_STATUS = {
    0x01: "Connection failure",
    0x02: "Resource unavailable",
    0x03: "Invalid parameter value",
    0x04: "Path segment error",
    0x05: "Path destination unknown",
    0x06: "Partial transfer",
    0x07: "Connection lost",
    0x08: "Service not supported",
    0x09: "Invalid attribute value",
    0x0A: "Attribute list error",
    0x0B: "Already in requested mode/state",
    0x0C: "Object state conflict",
    0x0D: "Object already exists",
    0x0E: "Attribute not settable",
    0x0F: "Privilege violation",
    0x10: "Device state conflict",
    0x11: "Reply data too large",
    0x12: "Fragmentation of a primitive value",
    0x13: "Not enough data",
    0x14: "Attribute not supported",
    0x15: "Too much data",
    0x16: "Object does not exist",
    0x17: "Service fragmentation sequence not in progress",
    0x18: "No stored attribute data",
    0x19: "Store operation failure",
    0x1A: "Routing failure, request packet too large",
    0x1B: "Routing failure, response packet too large",
    0x1C: "Missing attribute list entry data",
    0x1D: "Invalid attribute value list",
    0x1E: "Embedded service error",
    0x1F: "Vendor specific error",
    0x20: "Invalid parameter",
    0x21: "Write-once value or medium already written",
    0x22: "Invalid reply received",
    0x25: "Key failure in path",
    0x26: "Path size invalid",
    0x27: "Unexpected attribute in list",
    0x28: "Invalid member ID",
    0x29: "Member not settable",
    0xFF: "General error",
}

_SUGGESTIONS: Dict[int, List[str]] = {
    0x0001: [
        "The target may not implement this encapsulation command",
        "Verify the target is an EtherNet/IP device and not another protocol on the same port",
    ],
    0x0003: [
        "Check if the PLC supports the protocol version being used",
        "Verify the request format matches the PLC requirements",
        "Some PLCs require specific options flags in Register Session",
        "Try a different interface handle format or path format",
    ],
    0x0064: [
        "Session may have expired or been closed",
        "Try reconnecting to establish a new session",
    ],
    0x0069: [
        "Try using a different protocol version",
        "Check PLC documentation for supported protocol versions",
    ],
}

_DEFAULT_SUGGESTIONS = [
    "Check PLC documentation for this error code",
    "Verify network connectivity",
    "Check if PLC is in the correct mode",
    "Verify firewall settings",
]


class StatusDetails(NamedTuple):
    code: int
    hex: str
    message: str
    context: str
    suggestions: List[str]


def get_eip_status(status: int) -> str:
    """Message for an encapsulation status, falls back to the CIP table"""
    if status in EIP_STATUS:
        return EIP_STATUS[status]
    if status in SERVICE_STATUS:
        return SERVICE_STATUS[status]
    return f"Unknown error (0x{status:x})"


def get_detailed_error(status: int, context: str = "") -> StatusDetails:
    return StatusDetails(
        code=status,
        hex=f"0x{status:02X}",
        message=get_eip_status(status),
        context=context,
        suggestions=list(_SUGGESTIONS.get(status, _DEFAULT_SUGGESTIONS)),
    )


def get_service_status(status: int) -> str:
    return SERVICE_STATUS.get(status, f"Unknown error (0x{status:02x})")
