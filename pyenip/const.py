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

HEADER_SIZE = 24

DEFAULT_PORT = 44818  # EtherNet/IP explicit messaging over TCP
DEFAULT_UDP_PORT = 2222  # ListIdentity discovery

DEFAULT_TIMEOUT = 5.0  # seconds
DEFAULT_DISCOVERY_TIMEOUT = 3.0
DEFAULT_DISCOVER_ONE_TIMEOUT = 2.0
DEFAULT_PROBE_TIMEOUT = 3.0
DEFAULT_DISCOVERY_INTERVAL = 5.0

UNREGISTER_GRACE = 0.1  # seconds to let UnregisterSession leave before closing

PROTOCOL_VERSION = 1
SENDER_CONTEXT_SIZE = 8
EMPTY_CONTEXT = b"\x00" * SENDER_CONTEXT_SIZE

MAX_PATH_WORDS = 255
MAX_SEGMENT_LEN = 255
MAX_LIST_TAGS = 1000

SUCCESS = 0

# encapsulation header status
STATUS_INVALID_COMMAND = 0x01
STATUS_INVALID_SESSION = 0x64

# CIP general status
CIP_INVALID_PARAMETER = 0x03
CIP_SERVICE_NOT_SUPPORTED = 0x08
CIP_NOT_ENOUGH_DATA = 0x13
CIP_TOO_MUCH_DATA = 0x15
CIP_OBJECT_DOES_NOT_EXIST = 0x16

CPF_ITEM_LIST_IDENTITY = 0x0C

DEFAULT_TAG_PREFIXES = (
    "",
    "Program:MainProgram.",
    "MainProgram.",
    "Application.GVL.",
    "GVL.",
    "Application.",
)
