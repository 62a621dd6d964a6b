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

from typing import List, Optional

__all__ = [
    "PyenipError",
    "CommError",
    "NotConnectedError",
    "RequestTimeoutError",
    "DataError",
    "TruncatedBufferError",
    "UnsupportedTypeError",
    "OutOfRangeError",
    "RequestError",
    "ResponseError",
    "ProtocolStatusError",
    "CipStatusError",
    "TagNotFoundError",
]


class PyenipError(Exception):
    """
    Base exception for all exceptions raised by pyenip
    """


class CommError(PyenipError):
    """
    For exceptions raised during connection related issues
    """


class NotConnectedError(CommError):
    """
    Raised when an operation requiring a registered session is used without one
    """


class RequestTimeoutError(CommError):
    """
    Raised when no reply to a request arrives within the connection timeout
    """


class DataError(PyenipError):
    """
    For exceptions raised during binary encoding/decoding of data
    """


class TruncatedBufferError(DataError):
    """
    Raised when a buffer ends before the expected number of bytes
    """


class UnsupportedTypeError(DataError):
    """
    Raised for a CIP data type code that has no codec
    """


class OutOfRangeError(DataError):
    """
    Raised when a value does not fit the native range of its CIP type
    """


class RequestError(PyenipError):
    """
    For exceptions raised due to issues building requests or processing of user supplied data
    """


class ResponseError(PyenipError):
    """
    For exceptions raised during handling for responses to requests
    """


class ProtocolStatusError(ResponseError):
    """
    The encapsulation header of a reply carried a non-zero status.

    ``code`` is the raw status, ``suggestions`` a list of likely remedies and
    ``response`` the raw reply (if any) for diagnostics.
    """

    def __init__(
        self,
        code: int,
        message: str,
        suggestions: Optional[List[str]] = None,
        context: str = "",
        response: Optional[bytes] = None,
    ):
        self.code = code
        self.status_message = message
        self.suggestions = suggestions or []
        self.context = context
        self.response = response
        prefix = f"{context} failed: " if context else "EIP status error: "
        super().__init__(f"{prefix}{message} ({self.hex})")

    @property
    def hex(self) -> str:
        return f"0x{self.code:02X}"


class CipStatusError(ResponseError):
    """
    The CIP general status inside a successful reply was non-zero
    """

    def __init__(self, code: int, message: str, extended: bytes = b""):
        self.code = code
        self.status_message = message
        self.extended = extended
        super().__init__(f"CIP status error: {message} (0x{code:02X})")


class TagNotFoundError(ResponseError):
    """
    Raised after every candidate name for a tag was rejected by the target
    """

    def __init__(self, tag: str, candidates: List[str]):
        self.tag = tag
        self.candidates = candidates
        super().__init__(f"Tag {tag!r} not found, tried: {', '.join(repr(c) for c in candidates)}")
