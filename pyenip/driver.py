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

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .browser import browse_tags, browse_tags_detailed, get_device_info, get_tag_info
from .cip import PathFormats, decode_value, decode_values, get_data_type, infer_data_type
from .connection import EIPConnection
from .const import DEFAULT_PORT, DEFAULT_TIMEOUT, DEFAULT_TAG_PREFIXES, MAX_LIST_TAGS
from .events import EventEmitter
from .exceptions import CipStatusError, NotConnectedError, PyenipError, TagNotFoundError
from .packets import (
    InterfaceHandleFormat,
    build_read_tag_request,
    build_write_tag_request,
    parse_read_tag_response,
    parse_write_tag_response,
)
from .tag import Tag
from .util import tag_name_candidates

__all__ = ["EthernetIPDriver"]


class EthernetIPDriver(EventEmitter):
    """
    Reads and writes tags on an EtherNet/IP target using unconnected explicit messaging.

    Options are keyword arguments, stored in ``_cfg``:

    - ``path_format``: tag path encoding, one of ``PathFormats``
    - ``use_message_router``: prefix tag paths with the Message Router path (class 0x02, instance 0)
    - ``interface_handle_format``: ``InterfaceHandleFormat.split``/``single`` or an ``int`` timeout in ms
    - ``tag_prefixes``: prefixes tried in order by ``resolve_tag``/``read_tag_any``

    The path format, router prefix and interface handle format differ between
    targets, so they can also be overridden per read.

    >>> with EthernetIPDriver('10.20.30.100') as plc:
    ...     plc.read_tag('MyTag')
    42
    """

    __log = logging.getLogger(f"{__module__}.{__qualname__}")
    events = ("connected", "disconnected", "error")

    def __init__(
        self,
        host: str,
        port: int = DEFAULT_PORT,
        timeout: float = DEFAULT_TIMEOUT,
        path_format: str = PathFormats.default,
        use_message_router: bool = False,
        interface_handle_format=InterfaceHandleFormat.split,
        tag_prefixes: Optional[Iterable[str]] = None,
    ):
        super().__init__()
        self._cfg = {
            "host": host,
            "port": port,
            "timeout": timeout,
            "path_format": path_format,
            "use_message_router": use_message_router,
            "interface_handle_format": interface_handle_format,
            "tag_prefixes": tuple(tag_prefixes) if tag_prefixes is not None else DEFAULT_TAG_PREFIXES,
        }
        self._resolved: Dict[str, str] = {}
        self._connection = EIPConnection(host, port, timeout)
        for event in self.events:
            self._connection.on(event, self._forward(event))

    def _forward(self, event):
        def forward(_connection, *args):
            self.emit(event, self, *args)

        return forward

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self):
        return f"{self.__class__.__name__}(host={self.host!r}, port={self.port})"

    @property
    def host(self) -> str:
        return self._cfg["host"]

    @property
    def port(self) -> int:
        return self._cfg["port"]

    @property
    def connection(self) -> EIPConnection:
        return self._connection

    @property
    def connected(self) -> bool:
        return self._connection.connected

    @property
    def session_handle(self) -> int:
        return self._connection.session_handle

    def open(self):
        """
        Opens the connection and registers a session
        """
        self._connection.connect()
        return True

    connect = open

    def close(self):
        """
        Unregisters the session and closes the connection
        """
        self._connection.disconnect()

    disconnect = close

    def _require_connection(self):
        if not self._connection.connected:
            raise NotConnectedError(f"Not connected to {self.host}:{self.port}")

    def _read_options(self, path_format, use_message_router, interface_handle_format) -> Dict[str, Any]:
        return {
            "path_format": self._cfg["path_format"] if path_format is None else path_format,
            "use_message_router": (
                self._cfg["use_message_router"] if use_message_router is None else use_message_router
            ),
            "interface_handle_format": (
                self._cfg["interface_handle_format"] if interface_handle_format is None else interface_handle_format
            ),
        }

    def _read(self, name: str, element_count: int = 1, **options) -> Tuple[Any, str]:
        self._require_connection()
        request = build_read_tag_request(self.session_handle, name, element_count, **options)
        reply = parse_read_tag_response(self._connection.send_request(request))
        data_type = get_data_type(reply.data_type)
        if element_count == 1:
            value = decode_value(data_type, reply.data)
        else:
            value = decode_values(data_type, reply.data, element_count)
        self.__log.debug(f"Read {name!r}: {value!r} ({data_type!r})")
        return value, data_type.__name__

    def read_tag(
        self,
        name: str,
        element_count: int = 1,
        path_format: Optional[str] = None,
        use_message_router: Optional[bool] = None,
        interface_handle_format=None,
    ) -> Any:
        """
        Reads ``name`` and returns its value, a ``list`` of ``element_count`` values if more than one.

        Raises ``NotConnectedError`` without a session and ``CipStatusError`` if the target
        rejects the request (``0x16`` for an unknown tag).
        """
        options = self._read_options(path_format, use_message_router, interface_handle_format)
        value, _ = self._read(name, element_count, **options)
        return value

    def write_tag(self, name: str, value: Any, data_type=None, element_count: Optional[int] = None) -> Tag:
        """
        Writes ``value`` to ``name``.  ``data_type`` (code, name or type class) is inferred from
        ``value`` when omitted, a ``list`` writes every element.

        Raises ``CipStatusError`` if the target rejects the write.
        """
        self._require_connection()
        _type = infer_data_type(value) if data_type is None else get_data_type(data_type)
        if element_count is None:
            element_count = len(value) if isinstance(value, (list, tuple)) else 1

        request = build_write_tag_request(
            self.session_handle,
            name,
            _type,
            value,
            element_count,
            **self._read_options(None, None, None),
        )
        parse_write_tag_response(self._connection.send_request(request))
        self.__log.debug(f"Wrote {name!r}: {value!r} ({_type!r})")
        return Tag(name, value, _type.__name__)

    def read_tags(self, names: Sequence[str]) -> Dict[str, Tag]:
        """
        Reads each tag in ``names`` one after the other.  A failed read does not stop
        the others, its ``Tag`` has ``value=None`` and the error message in ``error``.
        """
        results = {}
        for name in names:
            try:
                value, type_name = self._read(name, 1, **self._read_options(None, None, None))
            except PyenipError as err:
                self.__log.warning(f"Failed to read {name!r}: {err}")
                results[name] = Tag(name, None, None, str(err))
            else:
                results[name] = Tag(name, value, type_name)

        return results

    def tag_candidates(self, name: str) -> List[str]:
        return tag_name_candidates(name, self._cfg["tag_prefixes"])

    def _read_any(self, name: str, element_count: int, options: Dict[str, Any]) -> Tuple[str, Any]:
        cached = self._resolved.get(name)
        candidates = self.tag_candidates(name)
        if cached is not None:
            if cached in candidates:
                candidates.remove(cached)
            candidates.insert(0, cached)

        for candidate in candidates:
            try:
                value, _ = self._read(candidate, element_count, **options)
            except CipStatusError as err:
                self.__log.debug(f"Candidate {candidate!r} for {name!r} rejected: {err}")
                continue
            self._resolved[name] = candidate
            return candidate, value

        self._resolved.pop(name, None)
        raise TagNotFoundError(name, candidates)

    def resolve_tag(self, name: str) -> str:
        """
        Returns the first name from ``tag_candidates(name)`` the target accepts.
        Raises ``TagNotFoundError`` if every candidate is rejected.
        """
        candidate, _ = self._read_any(name, 1, self._read_options(None, None, None))
        return candidate

    def read_tag_any(
        self,
        name: str,
        element_count: int = 1,
        path_format: Optional[str] = None,
        use_message_router: Optional[bool] = None,
        interface_handle_format=None,
    ) -> Any:
        """
        Like ``read_tag`` but tries each of ``tag_candidates(name)`` until one is accepted
        """
        options = self._read_options(path_format, use_message_router, interface_handle_format)
        _, value = self._read_any(name, element_count, options)
        return value

    def list_tags(self, max_tags: int = MAX_LIST_TAGS, detailed: bool = False) -> List[Dict[str, Any]]:
        """
        Browses the tags of the target, an empty ``list`` if it does not support browsing
        """
        self._require_connection()
        if detailed:
            return browse_tags_detailed(self._connection, max_tags)
        return browse_tags(self._connection, max_tags)

    def get_tag_info(self, name: str) -> Dict[str, Any]:
        self._require_connection()
        return get_tag_info(self._connection, name, **self._read_options(None, None, None))

    def get_device_info(self) -> Dict[str, Any]:
        """
        Identity of the target read with Get_Attributes_All
        """
        self._require_connection()
        return get_device_info(self._connection)

    def get_connection_status(self) -> Dict[str, Any]:
        return {
            "connected": self.connected,
            "session_handle": self.session_handle,
            "host": self.host,
            "port": self.port,
            "timeout": self._cfg["timeout"],
        }

    def get_properties(self) -> Dict[str, Any]:
        """
        Connection status plus device info, ``device_error`` is set instead if the identity cannot be read
        """
        properties = {"connection": self.get_connection_status(), "device": None}
        if self.connected:
            try:
                properties["device"] = self.get_device_info()
            except PyenipError as err:
                self.__log.info(f"Could not get device info: {err}")
                properties["device_error"] = str(err)

        return properties
