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
A PLC simulator serving the EtherNet/IP protocol from an in-memory tag table.

Supports RegisterSession/UnregisterSession, Read Tag and Write Tag over
SendRRData (any other service is answered with "service not supported")
and ListIdentity over both TCP and UDP.

The tag table is shared by every client connection.  Concurrent writers
are serialized by a lock, the last write wins.
"""

import itertools
import logging
import socket
import socketserver
import threading
from struct import pack, unpack_from
from typing import Any, Dict, List, NamedTuple, Optional, Set, Tuple, Type

from .cip import (
    BOOL,
    DINT,
    INT,
    REAL,
    STRING,
    ElementaryDataType,
    EncapsulationCommands,
    Services,
    decode_values,
    get_data_type,
    infer_data_type,
    tag_name_from_path,
)
from .const import (
    DEFAULT_PORT,
    DEFAULT_UDP_PORT,
    HEADER_SIZE,
    PROTOCOL_VERSION,
    SUCCESS,
    STATUS_INVALID_COMMAND,
    STATUS_INVALID_SESSION,
    CIP_INVALID_PARAMETER,
    CIP_SERVICE_NOT_SUPPORTED,
    CIP_NOT_ENOUGH_DATA,
    CIP_TOO_MUCH_DATA,
    CIP_OBJECT_DOES_NOT_EXIST,
)
from .events import EventEmitter
from .exceptions import DataError, PyenipError, TruncatedBufferError
from .packets import (
    FrameBuffer,
    PacketLazyFormatter,
    build_header,
    build_list_identity_reply,
    build_read_tag_reply_data,
    build_send_rr_data_reply,
    parse_header,
    parse_send_rr_data_request,
    parse_write_tag_data,
)

__all__ = ["PLCSimulator", "SimulatedTag"]

STATUS_INVALID_DATA = 0x03
STATUS_INVALID_LENGTH = 0x65
STATUS_UNSUPPORTED_PROTOCOL = 0x69
CIP_PATH_SEGMENT_ERROR = 0x04


class SimulatedTag(NamedTuple):
    value: Any
    data_type: Type[ElementaryDataType]


def _default_type(value: Any) -> Type[ElementaryDataType]:
    sample = value[0] if isinstance(value, (list, tuple)) and value else value
    if isinstance(sample, bool):
        return BOOL
    if isinstance(sample, int) and DINT.in_range(sample):
        return DINT
    if isinstance(sample, float):
        return REAL
    if isinstance(sample, str):
        return STRING
    return infer_data_type(value)


class _TCPHandler(socketserver.BaseRequestHandler):
    def handle(self):
        simulator: "PLCSimulator" = self.server.simulator
        frames = FrameBuffer()
        sessions: Set[int] = set()
        simulator._client_connected(self.request)
        try:
            while True:
                try:
                    data = self.request.recv(4096)
                except OSError:
                    break
                if not data:
                    break
                for frame in frames.feed(data):
                    reply, keep_open = simulator.handle_message(frame, sessions)
                    if reply:
                        self.request.sendall(reply)
                    if not keep_open:
                        return
        finally:
            simulator._client_disconnected(self.request, sessions)


class _UDPHandler(socketserver.BaseRequestHandler):
    def handle(self):
        simulator: "PLCSimulator" = self.server.simulator
        data, sock = self.request
        try:
            header = parse_header(data)
        except PyenipError:
            return
        if header.command == EncapsulationCommands.list_identity:
            sock.sendto(simulator.list_identity_reply(header.sender_context), self.client_address)


class _TCPServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True


class _UDPServer(socketserver.UDPServer):
    allow_reuse_address = True


class PLCSimulator(EventEmitter):
    """
    Events:

    - ``listening`` (simulator) once both servers are bound, ``port``/``udp_port`` hold the bound ports
    - ``tag_changed`` (name, value, data type name) whenever a tag is set or written
    """

    __log = logging.getLogger(f"{__module__}.{__qualname__}")
    events = ("listening", "tag_changed")

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = DEFAULT_PORT,
        udp_port: int = DEFAULT_UDP_PORT,
        vendor_id: int = 1,
        device_type: int = 12,
        product_code: int = 1,
        revision_major: int = 1,
        revision_minor: int = 0,
        serial_number: int = 12345,
        product_name: str = "EtherNet/IP Simulator",
        default_tags: bool = True,
    ):
        super().__init__()
        self.host = host
        self.port = port
        self.udp_port = udp_port
        self.identity = {
            "encap_protocol_version": PROTOCOL_VERSION,
            "vendor_id": vendor_id,
            "device_type": device_type,
            "product_code": product_code,
            "revision": {"major": revision_major, "minor": revision_minor},
            "status": 0,
            "serial_number": serial_number,
            "product_name": product_name,
            "state": 0,
        }
        self._tags: Dict[str, SimulatedTag] = {}
        self._tags_lock = threading.Lock()
        self._sessions = itertools.count(1)
        self._sessions_lock = threading.Lock()
        self._clients: Set[socket.socket] = set()
        self._clients_lock = threading.Lock()
        self._tcp_server: Optional[_TCPServer] = None
        self._udp_server: Optional[_UDPServer] = None
        self._threads: List[threading.Thread] = []

        if default_tags:
            self._init_default_tags()

    def _init_default_tags(self):
        self.set_tag("MyTag", 42, DINT)
        self.set_tag("MyBoolTag", True, BOOL)
        self.set_tag("MyIntTag", 12345, INT)
        self.set_tag("MyRealTag", 3.14159, REAL)
        self.set_tag("MyStringTag", "Hello PLC", STRING)
        self.set_tag("MyArrayTag", [1, 2, 3, 4, 5], DINT)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False

    def __repr__(self):
        return f"{self.__class__.__name__}(host={self.host!r}, port={self.port}, udp_port={self.udp_port})"

    # ---- tag table ----

    def set_tag(self, name: str, value: Any, data_type=None):
        """
        Creates or replaces tag ``name``.  ``data_type`` (code, name or type class) defaults to
        BOOL, DINT, REAL or STRING by the kind of ``value``, a ``list`` makes an array tag.
        """
        _type = _default_type(value) if data_type is None else get_data_type(data_type)
        values = value if isinstance(value, (list, tuple)) else [value]
        for item in values:
            _type.encode(item)  # reject values the type cannot hold
        if isinstance(value, tuple):
            value = list(value)

        with self._tags_lock:
            self._tags[name] = SimulatedTag(value, _type)

        self.__log.debug(f"Tag set: {name} = {value!r} ({_type!r})")
        self.emit("tag_changed", name, value, _type.__name__)

    def get_tag(self, name: str) -> Any:
        with self._tags_lock:
            tag = self._tags.get(name)
        return None if tag is None else tag.value

    def get_tag_type(self, name: str) -> Optional[str]:
        with self._tags_lock:
            tag = self._tags.get(name)
        return None if tag is None else tag.data_type.__name__

    def list_tags(self) -> List[str]:
        with self._tags_lock:
            return list(self._tags)

    # ---- servers ----

    @property
    def running(self) -> bool:
        return self._tcp_server is not None

    def start(self):
        """
        Binds the TCP and UDP servers and serves them from background threads.
        A port of ``0`` binds any free port, the bound ports are stored back in ``port``/``udp_port``.
        """
        if self.running:
            return

        tcp = _TCPServer((self.host, self.port), _TCPHandler)
        try:
            udp = _UDPServer((self.host, self.udp_port), _UDPHandler)
        except OSError:
            tcp.server_close()
            raise
        tcp.simulator = udp.simulator = self
        self._tcp_server, self._udp_server = tcp, udp
        self.port = tcp.server_address[1]
        self.udp_port = udp.server_address[1]

        self._threads = [
            threading.Thread(target=server.serve_forever, kwargs={"poll_interval": 0.1}, name=name, daemon=True)
            for server, name in ((tcp, "pyenip-sim-tcp"), (udp, "pyenip-sim-udp"))
        ]
        for thread in self._threads:
            thread.start()

        self.__log.info(f"Simulator listening on {self.host}:{self.port} (TCP) and {self.host}:{self.udp_port} (UDP)")
        self.emit("listening", self)

    def stop(self):
        """
        Stops both servers and closes any client connections
        """
        tcp, udp = self._tcp_server, self._udp_server
        self._tcp_server = self._udp_server = None
        for server in (tcp, udp):
            if server is not None:
                server.shutdown()
                server.server_close()

        with self._clients_lock:
            clients, self._clients = self._clients, set()
        for client in clients:
            try:
                client.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass  # already closed by the client

        for thread in self._threads:
            thread.join(timeout=1.0)
        self._threads = []
        self.__log.info("Simulator stopped")

    def _client_connected(self, sock: socket.socket):
        with self._clients_lock:
            self._clients.add(sock)

    def _client_disconnected(self, sock: socket.socket, sessions: Set[int]):
        with self._clients_lock:
            self._clients.discard(sock)
        if sessions:
            self.__log.debug(f"Client closed, dropping sessions {sorted(sessions)}")

    def _new_session(self) -> int:
        with self._sessions_lock:
            return next(self._sessions)

    # ---- protocol ----

    def list_identity_reply(self, sender_context: bytes) -> bytes:
        ip = self.host if self.host not in ("", "0.0.0.0") else "0.0.0.0"
        return build_list_identity_reply(self.identity, ip, self.port, sender_context)

    def handle_message(self, message: bytes, sessions: Set[int]) -> Tuple[Optional[bytes], bool]:
        """
        Handles one encapsulation message from a client whose registered sessions are ``sessions``.
        Returns the reply (``None`` for no reply) and whether to keep the connection open.
        """
        self.__log.verbose("<<< RECEIVE <<< \n%s", PacketLazyFormatter(message))
        header = parse_header(message)
        command = header.command

        if command == EncapsulationCommands.register_session:
            reply = self._register_session(header, message[HEADER_SIZE:], sessions)
        elif command == EncapsulationCommands.unregister_session:
            sessions.discard(header.session_handle)
            self.__log.debug(f"Session {header.session_handle} unregistered")
            return None, False
        elif command == EncapsulationCommands.list_identity:
            reply = self.list_identity_reply(header.sender_context)
        elif command == EncapsulationCommands.send_rr_data:
            reply = self._send_rr_data(header, message, sessions)
        else:
            self.__log.warning(f"Unsupported command 0x{command:04X}")
            reply = self._status_reply(header, STATUS_INVALID_COMMAND)

        self.__log.verbose(">>> SEND >>> \n%s", PacketLazyFormatter(reply))
        return reply, True

    @staticmethod
    def _status_reply(header, status: int) -> bytes:
        return build_header(header.command, 0, header.session_handle, status, header.sender_context)

    def _register_session(self, header, payload: bytes, sessions: Set[int]) -> bytes:
        if len(payload) < 4:
            return self._status_reply(header, STATUS_INVALID_LENGTH)
        version, options = unpack_from("<HH", payload, 0)
        if version != PROTOCOL_VERSION:
            return self._status_reply(header, STATUS_UNSUPPORTED_PROTOCOL)

        session = self._new_session()
        sessions.add(session)
        self.__log.debug(f"Session {session} registered")
        return build_header(
            EncapsulationCommands.register_session, 4, session, SUCCESS, header.sender_context
        ) + pack("<HH", version, options)

    def _send_rr_data(self, header, message: bytes, sessions: Set[int]) -> bytes:
        if header.session_handle not in sessions:
            self.__log.warning(f"SendRRData with unknown session {header.session_handle}")
            return self._status_reply(header, STATUS_INVALID_SESSION)

        try:
            request = parse_send_rr_data_request(message)
        except TruncatedBufferError as err:
            self.__log.warning(f"Malformed SendRRData request: {err}")
            return self._status_reply(header, STATUS_INVALID_DATA)

        if request.service == Services.read_tag:
            status, data = self._read_tag(request.path, request.data)
        elif request.service == Services.write_tag:
            status, data = self._write_tag(request.path, request.data), b""
        else:
            self.__log.debug(f"Unsupported CIP service: 0x{request.service:02X}")
            status, data = CIP_SERVICE_NOT_SUPPORTED, b""

        return build_send_rr_data_reply(
            header.session_handle, header.sender_context, request.interface_handle, status, data
        )

    def _tag_name(self, path: bytes) -> Tuple[Optional[str], int]:
        try:
            name = tag_name_from_path(path)
        except DataError as err:
            self.__log.debug(f"Invalid request path: {err}")
            return None, CIP_PATH_SEGMENT_ERROR
        if name is None:
            return None, CIP_OBJECT_DOES_NOT_EXIST
        return name, SUCCESS

    def _read_tag(self, path: bytes, data: bytes) -> Tuple[int, bytes]:
        name, status = self._tag_name(path)
        if name is None:
            return status, b""

        count = unpack_from("<H", data, 0)[0] if len(data) >= 2 else 1
        with self._tags_lock:
            tag = self._tags.get(name)
        if tag is None:
            self.__log.debug(f"Read of unknown tag {name!r}")
            return CIP_OBJECT_DOES_NOT_EXIST, b""

        values = tag.value if isinstance(tag.value, list) else [tag.value]
        if not 0 < count <= len(values):
            self.__log.debug(f"Read of {count} elements from {name!r} which has {len(values)}")
            return CIP_INVALID_PARAMETER, b""

        raw = b"".join(tag.data_type.encode(v) for v in values[:count])
        self.__log.debug(f"Read tag: {name}, elements: {count}")
        return SUCCESS, build_read_tag_reply_data(tag.data_type.code, count, raw)

    def _write_tag(self, path: bytes, data: bytes) -> int:
        name, status = self._tag_name(path)
        if name is None:
            return status

        if len(data) < 3:
            return CIP_NOT_ENOUGH_DATA
        request = parse_write_tag_data(data)
        if request.element_count == 0:
            return CIP_INVALID_PARAMETER
        try:
            _type = get_data_type(request.data_type)
            values = decode_values(_type, request.data, request.element_count)
        except TruncatedBufferError:
            return CIP_NOT_ENOUGH_DATA
        except DataError as err:
            self.__log.debug(f"Invalid write to {name!r}: {err}")
            return CIP_INVALID_PARAMETER

        if _type.size is not None:
            used = _type.size * request.element_count
        else:
            used = sum(len(_type.encode(v)) for v in values)
        if len(request.data) > used:
            self.__log.debug(f"Write to {name!r} has {len(request.data) - used} bytes beyond {request.element_count} elements")
            return CIP_TOO_MUCH_DATA

        value = values[0] if request.element_count == 1 else values
        with self._tags_lock:
            self._tags[name] = SimulatedTag(value, _type)

        self.__log.debug(f"Write tag: {name}, type: {_type!r}, elements: {request.element_count}")
        self.emit("tag_changed", name, value, _type.__name__)
        return SUCCESS
