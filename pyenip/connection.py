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
import socket
import threading
import time
from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from typing import Dict, Optional

from .cip import EncapsulationCommands
from .const import DEFAULT_PORT, DEFAULT_TIMEOUT, UNREGISTER_GRACE
from .events import EventEmitter
from .exceptions import (
    CommError,
    NotConnectedError,
    PyenipError,
    RequestError,
    RequestTimeoutError,
)
from .map import EnumMap
from .packets import (
    FrameBuffer,
    PacketLazyFormatter,
    build_register_session,
    build_unregister_session,
    check_status,
    parse_header,
    parse_register_session_response,
)
from .socket_ import Socket
from .util import new_sender_context

__all__ = ["ConnectionState", "EIPConnection"]


class ConnectionState(EnumMap):
    disconnected = "disconnected"
    connecting = "connecting"
    session_pending = "session_pending"
    ready = "ready"


class EIPConnection(EventEmitter):
    """
    A registered EtherNet/IP session with a target.

    A reader thread collects replies from the socket and hands each one to
    the request whose sender context it echoes, so several threads may share
    one connection and each receives its own reply.  Replies that match no
    outstanding request (like a reply arriving after its request timed out)
    are logged and dropped.

    Events:

    - ``connected`` (connection) once the session is registered
    - ``disconnected`` (connection) after the socket is closed
    - ``error`` (connection, exception) when the socket fails or the target closes it
    """

    __log = logging.getLogger(f"{__module__}.{__qualname__}")
    events = ("connected", "disconnected", "error")

    def __init__(self, host: str, port: int = DEFAULT_PORT, timeout: float = DEFAULT_TIMEOUT):
        super().__init__()
        self.host = host
        self.port = port
        self.timeout = timeout
        self.session_handle: int = 0
        self._state = ConnectionState.disconnected
        self._sock: Optional[Socket] = None
        self._reader: Optional[threading.Thread] = None
        self._frames = FrameBuffer()
        self._pending: Dict[bytes, Future] = {}
        self._lock = threading.RLock()
        self._send_lock = threading.Lock()

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
        return False

    def __repr__(self):
        return f"{self.__class__.__name__}(host={self.host!r}, port={self.port}, state={self._state!r})"

    @property
    def state(self) -> str:
        return self._state

    @property
    def connected(self) -> bool:
        """
        ``True`` while a session is registered
        """
        return self._state == ConnectionState.ready and self.session_handle != 0

    def _set_state(self, state: str):
        if state != self._state:
            self.__log.debug(f"{self.host}:{self.port} {self._state} -> {state}")
            self._state = state

    def connect(self):
        """
        Opens the socket and registers a session, does nothing if already connected.
        Raises ``CommError`` if the socket cannot be opened and ``ProtocolStatusError``
        if the target refuses the session.
        """
        with self._lock:
            if self._state == ConnectionState.ready:
                return
            if self._state != ConnectionState.disconnected:
                raise CommError(f"Connection to {self.host}:{self.port} is already {self._state}")
            self._set_state(ConnectionState.connecting)

        sock = Socket(timeout=self.timeout)
        try:
            sock.connect(self.host, self.port)
        except CommError:
            sock.close()
            with self._lock:
                self._set_state(ConnectionState.disconnected)
            raise

        with self._lock:
            self._sock = sock
            self._frames.clear()
            self._reader = threading.Thread(
                target=self._read_loop,
                args=(sock,),
                name=f"pyenip-reader-{self.host}:{self.port}",
                daemon=True,
            )
            self._reader.start()

        context = new_sender_context()
        try:
            reply = self._request(build_register_session(sender_context=context), context, ConnectionState.session_pending)
            session = parse_register_session_response(reply)
        except PyenipError:
            self._close(self._detach())
            raise

        with self._lock:
            self.session_handle = session
            self._set_state(ConnectionState.ready)

        self.__log.info(f"Session {session} registered with {self.host}:{self.port}")
        self.emit("connected", self)

    def send_request(self, message: bytes) -> bytes:
        """
        Sends an encapsulated ``message`` and returns the raw reply with the same sender context.

        Raises ``NotConnectedError`` unless a session is registered, ``RequestTimeoutError``
        if no reply arrives within ``timeout`` and ``ProtocolStatusError`` if the
        encapsulation status of the reply is not success.
        """
        if not self.connected:
            raise NotConnectedError(f"Not connected to {self.host}:{self.port}")

        header = parse_header(message)
        reply = self._request(message, header.sender_context)
        reply_header = parse_header(reply)
        check_status(reply_header, EncapsulationCommands.get(reply_header.command, ""), response=reply)
        return reply

    def _request(self, message: bytes, context: bytes, state: Optional[str] = None) -> bytes:
        future = Future()
        with self._lock:
            sock = self._sock
            if sock is None:
                raise NotConnectedError(f"Not connected to {self.host}:{self.port}")
            if context in self._pending:
                raise RequestError(f"Sender context {context.hex()} already has a request in flight")
            self._pending[context] = future
            if state is not None:
                self._set_state(state)

        try:
            self._send(sock, message)
        except CommError as err:
            self._pop_pending(context)
            self._fail(sock, err)
            raise

        try:
            return future.result(timeout=self.timeout)
        except FutureTimeoutError:
            self._pop_pending(context)
            raise RequestTimeoutError(
                f"No reply from {self.host}:{self.port} within {self.timeout}s"
            ) from None

    def _send(self, sock: Socket, message: bytes):
        self.__log.verbose(">>> SEND >>> \n%s", PacketLazyFormatter(message))
        with self._send_lock:
            sock.send(message)

    def _pop_pending(self, context: bytes) -> Optional[Future]:
        with self._lock:
            return self._pending.pop(context, None)

    def _read_loop(self, sock: Socket):
        while True:
            try:
                data = sock.receive()
            except socket.timeout:
                continue
            except CommError as err:
                self._fail(sock, err)
                return

            if not data:
                self._fail(sock, CommError(f"Connection closed by {self.host}:{self.port}"))
                return

            for frame in self._frames.feed(data):
                self._dispatch(frame)

    def _dispatch(self, frame: bytes):
        self.__log.verbose("<<< RECEIVE <<< \n%s", PacketLazyFormatter(frame))
        header = parse_header(frame)
        future = self._pop_pending(header.sender_context)
        if future is None:
            self.__log.warning(
                f"Dropped reply (command 0x{header.command:04X}, context {header.sender_context.hex()}), "
                f"no request waiting for it"
            )
            return
        future.set_result(frame)

    def _fail_pending(self, err: Exception):
        with self._lock:
            pending, self._pending = self._pending, {}
        for future in pending.values():
            future.set_exception(err)

    def _fail(self, sock: Socket, err: CommError):
        """
        Handles a broken socket, ignored if ``sock`` was already replaced or closed by us
        """
        with self._lock:
            if self._sock is not sock:
                return
            self._sock = None
            self.session_handle = 0
            self._set_state(ConnectionState.disconnected)

        self.__log.error(f"Connection to {self.host}:{self.port} failed: {err}")
        sock.close()
        self._fail_pending(err)
        self.emit("error", self, err)
        self.emit("disconnected", self)

    def _detach(self) -> Optional[Socket]:
        with self._lock:
            sock, self._sock = self._sock, None
            self.session_handle = 0
            self._set_state(ConnectionState.disconnected)
        return sock

    def _close(self, sock: Optional[Socket]):
        if sock is not None:
            sock.close()
        self._fail_pending(NotConnectedError(f"Connection to {self.host}:{self.port} closed"))
        reader = self._reader
        if reader is not None and reader is not threading.current_thread():
            reader.join(timeout=1.0)

    def disconnect(self):
        """
        Unregisters the session (best effort) and closes the socket.  Safe to call when not connected.
        """
        with self._lock:
            session = self.session_handle
            sock = self._detach()
        if sock is None:
            return

        if session:
            try:
                self._send(sock, build_unregister_session(session))
                time.sleep(UNREGISTER_GRACE)
            except CommError as err:
                self.__log.warning(f"Failed to unregister session {session}: {err}")

        self._close(sock)
        self.__log.info(f"Disconnected from {self.host}:{self.port}")
        self.emit("disconnected", self)
