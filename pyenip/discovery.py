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
Finding EtherNet/IP devices with the ListIdentity command over UDP.

Discovery is a collection window, not a request/reply exchange: every reply
that arrives before the timeout is kept, de-duplicated by the address it came from.
"""

import logging
import socket
import threading
import time
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .const import (
    DEFAULT_UDP_PORT,
    DEFAULT_DISCOVERY_TIMEOUT,
    DEFAULT_DISCOVER_ONE_TIMEOUT,
    DEFAULT_DISCOVERY_INTERVAL,
)
from .events import EventEmitter
from .exceptions import CommError, PyenipError
from .packets import build_list_identity_request, parse_list_identity_response, PacketLazyFormatter

__all__ = ["discover_plcs", "discover_plc", "PLCDiscovery"]

_log = logging.getLogger(__name__)

BROADCAST_ADDRESS = "255.255.255.255"


def _open_socket() -> socket.socket:
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
    sock.bind(("", 0))
    return sock


def _send_request(sock: socket.socket, address: str, port: int):
    try:
        sock.sendto(build_list_identity_request(), (address, port))
    except OSError as err:
        raise CommError(f"Failed to send ListIdentity to {address}:{port}") from err


def _parse_reply(data: bytes, source: str) -> Optional[Dict[str, Any]]:
    _log.verbose("<<< RECEIVE <<< \n%s", PacketLazyFormatter(data))
    try:
        device = parse_list_identity_response(data)
    except PyenipError as err:
        _log.debug(f"Ignoring invalid ListIdentity reply from {source}: {err}")
        return None

    if device["ip_address"] == "0.0.0.0":
        device["ip_address"] = source
    return device


def _collect(sock: socket.socket, timeout: float) -> Iterator[Tuple[str, Dict[str, Any]]]:
    """
    Yields ``(source ip, device)`` for each valid reply received within ``timeout`` seconds
    """
    deadline = time.monotonic() + timeout
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return
        sock.settimeout(remaining)
        try:
            data, (source, _) = sock.recvfrom(4096)
        except socket.timeout:
            return
        except OSError as err:
            raise CommError("Discovery socket failed") from err

        device = _parse_reply(data, source)
        if device is not None:
            yield source, device


def discover_plcs(
    timeout: float = DEFAULT_DISCOVERY_TIMEOUT,
    broadcast_address: str = BROADCAST_ADDRESS,
    port: int = DEFAULT_UDP_PORT,
) -> List[Dict[str, Any]]:
    """
    Broadcasts one ListIdentity request and returns every device that replied within ``timeout`` seconds
    """
    devices = {}
    with _open_socket() as sock:
        _send_request(sock, broadcast_address, port)
        for source, device in _collect(sock, timeout):
            if source not in devices:
                _log.info(f"Discovered device: {device['product_name']} at {source}")
                devices[source] = device

    return list(devices.values())


def discover_plc(
    ip_address: str, timeout: float = DEFAULT_DISCOVER_ONE_TIMEOUT, port: int = DEFAULT_UDP_PORT
) -> Optional[Dict[str, Any]]:
    """
    Sends ListIdentity to ``ip_address``, returns its identity or ``None`` if it did not reply in time
    """
    try:
        target = socket.gethostbyname(ip_address)
    except OSError as err:
        raise CommError(f"Failed to resolve {ip_address}") from err

    with _open_socket() as sock:
        _send_request(sock, target, port)
        for source, device in _collect(sock, timeout):
            if source == target:
                return device

    return None


class PLCDiscovery(EventEmitter):
    """
    Repeats the ListIdentity broadcast every ``interval`` seconds from a background thread.

    Events:

    - ``device`` (device) the first time an address replies
    - ``device_update`` (device) for each later reply from a known address
    - ``error`` (exception) if the socket fails, polling stops
    """

    __log = logging.getLogger(f"{__module__}.{__qualname__}")
    events = ("device", "device_update", "error")

    def __init__(
        self,
        interval: float = DEFAULT_DISCOVERY_INTERVAL,
        broadcast_address: str = BROADCAST_ADDRESS,
        port: int = DEFAULT_UDP_PORT,
    ):
        super().__init__()
        self.interval = interval
        self.broadcast_address = broadcast_address
        self.port = port
        self._devices: Dict[str, Dict[str, Any]] = {}
        self._devices_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def devices(self) -> List[Dict[str, Any]]:
        with self._devices_lock:
            return list(self._devices.values())

    def start(self):
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._poll, name="pyenip-discovery", daemon=True)
        self._thread.start()

    def stop(self):
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=self.interval + 1.0)
        self._thread = None

    def _poll(self):
        try:
            with _open_socket() as sock:
                while not self._stop.is_set():
                    _send_request(sock, self.broadcast_address, self.port)
                    next_send = time.monotonic() + self.interval
                    while not self._stop.is_set():
                        remaining = next_send - time.monotonic()
                        if remaining <= 0:
                            break
                        # short windows so stop() is noticed promptly
                        for source, device in _collect(sock, min(remaining, 0.25)):
                            self._found(source, device)
        except (CommError, OSError) as err:
            self.__log.error(f"Discovery stopped: {err}")
            self.emit("error", err)

    def _found(self, source: str, device: Dict[str, Any]):
        with self._devices_lock:
            known = source in self._devices
            self._devices[source] = device

        if known:
            self.emit("device_update", device)
        else:
            self.__log.info(f"Discovered device: {device['product_name']} at {source}")
            self.emit("device", device)
