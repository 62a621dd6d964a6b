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
Connectivity checks that work even when a target does not answer ListIdentity discovery.
"""

import logging
import socket
import time
from typing import Any, Dict, Iterable, List

from .const import DEFAULT_PORT, DEFAULT_PROBE_TIMEOUT, DEFAULT_UDP_PORT, DEFAULT_DISCOVER_ONE_TIMEOUT
from .discovery import discover_plc
from .exceptions import CommError, PyenipError
from .packets import (
    FrameBuffer,
    build_register_session,
    build_unregister_session,
    parse_register_session_response,
)
from .socket_ import Socket

__all__ = ["check_connection", "check_connections", "verify_plc"]

_log = logging.getLogger(__name__)


def check_connection(
    ip_address: str, port: int = DEFAULT_PORT, timeout: float = DEFAULT_PROBE_TIMEOUT
) -> Dict[str, Any]:
    """
    Opens a TCP connection and tries to register a session.

    ``status`` is ``ready`` if a session was registered, ``connected_but_no_session``
    if only the TCP connection succeeded and ``unreachable`` otherwise.
    ``response_time`` is in seconds.
    """
    result = {
        "ip_address": ip_address,
        "port": port,
        "reachable": False,
        "session_supported": False,
        "session_handle": 0,
        "response_time": 0.0,
        "status": "unreachable",
        "error": None,
    }
    start = time.monotonic()
    sock = Socket(timeout=timeout)
    try:
        sock.connect(ip_address, port)
        result["reachable"] = True
        _log.debug(f"TCP connection established to {ip_address}:{port}")

        sock.send(build_register_session())
        frames = FrameBuffer()
        reply = None
        deadline = start + timeout
        while reply is None:
            sock.settimeout(max(deadline - time.monotonic(), 0.001))
            data = sock.receive()
            if not data:
                raise CommError(f"Connection closed by {ip_address}:{port}")
            received = frames.feed(data)
            reply = received[0] if received else None

        session = parse_register_session_response(reply)
        result["session_supported"] = True
        result["session_handle"] = session
        try:
            sock.send(build_unregister_session(session))
        except CommError:
            _log.debug(f"Failed to unregister probe session {session}")
    except socket.timeout:
        result["error"] = f"Timed out after {timeout}s"
    except PyenipError as err:
        result["error"] = str(err)
    finally:
        sock.close()

    result["response_time"] = time.monotonic() - start
    if result["session_supported"]:
        result["status"] = "ready"
    elif result["reachable"]:
        result["status"] = "connected_but_no_session"
    _log.info(f"Probe {ip_address}:{port} -> {result['status']}")
    return result


def check_connections(
    ip_addresses: Iterable[str], port: int = DEFAULT_PORT, timeout: float = DEFAULT_PROBE_TIMEOUT
) -> List[Dict[str, Any]]:
    return [check_connection(ip, port, timeout) for ip in ip_addresses]


def verify_plc(
    ip_address: str,
    port: int = DEFAULT_PORT,
    udp_port: int = DEFAULT_UDP_PORT,
    timeout: float = DEFAULT_PROBE_TIMEOUT,
) -> Dict[str, Any]:
    """
    Combines ListIdentity discovery with a connection check and recommends how to reach the target
    """
    results = {"ip_address": ip_address, "discovery": None, "connection": None}

    try:
        results["discovery"] = discover_plc(ip_address, min(timeout, DEFAULT_DISCOVER_ONE_TIMEOUT), udp_port)
    except CommError as err:
        results["discovery"] = {"error": str(err)}

    connection = check_connection(ip_address, port, timeout)
    results["connection"] = connection

    discovery = results["discovery"]
    if discovery and "error" not in discovery:
        results["recommended"] = "use_discovery"
        results["recommended_message"] = "Target answers ListIdentity discovery."
    elif connection["session_supported"]:
        results["recommended"] = "use_direct_connection"
        results["recommended_message"] = (
            "Target is reachable over TCP but does not answer ListIdentity, connect to it directly."
        )
    elif connection["reachable"]:
        results["recommended"] = "connection_issue"
        results["recommended_message"] = "Target is reachable but session registration failed, check its configuration."
    else:
        results["recommended"] = "unreachable"
        results["recommended_message"] = "Target is not reachable, check network connectivity and firewall settings."

    return results
