import socket

import pytest

from pyenip import EthernetIPDriver, PLCSimulator
from pyenip.packets import FrameBuffer, build_register_session, parse_register_session_response

HOST = '127.0.0.1'


class RawClient:
    """Plain TCP client for sending hand-built encapsulation messages to the simulator"""

    def __init__(self, port):
        self.sock = socket.create_connection((HOST, port), timeout=2)
        self.frames = FrameBuffer()
        self._ready = []

    def send(self, msg):
        self.sock.sendall(msg)

    def receive(self):
        while not self._ready:
            data = self.sock.recv(4096)
            if not data:
                return b''
            self._ready.extend(self.frames.feed(data))
        return self._ready.pop(0)

    def exchange(self, msg):
        self.send(msg)
        return self.receive()

    def register(self):
        return parse_register_session_response(self.exchange(build_register_session()))

    def close(self):
        self.sock.close()


@pytest.fixture
def simulator():
    with PLCSimulator(host=HOST, port=0, udp_port=0) as sim:
        yield sim


@pytest.fixture
def plc(simulator):
    with EthernetIPDriver(HOST, port=simulator.port, timeout=2.0) as driver:
        yield driver


@pytest.fixture
def raw_client(simulator):
    client = RawClient(simulator.port)
    yield client
    client.close()
