import socket
import threading

import pytest

from pyenip import PLCDiscovery, check_connection, check_connections, discover_plc, discover_plcs, verify_plc

from .conftest import HOST


@pytest.fixture
def silent_udp_port():
    """A bound UDP port that never answers"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind((HOST, 0))
    yield sock.getsockname()[1]
    sock.close()


@pytest.fixture
def closed_tcp_port():
    """A bound TCP port that is not listening, connections are refused"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind((HOST, 0))
    yield sock.getsockname()[1]
    sock.close()


@pytest.fixture
def silent_tcp_port():
    """A listening TCP port that accepts connections but never replies"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind((HOST, 0))
    sock.listen(5)
    yield sock.getsockname()[1]
    sock.close()


def test_discover_plc(simulator):
    device = discover_plc(HOST, timeout=1.0, port=simulator.udp_port)
    assert device['product_name'] == 'EtherNet/IP Simulator'
    assert device['ip_address'] == HOST
    assert device['revision'] == {'major': 1, 'minor': 0}


def test_discover_plc_no_reply(silent_udp_port):
    assert discover_plc(HOST, timeout=0.3, port=silent_udp_port) is None


def test_discover_plcs_no_devices(silent_udp_port):
    assert discover_plcs(timeout=0.3, broadcast_address=HOST, port=silent_udp_port) == []


def test_plc_discovery_events(simulator):
    found, updated = [], threading.Event()
    discovery = PLCDiscovery(interval=0.2, broadcast_address=HOST, port=simulator.udp_port)
    discovery.on('device', found.append)
    discovery.on('device_update', lambda device: updated.set())

    with discovery:
        assert discovery.running
        assert updated.wait(3)

    assert not discovery.running
    assert len(found) == 1
    assert found[0]['serial_number'] == 12345
    assert discovery.devices == [found[0]]


def test_check_connection_ready(simulator):
    result = check_connection(HOST, simulator.port, timeout=2.0)
    assert result['status'] == 'ready'
    assert result['reachable']
    assert result['session_supported']
    assert result['session_handle'] > 0
    assert result['error'] is None
    assert 0 <= result['response_time'] < 2.0


def test_check_connection_refused(closed_tcp_port):
    result = check_connection(HOST, closed_tcp_port, timeout=1.0)
    assert result['status'] == 'unreachable'
    assert not result['reachable']
    assert result['error']


def test_check_connection_no_session(silent_tcp_port):
    result = check_connection(HOST, silent_tcp_port, timeout=0.3)
    assert result['status'] == 'connected_but_no_session'
    assert result['reachable']
    assert not result['session_supported']
    assert 'Timed out' in result['error']


def test_check_connections(simulator):
    results = check_connections([HOST, HOST], simulator.port, timeout=1.0)
    assert [r['status'] for r in results] == ['ready', 'ready']


def test_verify_plc(simulator):
    result = verify_plc(HOST, simulator.port, simulator.udp_port, timeout=1.0)
    assert result['recommended'] == 'use_discovery'
    assert result['discovery']['product_name'] == 'EtherNet/IP Simulator'
    assert result['connection']['status'] == 'ready'


def test_verify_plc_without_discovery(simulator, silent_udp_port):
    result = verify_plc(HOST, simulator.port, silent_udp_port, timeout=0.5)
    assert result['discovery'] is None
    assert result['recommended'] == 'use_direct_connection'


def test_verify_plc_unreachable(closed_tcp_port, silent_udp_port):
    result = verify_plc(HOST, closed_tcp_port, silent_udp_port, timeout=0.3)
    assert result['recommended'] == 'unreachable'
