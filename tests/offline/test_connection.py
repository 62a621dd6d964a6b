import logging
import queue
import socket
import threading
import time
from unittest import mock

import pytest

from pyenip.cip import DINT, EncapsulationCommands, tag_name_from_path
from pyenip.connection import ConnectionState, EIPConnection
from pyenip.exceptions import (
    CommError,
    NotConnectedError,
    ProtocolStatusError,
    RequestError,
    RequestTimeoutError,
)
from pyenip.packets import (
    build_header,
    build_read_tag_reply_data,
    build_read_tag_request,
    build_send_rr_data_reply,
    parse_header,
    parse_read_tag_response,
    parse_send_rr_data_request,
)

SESSION = 0x1234


def _read_reply(msg, value=42):
    header = parse_header(msg)
    request = parse_send_rr_data_request(msg)
    data = build_read_tag_reply_data(DINT.code, 1, DINT.encode(value))
    return build_send_rr_data_reply(SESSION, header.sender_context, request.interface_handle, 0, data)


def default_responder(msg):
    header = parse_header(msg)
    if header.command == EncapsulationCommands.register_session:
        return build_header(header.command, 4, SESSION, 0, header.sender_context) + msg[24:28]
    if header.command == EncapsulationCommands.send_rr_data:
        return _read_reply(msg)
    return None


class FakeSocket:
    """Stands in for socket_.Socket, replies come from ``responder`` or are queued on ``incoming``"""

    initial_responder = staticmethod(default_responder)

    def __init__(self, timeout=5.0):
        self.timeout = timeout
        self.sent = []
        self.incoming = queue.Queue()
        self.responder = self.initial_responder
        self.closed = False

    def connect(self, host, port):
        pass

    def send(self, msg, timeout=0):
        if self.closed:
            raise CommError('socket connection broken.')
        self.sent.append(msg)
        reply = self.responder(msg)
        if reply:
            self.incoming.put(reply)
        return len(msg)

    def receive(self, bufsize=4096):
        if self.closed:
            raise CommError('socket connection broken')
        try:
            return self.incoming.get(timeout=0.05)
        except queue.Empty:
            raise socket.timeout from None

    def settimeout(self, timeout):
        self.timeout = timeout

    def close(self):
        self.closed = True


@pytest.fixture
def sockets():
    created = []

    def factory(timeout=5.0):
        sock = FakeSocket(timeout)
        created.append(sock)
        return sock

    with mock.patch('pyenip.connection.Socket', side_effect=factory), \
         mock.patch('pyenip.connection.UNREGISTER_GRACE', 0):
        yield created


@pytest.fixture
def conn(sockets):
    connection = EIPConnection('plc', timeout=1.0)
    connection.connect()
    yield connection
    connection.disconnect()


def _wait_for(condition, timeout=2.0):
    deadline = time.monotonic() + timeout
    while not condition():
        if time.monotonic() > deadline:
            raise AssertionError('condition not met in time')
        time.sleep(0.01)


def test_connect_registers_session(sockets):
    connection = EIPConnection('plc')
    connected = mock.Mock()
    connection.on('connected', connected)
    assert connection.state == ConnectionState.disconnected

    connection.connect()

    assert connection.connected
    assert connection.state == ConnectionState.ready
    assert connection.session_handle == SESSION
    connected.assert_called_once_with(connection)
    register = parse_header(sockets[0].sent[0])
    assert register.command == EncapsulationCommands.register_session
    connection.disconnect()


def test_connect_twice_is_noop(conn, sockets):
    conn.connect()
    assert len(sockets) == 1


def test_connect_refused():
    with mock.patch('pyenip.connection.Socket') as mock_socket:
        mock_socket.return_value.connect.side_effect = CommError('refused')
        connection = EIPConnection('plc')
        with pytest.raises(CommError):
            connection.connect()
        assert connection.state == ConnectionState.disconnected
        mock_socket.return_value.close.assert_called_once()


def test_register_session_rejected(sockets):
    def reject(msg):
        header = parse_header(msg)
        return build_header(header.command, 0, 0, 0x69, header.sender_context)

    connection = EIPConnection('plc')
    with mock.patch.object(FakeSocket, 'initial_responder', staticmethod(reject)):
        with pytest.raises(ProtocolStatusError) as exc_info:
            connection.connect()

    assert exc_info.value.code == 0x69
    assert connection.state == ConnectionState.disconnected
    assert not connection.connected


def test_send_request(conn):
    reply = conn.send_request(build_read_tag_request(conn.session_handle, 'MyTag'))
    assert DINT.decode(parse_read_tag_response(reply).data) == 42


def test_send_request_not_connected():
    connection = EIPConnection('plc')
    with pytest.raises(NotConnectedError):
        connection.send_request(build_read_tag_request(1, 'MyTag'))


def test_send_request_status_error(conn, sockets):
    def invalid_session(msg):
        header = parse_header(msg)
        return build_header(header.command, 0, header.session_handle, 0x64, header.sender_context)

    sockets[0].responder = invalid_session
    with pytest.raises(ProtocolStatusError) as exc_info:
        conn.send_request(build_read_tag_request(conn.session_handle, 'MyTag'))
    assert exc_info.value.code == 0x64
    assert conn.connected


def test_replies_matched_by_context(conn, sockets):
    held = []
    sockets[0].responder = held.append
    results = {}

    def read(name):
        results[name] = conn.send_request(build_read_tag_request(conn.session_handle, name))

    threads = [threading.Thread(target=read, args=(name,)) for name in ('A', 'B')]
    for thread in threads:
        thread.start()
    _wait_for(lambda: len(held) == 2)

    # answer in the opposite order of arrival
    for msg in reversed(held):
        name = tag_name_from_path(parse_send_rr_data_request(msg).path)
        sockets[0].incoming.put(_read_reply(msg, 1 if name == 'A' else 2))
    for thread in threads:
        thread.join(timeout=2)

    assert DINT.decode(parse_read_tag_response(results['A']).data) == 1
    assert DINT.decode(parse_read_tag_response(results['B']).data) == 2


def test_replies_split_across_reads(conn, sockets):
    held = []
    sockets[0].responder = held.append
    result = []
    thread = threading.Thread(
        target=lambda: result.append(conn.send_request(build_read_tag_request(conn.session_handle, 'MyTag')))
    )
    thread.start()
    _wait_for(lambda: held)
    reply = _read_reply(held[0], 7)
    sockets[0].incoming.put(reply[:5])
    sockets[0].incoming.put(reply[5:30])
    sockets[0].incoming.put(reply[30:])
    thread.join(timeout=2)
    assert result == [reply]


def test_duplicate_context_rejected(conn, sockets):
    held = []
    sockets[0].responder = held.append
    msg = build_read_tag_request(conn.session_handle, 'MyTag')
    thread = threading.Thread(target=conn.send_request, args=(msg,))
    thread.start()
    _wait_for(lambda: held)

    with pytest.raises(RequestError):
        conn.send_request(msg)

    sockets[0].incoming.put(_read_reply(msg))
    thread.join(timeout=2)


def test_timeout_and_late_reply_dropped(sockets, caplog):
    connection = EIPConnection('plc', timeout=0.2)
    connection.connect()
    held = []
    sockets[0].responder = held.append

    with pytest.raises(RequestTimeoutError):
        connection.send_request(build_read_tag_request(connection.session_handle, 'MyTag'))

    with caplog.at_level(logging.WARNING):
        sockets[0].incoming.put(_read_reply(held[0]))
        _wait_for(lambda: 'Dropped reply' in caplog.text)

    # the connection is still usable
    sockets[0].responder = default_responder
    connection.timeout = 1.0
    reply = connection.send_request(build_read_tag_request(connection.session_handle, 'MyTag'))
    assert DINT.decode(parse_read_tag_response(reply).data) == 42
    connection.disconnect()


def test_peer_close_fails_pending_and_emits(conn, sockets):
    errors, disconnected = mock.Mock(), threading.Event()
    conn.on('error', errors)
    conn.on('disconnected', lambda c: disconnected.set())
    held = []
    sockets[0].responder = held.append
    failures = []

    def read():
        try:
            conn.send_request(build_read_tag_request(conn.session_handle, 'MyTag'))
        except CommError as err:
            failures.append(err)

    thread = threading.Thread(target=read)
    thread.start()
    _wait_for(lambda: held)
    sockets[0].incoming.put(b'')  # EOF
    thread.join(timeout=2)

    assert disconnected.wait(2)
    assert len(failures) == 1
    assert conn.state == ConnectionState.disconnected
    assert conn.session_handle == 0
    assert errors.call_args[0][0] is conn
    assert isinstance(errors.call_args[0][1], CommError)
    with pytest.raises(NotConnectedError):
        conn.send_request(build_read_tag_request(SESSION, 'MyTag'))


def test_disconnect_unregisters(sockets):
    connection = EIPConnection('plc')
    disconnected = mock.Mock()
    connection.on('disconnected', disconnected)
    connection.connect()

    connection.disconnect()

    unregister = parse_header(sockets[0].sent[-1])
    assert unregister.command == EncapsulationCommands.unregister_session
    assert unregister.session_handle == SESSION
    assert sockets[0].closed
    assert connection.state == ConnectionState.disconnected
    assert not connection.connected
    disconnected.assert_called_once_with(connection)

    connection.disconnect()
    disconnected.assert_called_once()


def test_reconnect_after_disconnect(sockets):
    with EIPConnection('plc') as connection:
        assert connection.connected
    connection.connect()
    assert connection.connected
    assert len(sockets) == 2
    connection.disconnect()
