"""Tests for socket_.py.

The Socket class has no dependency injection, so these tests mock the
Python socket underneath it.  The reader thread in connection.py relies on
``receive`` returning whatever arrived (framing is done by FrameBuffer) and
on ``socket.timeout`` passing through unchanged so it can poll.
"""
import socket
from unittest import mock

import pytest

from pyenip.exceptions import CommError
from pyenip.socket_ import Socket


def test_socket_init_creates_socket():
    with mock.patch('socket.socket') as mock_socket:
        my_sock = Socket()
        assert my_sock
        mock_socket.assert_called_once()


def test_socket_connect_raises_commerror_on_timeout():
    with mock.patch.object(socket.socket, 'connect') as mock_socket_connect:
        mock_socket_connect.side_effect = socket.timeout
        my_sock = Socket()
        with pytest.raises(CommError):
            my_sock.connect('127.0.0.1', 12345)

        mock_socket_connect.assert_called_once()


def test_socket_connect_raises_commerror_on_refused():
    with mock.patch.object(socket.socket, 'connect') as mock_socket_connect:
        mock_socket_connect.side_effect = ConnectionRefusedError
        with pytest.raises(CommError):
            Socket().connect('127.0.0.1', 12345)


def test_socket_send_raises_commerror_on_no_bytes_sent():
    with mock.patch.object(socket.socket, 'send') as mock_socket_send:
        mock_socket_send.return_value = 0
        my_sock = Socket()
        with pytest.raises(CommError):
            my_sock.send(msg=b"Meaningless Data")


def test_socket_send_returns_length_of_bytes_sent():
    BYTES_TO_SEND = b"Baah baah black sheep"

    with mock.patch.object(socket.socket, 'send') as mock_socket_send:
        mock_socket_send.return_value = len(BYTES_TO_SEND)

        my_sock = Socket()
        sent_bytes = my_sock.send(BYTES_TO_SEND)

        mock_socket_send.assert_called_once_with(BYTES_TO_SEND)
        assert sent_bytes == len(BYTES_TO_SEND)


def test_socket_send_continues_partial_sends():
    with mock.patch.object(socket.socket, 'send') as mock_socket_send:
        mock_socket_send.side_effect = [4, 6]
        assert Socket().send(b'0123456789') == 10
        assert mock_socket_send.call_args_list == [mock.call(b'0123456789'), mock.call(b'456789')]


def test_socket_settimeout():
    with mock.patch.object(socket.socket, 'settimeout') as mock_socket_settimeout:
        my_sock = Socket()
        my_sock.settimeout(1)

        mock_socket_settimeout.assert_called_with(1)


def test_socket_send_timeout_comes_from_settimeout():
    my_sock = Socket()
    with pytest.raises(TypeError):
        my_sock.send(b'Some Message', timeout=1)
    my_sock.close()


def test_socket_send_raises_commerror_on_socketerror():
    with mock.patch.object(socket.socket, 'send') as mock_socket_send:
        mock_socket_send.side_effect = socket.error

        my_sock = Socket()
        with pytest.raises(CommError):
            my_sock.send(b"Useless Bytes")


def test_socket_receive_returns_data():
    RECVD_BYTES = b"These are the bytes we will recv"
    with mock.patch.object(socket.socket, 'recv') as mock_socket_recv:
        mock_socket_recv.return_value = RECVD_BYTES

        response = Socket().receive()

        mock_socket_recv.assert_called_once_with(4096)
        assert response == RECVD_BYTES


def test_socket_receive_passes_timeout_through():
    with mock.patch.object(socket.socket, 'recv') as mock_socket_recv:
        mock_socket_recv.side_effect = socket.timeout

        with pytest.raises(socket.timeout):
            Socket().receive()


def test_socket_receive_raises_commerror_on_socketerror():
    with mock.patch.object(socket.socket, 'recv') as mock_socket_recv:
        mock_socket_recv.side_effect = ConnectionResetError

        my_sock = Socket()
        with pytest.raises(CommError):
            my_sock.receive()


def test_socket_close_closes_socket():
    with mock.patch.object(socket.socket, 'close') as mock_socket_close:
        my_sock = Socket()
        my_sock.close()
        mock_socket_close.assert_called_once()
