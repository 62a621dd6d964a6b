from struct import pack

import pytest

from pyenip import PLCSimulator
from pyenip.cip import DINT, INT, Services, build_object_path
from pyenip.exceptions import CipStatusError, DataError, OutOfRangeError, ProtocolStatusError
from pyenip.packets import (
    build_header,
    build_list_identity_request,
    build_read_tag_request,
    build_register_session,
    build_send_rr_data,
    build_unregister_session,
    parse_header,
    parse_list_identity_response,
    parse_read_tag_response,
    parse_register_session_response,
    parse_send_rr_data_response,
    parse_write_tag_response,
)

from .conftest import HOST, RawClient

CONTEXT = b'context!'


def _cip_status(reply):
    try:
        parse_send_rr_data_response(reply)
    except CipStatusError as err:
        return err.code
    return 0


def test_register_session_echoes_payload(raw_client):
    reply = raw_client.exchange(build_register_session(sender_context=CONTEXT))
    header = parse_header(reply)
    assert header.status == 0
    assert header.session_handle > 0
    assert header.sender_context == CONTEXT
    assert reply[24:] == b'\x01\x00\x00\x00'


def test_register_session_bad_version(raw_client):
    with pytest.raises(ProtocolStatusError) as exc_info:
        parse_register_session_response(raw_client.exchange(build_register_session(protocol_version=2)))
    assert exc_info.value.code == 0x69


def test_session_handles_unique(simulator):
    clients = [RawClient(simulator.port) for _ in range(5)]
    try:
        handles = [client.register() for client in clients]
    finally:
        for client in clients:
            client.close()
    assert len(set(handles)) == 5


def test_session_belongs_to_its_connection(simulator, raw_client):
    session = raw_client.register()
    other = RawClient(simulator.port)
    try:
        reply = other.exchange(build_read_tag_request(session, 'MyTag'))
    finally:
        other.close()
    assert parse_header(reply).status == 0x64


def test_unknown_session(raw_client):
    with pytest.raises(ProtocolStatusError) as exc_info:
        parse_send_rr_data_response(raw_client.exchange(build_read_tag_request(999, 'MyTag')))
    assert exc_info.value.code == 0x64


def test_unknown_command(raw_client):
    reply = raw_client.exchange(build_header(0x0004, 0, sender_context=CONTEXT))
    header = parse_header(reply)
    assert header.status == 0x01
    assert header.sender_context == CONTEXT


def test_reply_echoes_context_and_interface_handle(raw_client):
    session = raw_client.register()
    msg = build_read_tag_request(session, 'MyTag', interface_handle_format=1000, sender_context=CONTEXT)
    reply = raw_client.exchange(msg)
    assert parse_header(reply).sender_context == CONTEXT
    assert reply[24:28] == msg[24:28]
    assert DINT.decode(parse_read_tag_response(reply).data) == 42


def test_unsupported_service(raw_client):
    session = raw_client.register()
    msg = build_send_rr_data(session, Services.get_attributes_all, build_object_path(1, 1))
    assert _cip_status(raw_client.exchange(msg)) == 0x08


def test_read_errors(raw_client):
    session = raw_client.register()
    assert _cip_status(raw_client.exchange(build_read_tag_request(session, 'Missing'))) == 0x16
    assert _cip_status(raw_client.exchange(build_read_tag_request(session, 'MyArrayTag', 6))) == 0x03
    assert _cip_status(raw_client.exchange(build_read_tag_request(session, 'MyTag', 0))) == 0x03
    no_symbol = build_send_rr_data(session, Services.read_tag, build_object_path(0x6B, 1), b'\x01\x00')
    assert _cip_status(raw_client.exchange(no_symbol)) == 0x16
    bad_path = build_send_rr_data(session, Services.read_tag, b'\x91\x09ab\x00\x00', b'\x01\x00')
    assert _cip_status(raw_client.exchange(bad_path)) == 0x04


def _write(session, data):
    return build_send_rr_data(session, Services.write_tag, b'\x91\x05MyTag\x00', data)


def test_write_errors(simulator, raw_client):
    session = raw_client.register()
    assert _cip_status(raw_client.exchange(_write(session, b'\x01\x00'))) == 0x13
    assert _cip_status(raw_client.exchange(_write(session, pack('<HB', 2, 0xC4) + DINT.encode(1)))) == 0x13
    assert _cip_status(raw_client.exchange(_write(session, pack('<HB', 1, 0xA0) + b'\x00\x00'))) == 0x03
    assert _cip_status(raw_client.exchange(_write(session, pack('<HB', 0, 0xC4)))) == 0x03
    assert simulator.get_tag('MyTag') == 42


def test_write_count_must_match_data(simulator, raw_client):
    session = raw_client.register()
    three_dints = DINT.encode(1) + DINT.encode(2) + DINT.encode(3)
    assert _cip_status(raw_client.exchange(_write(session, pack('<HB', 2, 0xC4) + three_dints))) == 0x15
    assert _cip_status(raw_client.exchange(_write(session, pack('<HB', 1, 0xC4) + DINT.encode(7) + b'\x00'))) == 0x15
    assert _cip_status(raw_client.exchange(_write(session, pack('<HB', 1, 0xDA) + b'\x02ab\x00'))) == 0x15
    assert _cip_status(raw_client.exchange(_write(session, pack('<HB', 3, 0xC4) + DINT.encode(1) * 2))) == 0x13
    assert simulator.get_tag('MyTag') == 42


def test_write(simulator, raw_client):
    session = raw_client.register()
    reply = raw_client.exchange(_write(session, pack('<HB', 1, 0xC4) + DINT.encode(-7)))
    assert parse_write_tag_response(reply) == 0
    assert simulator.get_tag('MyTag') == -7


def test_list_identity_over_tcp(simulator, raw_client):
    device = parse_list_identity_response(raw_client.exchange(build_list_identity_request(CONTEXT)))
    assert device['product_name'] == 'EtherNet/IP Simulator'
    assert device['ip_address'] == HOST
    assert device['port'] == simulator.port
    assert device['vendor_id'] == 1
    assert device['device_type'] == 12
    assert device['serial_number'] == 12345


def test_unregister_closes_connection(raw_client):
    session = raw_client.register()
    raw_client.send(build_unregister_session(session))
    assert raw_client.receive() == b''


def test_message_split_across_sends(raw_client):
    session = raw_client.register()
    msg = build_read_tag_request(session, 'MyIntTag', sender_context=CONTEXT)
    raw_client.send(msg[:10])
    raw_client.send(msg[10:])
    assert INT.decode(parse_read_tag_response(raw_client.receive()).data) == 12345


def test_pipelined_requests(raw_client):
    session = raw_client.register()
    first = build_read_tag_request(session, 'MyTag', sender_context=b'request1')
    second = build_read_tag_request(session, 'MyIntTag', sender_context=b'request2')
    raw_client.send(first + second)
    assert parse_header(raw_client.receive()).sender_context == b'request1'
    assert parse_header(raw_client.receive()).sender_context == b'request2'


def test_tag_table():
    sim = PLCSimulator(port=0, udp_port=0)
    assert sim.list_tags() == ['MyTag', 'MyBoolTag', 'MyIntTag', 'MyRealTag', 'MyStringTag', 'MyArrayTag']
    assert sim.get_tag_type('MyRealTag') == 'REAL'
    assert sim.get_tag_type('MyArrayTag') == 'DINT'
    assert sim.get_tag('Missing') is None
    assert sim.get_tag_type('Missing') is None

    sim.set_tag('Count', 5)
    sim.set_tag('Ratio', 0.5)
    sim.set_tag('Name', 'x')
    sim.set_tag('Flags', (True, False))
    assert sim.get_tag_type('Count') == 'DINT'
    assert sim.get_tag_type('Ratio') == 'REAL'
    assert sim.get_tag_type('Name') == 'STRING'
    assert sim.get_tag('Flags') == [True, False]


def test_set_tag_invalid():
    sim = PLCSimulator(default_tags=False)
    assert sim.list_tags() == []
    with pytest.raises(OutOfRangeError):
        sim.set_tag('X', 300, 'SINT')
    with pytest.raises(DataError):
        sim.set_tag('X', object())
    assert sim.list_tags() == []


def test_start_publishes_ports():
    sim = PLCSimulator(host=HOST, port=0, udp_port=0)
    listening = []
    sim.on('listening', listening.append)
    assert not sim.running
    with sim:
        assert sim.running
        assert sim.port != 0
        assert sim.udp_port != 0
        assert listening == [sim]
    assert not sim.running
