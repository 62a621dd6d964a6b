import pytest

from pyenip.cip import (
    MSG_ROUTER_PATH,
    PathFormats,
    PathSegment,
    build_object_path,
    build_symbolic_path,
    build_symbolic_path_16bit,
    build_tag_path,
    parse_path,
    path_size_words,
    tag_name_from_path,
)
from pyenip.exceptions import RequestError, TruncatedBufferError


def test_symbolic_path_even_name():
    assert build_symbolic_path('MyTag1') == b'\x91\x06MyTag1'


def test_symbolic_path_odd_name_is_padded():
    assert build_symbolic_path('MyTag') == b'\x91\x05MyTag\x00'


def test_symbolic_path_members_padded_as_a_whole():
    assert build_symbolic_path('A.BC') == b'\x91\x01A\x91\x02BC\x00'
    path = build_symbolic_path('Program:MainProgram.Tags')
    assert path == b'\x91\x13Program:MainProgram' + b'\x91\x04Tags' + b'\x00'
    assert len(path) % 2 == 0


def test_symbolic_path_even_members_not_padded():
    assert build_symbolic_path('AB.CD') == b'\x91\x02AB\x91\x02CD'


def test_symbolic_path_padded_segments():
    assert build_symbolic_path('A.BC', pad_segments=True) == b'\x91\x01A\x00\x91\x02BC'
    path = build_tag_path('Program:MainProgram.Tag', PathFormats.padded_segments)
    assert path == b'\x91\x13Program:MainProgram\x00' + b'\x91\x03Tag\x00'


def test_symbolic_path_16bit():
    assert build_symbolic_path_16bit('MyTag') == b'\x92\x05\x00MyTag'
    assert build_symbolic_path_16bit('Tag1') == b'\x92\x04\x00Tag1\x00'
    assert build_symbolic_path_16bit('A.B') == b'\x92\x01\x00A\x92\x01\x00B'
    assert build_symbolic_path_16bit('AB.C', pad_segments=True) == b'\x92\x02\x00AB\x00\x92\x01\x00C'


@pytest.mark.parametrize('name', ('', 'A..B', 'Tag.', 'naïve', 'x' * 256))
def test_invalid_names(name):
    with pytest.raises(RequestError):
        build_symbolic_path(name)


def test_path_too_long():
    name = '.'.join(['x' * 200] * 3)  # 3 * 202 bytes = 303 words
    with pytest.raises(RequestError):
        build_symbolic_path(name)


def test_object_path():
    assert build_object_path(0x01, 1) == b'\x20\x01\x24\x01'
    with pytest.raises(RequestError):
        build_object_path(0x100, 1)


def test_tag_path_formats():
    assert build_tag_path('MyTag') == build_symbolic_path('MyTag')
    assert build_tag_path('MyTag', PathFormats.symbolic) == build_symbolic_path('MyTag')
    assert build_tag_path('MyTag', '16bit') == build_symbolic_path_16bit('MyTag')
    assert build_tag_path('MyTag', PathFormats.with_router) == MSG_ROUTER_PATH + build_symbolic_path('MyTag')
    assert build_tag_path('MyTag', use_message_router=True) == b'\x20\x02\x24\x00\x91\x05MyTag\x00'


def test_tag_path_unknown_format():
    with pytest.raises(RequestError):
        build_tag_path('MyTag', 'bogus')


def test_path_size_words():
    assert path_size_words(b'') == 0
    assert path_size_words(b'\x91\x05MyTag\x00') == 4
    assert path_size_words(b'\x91') == 1


@pytest.mark.parametrize('name', ('MyTag', 'Tag1', 'Program:MainProgram.Speed', 'GVL.Motor.Running'))
@pytest.mark.parametrize('path_format', ('default', '16bit', 'with_router', 'padded_segments'))
def test_tag_name_from_built_path(name, path_format):
    assert tag_name_from_path(build_tag_path(name, path_format)) == name


def test_parse_path_segments():
    path = b'\x20\x02\x24\x00' + b'\x91\x05MyTag\x00'
    parsed = parse_path(path)
    assert parsed.segments == [
        PathSegment('logical', 2, 'class_id'),
        PathSegment('logical', 0, 'instance_id'),
        PathSegment('symbolic', 'MyTag'),
    ]
    assert parsed.length == len(path)


def test_parse_path_logical_widths():
    path = b'\x21\x00\x6b\x00' + b'\x26\x00\x01\x00\x00\x00'  # 16-bit class, 32-bit instance
    assert parse_path(path).segments == [
        PathSegment('logical', 0x6B, 'class_id'),
        PathSegment('logical', 1, 'instance_id'),
    ]


def test_parse_path_offset():
    path = b'\xff\xff' + b'\x91\x04Tag1'
    parsed = parse_path(path, offset=2)
    assert parsed.segments == [PathSegment('symbolic', 'Tag1')]
    assert parsed.length == 6


def test_parse_path_short_symbolic_and_data_segments():
    path = b'\x63abc' + b'\x80\x01\xaa\xbb'
    assert parse_path(path).segments == [
        PathSegment('symbolic', 'abc'),
        PathSegment('data', b'\xaa\xbb'),
    ]


def test_parse_path_skips_network_segments():
    path = b'\x43\x01' + b'\x5f\x01\x00\x00' + b'\x91\x04Tag1'
    assert parse_path(path).segments == [PathSegment('symbolic', 'Tag1')]


def test_parse_path_stops_at_unknown_segment():
    path = b'\x91\x04Tag1' + b'\xe0\x00\x91\x04Tag2'
    parsed = parse_path(path)
    assert parsed.segments == [PathSegment('symbolic', 'Tag1')]
    assert parsed.length == 6


@pytest.mark.parametrize('path', (
    b'\x91',
    b'\x91\x05MyT',
    b'\x92\x05',
    b'\x20',
    b'\x25\x00\x01',
    b'\x80\x02\x00',
))
def test_parse_path_truncated(path):
    with pytest.raises(TruncatedBufferError):
        parse_path(path)


def test_tag_name_from_path_without_symbols():
    assert tag_name_from_path(b'\x20\x01\x24\x01') is None
    assert tag_name_from_path(b'') is None


@pytest.mark.parametrize('path, name', (
    (b'\x91\x01A\x91\x02BC\x00', 'A.BC'),
    (b'\x91\x01A\x00\x91\x02BC', 'A.BC'),
    (b'\x91\x03Abc\x91\x01D', 'Abc.D'),
    (b'\x92\x01\x00A\x92\x02\x00BC\x00', 'A.BC'),
    (b'\x20\x02\x24\x00\x91\x01X\x91\x01Y', 'X.Y'),
))
def test_tag_name_with_either_padding(path, name):
    assert tag_name_from_path(path) == name


def test_parse_path_consumes_trailing_pad():
    path = b'\x91\x01A\x91\x02BC\x00'
    parsed = parse_path(path)
    assert parsed.segments == [PathSegment('symbolic', 'A'), PathSegment('symbolic', 'BC')]
    assert parsed.length == len(path)
