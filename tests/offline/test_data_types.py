import pytest

from pyenip.cip import (
    BOOL,
    DINT,
    INT,
    LREAL,
    REAL,
    SINT,
    STRING,
    SHORT_STRING,
    UDINT,
    UINT,
    USINT,
    DataTypes,
    data_type_size,
    decode_value,
    decode_values,
    encode_value,
    get_data_type,
    infer_data_type,
)
from pyenip.exceptions import DataError, OutOfRangeError, TruncatedBufferError, UnsupportedTypeError
from tests import REAL as _REAL

i8_range = (-128, 127)
u8_range = (0, 255)
i16_range = (-32_768, 32_767)
u16_range = (0, 65_535)
i32_range = (-(2**31), (2**31) - 1)
u32_range = (0, (2**32) - 1)
shared = (0, 1, 31, 32, 69, 100)

int_value_tests = [
    *((SINT, x) for x in (*i8_range, *shared)),
    *((USINT, x) for x in (*u8_range, *shared)),
    *((INT, x) for x in (*i16_range, *shared)),
    *((UINT, x) for x in (*u16_range, *shared)),
    *((DINT, x) for x in (*i32_range, *shared)),
    *((UDINT, x) for x in (*u32_range, *shared)),
]


@pytest.mark.parametrize('typ, value', int_value_tests)
def test_int_types(typ, value):
    encoded = typ.encode(value)
    assert len(encoded) == typ.size
    assert typ.decode(encoded) == value


int_out_of_range_tests = [
    (SINT, i8_range[0] - 1), (SINT, i8_range[1] + 1),
    (USINT, -1), (USINT, u8_range[1] + 1),
    (INT, i16_range[0] - 1), (INT, i16_range[1] + 1),
    (UINT, -1), (UINT, u16_range[1] + 1),
    (DINT, i32_range[0] - 1), (DINT, i32_range[1] + 1),
    (UDINT, -1), (UDINT, u32_range[1] + 1),
]


@pytest.mark.parametrize('typ, value', int_out_of_range_tests)
def test_int_out_of_range(typ, value):
    with pytest.raises(OutOfRangeError):
        typ.encode(value)


def test_int_wrong_kind():
    with pytest.raises(DataError):
        DINT.encode('42')


def test_int_little_endian():
    assert DINT.encode(42) == b'\x2a\x00\x00\x00'
    assert INT.encode(12345) == b'\x39\x30'
    assert DINT.encode(-1) == b'\xff\xff\xff\xff'


def test_bool():
    assert BOOL.encode(True) == b'\xff'
    assert BOOL.encode(False) == b'\x00'
    assert BOOL.decode(b'\x01') is True
    assert BOOL.decode(b'\xff') is True
    assert BOOL.decode(b'\x00') is False


@pytest.mark.parametrize('value', (0.0, 1.5, -2.25, 3.14159, 1e10))
def test_real(value):
    assert REAL.decode(REAL.encode(value)) == _REAL(value)


def test_real_overflow():
    with pytest.raises(OutOfRangeError):
        REAL.encode(1e39)


def test_lreal_keeps_precision():
    assert LREAL.decode(LREAL.encode(3.141592653589793)) == 3.141592653589793


def test_string():
    assert STRING.encode('Hello PLC') == b'\x09Hello PLC'
    assert STRING.decode(b'\x09Hello PLC') == 'Hello PLC'
    assert STRING.encode('') == b'\x00'
    assert STRING.decode(b'\x00') == ''


def test_string_limits():
    assert STRING.decode(STRING.encode('x' * 255)) == 'x' * 255
    with pytest.raises(OutOfRangeError):
        STRING.encode('x' * 256)
    with pytest.raises(DataError):
        STRING.encode('naïve')


def test_short_string_latin1():
    assert SHORT_STRING.decode(SHORT_STRING.encode('Gerät')) == 'Gerät'


@pytest.mark.parametrize('typ, data', [
    (DINT, b'\x01\x02'),
    (INT, b'\x01'),
    (REAL, b''),
    (STRING, b'\x05abc'),
])
def test_truncated(typ, data):
    with pytest.raises(TruncatedBufferError):
        typ.decode(data)


@pytest.mark.parametrize('arg, expected', [
    (0xC4, DINT),
    ('DINT', DINT),
    ('dint', DINT),
    (DINT, DINT),
    (0xC1, BOOL),
    (0xCA, REAL),
    (0xDA, STRING),
])
def test_get_data_type(arg, expected):
    assert get_data_type(arg) is expected


@pytest.mark.parametrize('arg', (0xA0, 'UDT', 'LINT', None))
def test_get_data_type_unsupported(arg):
    with pytest.raises(UnsupportedTypeError):
        get_data_type(arg)


def test_data_types_map():
    assert DataTypes.dint is DINT
    assert DataTypes['REAL'] is REAL
    assert data_type_size('DINT') == 4
    assert data_type_size(STRING) is None


def test_encode_decode_value_helpers():
    assert encode_value('INT', 12345) == b'\x39\x30'
    assert decode_value(0xC3, b'\x00\x00\x39\x30', offset=2) == 12345
    with pytest.raises(TruncatedBufferError):
        decode_value(DINT, b'\x00', offset=4)


def test_decode_values_fixed_width():
    data = b''.join(DINT.encode(x) for x in (1, 2, 3, 4, 5))
    assert decode_values(DINT, data, 5) == [1, 2, 3, 4, 5]
    assert decode_values(DINT, data, 0) == []


def test_decode_values_uses_stride():
    # elements padded to 4 bytes each
    data = b'\x01\x00\x00\x00\x02\x00\x00\x00'
    assert decode_values(INT, data, 2) == [1, 2]


def test_decode_values_short():
    with pytest.raises(TruncatedBufferError):
        decode_values(DINT, b'\x00' * 7, 2)


def test_decode_values_strings():
    data = STRING.encode('ab') + STRING.encode('') + STRING.encode('cde')
    assert decode_values(STRING, data, 3) == ['ab', '', 'cde']


@pytest.mark.parametrize('value, expected', [
    (True, BOOL),
    (False, BOOL),
    (42, SINT),
    (-128, SINT),
    (200, USINT),
    (-200, INT),
    (40_000, UINT),
    (-40_000, DINT),
    (3_000_000_000, UDINT),
    (1.5, REAL),
    (42.0, REAL),
    (-1.0, REAL),
    ('text', STRING),
    ([1, 2, 3], SINT),
    ([1, 200], USINT),
    ([-1, 200], INT),
    ([1, 2.5], REAL),
    ([1, 2.0], REAL),
    ([True, False], BOOL),
    (['a', 'b'], STRING),
])
def test_infer_data_type(value, expected):
    assert infer_data_type(value) is expected


def test_whole_float_needs_int_for_integer_types():
    with pytest.raises(DataError):
        DINT.encode(42.0)
    assert DINT.encode(int(42.0)) == b'\x2a\x00\x00\x00'


def test_infer_data_type_errors():
    with pytest.raises(DataError):
        infer_data_type([])
    with pytest.raises(OutOfRangeError):
        infer_data_type(2**40)
    with pytest.raises(DataError):
        infer_data_type(['a', 1])
    with pytest.raises(DataError):
        infer_data_type(object())
