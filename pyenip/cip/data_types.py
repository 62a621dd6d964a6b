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

from io import BytesIO
from struct import pack, unpack, error as StructError
from typing import Any, List, Optional, Type, Union

from ..exceptions import DataError, TruncatedBufferError, UnsupportedTypeError, OutOfRangeError
from ..map import EnumMap

_BufferType = Union[BytesIO, bytes]


__all__ = [
    "DataType",
    "ElementaryDataType",
    "BOOL",
    "SINT",
    "INT",
    "DINT",
    "USINT",
    "UINT",
    "UDINT",
    "REAL",
    "LREAL",
    "STRING",
    "SHORT_STRING",
    "DataTypes",
    "get_data_type",
    "data_type_size",
    "encode_value",
    "decode_value",
    "decode_values",
    "infer_data_type",
]


def _repr(buffer: _BufferType) -> str:
    if isinstance(buffer, BytesIO):
        return repr(buffer.getvalue())
    else:
        return repr(buffer)


def _as_stream(buffer: _BufferType):
    if isinstance(buffer, (bytes, bytearray, memoryview)):
        return BytesIO(buffer)
    return buffer


class _DataTypeMeta(type):
    def __repr__(cls):
        return cls.__name__


class DataType(metaclass=_DataTypeMeta):
    """
    Base class to represent a CIP data type.

    Each type class provides ``encode`` / ``decode`` class methods.
    Subclasses normally only override the private ``_encode``/``_decode``
    methods, the public ones turn any unhandled exception into a ``DataError``.
    ``TruncatedBufferError`` and ``OutOfRangeError`` are re-raised unchanged so
    callers can tell a short buffer or an out of range value from other failures.
    For ``_decode`` use ``_stream_read`` instead of ``stream.read`` so that
    short reads raise ``TruncatedBufferError``.
    """

    code: int = 0x00  #: CIP data type identifier
    size: Optional[int] = 0  #: size of type in bytes, ``None`` if variable

    @classmethod
    def encode(cls, value: Any) -> bytes:
        """
        Serializes a Python object ``value`` to ``bytes``.
        """
        try:
            return cls._encode(value)
        except DataError:
            raise
        except Exception as err:
            raise DataError(f"Error packing {value!r} as {cls.__name__}") from err

    @classmethod
    def _encode(cls, value: Any) -> bytes:
        ...

    @classmethod
    def decode(cls, buffer: _BufferType) -> Any:
        """
        Deserializes a Python object from the ``buffer`` of ``bytes``
        """
        try:
            stream = _as_stream(buffer)
            return cls._decode(stream)
        except DataError:
            raise
        except Exception as err:
            raise DataError(f"Error unpacking {_repr(buffer)} as {cls.__name__}") from err

    @classmethod
    def _decode(cls, stream: BytesIO) -> Any:
        ...

    @classmethod
    def _stream_read(cls, stream: BytesIO, size: int) -> bytes:
        """
        Reads `size` bytes from `stream`.
        Raises `TruncatedBufferError` if fewer bytes are available.
        """
        data = stream.read(size)
        if len(data) < size:
            raise TruncatedBufferError(
                f"{cls.__name__} needs {size} bytes, only {len(data)} available"
            )
        return data


class ElementaryDataType(DataType):
    """
    Type that represents a single primitive value in CIP.
    """

    _format: str = ""

    @classmethod
    def _encode(cls, value: Any) -> bytes:
        return pack(cls._format, value)

    @classmethod
    def _decode(cls, stream: BytesIO) -> Any:
        data = cls._stream_read(stream, cls.size)
        return unpack(cls._format, data)[0]


class _IntegerDataType(ElementaryDataType):
    min_value: int = 0
    max_value: int = 0

    @classmethod
    def in_range(cls, value: int) -> bool:
        return cls.min_value <= value <= cls.max_value

    @classmethod
    def _encode(cls, value: Any) -> bytes:
        if not isinstance(value, int):
            raise DataError(f"{cls.__name__} requires an int, got {type(value).__name__}")
        if not cls.in_range(value):
            raise OutOfRangeError(
                f"{value} outside {cls.__name__} range [{cls.min_value}, {cls.max_value}]"
            )
        return pack(cls._format, value)


class BOOL(ElementaryDataType):
    """
    A boolean value, decodes ``0x00`` as ``False`` and ``True`` otherwise.
    ``True`` encoded as ``0xFF`` and ``False`` as ``0x00``
    """

    code = 0xC1  #: 0xC1
    size = 1

    @classmethod
    def _encode(cls, value: Any) -> bytes:
        return b"\xFF" if value else b"\x00"

    @classmethod
    def _decode(cls, stream: BytesIO) -> bool:
        data = cls._stream_read(stream, cls.size)
        return data != b"\x00"


class SINT(_IntegerDataType):
    """
    Signed 8-bit integer
    """

    code = 0xC2  #: 0xC2
    size = 1
    _format = "<b"
    min_value, max_value = -128, 127


class INT(_IntegerDataType):
    """
    Signed 16-bit integer
    """

    code = 0xC3  #: 0xC3
    size = 2
    _format = "<h"
    min_value, max_value = -32_768, 32_767


class DINT(_IntegerDataType):
    """
    Signed 32-bit integer
    """

    code = 0xC4  #: 0xC4
    size = 4
    _format = "<i"
    min_value, max_value = -2_147_483_648, 2_147_483_647


class USINT(_IntegerDataType):
    """
    Unsigned 8-bit integer
    """

    code = 0xC6  #: 0xC6
    size = 1
    _format = "<B"
    min_value, max_value = 0, 255


class UINT(_IntegerDataType):
    """
    Unsigned 16-bit integer
    """

    code = 0xC7  #: 0xC7
    size = 2
    _format = "<H"
    min_value, max_value = 0, 65_535


class UDINT(_IntegerDataType):
    """
    Unsigned 32-bit integer
    """

    code = 0xC8  #: 0xC8
    size = 4
    _format = "<I"
    min_value, max_value = 0, 4_294_967_295


class _FloatDataType(ElementaryDataType):
    @classmethod
    def _encode(cls, value: Any) -> bytes:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise DataError(f"{cls.__name__} requires a number, got {type(value).__name__}")
        try:
            return pack(cls._format, value)
        except (OverflowError, StructError) as err:
            raise OutOfRangeError(f"{value} outside {cls.__name__} range") from err


class REAL(_FloatDataType):
    """
    32-bit floating point
    """

    code = 0xCA  #: 0xCA
    size = 4
    _format = "<f"


class LREAL(_FloatDataType):
    """
    64-bit floating point
    """

    code = 0xCB  #: 0xCB
    size = 8
    _format = "<d"


class StringDataType(ElementaryDataType):
    """
    Base class for strings with a 1-byte length prefix
    """

    size = None
    max_length = 255
    encoding = "ascii"  #: encoding of string data

    @classmethod
    def _encode(cls, value: str) -> bytes:
        if not isinstance(value, str):
            raise DataError(f"{cls.__name__} requires a str, got {type(value).__name__}")
        data = value.encode(cls.encoding)
        if len(data) > cls.max_length:
            raise OutOfRangeError(
                f"{cls.__name__} is limited to {cls.max_length} characters, got {len(data)}"
            )
        return USINT.encode(len(data)) + data

    @classmethod
    def _decode(cls, stream: BytesIO) -> str:
        str_len = USINT.decode(stream)
        if str_len == 0:
            return ""
        str_data = cls._stream_read(stream, str_len)

        return str_data.decode(cls.encoding)


class STRING(StringDataType):
    """
    Character string, 1-byte per character, 1-byte length
    """

    code = 0xDA  #: 0xDA


class SHORT_STRING(StringDataType):
    """
    Character string with a 1-byte length, used in identity replies
    """

    code = 0xDA
    encoding = "iso-8859-1"


class DataTypes(EnumMap):
    """
    Lookup table/map of the supported elementary data types.
    """

    bool = BOOL
    sint = SINT
    int = INT
    dint = DINT

    usint = USINT
    uint = UINT
    udint = UDINT

    real = REAL
    lreal = LREAL

    string = STRING


_BY_CODE = {typ.code: typ for _, typ in DataTypes}

#: order used when picking a type for a Python int
INTEGER_INFERENCE_ORDER = (SINT, USINT, INT, UINT, DINT, UDINT)

_DataTypeArg = Union[int, str, Type[DataType]]


def get_data_type(data_type: _DataTypeArg) -> Type[ElementaryDataType]:
    """
    Returns the type class for a type code (``0xC4``), name (``'DINT'``) or class (``DINT``)
    """
    if isinstance(data_type, type) and issubclass(data_type, DataType):
        if data_type not in _BY_CODE.values():
            raise UnsupportedTypeError(f"Unsupported data type: {data_type!r}")
        return data_type
    if isinstance(data_type, str):
        if data_type in DataTypes:
            return DataTypes[data_type]
        raise UnsupportedTypeError(f"Unsupported data type: {data_type!r}")
    try:
        return _BY_CODE[data_type]
    except (KeyError, TypeError):
        code = f"0x{data_type:02X}" if isinstance(data_type, int) else repr(data_type)
        raise UnsupportedTypeError(f"Unsupported data type: {code}") from None


def data_type_size(data_type: _DataTypeArg) -> Optional[int]:
    """
    Fixed width in bytes of ``data_type``, ``None`` for STRING
    """
    return get_data_type(data_type).size


def encode_value(data_type: _DataTypeArg, value: Any) -> bytes:
    return get_data_type(data_type).encode(value)


def decode_value(data_type: _DataTypeArg, buffer: bytes, offset: int = 0) -> Any:
    typ = get_data_type(data_type)
    if offset > len(buffer):
        raise TruncatedBufferError(f"offset {offset} beyond buffer of {len(buffer)} bytes")
    return typ.decode(buffer[offset:])


def decode_values(data_type: _DataTypeArg, buffer: bytes, count: int, offset: int = 0) -> List[Any]:
    """
    Decodes ``count`` consecutive elements from ``buffer``.

    Fixed width elements each occupy ``len(buffer) / count`` bytes, STRING
    elements are read one after another since each carries its own length.
    """
    typ = get_data_type(data_type)
    data = buffer[offset:]
    if count <= 0:
        return []

    if typ.size is None:
        stream = BytesIO(data)
        return [typ.decode(stream) for _ in range(count)]

    stride = len(data) // count
    if stride < typ.size:
        raise TruncatedBufferError(
            f"{count} {typ.__name__} elements need {count * typ.size} bytes, only {len(data)} available"
        )
    return [typ.decode(data[i * stride : i * stride + typ.size]) for i in range(count)]


def _infer_scalar(value: Any) -> List[Type[ElementaryDataType]]:
    """
    All types able to hold ``value``, in order of preference
    """
    if isinstance(value, bool):
        return [BOOL]
    if isinstance(value, int):
        return [typ for typ in INTEGER_INFERENCE_ORDER if typ.in_range(value)]
    if isinstance(value, float):
        return [REAL]
    if isinstance(value, str):
        return [STRING]
    raise DataError(f"Cannot infer a CIP data type for {type(value).__name__}")


def infer_data_type(value: Any) -> Type[ElementaryDataType]:
    """
    Picks the CIP data type for a native value:

    - ``bool`` -> BOOL
    - ``int`` -> first of SINT, USINT, INT, UINT, DINT, UDINT that holds the value
    - ``float`` -> REAL, whole numbers like ``42.0`` included
    - ``str`` -> STRING
    - a list -> first type (same order) that holds every element, REAL if ints and floats are mixed

    Python keeps ints and floats apart, so only ``int`` values get an integer type.
    Integer types only encode ``int``, convert with ``int(value)`` to write a whole float to one.

    Raises ``OutOfRangeError`` for ints that do not fit any integer type.
    """
    if isinstance(value, (list, tuple)):
        if not value:
            raise DataError("Cannot infer a CIP data type for an empty sequence")
        options = None
        for item in value:
            item_types = _infer_scalar(item)
            options = item_types if options is None else [t for t in options if t in item_types]
            if not options:
                break
        if not options:
            if all(isinstance(item, (int, float)) and not isinstance(item, bool) for item in value):
                if any(isinstance(item, float) for item in value):
                    return REAL
            raise OutOfRangeError(f"No single CIP data type holds every element of {value!r}")
        return options[0]

    options = _infer_scalar(value)
    if not options:
        raise OutOfRangeError(f"{value} does not fit any CIP integer type")
    return options[0]

