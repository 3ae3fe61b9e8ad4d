"""
Body encoder and decoder for the Nanonis binary protocol.

A request or response body is the concatenation of its fields, each laid
out according to its TypeCode (see type_codes.py). Nothing in the body is
self-describing, so decoding always needs the expected list of codes.

Usage Example:
    >>> body = encode_body(
    ...     [NanonisValue.u16(1), NanonisValue.string("abc")],
    ...     [TypeCode.U16, TypeCode.STRING]
    ... )
    >>> body.hex()
    '000100000003616263'
    >>> decode_body(body, ["H", "+*c"])
    [NanonisValue.u16(1), NanonisValue.string('abc')]
"""

import struct
from typing import Any, List, Sequence, Tuple, Union

import numpy as np

from .errors import InvalidArgumentError, ProtocolError, ErrorCodes
from .type_codes import TypeCode, WireShape, SizeSource, resolve_codes
from .values import NanonisValue, ValueTag

CodeLike = Union[TypeCode, str]

COUNT_STRUCT = struct.Struct(">i")


class BodyReader:
    """
    Cursor over a big-endian byte body.

    Every read checks the remaining length first and raises ProtocolError
    instead of returning short data.
    """

    def __init__(self, data: bytes):
        self._data = bytes(data)
        self._offset = 0

    def offset(self) -> int:
        """Return the current read offset."""
        return self._offset

    def remaining(self) -> int:
        """Return the number of bytes remaining."""
        return len(self._data) - self._offset

    def raw_bytes(self, length: int) -> bytes:
        """Read raw bytes and advance the offset."""
        if length < 0:
            raise ProtocolError(
                f"Negative read length {length} at offset {self._offset}",
                error_code=ErrorCodes.INVALID_SIZE
            )
        if self._offset + length > len(self._data):
            raise ProtocolError(
                f"Truncated response: need {length} bytes at offset {self._offset}, "
                f"got {len(self._data) - self._offset}",
                error_code=ErrorCodes.TRUNCATED_RESPONSE
            )
        result = self._data[self._offset:self._offset + length]
        self._offset += length
        return result

    def scalar(self, fmt: str) -> Any:
        """Read one value of a big-endian struct format."""
        data = self.raw_bytes(struct.calcsize(fmt))
        return struct.unpack(fmt, data)[0]

    def u16(self) -> int:
        return self.scalar(">H")

    def i16(self) -> int:
        return self.scalar(">h")

    def u32(self) -> int:
        return self.scalar(">I")

    def i32(self) -> int:
        return self.scalar(">i")

    def f32(self) -> float:
        return self.scalar(">f")

    def f64(self) -> float:
        return self.scalar(">d")

    def count(self, what: str = "size prefix") -> int:
        """Read a 4-byte size prefix, which must not be negative."""
        value = self.i32()
        if value < 0:
            raise ProtocolError(
                f"Negative {what} ({value}) at offset {self._offset - 4}",
                error_code=ErrorCodes.INVALID_SIZE
            )
        return value

    def utf8(self, length: int) -> str:
        """Read length bytes and decode them strictly as UTF-8."""
        raw = self.raw_bytes(length)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolError(
                f"Invalid UTF-8 in string at offset {self._offset - length}: {e}",
                error_code=ErrorCodes.INVALID_UTF8
            ) from None

    def elements(self, fmt: str, count: int) -> List[Any]:
        """Read count numeric elements of the given big-endian format."""
        size = struct.calcsize(fmt)
        raw = self.raw_bytes(size * count)
        if count == 0:
            return []
        return np.frombuffer(raw, dtype=np.dtype(fmt), count=count).tolist()

    def expect_end(self) -> None:
        """Fail if any bytes are left unread."""
        if self.remaining():
            raise ProtocolError(
                f"Trailing bytes: {self.remaining()} bytes left after the last field "
                f"(offset {self._offset} of {len(self._data)})",
                error_code=ErrorCodes.TRAILING_BYTES
            )


# ========== Native coercion ==========

def coerce_value(native: Any, code: CodeLike) -> NanonisValue:
    """
    Wrap a native Python object in the NanonisValue a type code expects.

    NanonisValue instances are returned unchanged (their tag is checked at
    encode time).

    Raises:
        InvalidArgumentError: If native cannot be represented by the code
    """
    if isinstance(native, NanonisValue):
        return native
    code = TypeCode.resolve(code)
    tag = code.value_tag
    if tag is ValueTag.ARRAY_2D_F32:
        return NanonisValue.array_2d_f32(native)
    if code.shape in (WireShape.ARRAY, WireShape.STRING_ARRAY):
        return NanonisValue.array(tag, native)
    constructor = getattr(NanonisValue, tag.value)
    return constructor(native)


# ========== Encoding ==========

def _encode_string(out: bytearray, text: str) -> None:
    raw = text.encode("utf-8")
    out += COUNT_STRUCT.pack(len(raw))
    out += raw


def _encode_field(out: bytearray, value: NanonisValue, code: TypeCode) -> None:
    shape = code.shape
    prefixed = code.size_source is SizeSource.PREFIX

    if shape is WireShape.SCALAR:
        out += struct.pack(code.element_format, value.data)

    elif shape is WireShape.STRING:
        if prefixed:
            _encode_string(out, value.data)
        else:
            out += value.data.encode("utf-8")

    elif shape is WireShape.ARRAY:
        if prefixed:
            out += COUNT_STRUCT.pack(len(value.data))
        out += np.asarray(value.data, dtype=np.dtype(code.element_format)).tobytes()

    elif shape is WireShape.STRING_ARRAY:
        elements = bytearray()
        for text in value.data:
            _encode_string(elements, text)
        if prefixed:
            out += COUNT_STRUCT.pack(len(elements))
            out += COUNT_STRUCT.pack(len(value.data))
        out += elements

    elif shape is WireShape.ARRAY_2D:
        rows, cols = value.data.shape
        if prefixed:
            out += COUNT_STRUCT.pack(rows)
            out += COUNT_STRUCT.pack(cols)
        out += np.ascontiguousarray(value.data, dtype=np.dtype(code.element_format)).tobytes()


def _actual_sizes(value: NanonisValue, code: TypeCode) -> Tuple[int, ...]:
    """Sizes the preceding integer argument(s) must announce for value."""
    if code.shape is WireShape.STRING:
        return (len(value.data.encode("utf-8")),)
    if code.shape is WireShape.ARRAY_2D:
        return tuple(value.data.shape)
    return (len(value.data),)


def _check_context_size(index: int, value: NanonisValue, code: TypeCode, sent: List[int]) -> None:
    actual = _actual_sizes(value, code)
    if len(sent) < len(actual):
        raise InvalidArgumentError(
            f"Argument {index}: type code {code} takes its size from a preceding "
            f"integer argument, but none precedes it",
            error_code=ErrorCodes.INVALID_PARAMETER,
            field_name=f"args[{index}]"
        )
    declared = tuple(sent[-len(actual):])
    if declared != actual:
        raise InvalidArgumentError(
            f"Argument {index}: preceding size argument(s) {list(declared)} do not "
            f"match the actual size {list(actual)} for type code {code}",
            error_code=ErrorCodes.LENGTH_MISMATCH,
            field_name=f"args[{index}]"
        )


def encode_body(values: Sequence[Any], codes: Sequence[CodeLike]) -> bytes:
    """
    Encode an ordered argument list into a request body.

    Args:
        values: NanonisValue instances, or native objects coerced by code
        codes: One TypeCode (or vendor code string) per value

    Returns:
        The encoded body (possibly empty)

    Raises:
        InvalidArgumentError: On a length mismatch, an unknown code, a
            value whose tag does not match its code, or a context-sized
            value whose preceding integer argument(s) disagree with its
            actual size. Nothing is encoded when any pair is invalid.
    """
    codes = resolve_codes(codes)
    if len(values) != len(codes):
        raise InvalidArgumentError(
            f"Got {len(values)} arguments but {len(codes)} type codes",
            error_code=ErrorCodes.LENGTH_MISMATCH
        )

    checked = []
    sent_integers: List[int] = []
    for index, (value, code) in enumerate(zip(values, codes)):
        value = coerce_value(value, code)
        if value.tag is not code.value_tag:
            raise InvalidArgumentError(
                f"Argument {index}: type code {code} expects {code.value_tag.name}, "
                f"got {value.tag.name}",
                error_code=ErrorCodes.TYPE_ERROR,
                field_name=f"args[{index}]"
            )
        if code.size_source is SizeSource.CONTEXT:
            _check_context_size(index, value, code, sent_integers)
        if value.is_integer:
            sent_integers.append(value.data)
        checked.append((value, code))

    out = bytearray()
    for value, code in checked:
        _encode_field(out, value, code)
    return bytes(out)


# ========== Decoding ==========

class _ContextSizes:
    """Integer fields decoded so far, for context-sized codes."""

    def __init__(self):
        self._history: List[int] = []

    def push(self, value: NanonisValue) -> None:
        if value.is_integer:
            self._history.append(value.data)

    def take(self, n: int, code: TypeCode) -> List[int]:
        if len(self._history) < n:
            raise ProtocolError(
                f"Type code {code} takes its size from a preceding integer field, "
                f"but none precedes it",
                error_code=ErrorCodes.INVALID_SIZE
            )
        sizes = self._history[-n:]
        for size in sizes:
            if size < 0:
                raise ProtocolError(
                    f"Negative size {size} declared for {code}",
                    error_code=ErrorCodes.INVALID_SIZE
                )
        return sizes


def _decode_string_array(reader: BodyReader, count: int) -> NanonisValue:
    items = []
    for _ in range(count):
        items.append(reader.utf8(reader.count("string length")))
    return NanonisValue(ValueTag.ARRAY_STRING, tuple(items))


def _decode_field(reader: BodyReader, code: TypeCode, sizes: _ContextSizes) -> NanonisValue:
    shape = code.shape
    prefixed = code.size_source is SizeSource.PREFIX
    tag = code.value_tag

    if shape is WireShape.SCALAR:
        return NanonisValue(tag, reader.scalar(code.element_format))

    if shape is WireShape.STRING:
        length = reader.count("string length") if prefixed else sizes.take(1, code)[0]
        return NanonisValue(tag, reader.utf8(length))

    if shape is WireShape.ARRAY:
        count = reader.count("element count") if prefixed else sizes.take(1, code)[0]
        return NanonisValue(tag, tuple(reader.elements(code.element_format, count)))

    if shape is WireShape.STRING_ARRAY:
        if not prefixed:
            return _decode_string_array(reader, sizes.take(1, code)[0])
        byte_size = reader.count("string array size")
        count = reader.count("string count")
        start = reader.offset()
        value = _decode_string_array(reader, count)
        if reader.offset() - start != byte_size:
            raise ProtocolError(
                f"String array declared {byte_size} bytes but its elements "
                f"occupy {reader.offset() - start}",
                error_code=ErrorCodes.INVALID_SIZE
            )
        return value

    # WireShape.ARRAY_2D
    if prefixed:
        rows = reader.count("row count")
        cols = reader.count("column count")
    else:
        rows, cols = sizes.take(2, code)
    flat = reader.elements(code.element_format, rows * cols)
    matrix = np.array(flat, dtype=np.float32).reshape(rows, cols)
    matrix.setflags(write=False)
    return NanonisValue(tag, matrix)


def decode_fields(reader: BodyReader, codes: Sequence[CodeLike]) -> List[NanonisValue]:
    """
    Decode one value per code from the reader's current position.

    Does not check for leftover bytes; see decode_body.
    """
    sizes = _ContextSizes()
    values = []
    for code in resolve_codes(codes):
        value = _decode_field(reader, code, sizes)
        sizes.push(value)
        values.append(value)
    return values


def decode_body(body: bytes, codes: Sequence[CodeLike]) -> List[NanonisValue]:
    """
    Decode a complete response body.

    Args:
        body: Raw body bytes (without header or error block)
        codes: Expected result codes, in order

    Returns:
        Exactly len(codes) values

    Raises:
        ProtocolError: If the body is too short ("truncated response"),
            too long ("trailing bytes"), declares a negative size or holds
            invalid UTF-8
        InvalidArgumentError: On an unknown code string
    """
    reader = BodyReader(body)
    values = decode_fields(reader, codes)
    reader.expect_end()
    return values
