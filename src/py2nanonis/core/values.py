"""
Tagged values exchanged with the Nanonis software.

Every argument sent to, and every result received from, the Nanonis TCP
interface is held as a NanonisValue: a tag naming the wire representation
plus the Python payload. The tag never changes after construction.

Payload types by tag:
    U16, I16, U32, I32          int (range-checked for the width)
    F32, F64                    float (F32 rounded to single precision)
    STRING                      str
    ARRAY_*                     tuple of int / float / str
    ARRAY_2D_F32                read-only numpy.ndarray, dtype float32, 2 dims

Example:
    >>> value = NanonisValue.f32(0.5)
    >>> value.as_f32()
    0.5
    >>> value.as_string()
    Traceback (most recent call last):
    ...
    py2nanonis.core.errors.TypeMismatchError: Expected STRING, got F32
"""

import math
import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, List, Sequence

import numpy as np

from .errors import InvalidArgumentError, TypeMismatchError, ErrorCodes


class ValueTag(Enum):
    """Wire representation held by a NanonisValue."""

    U16 = "u16"
    I16 = "i16"
    U32 = "u32"
    I32 = "i32"
    F32 = "f32"
    F64 = "f64"
    STRING = "string"
    ARRAY_U16 = "array_u16"
    ARRAY_I16 = "array_i16"
    ARRAY_U32 = "array_u32"
    ARRAY_I32 = "array_i32"
    ARRAY_F32 = "array_f32"
    ARRAY_F64 = "array_f64"
    ARRAY_STRING = "array_string"
    ARRAY_2D_F32 = "array_2d_f32"


# (min, max) for each fixed-width integer tag
INTEGER_RANGES = {
    ValueTag.U16: (0, 0xFFFF),
    ValueTag.I16: (-0x8000, 0x7FFF),
    ValueTag.U32: (0, 0xFFFFFFFF),
    ValueTag.I32: (-0x80000000, 0x7FFFFFFF),
}

# Element tag of each 1D array tag
ARRAY_ELEMENT_TAGS = {
    ValueTag.ARRAY_U16: ValueTag.U16,
    ValueTag.ARRAY_I16: ValueTag.I16,
    ValueTag.ARRAY_U32: ValueTag.U32,
    ValueTag.ARRAY_I32: ValueTag.I32,
    ValueTag.ARRAY_F32: ValueTag.F32,
    ValueTag.ARRAY_F64: ValueTag.F64,
    ValueTag.ARRAY_STRING: ValueTag.STRING,
}


def _check_integer(tag: ValueTag, value: Any) -> int:
    if isinstance(value, bool):
        value = int(value)
    if not isinstance(value, numbers.Integral):
        raise InvalidArgumentError(
            f"{tag.name} requires an integer, got {type(value).__name__}",
            error_code=ErrorCodes.TYPE_ERROR
        )
    value = int(value)
    low, high = INTEGER_RANGES[tag]
    if not low <= value <= high:
        raise InvalidArgumentError(
            f"{value} out of range for {tag.name} ({low}..{high})",
            error_code=ErrorCodes.OUT_OF_RANGE
        )
    return value


def _check_float(tag: ValueTag, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidArgumentError(
            f"{tag.name} requires a real number, got {type(value).__name__}",
            error_code=ErrorCodes.TYPE_ERROR
        )
    value = float(value)
    if tag is ValueTag.F32:
        if np.isfinite(value) and abs(value) > float(np.finfo(np.float32).max):
            raise InvalidArgumentError(
                f"{value} out of range for F32",
                error_code=ErrorCodes.OUT_OF_RANGE
            )
        # Store exactly what the wire can carry
        return float(np.float32(value))
    return value


def _check_string(value: Any) -> str:
    if not isinstance(value, str):
        raise InvalidArgumentError(
            f"STRING requires str, got {type(value).__name__}",
            error_code=ErrorCodes.TYPE_ERROR
        )
    return value


def _check_element(tag: ValueTag, value: Any):
    if tag in INTEGER_RANGES:
        return _check_integer(tag, value)
    if tag in (ValueTag.F32, ValueTag.F64):
        return _check_float(tag, value)
    return _check_string(value)


def _same(a: Any, b: Any) -> bool:
    """Payload equality in which NaN equals NaN."""
    if isinstance(a, float) and isinstance(b, float) and math.isnan(a) and math.isnan(b):
        return True
    return a == b


def _hash_key(item: Any) -> Any:
    if isinstance(item, float) and math.isnan(item):
        return "nan"
    return item


@dataclass(frozen=True, eq=False)
class NanonisValue:
    """
    A single typed argument or result.

    Build values with the classmethod constructors (u16, f32, string,
    array_f32, array_2d_f32, ...) and read them back with the matching
    accessor (as_u16, as_f32, ...). Accessing a different tag raises
    TypeMismatchError.
    """

    tag: ValueTag
    data: Any

    # ========== Scalar constructors ==========

    @classmethod
    def u16(cls, value: int) -> "NanonisValue":
        return cls(ValueTag.U16, _check_integer(ValueTag.U16, value))

    @classmethod
    def i16(cls, value: int) -> "NanonisValue":
        return cls(ValueTag.I16, _check_integer(ValueTag.I16, value))

    @classmethod
    def u32(cls, value: int) -> "NanonisValue":
        return cls(ValueTag.U32, _check_integer(ValueTag.U32, value))

    @classmethod
    def i32(cls, value: int) -> "NanonisValue":
        return cls(ValueTag.I32, _check_integer(ValueTag.I32, value))

    @classmethod
    def f32(cls, value: float) -> "NanonisValue":
        return cls(ValueTag.F32, _check_float(ValueTag.F32, value))

    @classmethod
    def f64(cls, value: float) -> "NanonisValue":
        return cls(ValueTag.F64, _check_float(ValueTag.F64, value))

    @classmethod
    def string(cls, value: str) -> "NanonisValue":
        return cls(ValueTag.STRING, _check_string(value))

    # ========== Array constructors ==========

    @classmethod
    def array(cls, tag: ValueTag, values: Iterable) -> "NanonisValue":
        """
        Build a 1D array value of the given array tag.

        Args:
            tag: One of the ARRAY_* tags except ARRAY_2D_F32
            values: Any iterable of elements (list, tuple, numpy array)

        Raises:
            InvalidArgumentError: If tag is not a 1D array tag or an
                element does not fit the element type
        """
        if tag not in ARRAY_ELEMENT_TAGS:
            raise InvalidArgumentError(f"{tag.name} is not a 1D array tag")
        if isinstance(values, (str, bytes)):
            raise InvalidArgumentError(
                f"{tag.name} requires a sequence of elements, got {type(values).__name__}",
                error_code=ErrorCodes.TYPE_ERROR
            )
        if isinstance(values, np.ndarray):
            values = values.tolist()
        try:
            items = list(values)
        except TypeError:
            raise InvalidArgumentError(
                f"{tag.name} requires a sequence, got {type(values).__name__}",
                error_code=ErrorCodes.TYPE_ERROR
            ) from None
        element_tag = ARRAY_ELEMENT_TAGS[tag]
        return cls(tag, tuple(_check_element(element_tag, item) for item in items))

    @classmethod
    def array_u16(cls, values: Iterable[int]) -> "NanonisValue":
        return cls.array(ValueTag.ARRAY_U16, values)

    @classmethod
    def array_i16(cls, values: Iterable[int]) -> "NanonisValue":
        return cls.array(ValueTag.ARRAY_I16, values)

    @classmethod
    def array_u32(cls, values: Iterable[int]) -> "NanonisValue":
        return cls.array(ValueTag.ARRAY_U32, values)

    @classmethod
    def array_i32(cls, values: Iterable[int]) -> "NanonisValue":
        return cls.array(ValueTag.ARRAY_I32, values)

    @classmethod
    def array_f32(cls, values: Iterable[float]) -> "NanonisValue":
        return cls.array(ValueTag.ARRAY_F32, values)

    @classmethod
    def array_f64(cls, values: Iterable[float]) -> "NanonisValue":
        return cls.array(ValueTag.ARRAY_F64, values)

    @classmethod
    def array_string(cls, values: Iterable[str]) -> "NanonisValue":
        return cls.array(ValueTag.ARRAY_STRING, values)

    @classmethod
    def array_2d_f32(cls, rows: Any) -> "NanonisValue":
        """
        Build a 2D float32 matrix value.

        Args:
            rows: Nested sequence (rows of columns) or a 2D numpy array.
                An empty sequence gives a 0x0 matrix.

        Raises:
            InvalidArgumentError: If rows is ragged, not 2D or not numeric
        """
        if isinstance(rows, (list, tuple)) and len(rows) == 0:
            matrix = np.zeros((0, 0), dtype=np.float32)
        else:
            try:
                matrix = np.array(rows, dtype=np.float32)
            except (TypeError, ValueError) as e:
                raise InvalidArgumentError(
                    f"ARRAY_2D_F32 requires a rectangular numeric matrix: {e}",
                    error_code=ErrorCodes.TYPE_ERROR
                ) from None
        if matrix.ndim != 2:
            raise InvalidArgumentError(
                f"ARRAY_2D_F32 requires 2 dimensions, got {matrix.ndim}",
                error_code=ErrorCodes.TYPE_ERROR
            )
        matrix.setflags(write=False)
        return cls(ValueTag.ARRAY_2D_F32, matrix)

    # ========== Accessors ==========

    def _expect(self, tag: ValueTag) -> Any:
        if self.tag is not tag:
            raise TypeMismatchError(tag.name, self.tag.name)
        return self.data

    def as_u16(self) -> int:
        return self._expect(ValueTag.U16)

    def as_i16(self) -> int:
        return self._expect(ValueTag.I16)

    def as_u32(self) -> int:
        return self._expect(ValueTag.U32)

    def as_i32(self) -> int:
        return self._expect(ValueTag.I32)

    def as_f32(self) -> float:
        return self._expect(ValueTag.F32)

    def as_f64(self) -> float:
        return self._expect(ValueTag.F64)

    def as_string(self) -> str:
        return self._expect(ValueTag.STRING)

    def as_u16_array(self) -> List[int]:
        return list(self._expect(ValueTag.ARRAY_U16))

    def as_i16_array(self) -> List[int]:
        return list(self._expect(ValueTag.ARRAY_I16))

    def as_u32_array(self) -> List[int]:
        return list(self._expect(ValueTag.ARRAY_U32))

    def as_i32_array(self) -> List[int]:
        return list(self._expect(ValueTag.ARRAY_I32))

    def as_f32_array(self) -> List[float]:
        return list(self._expect(ValueTag.ARRAY_F32))

    def as_f64_array(self) -> List[float]:
        return list(self._expect(ValueTag.ARRAY_F64))

    def as_string_array(self) -> List[str]:
        return list(self._expect(ValueTag.ARRAY_STRING))

    def as_f32_2d_array(self) -> np.ndarray:
        """Return the matrix (read-only, shape rows x cols)."""
        return self._expect(ValueTag.ARRAY_2D_F32)

    def as_int(self) -> int:
        """Return the payload of any integer scalar tag."""
        if self.tag not in INTEGER_RANGES:
            raise TypeMismatchError("integer scalar", self.tag.name)
        return self.data

    @property
    def is_integer(self) -> bool:
        return self.tag in INTEGER_RANGES

    def __len__(self) -> int:
        if self.tag is ValueTag.ARRAY_2D_F32:
            return int(self.data.shape[0])
        if self.tag in ARRAY_ELEMENT_TAGS or self.tag is ValueTag.STRING:
            return len(self.data)
        raise TypeError(f"{self.tag.name} value has no length")

    def __eq__(self, other):
        if not isinstance(other, NanonisValue):
            return NotImplemented
        if self.tag is not other.tag:
            return False
        if self.tag is ValueTag.ARRAY_2D_F32:
            return (self.data.shape == other.data.shape
                    and np.array_equal(self.data, other.data, equal_nan=True))
        if isinstance(self.data, tuple):
            return (len(self.data) == len(other.data)
                    and all(_same(a, b) for a, b in zip(self.data, other.data)))
        return _same(self.data, other.data)

    def __hash__(self):
        if self.tag is ValueTag.ARRAY_2D_F32:
            flat = self.data.ravel().tolist()
            return hash((self.tag, self.data.shape, tuple(_hash_key(item) for item in flat)))
        if isinstance(self.data, tuple):
            return hash((self.tag, tuple(_hash_key(item) for item in self.data)))
        return hash((self.tag, _hash_key(self.data)))

    def __repr__(self):
        if self.tag is ValueTag.ARRAY_2D_F32:
            return f"NanonisValue.array_2d_f32({self.data.tolist()!r})"
        if self.tag in ARRAY_ELEMENT_TAGS:
            return f"NanonisValue.{self.tag.value}({list(self.data)!r})"
        return f"NanonisValue.{self.tag.value}({self.data!r})"


def values_to_python(values: Sequence[NanonisValue]) -> List[Any]:
    """Strip tags from a result list (arrays become lists)."""
    result = []
    for value in values:
        if isinstance(value.data, tuple):
            result.append(list(value.data))
        else:
            result.append(value.data)
    return result
