"""
Type codes describing the wire shape of each argument and result field.

The Nanonis documentation describes every field with a short code string
("f", "+*c", "*i", "2f", ...). Here each shape is a member of the closed
TypeCode enumeration; the vendor strings are accepted as aliases only.

WIRE SHAPES (all numbers big-endian):
=====================================
    Member               Vendor  Layout
    -------------------  ------  ----------------------------------------
    U16 I16 U32 I32      H h I i fixed-width integer
    F32 F64              f d     IEEE 754 float
    STRING               +*c     i32 byte count, UTF-8 bytes
    STRING_SIZED         *-c     UTF-8 bytes, byte count from context
    ARRAY_<T>            +*<T>   i32 element count, elements
    ARRAY_<T>_SIZED      *<T>    elements, count from context
    STRING_ARRAY         -       i32 total byte size, i32 count, STRINGs
    STRING_ARRAY_SIZED   *+c     STRINGs, count from context
    ARRAY_2D_F32         2f      i32 rows, i32 cols, row-major float32
    ARRAY_2D_F32_SIZED   -       row-major float32, rows/cols from context

"From context" means the size was already sent as a separate integer field
just before: the most recent integer field gives the count, and for 2D
shapes the two most recent integer fields give rows then columns.

Example:
    >>> TypeCode.from_vendor("+*c")
    <TypeCode.STRING: ...>
    >>> TypeCode.resolve("i") is TypeCode.I32
    True
"""

import struct
from enum import Enum
from typing import Iterable, List, Optional, Union

from .errors import InvalidArgumentError, ErrorCodes
from .values import ValueTag


class WireShape(Enum):
    """Structural family of a type code."""

    SCALAR = "scalar"
    STRING = "string"
    ARRAY = "array"
    STRING_ARRAY = "string_array"
    ARRAY_2D = "array_2d"


class SizeSource(Enum):
    """Where the element or byte count of a field is declared."""

    FIXED = "fixed"        # scalar, no count
    PREFIX = "prefix"      # count written in front of the payload
    CONTEXT = "context"    # count sent earlier as its own integer field


class TypeCode(Enum):
    """Closed set of wire shapes understood by the codec."""

    U16 = (WireShape.SCALAR, SizeSource.FIXED, "H", ValueTag.U16)
    I16 = (WireShape.SCALAR, SizeSource.FIXED, "h", ValueTag.I16)
    U32 = (WireShape.SCALAR, SizeSource.FIXED, "I", ValueTag.U32)
    I32 = (WireShape.SCALAR, SizeSource.FIXED, "i", ValueTag.I32)
    F32 = (WireShape.SCALAR, SizeSource.FIXED, "f", ValueTag.F32)
    F64 = (WireShape.SCALAR, SizeSource.FIXED, "d", ValueTag.F64)

    STRING = (WireShape.STRING, SizeSource.PREFIX, "c", ValueTag.STRING)
    STRING_SIZED = (WireShape.STRING, SizeSource.CONTEXT, "c", ValueTag.STRING)

    ARRAY_U16 = (WireShape.ARRAY, SizeSource.PREFIX, "H", ValueTag.ARRAY_U16)
    ARRAY_I16 = (WireShape.ARRAY, SizeSource.PREFIX, "h", ValueTag.ARRAY_I16)
    ARRAY_U32 = (WireShape.ARRAY, SizeSource.PREFIX, "I", ValueTag.ARRAY_U32)
    ARRAY_I32 = (WireShape.ARRAY, SizeSource.PREFIX, "i", ValueTag.ARRAY_I32)
    ARRAY_F32 = (WireShape.ARRAY, SizeSource.PREFIX, "f", ValueTag.ARRAY_F32)
    ARRAY_F64 = (WireShape.ARRAY, SizeSource.PREFIX, "d", ValueTag.ARRAY_F64)

    ARRAY_U16_SIZED = (WireShape.ARRAY, SizeSource.CONTEXT, "H", ValueTag.ARRAY_U16)
    ARRAY_I16_SIZED = (WireShape.ARRAY, SizeSource.CONTEXT, "h", ValueTag.ARRAY_I16)
    ARRAY_U32_SIZED = (WireShape.ARRAY, SizeSource.CONTEXT, "I", ValueTag.ARRAY_U32)
    ARRAY_I32_SIZED = (WireShape.ARRAY, SizeSource.CONTEXT, "i", ValueTag.ARRAY_I32)
    ARRAY_F32_SIZED = (WireShape.ARRAY, SizeSource.CONTEXT, "f", ValueTag.ARRAY_F32)
    ARRAY_F64_SIZED = (WireShape.ARRAY, SizeSource.CONTEXT, "d", ValueTag.ARRAY_F64)

    STRING_ARRAY = (WireShape.STRING_ARRAY, SizeSource.PREFIX, "c", ValueTag.ARRAY_STRING)
    STRING_ARRAY_SIZED = (WireShape.STRING_ARRAY, SizeSource.CONTEXT, "c", ValueTag.ARRAY_STRING)

    ARRAY_2D_F32 = (WireShape.ARRAY_2D, SizeSource.PREFIX, "f", ValueTag.ARRAY_2D_F32)
    ARRAY_2D_F32_SIZED = (WireShape.ARRAY_2D, SizeSource.CONTEXT, "f", ValueTag.ARRAY_2D_F32)

    def __init__(self, shape: WireShape, size_source: SizeSource, element: str, value_tag: ValueTag):
        self.shape = shape
        self.size_source = size_source
        self.element = element
        self.value_tag = value_tag

    @property
    def element_size(self) -> int:
        """Bytes per numeric element (0 for character data)."""
        if self.element == "c":
            return 0
        return struct.calcsize(">" + self.element)

    @property
    def element_format(self) -> str:
        """Big-endian struct/numpy format of one numeric element."""
        return ">" + self.element

    @property
    def is_context_sized(self) -> bool:
        return self.size_source is SizeSource.CONTEXT

    @property
    def vendor_code(self) -> Optional[str]:
        """Code string used by the Nanonis documentation, if it has one."""
        return _VENDOR_NAMES.get(self)

    @classmethod
    def from_vendor(cls, code: str) -> "TypeCode":
        """
        Look up the member for a vendor code string.

        Raises:
            InvalidArgumentError: If the string is not a known code
        """
        try:
            return _VENDOR_CODES[code]
        except (KeyError, TypeError):
            raise InvalidArgumentError(
                f"Unknown type code: {code!r}",
                error_code=ErrorCodes.INVALID_PARAMETER,
                field_name="type_code"
            ) from None

    @classmethod
    def resolve(cls, code: Union["TypeCode", str]) -> "TypeCode":
        """Accept a member or a vendor code string."""
        if isinstance(code, TypeCode):
            return code
        return cls.from_vendor(code)

    def __str__(self):
        return self.vendor_code or self.name


_VENDOR_CODES = {
    "H": TypeCode.U16,
    "h": TypeCode.I16,
    "I": TypeCode.U32,
    "i": TypeCode.I32,
    "f": TypeCode.F32,
    "d": TypeCode.F64,
    "+*c": TypeCode.STRING,
    "*-c": TypeCode.STRING_SIZED,
    "+*H": TypeCode.ARRAY_U16,
    "+*h": TypeCode.ARRAY_I16,
    "+*I": TypeCode.ARRAY_U32,
    "+*i": TypeCode.ARRAY_I32,
    "+*f": TypeCode.ARRAY_F32,
    "+*d": TypeCode.ARRAY_F64,
    "*H": TypeCode.ARRAY_U16_SIZED,
    "*h": TypeCode.ARRAY_I16_SIZED,
    "*I": TypeCode.ARRAY_U32_SIZED,
    "*i": TypeCode.ARRAY_I32_SIZED,
    "*f": TypeCode.ARRAY_F32_SIZED,
    "*d": TypeCode.ARRAY_F64_SIZED,
    "*+c": TypeCode.STRING_ARRAY_SIZED,
    "2f": TypeCode.ARRAY_2D_F32,
}

_VENDOR_NAMES = {member: name for name, member in _VENDOR_CODES.items()}


def resolve_codes(codes: Iterable[Union[TypeCode, str]]) -> List[TypeCode]:
    """Resolve a list of members and/or vendor strings."""
    return [TypeCode.resolve(code) for code in codes]
