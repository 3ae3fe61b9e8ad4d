"""
Unit tests for the TypeCode enumeration and vendor code aliases.
"""

import unittest

from py2nanonis.core.errors import InvalidArgumentError
from py2nanonis.core.type_codes import TypeCode, WireShape, SizeSource, resolve_codes
from py2nanonis.core.values import ValueTag


class TestVendorCodes(unittest.TestCase):
    """Test mapping of documentation code strings to members."""

    def test_scalar_codes(self):
        """Test that single-letter codes map to scalars."""
        expected = {
            "H": TypeCode.U16, "h": TypeCode.I16,
            "I": TypeCode.U32, "i": TypeCode.I32,
            "f": TypeCode.F32, "d": TypeCode.F64,
        }
        for code, member in expected.items():
            self.assertIs(TypeCode.from_vendor(code), member)

    def test_string_codes(self):
        """Test prefixed and context-sized strings."""
        self.assertIs(TypeCode.from_vendor("+*c"), TypeCode.STRING)
        self.assertIs(TypeCode.from_vendor("*-c"), TypeCode.STRING_SIZED)
        self.assertIs(TypeCode.from_vendor("*+c"), TypeCode.STRING_ARRAY_SIZED)

    def test_array_codes(self):
        """Test prefixed and context-sized arrays."""
        self.assertIs(TypeCode.from_vendor("+*f"), TypeCode.ARRAY_F32)
        self.assertIs(TypeCode.from_vendor("*i"), TypeCode.ARRAY_I32_SIZED)
        self.assertIs(TypeCode.from_vendor("2f"), TypeCode.ARRAY_2D_F32)

    def test_unknown_code_raises(self):
        """Test that unknown strings raise InvalidArgumentError."""
        for code in ["x", "", "+*x", "3f", None]:
            with self.assertRaises(InvalidArgumentError):
                TypeCode.from_vendor(code)

    def test_resolve_accepts_members_and_strings(self):
        self.assertIs(TypeCode.resolve(TypeCode.F64), TypeCode.F64)
        self.assertIs(TypeCode.resolve("d"), TypeCode.F64)
        self.assertEqual(resolve_codes(["i", TypeCode.STRING_SIZED]),
                         [TypeCode.I32, TypeCode.STRING_SIZED])

    def test_vendor_code_round_trip(self):
        """Test that every aliased member reports its own alias."""
        for member in TypeCode:
            if member.vendor_code is not None:
                self.assertIs(TypeCode.from_vendor(member.vendor_code), member)

    def test_members_without_alias(self):
        """Test that the prefixed string array and sized 2D have no alias."""
        self.assertIsNone(TypeCode.STRING_ARRAY.vendor_code)
        self.assertIsNone(TypeCode.ARRAY_2D_F32_SIZED.vendor_code)
        self.assertEqual(str(TypeCode.STRING_ARRAY), "STRING_ARRAY")
        self.assertEqual(str(TypeCode.STRING), "+*c")


class TestTypeCodeProperties(unittest.TestCase):
    """Test the metadata carried by each member."""

    def test_shape_and_size_source(self):
        self.assertIs(TypeCode.U32.shape, WireShape.SCALAR)
        self.assertIs(TypeCode.U32.size_source, SizeSource.FIXED)
        self.assertIs(TypeCode.ARRAY_F64.size_source, SizeSource.PREFIX)
        self.assertTrue(TypeCode.ARRAY_F64_SIZED.is_context_sized)
        self.assertIs(TypeCode.ARRAY_2D_F32.shape, WireShape.ARRAY_2D)

    def test_element_sizes(self):
        self.assertEqual(TypeCode.U16.element_size, 2)
        self.assertEqual(TypeCode.ARRAY_I32.element_size, 4)
        self.assertEqual(TypeCode.F64.element_size, 8)
        self.assertEqual(TypeCode.STRING.element_size, 0)

    def test_value_tags(self):
        """Test that sized and prefixed variants hold the same value tag."""
        self.assertIs(TypeCode.STRING.value_tag, ValueTag.STRING)
        self.assertIs(TypeCode.STRING_SIZED.value_tag, ValueTag.STRING)
        self.assertIs(TypeCode.ARRAY_U16_SIZED.value_tag, ValueTag.ARRAY_U16)
        self.assertIs(TypeCode.STRING_ARRAY.value_tag, ValueTag.ARRAY_STRING)
        self.assertIs(TypeCode.ARRAY_2D_F32_SIZED.value_tag, ValueTag.ARRAY_2D_F32)

    def test_members_are_distinct(self):
        """Test that members sharing a tag are not Enum aliases of each other."""
        self.assertIsNot(TypeCode.STRING, TypeCode.STRING_SIZED)
        self.assertEqual(len(list(TypeCode)), 24)


if __name__ == '__main__':
    unittest.main()
