"""
Unit tests for the "no change" sentinel helpers.
"""

import unittest

from py2nanonis.core.errors import InvalidArgumentError, ProtocolError
from py2nanonis.core.sentinels import (
    NO_CHANGE, Toggle, ToggleEncoding, int_or_no_change, toggle_from_wire, toggle_to_wire
)


class TestToggleToWire(unittest.TestCase):
    """Test encoding tri-state flags."""

    def test_no_change_on_off(self):
        """Test 0 = no change, 1 = on, 2 = off."""
        self.assertEqual(toggle_to_wire(Toggle.NO_CHANGE), 0)
        self.assertEqual(toggle_to_wire(Toggle.ON), 1)
        self.assertEqual(toggle_to_wire(Toggle.OFF), 2)

    def test_off_on(self):
        """Test 0 = off, 1 = on."""
        self.assertEqual(toggle_to_wire(Toggle.OFF, ToggleEncoding.OFF_ON), 0)
        self.assertEqual(toggle_to_wire(Toggle.ON, ToggleEncoding.OFF_ON), 1)

    def test_off_on_has_no_no_change(self):
        with self.assertRaises(InvalidArgumentError):
            toggle_to_wire(Toggle.NO_CHANGE, ToggleEncoding.OFF_ON)

    def test_bool_and_none(self):
        """Test that bool and None are accepted in place of a Toggle."""
        self.assertEqual(toggle_to_wire(True), 1)
        self.assertEqual(toggle_to_wire(False), 2)
        self.assertEqual(toggle_to_wire(None), 0)


class TestToggleFromWire(unittest.TestCase):
    """Test decoding flags read from responses."""

    def test_off_on(self):
        self.assertIs(toggle_from_wire(0), Toggle.OFF)
        self.assertIs(toggle_from_wire(1), Toggle.ON)

    def test_no_change_on_off(self):
        self.assertIs(toggle_from_wire(2, ToggleEncoding.NO_CHANGE_ON_OFF), Toggle.OFF)

    def test_unknown_value(self):
        with self.assertRaises(ProtocolError):
            toggle_from_wire(5)


class TestIntOrNoChange(unittest.TestCase):
    """Test numeric no-change mapping."""

    def test_no_change_default(self):
        self.assertEqual(int_or_no_change(NO_CHANGE), -1)
        self.assertEqual(int_or_no_change(None), -1)

    def test_custom_no_change_value(self):
        self.assertEqual(int_or_no_change(NO_CHANGE, no_change=-2), -2)

    def test_integer_passes_through(self):
        self.assertEqual(int_or_no_change(12), 12)

    def test_other_toggle_rejected(self):
        with self.assertRaises(InvalidArgumentError):
            int_or_no_change(Toggle.ON)


if __name__ == '__main__':
    unittest.main()
