"""
Tests for the error hierarchy and formatting utilities.
"""

import json
import socket
import unittest
from datetime import datetime

from py2nanonis.core.errors import (
    NanonisError,
    IoError,
    ConnectionError,
    ProtocolError,
    ServerError,
    ConfigurationError,
    InvalidArgumentError,
    TypeMismatchError,
    TimeoutError,
    ErrorCodes,
    wrap_external_error
)
from py2nanonis.core.error_formatting import ErrorFormatter, format_error


class TestNanonisError(unittest.TestCase):
    """Test the base NanonisError class."""

    def test_fields(self):
        error = IoError(
            "Socket reset while reading Scan.FrameDataGrab",
            error_code=ErrorCodes.SOCKET_ERROR,
            context={'command': 'Scan.FrameDataGrab'},
            suggestions=["Reconnect", "Check the network cable"]
        )

        self.assertEqual(error.message, "Socket reset while reading Scan.FrameDataGrab")
        self.assertEqual(error.error_code, 1001)
        self.assertEqual(error.context, {'command': 'Scan.FrameDataGrab', 'category': 'IO'})
        self.assertEqual(error.suggestions, ["Reconnect", "Check the network cable"])
        self.assertIsInstance(error.timestamp, datetime)

    def test_default_code(self):
        """Test that each class supplies its own default code."""
        self.assertEqual(NanonisError("x").error_code, ErrorCodes.UNKNOWN_ERROR)
        self.assertEqual(ProtocolError("x").error_code, 2001)
        self.assertEqual(TimeoutError("x").error_code, 8001)

    def test_caller_context_not_mutated(self):
        context = {'host': 'nanonis-pc'}
        ConnectionError("Refused", context=context)
        self.assertEqual(context, {'host': 'nanonis-pc'})

    def test_cause_recorded_in_context(self):
        cause = BrokenPipeError(32, "Broken pipe")
        error = IoError("Send failed", cause=cause)

        self.assertIs(error.cause, cause)
        self.assertEqual(error.context['original_type'], "BrokenPipeError")
        self.assertIn("Broken pipe", error.context['original_error'])

    def test_to_dict(self):
        error = ConfigurationError("Bad port", setting_name="port", cause=ValueError("70000"))

        data = error.to_dict()
        self.assertEqual(data['error_type'], "ConfigurationError")
        self.assertEqual(data['code'], ErrorCodes.CONFIG_NOT_FOUND)
        self.assertEqual(data['context']['setting'], "port")
        self.assertEqual(data['cause'], "ValueError('70000')")
        datetime.fromisoformat(data['timestamp'])

    def test_to_dict_without_cause(self):
        self.assertNotIn('cause', NanonisError("x").to_dict())

    def test_format_user_message(self):
        error = ConnectionError("Connection refused", suggestions=["Start Nanonis", "Check the port"])
        self.assertEqual(
            error.format_user_message(),
            "Connection refused\n\nTry:\n  - Start Nanonis\n  - Check the port"
        )

    def test_format_log_message(self):
        error = ProtocolError("Trailing bytes", command="Bias.Get",
                              error_code=ErrorCodes.TRAILING_BYTES)
        self.assertEqual(error.format_log_message(),
                         "[2002] ProtocolError: Trailing bytes command='Bias.Get'")


class TestErrorSubclasses(unittest.TestCase):
    """Test specific error subclasses."""

    def test_connection_error_is_io_error(self):
        """Test that ConnectionError is caught as IoError."""
        error = ConnectionError("Connection refused", error_code=ErrorCodes.CONNECTION_REFUSED)
        self.assertIsInstance(error, IoError)
        self.assertEqual(error.context['category'], 'IO')

    def test_server_error(self):
        """Test ServerError keeps the remote code and message."""
        error = ServerError(7, "Invalid parameter", command="Bias.Set")

        self.assertEqual(error.code, 7)
        self.assertEqual(error.remote_message, "Invalid parameter")
        self.assertEqual(error.error_code, ErrorCodes.REMOTE_ERROR)
        self.assertEqual(error.context['command'], "Bias.Set")
        self.assertIn("Invalid parameter", str(error))

    def test_server_error_equality(self):
        """Test that server errors compare by code and message."""
        self.assertEqual(ServerError(7, "Invalid parameter"), ServerError(7, "Invalid parameter"))
        self.assertNotEqual(ServerError(7, "Invalid parameter"), ServerError(8, "Invalid parameter"))

    def test_type_mismatch_error(self):
        error = TypeMismatchError("U32", "STRING")
        self.assertIsInstance(error, InvalidArgumentError)
        self.assertEqual(error.context['expected'], "U32")
        self.assertEqual(error.message, "Expected U32, got STRING")

    def test_configuration_error(self):
        error = ConfigurationError("Bad port", setting_name="port")
        self.assertEqual(error.context['category'], 'CONFIGURATION')
        self.assertEqual(error.context['setting'], 'port')

    def test_timeout_error(self):
        """Test TimeoutError with timeout duration."""
        error = TimeoutError("Read timed out", timeout_seconds=0.1,
                             error_code=ErrorCodes.READ_TIMEOUT)

        self.assertEqual(error.context['category'], 'TIMEOUT')
        self.assertEqual(error.context['timeout_seconds'], 0.1)

    def test_builtin_names_not_caught(self):
        """Test that package errors are distinct from the builtins they shadow."""
        import builtins
        self.assertFalse(issubclass(TimeoutError, builtins.TimeoutError))
        self.assertFalse(issubclass(ConnectionError, builtins.ConnectionError))


class TestWrapExternalError(unittest.TestCase):
    """Test wrapping external exceptions."""

    def test_wrap_external_error(self):
        """Test wrapping a socket exception."""
        original = socket.gaierror("Name or service not known")
        wrapped = wrap_external_error(original, "Could not resolve host",
                                      ConnectionError, host='nanonis-pc')

        self.assertIsInstance(wrapped, ConnectionError)
        self.assertEqual(wrapped.message, "Could not resolve host")
        self.assertIs(wrapped.cause, original)
        self.assertEqual(wrapped.context['host'], 'nanonis-pc')

    def test_default_class_is_io_error(self):
        wrapped = wrap_external_error(OSError("boom"), "Socket failed")
        self.assertIsInstance(wrapped, IoError)


class TestErrorFormatter(unittest.TestCase):
    """Test error formatting utilities."""

    def setUp(self):
        self.formatter = ErrorFormatter()

    def test_format_for_user_nanonis_error(self):
        """Test formatting NanonisError for users."""
        error = ConnectionError("Connection refused", suggestions=["Check the port"])

        user_msg = self.formatter.format_for_user(error)
        self.assertIn("Connection refused", user_msg)
        self.assertIn("Check the port", user_msg)

    def test_format_for_user_standard_error(self):
        """Test formatting standard exception for users."""
        user_msg = self.formatter.format_for_user(ValueError("Test error"))
        self.assertEqual(user_msg, "An error occurred: Test error")

    def test_colors(self):
        """Test that colors are only added when enabled."""
        colored = ErrorFormatter(use_colors=True).format_for_user(IoError("Socket failed"))
        self.assertTrue(colored.startswith('\033[91m'))
        self.assertNotIn('\033', self.formatter.format_for_user(IoError("Socket failed")))

    def test_format_for_log_includes_cause_trace(self):
        """Test that the wrapped exception's traceback is appended."""
        try:
            raise OSError("Network is unreachable")
        except OSError as e:
            error = wrap_external_error(e, "Could not connect", ConnectionError)

        log_msg = self.formatter.format_for_log(error)
        self.assertTrue(log_msg.startswith("[1002] ConnectionError: Could not connect"))
        self.assertIn("Traceback", log_msg)
        self.assertNotIn("Traceback", self.formatter.format_for_log(error, include_trace=False))

    def test_format_for_log_without_trace(self):
        self.assertEqual(self.formatter.format_for_log(ValueError("bad")), "ValueError: bad")

    def test_format_for_dict(self):
        error = ServerError(7, "Invalid parameter")
        data = self.formatter.format_for_dict(error)
        self.assertEqual(data['title'], 'ServerError')
        self.assertEqual(data['code'], ErrorCodes.REMOTE_ERROR)
        self.assertEqual(data['severity'], 'error')
        self.assertEqual(data['details']['remote_code'], 7)

    def test_format_for_json(self):
        """Test JSON formatting."""
        data = json.loads(self.formatter.format_for_json(ProtocolError("Bad body")))
        self.assertEqual(data['error_type'], 'ProtocolError')
        self.assertEqual(data['message'], 'Bad body')
        self.assertIn('timestamp', data)

    def test_severity_determination(self):
        """Test severity level determination."""
        self.assertEqual(self.formatter._get_severity(1004), 'critical')
        self.assertEqual(self.formatter._get_severity(2001), 'critical')
        self.assertEqual(self.formatter._get_severity(3001), 'error')
        self.assertEqual(self.formatter._get_severity(6001), 'warning')
        self.assertEqual(self.formatter._get_severity(7001), 'error')
        self.assertEqual(self.formatter._get_severity(8001), 'critical')
        self.assertEqual(self.formatter._get_severity(9000), 'error')

    def test_format_error_convenience(self):
        """Test format_error convenience function."""
        error = InvalidArgumentError("Bad argument")

        self.assertIsInstance(format_error(error, 'user'), str)
        self.assertIsInstance(format_error(error, 'log'), str)
        self.assertIsInstance(format_error(error, 'dict'), dict)
        json.loads(format_error(error, 'json'))

        with self.assertRaises(ValueError):
            format_error(error, 'invalid')


if __name__ == '__main__':
    unittest.main()
