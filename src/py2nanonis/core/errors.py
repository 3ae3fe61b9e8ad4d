"""
Error hierarchy for Nanonis TCP communication.

Every encode, decode and transaction failure is raised as a subclass of
NanonisError so callers can catch the whole family or a single category.

Error Code Ranges:
- 1000-1999: I/O and connection errors (connection-fatal)
- 2000-2999: Protocol errors (connection-fatal)
- 3000-3999: Errors reported by the Nanonis software itself
- 6000-6999: Configuration errors
- 7000-7999: Invalid arguments and value type mismatches
- 8000-8999: Timeout errors
- 9000-9999: Unknown/System errors
"""

from datetime import datetime
from typing import Any, Dict, List, Optional


class ErrorCodes:
    """Numeric codes carried in NanonisError.error_code."""

    # I/O
    SOCKET_ERROR = 1001
    CONNECTION_REFUSED = 1002
    CONNECTION_CLOSED = 1003
    CONNECTION_BROKEN = 1004
    INCOMPLETE_WRITE = 1005

    # Protocol
    TRUNCATED_RESPONSE = 2001
    TRAILING_BYTES = 2002
    INVALID_SIZE = 2003
    INVALID_UTF8 = 2004
    COMMAND_MISMATCH = 2005
    MISSING_ERROR_BLOCK = 2006
    UNEXPECTED_VALUE = 2007

    # Nanonis software
    REMOTE_ERROR = 3001

    # Configuration
    CONFIG_NOT_FOUND = 6001
    CONFIG_INVALID = 6002

    # Caller input
    INVALID_PARAMETER = 7001
    OUT_OF_RANGE = 7002
    LENGTH_MISMATCH = 7003
    TYPE_ERROR = 7004

    # Timeouts
    READ_TIMEOUT = 8001
    WRITE_TIMEOUT = 8002

    UNKNOWN_ERROR = 9000


class NanonisError(Exception):
    """
    Base exception for all py2nanonis errors.

    Attributes:
        message: Human-readable description
        error_code: One of ErrorCodes (the class default if not given)
        context: Structured details such as the command name; always holds
            'category' for the subclasses below
        cause: Wrapped lower-level exception, if any
        suggestions: Things the user can try
        timestamp: When the error was created
    """

    DEFAULT_CODE = ErrorCodes.UNKNOWN_ERROR
    CATEGORY: Optional[str] = None

    def __init__(
        self,
        message: str,
        error_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        suggestions: Optional[List[str]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.DEFAULT_CODE
        self.context = dict(context or {})
        self.cause = cause
        self.suggestions = list(suggestions or [])
        self.timestamp = datetime.now()

        if self.CATEGORY:
            self.context.setdefault('category', self.CATEGORY)
        if cause is not None:
            self.context['original_error'] = str(cause)
            self.context['original_type'] = type(cause).__name__

    def _add_context(self, **fields: Any) -> None:
        for key, value in fields.items():
            if value is not None:
                self.context[key] = value

    def to_dict(self) -> Dict[str, Any]:
        """Serializable snapshot, used for JSON output."""
        data = {
            'error_type': type(self).__name__,
            'code': self.error_code,
            'message': self.message,
            'context': dict(self.context),
            'suggestions': list(self.suggestions),
            'timestamp': self.timestamp.isoformat(),
        }
        if self.cause is not None:
            data['cause'] = repr(self.cause)
        return data

    def format_user_message(self) -> str:
        """Message plus suggestions, without codes or context."""
        lines = [self.message]
        if self.suggestions:
            lines += ["", "Try:"]
            lines += [f"  - {suggestion}" for suggestion in self.suggestions]
        return "\n".join(lines)

    def format_log_message(self) -> str:
        """Single line with code, class, message and context fields."""
        text = f"[{self.error_code}] {type(self).__name__}: {self.message}"
        details = {k: v for k, v in self.context.items() if k != 'category'}
        if details:
            text += " " + " ".join(f"{k}={v!r}" for k, v in sorted(details.items()))
        return text


class IoError(NanonisError):
    """Socket failures. The connection must be re-established afterwards."""
    DEFAULT_CODE = ErrorCodes.SOCKET_ERROR
    CATEGORY = 'IO'


class ConnectionError(IoError):
    """Connection could not be opened, or is closed or broken."""
    DEFAULT_CODE = ErrorCodes.CONNECTION_REFUSED


class ProtocolError(NanonisError):
    """
    Malformed response: short or over-long body, bad UTF-8, size prefix
    disagreement or an unexpected command echo.

    Usually means the result codes do not match what the command returns.
    The connection is left in an unknown framing state.
    """
    DEFAULT_CODE = ErrorCodes.TRUNCATED_RESPONSE
    CATEGORY = 'PROTOCOL'

    def __init__(self, message: str, command: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self._add_context(command=command)


class ServerError(NanonisError):
    """
    Error status reported by the Nanonis software for a command.

    This is an ordinary outcome (e.g. a parameter out of range); the
    connection remains usable. Two ServerErrors are equal when their remote
    code and message are.

    Attributes:
        code: Remote error status as sent by the instrument
        remote_message: Remote error description
    """
    DEFAULT_CODE = ErrorCodes.REMOTE_ERROR
    CATEGORY = 'SERVER'

    def __init__(self, code: int, message: str, command: Optional[str] = None, **kwargs):
        super().__init__(f"Nanonis error (code {code}): {message}", **kwargs)
        self.code = code
        self.remote_message = message
        self._add_context(remote_code=code, command=command)

    def __eq__(self, other):
        if not isinstance(other, ServerError):
            return NotImplemented
        return (self.code, self.remote_message) == (other.code, other.remote_message)

    def __hash__(self):
        return hash((self.code, self.remote_message))


class ConfigurationError(NanonisError):
    """Invalid connection settings or settings file."""
    DEFAULT_CODE = ErrorCodes.CONFIG_NOT_FOUND
    CATEGORY = 'CONFIGURATION'

    def __init__(self, message: str, setting_name: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self._add_context(setting=setting_name)


class InvalidArgumentError(NanonisError):
    """Bad caller input, detected before anything is written to the socket."""
    DEFAULT_CODE = ErrorCodes.INVALID_PARAMETER
    CATEGORY = 'VALIDATION'

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self._add_context(field=field_name)


class TypeMismatchError(InvalidArgumentError):
    """A value accessor was called for a tag the value does not hold."""
    DEFAULT_CODE = ErrorCodes.TYPE_ERROR

    def __init__(self, expected: str, actual: str, **kwargs):
        super().__init__(f"Expected {expected}, got {actual}", **kwargs)
        self.expected = expected
        self.actual = actual
        self._add_context(expected=expected, actual=actual)


class TimeoutError(NanonisError):
    """
    A socket read or write exceeded the configured timeout.

    A command whose response timed out may still be executed by the
    instrument.
    """
    DEFAULT_CODE = ErrorCodes.READ_TIMEOUT
    CATEGORY = 'TIMEOUT'

    def __init__(self, message: str, timeout_seconds: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self._add_context(timeout_seconds=timeout_seconds)


def wrap_external_error(e: Exception, message: str, error_class=IoError, **context) -> NanonisError:
    """
    Wrap a foreign exception (socket.gaierror, OSError, yaml.YAMLError...).

    Args:
        e: The exception being wrapped; kept as .cause
        message: Description of what was being attempted
        error_class: NanonisError subclass to raise
        **context: Extra context fields (host, port, path...)
    """
    return error_class(message, cause=e, context=context)
