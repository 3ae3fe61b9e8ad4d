"""
Error formatting utilities for py2nanonis.

Renders NanonisError (and plain exceptions) for terminal output, log files
and structured logging. Severity is derived from the error code range.
"""

import json
import traceback
from datetime import datetime
from typing import Any, Dict, Union

from .errors import NanonisError, ErrorCodes

# (exclusive upper bound of the code range, severity)
SEVERITY_BANDS = (
    (3000, 'critical'),   # I/O and protocol: the connection must be reopened
    (4000, 'error'),      # reported by the Nanonis software
    (7000, 'warning'),    # configuration
    (8000, 'error'),      # caller input
    (9000, 'critical'),   # timeouts
)

ANSI_RESET = '\033[0m'
SEVERITY_COLORS = {
    'critical': '\033[91m',
    'error': '\033[91m',
    'warning': '\033[93m',
}


class ErrorFormatter:
    """
    Renders errors for users, log files and JSON consumers.

    Args:
        use_colors: Wrap user messages in ANSI colors by severity
    """

    def __init__(self, use_colors: bool = False):
        self.use_colors = use_colors

    def format_for_user(self, error: Exception) -> str:
        if not isinstance(error, NanonisError):
            return f"An error occurred: {error}"
        return self.colorize(error.format_user_message(), self._get_severity(error.error_code))

    def format_for_log(self, error: Exception, include_trace: bool = True) -> str:
        """
        Format error for technical logging.

        Args:
            error: The error to format
            include_trace: Append the traceback of the error (or of its
                wrapped cause for a NanonisError) when one is attached

        Returns:
            Detailed error information for logging
        """
        if isinstance(error, NanonisError):
            text = error.format_log_message()
            traced = error.cause
        else:
            text = f"{type(error).__name__}: {error}"
            traced = error

        if include_trace and traced is not None and traced.__traceback__ is not None:
            trace = "".join(traceback.format_exception(type(traced), traced, traced.__traceback__))
            text += f"\n{trace.rstrip()}"
        return text

    def format_for_dict(self, error: Exception) -> Dict[str, Any]:
        """Return title, message, code, severity, suggestions and details."""
        if not isinstance(error, NanonisError):
            return {
                'title': 'Error',
                'message': str(error),
                'code': ErrorCodes.UNKNOWN_ERROR,
                'severity': 'error',
                'suggestions': [],
                'details': {'type': type(error).__name__},
            }
        return {
            'title': type(error).__name__,
            'message': error.message,
            'code': error.error_code,
            'severity': self._get_severity(error.error_code),
            'suggestions': list(error.suggestions),
            'details': dict(error.context) or None,
        }

    def format_for_json(self, error: Exception) -> str:
        if isinstance(error, NanonisError):
            data = error.to_dict()
        else:
            data = {
                'error_type': type(error).__name__,
                'message': str(error),
                'timestamp': datetime.now().isoformat(),
            }
        return json.dumps(data, indent=2, default=str)

    def _get_severity(self, error_code: int) -> str:
        for upper, severity in SEVERITY_BANDS:
            if error_code < upper:
                return severity
        return 'error'

    def colorize(self, text: str, severity: str) -> str:
        """Wrap text in the ANSI color for severity if colors are enabled."""
        color = SEVERITY_COLORS.get(severity)
        if not self.use_colors or color is None:
            return text
        return f"{color}{text}{ANSI_RESET}"


_FORMAT_METHODS = {
    'user': ErrorFormatter.format_for_user,
    'log': ErrorFormatter.format_for_log,
    'dict': ErrorFormatter.format_for_dict,
    'json': ErrorFormatter.format_for_json,
}


def format_error(error: Exception, format_type: str = 'user') -> Union[str, Dict]:
    """
    Format an error with a default ErrorFormatter.

    Args:
        error: The error to format
        format_type: One of 'user', 'log', 'dict' or 'json'

    Raises:
        ValueError: On an unknown format_type
    """
    method = _FORMAT_METHODS.get(format_type)
    if method is None:
        raise ValueError(
            f"Unknown format type {format_type!r}; expected one of {', '.join(_FORMAT_METHODS)}"
        )
    return method(ErrorFormatter(), error)
