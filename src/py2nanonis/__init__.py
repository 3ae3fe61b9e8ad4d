# py2nanonis package
"""
Python client for the Nanonis SPM controller's TCP Programming Interface.

    >>> from py2nanonis import NanonisClient
    >>> with NanonisClient("127.0.0.1", 6501) as client:
    ...     print(client.bias_get())
"""

__version__ = "0.1.0"

# core first: models.connection and core.tcp_connection import each other's packages
from .core import (
    NanonisValue,
    TypeCode,
    Connection,
    connect,
    NanonisError,
    ServerError,
    ProtocolError,
    TimeoutError,
    Toggle,
    NO_CHANGE,
)
from .models import ConnectionConfig, ClientSettings, load_settings
from .client import NanonisClient

__all__ = [
    "NanonisValue",
    "TypeCode",
    "Connection",
    "connect",
    "NanonisError",
    "ServerError",
    "ProtocolError",
    "TimeoutError",
    "Toggle",
    "NO_CHANGE",
    "ConnectionConfig",
    "ClientSettings",
    "load_settings",
    "NanonisClient",
]
