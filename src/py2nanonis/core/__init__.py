"""
Core layer for Nanonis TCP communication.

This package contains the value model, the type-code driven body codec,
message framing and the connection/transaction engine.
"""

from .errors import (
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
)
from .values import NanonisValue, ValueTag
from .type_codes import TypeCode, WireShape, SizeSource
from .codec import BodyReader, encode_body, decode_body, coerce_value
from .protocol import ProtocolEncoder, ProtocolDecoder, ErrorPlacement, HEADER_SIZE
from .transaction import Transaction
from .sentinels import Toggle, ToggleEncoding, NO_CHANGE
# Imported last: depends on models.connection, which imports the modules above
from .tcp_connection import Connection, connect

__all__ = [
    'NanonisError',
    'IoError',
    'ConnectionError',
    'ProtocolError',
    'ServerError',
    'ConfigurationError',
    'InvalidArgumentError',
    'TypeMismatchError',
    'TimeoutError',
    'ErrorCodes',
    'NanonisValue',
    'ValueTag',
    'TypeCode',
    'WireShape',
    'SizeSource',
    'BodyReader',
    'encode_body',
    'decode_body',
    'coerce_value',
    'ProtocolEncoder',
    'ProtocolDecoder',
    'ErrorPlacement',
    'HEADER_SIZE',
    'Transaction',
    'Toggle',
    'ToggleEncoding',
    'NO_CHANGE',
    'Connection',
    'connect',
]
