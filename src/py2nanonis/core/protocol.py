"""
Message framing for the Nanonis TCP interface.

Every request and response starts with a fixed 40-byte header followed by
a body whose layout is given by the command's type codes (see codec.py).
Responses additionally carry an error block reporting whether the Nanonis
software accepted the command.

REQUEST HEADER (40 bytes, big-endian):
======================================
    Offset  Size  Type    Field            Description
    ------  ----  ------  ---------------  ------------------------------------
    0-31    32    char    command          ASCII name, NUL-padded ("Bias.Get")
    32-35   4     uint32  body_size        Number of body bytes that follow
    36-37   2     uint16  send_response    1 = reply expected, 0 = no reply
    38-39   2     uint16  reserved         Always 0

RESPONSE HEADER (40 bytes, big-endian):
=======================================
    Offset  Size  Type    Field            Description
    ------  ----  ------  ---------------  ------------------------------------
    0-31    32    char    command          Echo of the request command name
    32-35   4     uint32  body_size        Number of body bytes that follow
    36-39   4     -       reserved         Ignored

ERROR BLOCK:
============
    uint32  status          0 = success, anything else = error
    int32   message_size    Byte length of the message
    char[]  message         UTF-8 error description (may be empty)

The error block precedes the result fields (ErrorPlacement.LEADING).
Servers that append it after the results instead are handled with
ErrorPlacement.TRAILING.

Example:
    >>> encoder = ProtocolEncoder()
    >>> header = encoder.encode_header("Bias.Get", body_size=0, send_response=True)
    >>> len(header)
    40
"""

import struct
from enum import Enum
from typing import NamedTuple

from .codec import BodyReader
from .errors import InvalidArgumentError, ProtocolError, ErrorCodes


class ErrorPlacement(Enum):
    """Position of the error block inside a response body."""

    LEADING = "leading"
    TRAILING = "trailing"


class ResponseHeader(NamedTuple):
    command: str
    body_size: int


class ErrorBlock(NamedTuple):
    """Result fields of a response, separated from its error block."""

    payload: bytes
    status: int
    message: str


HEADER_SIZE = 40
COMMAND_NAME_SIZE = 32

# status (uint32) + message_size (int32)
ERROR_BLOCK_MIN_SIZE = 8


class ProtocolEncoder:
    """Builds request headers."""

    HEADER_STRUCT = struct.Struct(">32sIHH")

    def encode_header(self, command: str, body_size: int, send_response: bool) -> bytes:
        """
        Encode a 40-byte request header.

        Args:
            command: Command name, e.g. "Scan.Action"
            body_size: Length of the encoded body in bytes
            send_response: Whether the Nanonis software should reply

        Returns:
            40-byte header

        Raises:
            InvalidArgumentError: If the command name is empty, not ASCII or
                longer than 32 bytes, or body_size does not fit a uint32
        """
        name = encode_command_name(command)
        if not isinstance(body_size, int) or not 0 <= body_size <= 0xFFFFFFFF:
            raise InvalidArgumentError(
                f"Body size {body_size} does not fit in 32 bits",
                error_code=ErrorCodes.OUT_OF_RANGE,
                field_name="body_size"
            )
        return self.HEADER_STRUCT.pack(name, body_size, 1 if send_response else 0, 0)


class ProtocolDecoder:
    """Parses response headers and error blocks."""

    HEADER_STRUCT = struct.Struct(">32sI4x")

    def decode_header(self, data: bytes) -> ResponseHeader:
        """
        Decode a 40-byte response header.

        Raises:
            ProtocolError: If data is not exactly 40 bytes or the command
                name is not ASCII
        """
        if len(data) != HEADER_SIZE:
            raise ProtocolError(
                f"Invalid header size: expected {HEADER_SIZE}, got {len(data)}",
                error_code=ErrorCodes.TRUNCATED_RESPONSE
            )
        raw_name, body_size = self.HEADER_STRUCT.unpack(data)
        try:
            command = raw_name.rstrip(b"\x00").decode("ascii")
        except UnicodeDecodeError:
            raise ProtocolError(
                f"Response header carries a non-ASCII command name: {raw_name!r}",
                error_code=ErrorCodes.COMMAND_MISMATCH
            ) from None
        return ResponseHeader(command, body_size)

    def split_error_block(
        self,
        body: bytes,
        placement: ErrorPlacement = ErrorPlacement.LEADING
    ) -> ErrorBlock:
        """
        Separate the result fields of a response body from its error block.

        For TRAILING placement the result fields are not self-describing, so
        the block is located from the end: the message size field is the
        int32 whose value equals the number of bytes after it.

        Args:
            body: Complete response body
            placement: Where the server puts the error block

        Returns:
            ErrorBlock(payload, status, message); payload holds only the
            result fields

        Raises:
            ProtocolError: If no well-formed error block is present or the
                message is not valid UTF-8
        """
        if placement is ErrorPlacement.LEADING:
            if len(body) < ERROR_BLOCK_MIN_SIZE:
                raise ProtocolError(
                    f"Response body of {len(body)} bytes has no error block",
                    error_code=ErrorCodes.MISSING_ERROR_BLOCK
                )
            reader = BodyReader(body)
            status = reader.u32()
            message = reader.utf8(reader.count("error message size"))
            return ErrorBlock(body[reader.offset():], status, message)

        size = len(body)
        for message_size in range(size - ERROR_BLOCK_MIN_SIZE + 1):
            end = size - message_size
            (declared,) = struct.unpack(">i", body[end - 4:end])
            if declared != message_size:
                continue
            start = end - ERROR_BLOCK_MIN_SIZE
            reader = BodyReader(body[start:])
            status = reader.u32()
            reader.i32()
            message = reader.utf8(message_size)
            return ErrorBlock(body[:start], status, message)

        raise ProtocolError(
            f"Response body of {size} bytes has no error block",
            error_code=ErrorCodes.MISSING_ERROR_BLOCK
        )


def encode_command_name(command: str) -> bytes:
    """
    Validate a command name and return its ASCII bytes (unpadded).

    Raises:
        InvalidArgumentError: If the name is empty, not ASCII or too long
    """
    if not isinstance(command, str) or not command:
        raise InvalidArgumentError(
            f"Command name must be a non-empty string, got {command!r}",
            field_name="command"
        )
    try:
        name = command.encode("ascii")
    except UnicodeEncodeError:
        raise InvalidArgumentError(
            f"Command name must be ASCII: {command!r}",
            field_name="command"
        ) from None
    if len(name) > COMMAND_NAME_SIZE or b"\x00" in name:
        raise InvalidArgumentError(
            f"Command name must be at most {COMMAND_NAME_SIZE} bytes without NUL: {command!r}",
            field_name="command"
        )
    return name
