"""
TCP connection to the Nanonis software.

The Nanonis TCP interface serves one request at a time on a single socket:
each request is answered (if a reply was asked for) before the next one is
read. A Connection therefore carries at most one transaction at a time and
never retries or reconnects on its own.

After a socket failure, a timeout or a malformed response the byte stream
can no longer be trusted, so the connection is marked broken and every
later transaction fails with ConnectionError. Errors reported by the
Nanonis software itself (ServerError) leave the connection usable.
"""

import socket
import logging
import time
from typing import Any, List, Optional, Sequence, Tuple

from ..models.connection import ConnectionConfig
from .codec import CodeLike
from .errors import (
    ConnectionError, InvalidArgumentError, IoError, ProtocolError, ServerError,
    TimeoutError, ErrorCodes, wrap_external_error
)
from .transaction import Transaction
from .values import NanonisValue

# Largest single recv() request
RECV_CHUNK_SIZE = 65536


def connect(host: str, port: int, config: Optional[ConnectionConfig] = None) -> "Connection":
    """
    Open a connection to the Nanonis TCP interface.

    Args:
        host: Host name or IP address of the Nanonis PC
        port: One of the TCP ports enabled in the Nanonis "TCP Programming
            Interface" (6501-6504 by default)
        config: Timeouts and framing options (defaults if None)

    Returns:
        A connected Connection

    Raises:
        InvalidArgumentError: If host, port or config is invalid
        ConnectionError: If the connection cannot be established

    Example:
        >>> with connect("127.0.0.1", 6501) as conn:
        ...     bias = conn.transact("Bias.Get", [], [], ["f"])[0].as_f32()
    """
    config = config or ConnectionConfig()
    valid, errors = config.validate()
    if not valid:
        raise InvalidArgumentError(
            f"Invalid connection config: {'; '.join(errors)}",
            field_name="config"
        )
    Connection._validate_host(host)
    Connection._validate_port(port)

    logger = logging.getLogger(__name__)
    logger.info(f"Connecting to {host}:{port}")
    try:
        sock = socket.create_connection((host, port), timeout=config.connect_timeout)
    except ConnectionRefusedError as e:
        logger.error(f"Connection to {host}:{port} refused")
        raise ConnectionError(
            f"Connection to {host}:{port} refused",
            error_code=ErrorCodes.CONNECTION_REFUSED,
            cause=e,
            context={'host': host, 'port': port},
            suggestions=[
                "Check that the Nanonis software is running",
                "Check that the port is enabled under Options > TCP Programming Interface",
            ]
        ) from e
    except OSError as e:
        logger.error(f"Connection to {host}:{port} failed: {e}")
        raise wrap_external_error(
            e, f"Could not connect to {host}:{port}: {e}",
            error_class=ConnectionError, host=host, port=port
        ) from e

    logger.info(f"Connected to {host}:{port}")
    return Connection(sock, host, port, config)


class Connection:
    """
    An open TCP session with the Nanonis software.

    Not thread-safe: a second transaction started while one is in flight
    raises RuntimeError. Share a connection across threads through
    utils.shared_client.SharedClient.
    """

    def __init__(self, sock: socket.socket, host: str, port: int, config: ConnectionConfig):
        self._socket: Optional[socket.socket] = sock
        self._host = host
        self._port = port
        self.config = config
        self._broken = False
        self._in_flight = False
        self.logger = logging.getLogger(__name__)

    # ========== Transactions ==========

    def transact(
        self,
        command: str,
        args: Sequence[Any],
        arg_codes: Sequence[CodeLike],
        result_codes: Sequence[CodeLike] = (),
        await_response: Optional[bool] = None
    ) -> List[NanonisValue]:
        """
        Run one request/response exchange.

        Args:
            command: Command name, e.g. "Scan.FrameGet"
            args: Ordered arguments (NanonisValue or native values)
            arg_codes: One type code per argument
            result_codes: Type codes of the results, in order. Empty means
                fire-and-forget unless await_response is True.
            await_response: Override whether a reply is requested

        Returns:
            One NanonisValue per result code

        Raises:
            InvalidArgumentError: Bad command name or arguments (nothing sent)
            ServerError: The Nanonis software rejected the command
            ProtocolError: Malformed response (connection becomes broken)
            IoError: Socket failure (connection becomes broken)
            TimeoutError: Read or write timeout (connection becomes broken).
                The command may still be executed by the instrument.
            ConnectionError: The connection is closed or already broken
            RuntimeError: Another transaction is in flight on this connection

        Any other exception raised once the request has started, including
        KeyboardInterrupt, also leaves the connection broken.
        """
        transaction = Transaction(command, args, arg_codes, result_codes, await_response)
        return self.run(transaction)

    def run(self, transaction: Transaction) -> List[NanonisValue]:
        """Execute a prepared Transaction. See transact()."""
        if self._in_flight:
            raise RuntimeError(
                f"Cannot start {transaction.command}: another transaction is in flight "
                f"on this connection"
            )
        self._check_usable()

        self._in_flight = True
        try:
            return transaction.run(self, self.config.error_placement)
        except ServerError:
            raise
        except (IoError, TimeoutError, ProtocolError) as e:
            self._mark_broken(f"{transaction.command}: {e.message}")
            raise
        except BaseException as e:
            # Framing state is unknown once the request has started
            self._mark_broken(f"{transaction.command}: interrupted by {type(e).__name__}")
            raise
        finally:
            self._in_flight = False

    # ========== Byte transport ==========

    def send_all(self, data: bytes) -> None:
        """
        Write all bytes or fail.

        A partial write is never retried; the connection is unusable after
        any failure here.

        Raises:
            TimeoutError: If the write timeout expires
            IoError: On any other socket failure
        """
        sock = self._require_socket()
        timeout = self.config.write_timeout
        try:
            sock.settimeout(timeout)
            sock.sendall(data)
        except socket.timeout as e:
            raise TimeoutError(
                f"Write timed out after {timeout}s",
                timeout_seconds=timeout,
                error_code=ErrorCodes.WRITE_TIMEOUT,
                cause=e
            ) from e
        except OSError as e:
            raise IoError(
                f"Failed to send {len(data)} bytes: {e}",
                error_code=ErrorCodes.INCOMPLETE_WRITE,
                cause=e
            ) from e
        self.logger.debug(f"Sent {len(data)} bytes")

    def receive_exact(self, size: int) -> bytes:
        """
        Read exactly size bytes.

        The read timeout bounds the whole call, not each recv().

        Raises:
            TimeoutError: If the bytes do not arrive within the read timeout
            ConnectionError: If the peer closes the connection first
            IoError: On any other socket failure
        """
        sock = self._require_socket()
        timeout = self.config.read_timeout
        deadline = None if timeout is None else time.monotonic() + timeout

        chunks = []
        received = 0
        try:
            while received < size:
                if deadline is not None:
                    remaining_time = deadline - time.monotonic()
                    if remaining_time <= 0:
                        raise socket.timeout()
                    sock.settimeout(remaining_time)
                else:
                    sock.settimeout(None)

                chunk = sock.recv(min(size - received, RECV_CHUNK_SIZE))
                if not chunk:
                    raise ConnectionError(
                        f"Connection closed after receiving {received}/{size} bytes",
                        error_code=ErrorCodes.CONNECTION_CLOSED
                    )
                chunks.append(chunk)
                received += len(chunk)
        except socket.timeout as e:
            raise TimeoutError(
                f"Read timed out after {timeout}s (got {received}/{size} bytes)",
                timeout_seconds=timeout,
                error_code=ErrorCodes.READ_TIMEOUT,
                cause=e
            ) from e
        except OSError as e:
            raise IoError(
                f"Failed to receive data: {e}",
                error_code=ErrorCodes.SOCKET_ERROR,
                cause=e
            ) from e

        self.logger.debug(f"Received {size} bytes")
        return b"".join(chunks)

    # ========== Lifecycle ==========

    def close(self) -> None:
        """Close the socket. Safe to call more than once."""
        if self._socket is None:
            return
        try:
            self._socket.close()
            self.logger.info(f"Closed connection to {self._host}:{self._port}")
        except OSError as e:
            self.logger.error(f"Error closing socket: {e}")
        finally:
            self._socket = None

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def is_connected(self) -> bool:
        """True while the socket is open and not broken."""
        return self._socket is not None and not self._broken

    @property
    def is_broken(self) -> bool:
        return self._broken

    def get_connection_info(self) -> Tuple[Optional[str], Optional[int]]:
        """
        Get current connection information.

        Returns:
            Tuple of (host, port) or (None, None) if closed
        """
        if self._socket is None:
            return None, None
        return self._host, self._port

    # ========== Internals ==========

    def _require_socket(self) -> socket.socket:
        if self._socket is None:
            raise ConnectionError(
                "Connection is closed",
                error_code=ErrorCodes.CONNECTION_CLOSED
            )
        return self._socket

    def _check_usable(self) -> None:
        self._require_socket()
        if self._broken:
            raise ConnectionError(
                f"Connection to {self._host}:{self._port} is broken; open a new one",
                error_code=ErrorCodes.CONNECTION_BROKEN,
                suggestions=["Close this connection and call connect() again"]
            )

    def _mark_broken(self, reason: str) -> None:
        if not self._broken:
            self.logger.error(f"Connection to {self._host}:{self._port} broken: {reason}")
        self._broken = True

    @staticmethod
    def _validate_host(host: str) -> None:
        if not isinstance(host, str) or not host.strip():
            raise InvalidArgumentError(f"Invalid host: {host!r}", field_name="host")

    @staticmethod
    def _validate_port(port: int) -> None:
        """
        Validate port number.

        Raises:
            InvalidArgumentError: If port is not an integer in 1-65535
        """
        if isinstance(port, bool) or not isinstance(port, int):
            raise InvalidArgumentError(
                f"Port must be an integer, got {type(port).__name__}",
                field_name="port"
            )
        if port < 1 or port > 65535:
            raise InvalidArgumentError(
                f"Port must be 1-65535, got {port}",
                error_code=ErrorCodes.OUT_OF_RANGE,
                field_name="port"
            )
