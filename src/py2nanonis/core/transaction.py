"""
One request/response exchange with the Nanonis software.

A Transaction is built from a command name, its ordered arguments with
their type codes, and the type codes of the expected results. Building it
validates and encodes the whole request, so a bad argument is reported
before anything reaches the socket. Running it borrows a connection for
exactly one exchange.
"""

import logging
from typing import Any, List, Optional, Sequence, TYPE_CHECKING

from .codec import CodeLike, encode_body, decode_body
from .errors import InvalidArgumentError, ProtocolError, ServerError, ErrorCodes
from .protocol import HEADER_SIZE, ErrorPlacement, ProtocolEncoder, ProtocolDecoder
from .type_codes import resolve_codes
from .values import NanonisValue

if TYPE_CHECKING:
    from .tcp_connection import Connection

logger = logging.getLogger(__name__)


class Transaction:
    """
    A fully encoded request plus the knowledge needed to decode its reply.

    Args:
        command: Command name, e.g. "Bias.Set"
        args: Ordered arguments (NanonisValue or native Python values)
        arg_codes: One type code per argument
        result_codes: Type codes of the expected result fields, in order
        await_response: Ask for and wait on a reply. Defaults to True when
            result_codes is non-empty. Pass True for a command without
            results to still see errors reported by the Nanonis software.

    Raises:
        InvalidArgumentError: If the command name or any argument is invalid

    Example:
        >>> tx = Transaction("Bias.Set", [0.1], ["f"], [], await_response=True)
        >>> results = tx.run(connection)
    """

    def __init__(
        self,
        command: str,
        args: Sequence[Any],
        arg_codes: Sequence[CodeLike],
        result_codes: Sequence[CodeLike] = (),
        await_response: Optional[bool] = None
    ):
        self.command = command
        self.result_codes = resolve_codes(result_codes)
        if await_response is None:
            await_response = bool(self.result_codes)
        elif not await_response and self.result_codes:
            raise InvalidArgumentError(
                f"{command}: results requested but await_response is False",
                field_name="await_response"
            )
        self.await_response = await_response

        body = encode_body(args, arg_codes)
        header = ProtocolEncoder().encode_header(command, len(body), await_response)
        self.request = header + body

    def run(
        self,
        connection: "Connection",
        placement: ErrorPlacement = ErrorPlacement.LEADING
    ) -> List[NanonisValue]:
        """
        Send the request and, if a reply is expected, read and decode it.

        Callers normally go through Connection.transact, which also marks
        the connection broken on transport or framing errors.

        Returns:
            One NanonisValue per result code (empty for fire-and-forget)

        Raises:
            ServerError: If the Nanonis software reported an error
            ProtocolError: If the reply is malformed or for another command
            IoError: On socket failure
            TimeoutError: If a read or write exceeded its timeout
        """
        connection.send_all(self.request)
        logger.debug(f"Sent {self.command} ({len(self.request)} bytes)")
        if not self.await_response:
            return []

        decoder = ProtocolDecoder()
        header = decoder.decode_header(connection.receive_exact(HEADER_SIZE))
        if header.command != self.command:
            raise ProtocolError(
                f"Response is for {header.command!r}, expected {self.command!r}",
                command=self.command,
                error_code=ErrorCodes.COMMAND_MISMATCH
            )

        body = connection.receive_exact(header.body_size)
        logger.debug(f"Received {self.command} response ({header.body_size} body bytes)")

        try:
            block = decoder.split_error_block(body, placement)
            if block.status != 0:
                logger.warning(f"{self.command} failed: [{block.status}] {block.message}")
                raise ServerError(block.status, block.message, command=self.command)
            return decode_body(block.payload, self.result_codes)
        except ProtocolError as e:
            e.context.setdefault('command', self.command)
            raise
