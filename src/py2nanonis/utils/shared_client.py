"""
Thread-safe access to a single NanonisClient.

The Nanonis software handles one request at a time per port, and a
Connection refuses overlapping transactions. SharedClient serializes
callers from several threads with a lock held for one whole command.
"""

import threading
from typing import Any, Callable, List, Optional, Sequence, TypeVar

from ..client import NanonisClient
from ..core.codec import CodeLike
from ..core.values import NanonisValue

T = TypeVar("T")


class SharedClient:
    """
    Lock-guarded wrapper around a NanonisClient.

    Example:
        >>> shared = SharedClient(NanonisClient("127.0.0.1", 6501))
        >>> # From any thread:
        >>> bias = shared.call(lambda c: c.bias_get())
    """

    def __init__(self, client: NanonisClient):
        self._client = client
        self._lock = threading.Lock()

    def quick_send(
        self,
        command: str,
        args: Sequence[Any],
        arg_codes: Sequence[CodeLike],
        result_codes: Sequence[CodeLike],
        await_response: Optional[bool] = None
    ) -> List[NanonisValue]:
        """NanonisClient.quick_send under the lock."""
        with self._lock:
            return self._client.quick_send(command, args, arg_codes, result_codes, await_response)

    def call(self, operation: Callable[[NanonisClient], T]) -> T:
        """
        Run operation(client) while holding the lock.

        Use this for wrapper methods, or to keep several commands together.
        """
        with self._lock:
            return operation(self._client)

    def close(self) -> None:
        with self._lock:
            self._client.close()
