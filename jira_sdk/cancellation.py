"""
Cooperative cancellation for fetch and save operations.

A token is checked at every point where the SDK is about to hand a request to
the transport. Work already completed (issues already yielded, saves already
acknowledged) is left intact.
"""

from __future__ import annotations

import threading

from .exceptions import OperationCancelledError


class CancellationToken:
    """
    Thread-safe, one-way cancellation flag.

    Example:
        token = CancellationToken()
        results = client.issues.query(predicate, cancellation=token)
        for issue in results:
            if done_enough(issue):
                token.cancel()
        assert results.cancelled
    """

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, operation: str) -> None:
        if self._event.is_set():
            raise OperationCancelledError(f"{operation} cancelled")

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"


def is_cancelled(token: CancellationToken | None) -> bool:
    return token is not None and token.cancelled
