"""Cooperative cancellation for long-running document operations."""

import threading

from citesync.exceptions import OperationCancelledError


class CancellationToken:
    """Flag checked by operations between units of work.

    A caller (UI thread, request handler) calls ``cancel()``; the running
    operation raises OperationCancelledError at its next checkpoint and the
    session discards the working copy.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError()


def checkpoint(token: CancellationToken | None) -> None:
    """Raise if the (optional) token was cancelled."""
    if token is not None:
        token.raise_if_cancelled()
