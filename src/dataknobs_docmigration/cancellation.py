"""Cooperative cancellation for long-running migrations."""

from __future__ import annotations

import threading

from .exceptions import MigrationCancelledError


class CancellationToken:
    """Caller-owned cancellation signal.

    Migrations check the token before each page request and before each
    per-document call, so cancellation takes effect at the next document
    boundary; a call already sent to the store is never interrupted.

    Example:
        ```python
        token = CancellationToken()
        worker = threading.Thread(
            target=migrator.delete_by_query, args=(query,), kwargs={"cancellation": token}
        )
        worker.start()
        token.cancel()
        ```
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, operation: str, processed: int = 0) -> None:
        """Raise MigrationCancelledError if cancellation was requested."""
        if self._event.is_set():
            raise MigrationCancelledError(operation, processed)


def check_cancelled(
    token: CancellationToken | None, operation: str, processed: int = 0
) -> None:
    if token is not None:
        token.raise_if_cancelled(operation, processed)
