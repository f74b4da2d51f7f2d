"""Cancellation tokens for long-running index queries."""

from __future__ import annotations

import threading
import time


class CancellationToken:
    """Cooperative cancellation signal with an optional deadline.

    Index scans poll ``cancelled`` between blocks of work. Once it turns
    true they stop and return the best ranking accumulated so far, marked
    as partial.

    Example:
        token = CancellationToken(timeout=0.05)
        result = index.query(vector, k=10, token=token)
        if result.partial:
            ...
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._event = threading.Event()
        self._deadline = (
            time.monotonic() + timeout if timeout is not None else None
        )

    def cancel(self) -> None:
        """Request cancellation; safe to call from any thread."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> float | None:
        """Seconds until the deadline, or None if there is no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())
