"""
Error Reporter
==============

Observability channel for non-fatal client errors.

Every component that can fail without stopping the session reports here:
the connection (transport, parse, remote errors) and the result receiver
(decoding errors). The reporter keeps a failure indicator that the
presentation layer can show next to a stale image.

DESIGN RULES:
    - Never raises; reporting must not disturb the event loop
    - Does NOT influence connection or display state
"""

import logging
import time
from collections import Counter
from typing import Callable, List, Optional

from lightning_realtime.errors import RealtimeError


logger = logging.getLogger(__name__)


ErrorListener = Callable[[RealtimeError], None]


class ErrorReporter:
    """
    Counts, logs and fans out reported errors.

    Attributes:
        total: Number of errors reported
        last_error: Most recent error, or None after clear()
        last_error_at: Wall-clock time of last_error
    """

    def __init__(self) -> None:
        self._counts: Counter = Counter()
        self._listeners: List[ErrorListener] = []
        self.total: int = 0
        self.last_error: Optional[RealtimeError] = None
        self.last_error_at: Optional[float] = None

    @property
    def has_failure(self) -> bool:
        """Whether an error has been reported since the last clear()."""
        return self.last_error is not None

    def subscribe(self, listener: ErrorListener) -> Callable[[], None]:
        """
        Register a listener for reported errors.

        Returns:
            Function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def report(self, error: RealtimeError) -> None:
        """Record an error and notify listeners."""
        name = type(error).__name__
        self._counts[name] += 1
        self.total += 1
        self.last_error = error
        self.last_error_at = time.time()

        key = f" [{error.connection_key}]" if error.connection_key else ""
        logger.warning(f"{name}{key}: {error}")

        for listener in list(self._listeners):
            try:
                listener(error)
            except Exception:
                logger.exception("Error listener failed")

    def clear(self) -> None:
        """Reset the failure indicator (counts are kept)."""
        self.last_error = None
        self.last_error_at = None

    def count(self, error_type: type) -> int:
        """Number of reported errors of exactly `error_type`."""
        return self._counts[error_type.__name__]

    def metrics(self) -> dict:
        """Reporter metrics for observability."""
        return {
            "total": self.total,
            "by_type": dict(self._counts),
            "last_error": str(self.last_error) if self.last_error else None,
            "last_error_type": type(self.last_error).__name__ if self.last_error else None,
            "last_error_at": self.last_error_at,
        }
