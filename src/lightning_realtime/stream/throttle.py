"""
Send Throttle
=============

Windowed trailing-edge coalescing for outbound frames.

Behavior:
    - The first submit after an idle period opens a window of `interval`
    - Every submit inside the window replaces the pending frame
    - When the window closes, exactly the latest pending frame is emitted
    - interval == 0 emits every frame immediately

For n >= 2 submits inside one window, one frame is emitted, and it is
always the last one submitted.

Design Rules:
    - Runs on the event loop thread only (uses loop.call_later)
    - Never awaits; emitting is a synchronous hand-off to a sink
"""

import asyncio
import logging
from typing import Callable, Generic, Optional, TypeVar


logger = logging.getLogger(__name__)


T = TypeVar("T")


class SendThrottle(Generic[T]):
    """
    Coalesce rapid submissions into at most one emission per interval.

    Attributes:
        interval: Window length in seconds
        submitted: Total submissions
        coalesced: Submissions replaced before emission
        emitted: Frames handed to the sink

    Example:
        throttle = SendThrottle(0.064, sink=mailbox.put)
        throttle.submit(frame_a)
        throttle.submit(frame_b)   # frame_a is dropped
        # ~64ms later: mailbox.put(frame_b)
    """

    def __init__(self, interval: float, sink: Callable[[T], object]) -> None:
        """
        Initialize throttle.

        Args:
            interval: Window length in seconds (>= 0)
            sink: Called with each emitted item
        """
        if interval < 0:
            raise ValueError("interval must be >= 0")

        self.interval = interval
        self._sink = sink
        self._pending: Optional[T] = None
        self._has_pending: bool = False
        self._timer: Optional[asyncio.TimerHandle] = None

        self.submitted: int = 0
        self.coalesced: int = 0
        self.emitted: int = 0

    @property
    def has_pending(self) -> bool:
        """Whether a frame is waiting for its window to close."""
        return self._has_pending

    def submit(self, item: T) -> None:
        """Submit an item; it replaces any item pending in the current window."""
        self.submitted += 1

        if self.interval == 0:
            self._emit(item)
            return

        if self._has_pending:
            self.coalesced += 1
            logger.debug(f"Coalesced pending frame (total coalesced: {self.coalesced})")

        self._pending = item
        self._has_pending = True

        if self._timer is None:
            loop = asyncio.get_running_loop()
            self._timer = loop.call_later(self.interval, self._flush)

    def discard(self, count: bool = True) -> bool:
        """
        Drop the pending item without emitting it and disarm the timer.

        Args:
            count: Record the dropped item as coalesced

        Returns:
            True if an item was pending.
        """
        had_pending = self._has_pending
        if had_pending and count:
            self.coalesced += 1
        self._pending = None
        self._has_pending = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        return had_pending

    def _flush(self) -> None:
        self._timer = None
        if not self._has_pending:
            return
        item = self._pending
        self._pending = None
        self._has_pending = False
        self._emit(item)

    def _emit(self, item: T) -> None:
        self.emitted += 1
        self._sink(item)
