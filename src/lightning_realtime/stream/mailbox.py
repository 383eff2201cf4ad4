"""
Outbound Mailbox
================

Async-safe bounded queue between the send throttle and the transport writer.

Design Rules:
    - Fixed maximum size (drops oldest on overflow)
    - Default size of one: while the transport is down only the newest
      frame survives
    - Exposes minimal metrics for observability
    - Does NOT encode or modify frames
"""

import asyncio
import logging
from typing import Optional

from lightning_realtime.models.request import RequestFrame


logger = logging.getLogger(__name__)


class FrameMailbox:
    """
    Bounded drop-oldest queue of outbound request frames.

    Attributes:
        maxsize: Maximum number of frames held
        dropped_count: Frames displaced by newer ones

    Example:
        mailbox = FrameMailbox()

        # Throttle side
        mailbox.put(frame)

        # Writer side
        frame = await mailbox.get()
    """

    def __init__(self, maxsize: int = 1) -> None:
        """
        Initialize mailbox.

        Args:
            maxsize: Maximum frames held. Must be >= 1.
        """
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")

        self._maxsize = maxsize
        self._queue: asyncio.Queue[RequestFrame] = asyncio.Queue(maxsize=maxsize)
        self._dropped_count: int = 0
        self._total_put: int = 0

    @property
    def maxsize(self) -> int:
        """Maximum mailbox size."""
        return self._maxsize

    @property
    def size(self) -> int:
        """Current number of frames waiting."""
        return self._queue.qsize()

    @property
    def dropped_count(self) -> int:
        """Number of frames displaced by newer ones."""
        return self._dropped_count

    def empty(self) -> bool:
        return self._queue.empty()

    def put(self, frame: RequestFrame) -> bool:
        """
        Add frame, dropping the oldest waiting frame if full.

        Returns:
            True if nothing was dropped, False otherwise.
        """
        self._total_put += 1
        dropped = False

        if self._queue.full():
            try:
                self._queue.get_nowait()
                self._dropped_count += 1
                dropped = True
                logger.debug(
                    f"Mailbox full, dropped oldest frame. "
                    f"Total dropped: {self._dropped_count}"
                )
            except asyncio.QueueEmpty:
                pass

        self._queue.put_nowait(frame)
        return not dropped

    def put_back(self, frame: RequestFrame) -> bool:
        """
        Return a frame whose transmission failed.

        The frame is only re-queued if no newer frame is waiting.

        Returns:
            True if the frame was re-queued.
        """
        if not self._queue.empty():
            return False
        self._queue.put_nowait(frame)
        return True

    async def get(self, timeout: Optional[float] = None) -> Optional[RequestFrame]:
        """
        Get next frame.

        Args:
            timeout: Maximum seconds to wait. None = wait forever.

        Returns:
            Next frame, or None if timeout occurred.
        """
        try:
            if timeout is not None:
                return await asyncio.wait_for(self._queue.get(), timeout=timeout)
            return await self._queue.get()
        except asyncio.TimeoutError:
            return None

    def clear(self) -> int:
        """
        Discard all waiting frames.

        Returns:
            Number of frames cleared.
        """
        cleared = 0
        while True:
            try:
                self._queue.get_nowait()
                cleared += 1
            except asyncio.QueueEmpty:
                break
        return cleared

    def metrics(self) -> dict:
        """Mailbox metrics for observability."""
        return {
            "size": self.size,
            "maxsize": self._maxsize,
            "dropped_count": self._dropped_count,
            "total_put": self._total_put,
        }
