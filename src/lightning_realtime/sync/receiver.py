"""
Result Receiver
===============

Turns inbound result frames into DisplayState.

This receiver:
    - Decodes the first image of each result into an ImageHandle
    - Extracts the server inference duration
    - Replaces DisplayState wholesale (never merges two frames)
    - Releases the superseded image handle
    - Reports DecodingError and keeps the previous DisplayState on failure

Ordering:
    DisplayState follows the most recently ARRIVED result, not the most
    recently sent request; the protocol has no correlation id.
"""

import logging
import time
from typing import Callable, List, Optional

from lightning_realtime.errors import DecodingError
from lightning_realtime.models.result import ResultFrame
from lightning_realtime.models.state import DisplayState
from lightning_realtime.observability.reporter import ErrorReporter
from lightning_realtime.stream.image_decoder import decode_result_image
from lightning_realtime.sync.images import ImageStore


logger = logging.getLogger(__name__)


DisplayListener = Callable[[DisplayState], None]


class DisplayStore:
    """
    Holder of the current DisplayState.

    Only ResultReceiver writes here. Readers get the whole state or nothing.
    """

    def __init__(self) -> None:
        self._state: Optional[DisplayState] = None
        self._listeners: List[DisplayListener] = []

    @property
    def current(self) -> Optional[DisplayState]:
        return self._state

    def subscribe(self, listener: DisplayListener) -> Callable[[], None]:
        """
        Register a listener called with each new DisplayState.

        Returns:
            Function that removes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def replace(self, state: DisplayState) -> Optional[DisplayState]:
        """
        Swap in a new state and notify listeners.

        Returns:
            The state that was replaced.
        """
        previous = self._state
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Display listener failed")
        return previous

    def reset(self) -> Optional[DisplayState]:
        """Forget the current state; returns it."""
        previous = self._state
        self._state = None
        return previous


class ResultReceiver:
    """
    Result callback for a ConnectionHandle.

    Attributes:
        frames_received: Result frames seen
        frames_displayed: Result frames that became DisplayState

    Example:
        receiver = ResultReceiver(display, images, reporter)
        registry.open(key, route, 0.064, on_result=receiver.on_result)
    """

    def __init__(
        self,
        display: DisplayStore,
        images: ImageStore,
        reporter: Optional[ErrorReporter] = None,
        connection_key: Optional[str] = None,
    ) -> None:
        self.display = display
        self.images = images
        self.reporter = reporter or ErrorReporter()
        self.connection_key = connection_key
        self.frames_received: int = 0
        self.frames_displayed: int = 0

    def on_result(self, frame: ResultFrame) -> None:
        """Decode a result frame and publish it as the new DisplayState."""
        self.frames_received += 1
        first = frame.images[0] if frame.images else None

        try:
            decoded = decode_result_image(first)
        except DecodingError as e:
            e.connection_key = e.connection_key or self.connection_key
            self.reporter.report(e)
            return

        handle = self.images.issue(decoded)
        self.frames_displayed += 1
        state = DisplayState(
            image=handle,
            inference_time=frame.inference_time,
            sequence=self.frames_received,
            received_at=time.time(),
            seed=frame.seed,
        )
        previous = self.display.replace(state)
        self.reporter.clear()

        if previous is not None:
            self.images.release(previous.image)

        logger.debug(
            f"Displayed frame #{state.sequence}: {decoded!r}, "
            f"inference={state.inference_ms}ms"
        )

    def release_all(self) -> None:
        """Drop the current DisplayState and free its image."""
        previous = self.display.reset()
        if previous is not None:
            self.images.release(previous.image)
