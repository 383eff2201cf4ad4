"""
Input Synchronizer
==================

Merges the current prompt and seed with the fixed generation defaults and
pushes the result through the connection.

Frame variants:
    - Quality frame: sent once per session on activation, with the higher
      step count, bypassing the throttle
    - Interactive frame: sent on every later input change, with the
      baseline step count, through the throttle
"""

import logging
from typing import Callable, Optional

from lightning_realtime.config import GenerationConfig
from lightning_realtime.models.request import RequestFrame
from lightning_realtime.models.state import InputSnapshot
from lightning_realtime.stream.connection import ConnectionHandle
from lightning_realtime.sync.inputs import InputStore


logger = logging.getLogger(__name__)


class InputSynchronizer:
    """
    Forwards input changes to a ConnectionHandle as RequestFrames.

    Attributes:
        activated: Whether the quality first frame has been sent
        frames_sent: Frames handed to the connection

    Example:
        synchronizer = InputSynchronizer(handle, store, settings.generation)
        synchronizer.activate()   # quality frame, subscribes to the store
        store.set_prompt("Q")     # interactive frame via the throttle
    """

    def __init__(
        self,
        connection: ConnectionHandle,
        inputs: InputStore,
        generation: Optional[GenerationConfig] = None,
    ) -> None:
        self.connection = connection
        self.inputs = inputs
        self.generation = generation or GenerationConfig()
        self.activated: bool = False
        self.frames_sent: int = 0
        self._unsubscribe: Optional[Callable[[], None]] = None

    def build_frame(self, prompt: str, seed: int, steps: Optional[int] = None) -> RequestFrame:
        """Overlay prompt and seed onto the fixed defaults."""
        generation = self.generation
        return RequestFrame(
            prompt=prompt,
            seed=seed,
            num_inference_steps=steps if steps is not None else generation.interactive_steps,
            image_size=generation.image_size,
            enable_safety_checker=generation.enable_safety_checker,
            sync_mode=generation.sync_mode,
            num_images=generation.num_images,
        )

    def activate(self) -> bool:
        """
        Send the quality first frame and start following input changes.

        Only the first call per synchronizer does anything.

        Returns:
            True if this call activated the synchronizer.
        """
        if self.activated:
            return False

        self.activated = True
        snapshot = self.inputs.snapshot()
        frame = self.build_frame(
            snapshot.prompt,
            snapshot.seed,
            steps=self.generation.quality_steps,
        )
        if self.connection.send_now(frame):
            self.frames_sent += 1
        logger.info(
            f"Session activated: quality frame steps={frame.num_inference_steps} "
            f"seed={frame.seed}"
        )

        self._unsubscribe = self.inputs.subscribe(self.on_input_changed)
        return True

    def deactivate(self) -> None:
        """Stop following input changes."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def on_input_changed(self, snapshot: InputSnapshot) -> None:
        """Push an interactive frame for the latest prompt and seed."""
        frame = self.build_frame(snapshot.prompt, snapshot.seed)
        if self.connection.send(frame):
            self.frames_sent += 1
