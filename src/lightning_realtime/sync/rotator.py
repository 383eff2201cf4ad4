"""
Seed Rotator
============

Free-running timer that regenerates the seed on a fixed cadence.

States:
    IDLE    → RUNNING  on start()
    RUNNING → IDLE     on stop()

Each tick draws a new seed and writes it into the InputStore as the
ROTATOR writer, which re-triggers the InputSynchronizer exactly like a
user edit of the seed field. After stop() returns no further ticks occur.
"""

import asyncio
import logging
from typing import Callable, Optional

from lightning_realtime.models.state import InputWriter, RotatorState
from lightning_realtime.sync.inputs import InputStore
from lightning_realtime.sync.seed import random_seed


logger = logging.getLogger(__name__)


class SeedRotator:
    """
    Periodic seed writer.

    Attributes:
        period: Seconds between ticks
        ticks: Number of seeds written

    Example:
        rotator = SeedRotator(store, period=0.5)
        rotator.start()
        ...
        await rotator.stop()
    """

    def __init__(
        self,
        inputs: InputStore,
        period: float = 0.5,
        seed_source: Callable[[], str] = random_seed,
    ) -> None:
        """
        Initialize rotator.

        Args:
            inputs: Store that receives the new seeds
            period: Seconds between ticks (> 0)
            seed_source: Produces the next seed as text
        """
        if period <= 0:
            raise ValueError("period must be positive")

        self.inputs = inputs
        self.period = period
        self._seed_source = seed_source
        self._state = RotatorState.IDLE
        self._task: Optional[asyncio.Task] = None
        self._stop_event: asyncio.Event = asyncio.Event()
        self.ticks: int = 0

    @property
    def state(self) -> RotatorState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is RotatorState.RUNNING

    def start(self) -> bool:
        """
        Arm the timer (IDLE → RUNNING).

        Returns:
            False if already running.
        """
        if self._state is RotatorState.RUNNING:
            return False

        self._stop_event.clear()
        self._state = RotatorState.RUNNING
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(), name="seed-rotator")
        logger.info(f"SeedRotator started: period={self.period * 1000:.0f}ms")
        return True

    async def stop(self) -> bool:
        """
        Cancel the timer (RUNNING → IDLE).

        Returns:
            False if already idle.
        """
        if self._state is RotatorState.IDLE:
            return False

        self._state = RotatorState.IDLE
        self._stop_event.set()
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info(f"SeedRotator stopped after {self.ticks} ticks")
        return True

    def tick(self) -> None:
        """Write one new seed (no-op unless RUNNING)."""
        if self._state is not RotatorState.RUNNING:
            return
        seed = self._seed_source()
        self.ticks += 1
        self.inputs.set_seed(seed, writer=InputWriter.ROTATOR)

    async def _run(self) -> None:
        while self._state is RotatorState.RUNNING:
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.period)
                break
            except asyncio.TimeoutError:
                pass

            try:
                self.tick()
            except Exception:
                logger.exception("Seed rotation failed")
