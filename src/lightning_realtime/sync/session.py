"""
Realtime Session
================

Wires the synchronization components into one scoped session.

Control flow:
    user edit → InputStore → InputSynchronizer → ConnectionHandle (throttled)
        → remote service → ResultReceiver → DisplayStore
    SeedRotator → InputStore (seed) → InputSynchronizer → ...

Lifecycle:
    start(): open or reuse the connection, write the session marker,
             send the quality first frame, start the rotator
    stop():  stop the rotator, stop following inputs, detach from the
             connection, release the image,
             close the registry if this session created it

Example:
    async with RealtimeSession(settings) as session:
        session.set_prompt("a lighthouse at dusk")
        state = session.display
"""

import logging
from typing import Optional, Union

from lightning_realtime.config import Settings
from lightning_realtime.models.state import DisplayState, InputWriter
from lightning_realtime.observability.reporter import ErrorReporter
from lightning_realtime.stream.connection import ConnectionHandle, Connector
from lightning_realtime.stream.registry import ConnectionRegistry
from lightning_realtime.sync.images import ImageStore
from lightning_realtime.sync.inputs import InputStore
from lightning_realtime.sync.marker import write_session_marker
from lightning_realtime.sync.receiver import DisplayStore, ResultReceiver
from lightning_realtime.sync.rotator import SeedRotator
from lightning_realtime.sync.seed import random_seed
from lightning_realtime.sync.synchronizer import InputSynchronizer


logger = logging.getLogger(__name__)


class RealtimeSession:
    """
    One interactive session against the realtime endpoint.

    Attributes:
        settings: Loaded configuration
        inputs: Prompt + seed state
        display_store: Current DisplayState holder
        images: Image handle table
        reporter: Error observability channel
        receiver: Result callback
        rotator: Seed rotator (None when disabled)
        connection: Live ConnectionHandle once started
    """

    def __init__(
        self,
        settings: Settings,
        registry: Optional[ConnectionRegistry] = None,
        connector: Optional[Connector] = None,
        prompt: Optional[str] = None,
        seed: Optional[Union[int, str]] = None,
    ) -> None:
        """
        Initialize session.

        Args:
            settings: Loaded configuration
            registry: Shared registry; the session creates and owns one if None
            connector: Transport factory for an owned registry
            prompt: Initial prompt (defaults to the configured prompt)
            seed: Initial seed (random if None)
        """
        self.settings = settings
        self._owns_registry = registry is None
        if registry is None:
            registry = ConnectionRegistry.from_config(settings.connection, connector=connector)
        self.registry = registry

        self.inputs = InputStore(
            prompt=prompt if prompt is not None else settings.generation.default_prompt,
            seed=seed if seed is not None else random_seed(),
        )
        self.display_store = DisplayStore()
        self.images = ImageStore()
        self.reporter = ErrorReporter()
        self.receiver = ResultReceiver(
            display=self.display_store,
            images=self.images,
            reporter=self.reporter,
            connection_key=settings.connection.connection_key,
        )
        self.rotator: Optional[SeedRotator] = None
        if settings.rotator.enabled:
            self.rotator = SeedRotator(
                self.inputs,
                period=settings.rotator.period_ms / 1000.0,
            )

        self.connection: Optional[ConnectionHandle] = None
        self.synchronizer: Optional[InputSynchronizer] = None
        self._started: bool = False

    @property
    def started(self) -> bool:
        return self._started

    @property
    def display(self) -> Optional[DisplayState]:
        """Current DisplayState, or None before the first good frame."""
        return self.display_store.current

    async def start(self) -> None:
        """Open the connection and activate the session (once)."""
        if self._started:
            return
        self._started = True

        config = self.settings.connection
        self.connection = self.registry.open(
            key=config.connection_key,
            app_route=config.app_route,
            throttle_interval=config.throttle_interval,
            on_result=self.receiver.on_result,
            on_error=self.reporter.report,
        )
        # A reused handle may still point at a previous session's callbacks
        self.connection.set_callbacks(self.receiver.on_result, self.reporter.report)

        write_session_marker(
            self.settings.session.marker_path,
            self.settings.session.marker_value,
        )

        self.synchronizer = InputSynchronizer(
            self.connection,
            self.inputs,
            self.settings.generation,
        )
        self.synchronizer.activate()

        if self.rotator is not None:
            self.rotator.start()

        logger.info(
            f"Session started on {config.connection_key!r} "
            f"(throttle={config.throttle_interval_ms}ms, "
            f"rotator={'on' if self.rotator else 'off'})"
        )

    async def stop(self) -> None:
        """Tear the session down; no seed mutations happen after this returns."""
        if not self._started:
            return
        self._started = False

        if self.rotator is not None:
            await self.rotator.stop()
        if self.synchronizer is not None:
            self.synchronizer.deactivate()
        # A shared handle outlives this session; stop it feeding our stores
        if self.connection is not None:
            self.connection.detach()
        self.receiver.release_all()

        if self._owns_registry:
            await self.registry.close_all()

        logger.info("Session stopped")

    async def __aenter__(self) -> "RealtimeSession":
        await self.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.stop()

    def set_prompt(self, prompt: str) -> None:
        """User edit of the prompt field."""
        self.inputs.set_prompt(prompt, writer=InputWriter.USER)

    def set_seed(self, seed: Union[int, str]) -> None:
        """
        User edit of the seed field.

        Raises:
            ValueError: If `seed` is not a non-negative integer
        """
        self.inputs.set_seed(seed, writer=InputWriter.USER)

    def status(self) -> dict:
        """Connection, rotator and error status for observability."""
        connection = self.connection
        display = self.display
        return {
            "started": self._started,
            "connection": {
                "key": self.settings.connection.connection_key,
                "state": connection.state.value if connection else None,
                "frames_coalesced": connection.frames_coalesced if connection else 0,
                "metrics": connection.metrics.to_dict() if connection else None,
            },
            "inputs": {
                "prompt": self.inputs.prompt,
                "seed": self.inputs.seed,
                "revision": self.inputs.revision,
            },
            "rotator": {
                "state": self.rotator.state.value if self.rotator else None,
                "ticks": self.rotator.ticks if self.rotator else 0,
            },
            "display": {
                "sequence": display.sequence if display else None,
                "live_images": self.images.live_count,
            },
            "errors": self.reporter.metrics(),
        }
