"""
Input Synchronization Tests
===========================

Tests for InputStore, InputSynchronizer and SeedRotator.
"""

import asyncio
import itertools

import pytest

from lightning_realtime.config import GenerationConfig
from lightning_realtime.models.state import InputWriter, RotatorState
from lightning_realtime.sync.inputs import InputStore
from lightning_realtime.sync.rotator import SeedRotator
from lightning_realtime.sync.synchronizer import InputSynchronizer

from conftest import eventually


class RecordingConnection:
    """Connection stand-in that records what would be transmitted."""

    def __init__(self) -> None:
        self.sent = []
        self.sent_now = []

    def send(self, frame) -> bool:
        self.sent.append(frame)
        return True

    def send_now(self, frame) -> bool:
        self.sent_now.append(frame)
        return True


@pytest.fixture
def store() -> InputStore:
    return InputStore(prompt="P", seed=123)


@pytest.fixture
def connection() -> RecordingConnection:
    return RecordingConnection()


class TestInputStore:
    """Tests for InputStore."""

    def test_writes_bump_revision_and_notify(self, store):
        seen = []
        store.subscribe(seen.append)

        store.set_prompt("Q")
        store.set_seed("42", writer=InputWriter.ROTATOR)

        assert [s.revision for s in seen] == [1, 2]
        assert seen[0].changed == "prompt"
        assert seen[1].writer is InputWriter.ROTATOR
        assert (store.prompt, store.seed) == ("Q", 42)

    def test_invalid_seed_leaves_state_unchanged(self, store):
        seen = []
        store.subscribe(seen.append)

        with pytest.raises(ValueError):
            store.set_seed("abc")

        assert store.seed == 123
        assert store.revision == 0
        assert seen == []

    def test_fields_are_independent(self, store):
        """A seed write between prompt writes keeps both latest values."""
        store.set_prompt("Qu")
        store.set_seed(991, writer=InputWriter.ROTATOR)
        store.set_prompt("Que")

        snapshot = store.snapshot()
        assert (snapshot.prompt, snapshot.seed) == ("Que", 991)


class TestInputSynchronizer:
    """Tests for InputSynchronizer."""

    def test_activation_sends_quality_frame(self, store, connection):
        synchronizer = InputSynchronizer(connection, store, GenerationConfig())

        assert synchronizer.activate()

        assert connection.sent == []
        [frame] = connection.sent_now
        wire = frame.to_wire()
        assert wire["prompt"] == "P"
        assert wire["seed"] == 123
        assert wire["num_inference_steps"] == "4"
        assert wire["image_size"] == "square_hd"
        assert wire["_force_msgpack"] == b""

    def test_activation_happens_once(self, store, connection):
        synchronizer = InputSynchronizer(connection, store)

        synchronizer.activate()
        assert synchronizer.activate() is False
        assert len(connection.sent_now) == 1

    def test_edits_send_interactive_frames(self, store, connection):
        synchronizer = InputSynchronizer(connection, store)
        synchronizer.activate()

        for prompt in ["Q", "Qu", "Que"]:
            store.set_prompt(prompt)

        assert [f.prompt for f in connection.sent] == ["Q", "Qu", "Que"]
        assert all(f.num_inference_steps == "2" for f in connection.sent)
        assert synchronizer.frames_sent == 4

    def test_rotation_during_prompt_edit(self, store, connection):
        """A rotator tick mid-edit produces frames carrying both latest values."""
        synchronizer = InputSynchronizer(connection, store)
        synchronizer.activate()

        store.set_prompt("Qu")
        store.set_seed(991, writer=InputWriter.ROTATOR)
        store.set_prompt("Que")

        last = connection.sent[-1]
        assert (last.prompt, last.seed) == ("Que", 991)

    def test_configured_defaults_are_merged(self, store, connection):
        generation = GenerationConfig(
            image_size="landscape_16_9",
            enable_safety_checker=False,
            interactive_steps=3,
            quality_steps=8,
        )
        synchronizer = InputSynchronizer(connection, store, generation)
        synchronizer.activate()
        store.set_seed(7)

        assert connection.sent_now[0].num_inference_steps == "8"
        wire = connection.sent[0].to_wire()
        assert wire["num_inference_steps"] == "3"
        assert wire["image_size"] == "landscape_16_9"
        assert wire["enable_safety_checker"] is False

    def test_no_sends_after_deactivate(self, store, connection):
        synchronizer = InputSynchronizer(connection, store)
        synchronizer.activate()
        synchronizer.deactivate()

        store.set_prompt("ignored")
        assert connection.sent == []


class TestSeedRotator:
    """Tests for SeedRotator."""

    @pytest.mark.asyncio
    async def test_ticks_while_running(self, store):
        seeds = itertools.count(1000)
        rotator = SeedRotator(store, period=0.01, seed_source=lambda: str(next(seeds)))

        assert rotator.start()
        assert rotator.state is RotatorState.RUNNING
        assert await eventually(lambda: rotator.ticks >= 3)
        await rotator.stop()

        assert store.seed >= 1000
        assert store.snapshot().writer is InputWriter.ROTATOR

    @pytest.mark.asyncio
    async def test_no_ticks_after_stop(self, store):
        rotator = SeedRotator(store, period=0.01)
        rotator.start()
        assert await eventually(lambda: rotator.ticks >= 1)

        assert await rotator.stop()
        ticks, revision = rotator.ticks, store.revision
        await asyncio.sleep(0.05)

        assert rotator.state is RotatorState.IDLE
        assert (rotator.ticks, store.revision) == (ticks, revision)

    @pytest.mark.asyncio
    async def test_start_and_stop_are_idempotent(self, store):
        rotator = SeedRotator(store, period=0.05)

        assert await rotator.stop() is False
        assert rotator.start() is True
        assert rotator.start() is False
        assert await rotator.stop() is True
        assert await rotator.stop() is False

    def test_tick_is_noop_when_idle(self, store):
        rotator = SeedRotator(store, period=0.05, seed_source=lambda: "5")
        rotator.tick()

        assert rotator.ticks == 0
        assert store.seed == 123

    @pytest.mark.asyncio
    async def test_bad_seed_source_does_not_stop_rotation(self, store):
        values = iter(["oops", "17", "18", "19", "20", "21"])
        rotator = SeedRotator(store, period=0.01, seed_source=lambda: next(values, "22"))

        rotator.start()
        assert await eventually(lambda: store.seed >= 17)
        await rotator.stop()

    @pytest.mark.parametrize("period", [0, -0.5])
    def test_invalid_period(self, store, period):
        with pytest.raises(ValueError):
            SeedRotator(store, period=period)
