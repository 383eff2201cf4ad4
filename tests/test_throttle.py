"""
Throttle and Mailbox Tests
==========================

Tests for outbound coalescing.
"""

import asyncio

import pytest

from lightning_realtime.models.request import RequestFrame
from lightning_realtime.stream.mailbox import FrameMailbox
from lightning_realtime.stream.throttle import SendThrottle


def make_frame(prompt: str, seed: int = 1) -> RequestFrame:
    return RequestFrame(prompt=prompt, seed=seed, num_inference_steps=2)


class TestSendThrottle:
    """Tests for SendThrottle."""

    @pytest.mark.asyncio
    async def test_burst_emits_only_last(self):
        """A burst inside one window emits once, carrying the last item."""
        emitted = []
        throttle = SendThrottle(0.03, sink=emitted.append)

        for i in range(5):
            throttle.submit(i)

        assert emitted == []
        await asyncio.sleep(0.08)

        assert emitted == [4]
        assert throttle.submitted == 5
        assert throttle.coalesced == 4
        assert throttle.emitted == 1

    @pytest.mark.asyncio
    async def test_two_submits_in_window_emit_fewer(self):
        """Two submits closer than the interval transmit strictly fewer than two."""
        emitted = []
        throttle = SendThrottle(0.03, sink=emitted.append)

        throttle.submit("P2")
        throttle.submit("Q")
        await asyncio.sleep(0.08)

        assert emitted == ["Q"]

    @pytest.mark.asyncio
    async def test_separate_windows_each_emit(self):
        """Submits spaced wider than the interval are all emitted in order."""
        emitted = []
        throttle = SendThrottle(0.02, sink=emitted.append)

        throttle.submit("a")
        await asyncio.sleep(0.06)
        throttle.submit("b")
        await asyncio.sleep(0.06)

        assert emitted == ["a", "b"]

    @pytest.mark.asyncio
    async def test_zero_interval_is_immediate(self):
        """Interval 0 disables coalescing."""
        emitted = []
        throttle = SendThrottle(0, sink=emitted.append)

        throttle.submit(1)
        throttle.submit(2)

        assert emitted == [1, 2]
        assert throttle.coalesced == 0

    @pytest.mark.asyncio
    async def test_discard_drops_pending(self):
        """discard() forgets the pending item and disarms the timer."""
        emitted = []
        throttle = SendThrottle(0.02, sink=emitted.append)

        throttle.submit("stale")
        assert throttle.has_pending
        assert throttle.discard() is True
        await asyncio.sleep(0.05)

        assert emitted == []
        assert not throttle.has_pending

    @pytest.mark.asyncio
    async def test_discard_without_counting(self):
        emitted = []
        throttle = SendThrottle(0.02, sink=emitted.append)
        throttle.submit("x")

        assert throttle.discard(count=False) is True
        await asyncio.sleep(0.05)

        assert emitted == []
        assert throttle.coalesced == 0
        assert throttle.discard() is False

    def test_negative_interval_rejected(self):
        with pytest.raises(ValueError):
            SendThrottle(-1, sink=print)


class TestFrameMailbox:
    """Tests for FrameMailbox."""

    @pytest.mark.asyncio
    async def test_drops_oldest_when_full(self):
        """Only the newest frame survives in a size-one mailbox."""
        mailbox = FrameMailbox(maxsize=1)

        assert mailbox.put(make_frame("a")) is True
        assert mailbox.put(make_frame("b")) is False

        frame = await mailbox.get(timeout=0.1)
        assert frame.prompt == "b"
        assert mailbox.dropped_count == 1

    @pytest.mark.asyncio
    async def test_put_back_only_when_empty(self):
        """A failed frame is not re-queued over a newer one."""
        mailbox = FrameMailbox()
        mailbox.put(make_frame("newer"))

        assert mailbox.put_back(make_frame("failed")) is False
        assert (await mailbox.get(timeout=0.1)).prompt == "newer"

        assert mailbox.put_back(make_frame("failed")) is True
        assert (await mailbox.get(timeout=0.1)).prompt == "failed"

    @pytest.mark.asyncio
    async def test_get_timeout_returns_none(self):
        mailbox = FrameMailbox()
        assert await mailbox.get(timeout=0.01) is None

    def test_invalid_maxsize(self):
        with pytest.raises(ValueError):
            FrameMailbox(maxsize=0)

    def test_clear_and_metrics(self):
        mailbox = FrameMailbox(maxsize=2)
        mailbox.put(make_frame("a"))
        mailbox.put(make_frame("b"))
        assert mailbox.clear() == 2
        assert mailbox.metrics() == {
            "size": 0,
            "maxsize": 2,
            "dropped_count": 0,
            "total_put": 2,
        }
