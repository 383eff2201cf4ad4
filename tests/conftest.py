"""
Test Configuration
==================

Pytest fixtures and test helpers for lightning_realtime.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Callable, List, Optional

import cv2
import msgpack
import numpy as np
import pytest

from lightning_realtime.config import (
    ConnectionConfig,
    GenerationConfig,
    LoggingConfig,
    RotatorConfig,
    SessionConfig,
    Settings,
)


_CLOSE = object()


class FakeWebSocket:
    """In-memory stand-in for a websockets client connection."""

    def __init__(self, url: str) -> None:
        self.url = url
        self.sent: List[bytes] = []
        self.closed = False
        self.fail_sends = False
        self._incoming: asyncio.Queue = asyncio.Queue()

    def push(self, message) -> None:
        """Queue an inbound message (bytes, str, or an exception to raise)."""
        self._incoming.put_nowait(message)

    def drop(self, error: Optional[BaseException] = None) -> None:
        """End the inbound stream, optionally with an error."""
        self._incoming.put_nowait(error if error is not None else _CLOSE)

    def sent_frames(self) -> List[dict]:
        return [msgpack.unpackb(raw, raw=False) for raw in self.sent]

    async def send(self, data) -> None:
        if self.fail_sends or self.closed:
            raise ConnectionResetError("send on broken socket")
        self.sent.append(data)

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._incoming.put_nowait(_CLOSE)

    def __aiter__(self) -> "FakeWebSocket":
        return self

    async def __anext__(self):
        message = await self._incoming.get()
        if message is _CLOSE:
            raise StopAsyncIteration
        if isinstance(message, BaseException):
            raise message
        return message


class FakeConnector:
    """
    Transport factory matching websockets.connect's call shape.

    Attributes:
        sockets: Every socket handed out, in order
        calls: (url, kwargs) per connect attempt
        fail_first: Number of connect attempts that raise OSError
    """

    def __init__(self, fail_first: int = 0, always_fail: bool = False) -> None:
        self.sockets: List[FakeWebSocket] = []
        self.calls: List[tuple] = []
        self.fail_first = fail_first
        self.always_fail = always_fail

    @property
    def latest(self) -> FakeWebSocket:
        return self.sockets[-1]

    def __call__(self, url: str, **kwargs):
        self.calls.append((url, kwargs))
        return self._connect(url)

    @asynccontextmanager
    async def _connect(self, url: str):
        if self.always_fail or len(self.calls) <= self.fail_first:
            raise OSError("connection refused")
        ws = FakeWebSocket(url)
        self.sockets.append(ws)
        try:
            yield ws
        finally:
            ws.closed = True


async def eventually(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Poll `predicate` on the event loop until it holds or `timeout` passes."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        await asyncio.sleep(0.005)
    return predicate()


def encode_jpeg(width: int = 12, height: int = 8, value: int = 128) -> bytes:
    """Encode a flat gray JPEG of the given size."""
    image = np.full((height, width, 3), value, dtype=np.uint8)
    ok, buffer = cv2.imencode(".jpg", image)
    assert ok
    return buffer.tobytes()


def result_message(
    content: Optional[bytes],
    inference: float = 0.25,
    seed: Optional[int] = None,
) -> bytes:
    """Msgpack-encoded result frame carrying one image (or none)."""
    images = [] if content is None else [{"content": content, "content_type": "image/jpeg"}]
    payload = {"images": images, "timings": {"inference": inference}}
    if seed is not None:
        payload["seed"] = seed
    return msgpack.packb(payload, use_bin_type=True)


@pytest.fixture
def jpeg_bytes() -> bytes:
    """A real 12x8 JPEG."""
    return encode_jpeg()


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Fast settings: short throttle and backoff, rotator disabled, marker in tmp."""
    return Settings(
        connection=ConnectionConfig(
            base_url="ws://test/api/realtime",
            app_route="fal-ai/fast-lightning-sdxl",
            connection_key="lightning-sdxl",
            throttle_interval_ms=30,
            reconnect_backoff_ms=10,
            max_backoff_ms=40,
            close_timeout_seconds=1.0,
        ),
        generation=GenerationConfig(default_prompt="P"),
        rotator=RotatorConfig(enabled=False, period_ms=20),
        session=SessionConfig(marker_path=str(tmp_path / "state" / "session.marker")),
        logging=LoggingConfig(level="DEBUG", format="text"),
    )
