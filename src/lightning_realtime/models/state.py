"""
Session State Models
====================

Explicit state containers shared by the synchronization components.

Core Concepts:
    - InputSnapshot: Immutable view of prompt + seed after a write
    - DisplayState: Current image handle + timing, replaced wholesale
    - ImageHandle: URI-like reference to decoded image bytes
    - InputWriter / RotatorState / ConnectionState: Discrete enums

Writers:
    prompt       <- user
    seed         <- user, SeedRotator (last write wins)
    DisplayState <- ResultReceiver only
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class InputWriter(str, Enum):
    """Which component last wrote an input field."""

    INITIAL = "INITIAL"
    USER = "USER"
    ROTATOR = "ROTATOR"


class RotatorState(str, Enum):
    """
    SeedRotator states.

    Attributes:
        IDLE: No timer armed
        RUNNING: Timer armed, seed regenerated every period
    """

    IDLE = "IDLE"
    RUNNING = "RUNNING"


class ConnectionState(str, Enum):
    """
    ConnectionHandle lifecycle states.

    Attributes:
        IDLE: Created, run loop not started
        CONNECTING: Opening the transport
        OPEN: Transport open, frames flowing
        RECONNECTING: Waiting out backoff after a drop
        CLOSED: Closed by the owner
        FAILED: Gave up after exhausting reconnect attempts
    """

    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    OPEN = "OPEN"
    RECONNECTING = "RECONNECTING"
    CLOSED = "CLOSED"
    FAILED = "FAILED"


@dataclass(frozen=True, slots=True)
class InputSnapshot:
    """
    Immutable prompt + seed after a write.

    Attributes:
        prompt: Current prompt text
        seed: Current seed
        revision: Monotonic write counter
        writer: Component that made this write
        changed: Name of the field this write touched
    """

    prompt: str
    seed: int
    revision: int
    writer: InputWriter
    changed: str


@dataclass(frozen=True, slots=True)
class ImageHandle:
    """
    Reference to a decoded image held by an ImageStore.

    Valid until released; the store drops the bytes on release.
    """

    handle_id: str
    uri: str
    content_type: str
    width: int
    height: int

    def __str__(self) -> str:
        return self.uri


@dataclass(frozen=True, slots=True)
class DisplayState:
    """
    What the presentation layer should show right now.

    Derived and non-authoritative. Always reflects the most recently
    arrived result frame, never a merge of two frames.

    Attributes:
        image: Handle to the decoded first image
        inference_time: Server inference duration in seconds
        sequence: Arrival order of the frame that produced this state
        received_at: Wall-clock arrival time
        seed: Seed reported by the service, if any
    """

    image: ImageHandle
    inference_time: float
    sequence: int
    received_at: float
    seed: Optional[int] = None

    @property
    def inference_ms(self) -> int:
        """Inference duration rounded to whole milliseconds."""
        return round(self.inference_time * 1000)
