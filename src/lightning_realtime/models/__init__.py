"""
Data Models
===========

Pydantic wire models and state containers for the realtime client.

Models:
    Wire:
        - RequestFrame, ImageSize: Outbound payload
        - ResultFrame, ResultImage, ResultTimings: Inbound payload

    State:
        - InputSnapshot, InputWriter: Prompt + seed state
        - DisplayState, ImageHandle: What to show
        - RotatorState, ConnectionState: Lifecycle enums
"""

from lightning_realtime.models.request import ImageSize, RequestFrame
from lightning_realtime.models.result import ResultFrame, ResultImage, ResultTimings
from lightning_realtime.models.state import (
    ConnectionState,
    DisplayState,
    ImageHandle,
    InputSnapshot,
    InputWriter,
    RotatorState,
)

__all__ = [
    # Wire
    "ImageSize",
    "RequestFrame",
    "ResultFrame",
    "ResultImage",
    "ResultTimings",
    # State
    "ConnectionState",
    "DisplayState",
    "ImageHandle",
    "InputSnapshot",
    "InputWriter",
    "RotatorState",
]
