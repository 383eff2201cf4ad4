"""
Stream Module
=============

Realtime channel components.

This module provides the transport layer for lightning_realtime:
    - ConnectionRegistry: One live ConnectionHandle per connection key
    - ConnectionHandle: Throttled outbound push, async inbound dispatch
    - SendThrottle: Latest-wins coalescing per throttle window
    - FrameMailbox: Bounded drop-oldest outbound queue
    - codec: msgpack / JSON wire codec
    - image_decoder: Result image validation

Example:
    from lightning_realtime.stream import ConnectionRegistry

    async with ConnectionRegistry(base_url="ws://localhost:3000/api/realtime") as registry:
        handle = registry.open("lightning-sdxl", "fal-ai/fast-lightning-sdxl", 0.064, on_result)
        handle.send(frame)
"""

from lightning_realtime.stream.connection import ConnectionHandle, ConnectionMetrics
from lightning_realtime.stream.mailbox import FrameMailbox
from lightning_realtime.stream.registry import ConnectionRegistry
from lightning_realtime.stream.throttle import SendThrottle


__all__ = [
    "ConnectionHandle",
    "ConnectionMetrics",
    "ConnectionRegistry",
    "FrameMailbox",
    "SendThrottle",
]
