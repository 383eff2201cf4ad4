"""
Lightning Realtime
==================

Realtime synchronization client for a remote generative-image service.

Prompt text and a numeric seed are edited locally, pushed over a single
persistent connection, and rendered frames stream back asynchronously.

Components:
    - stream: Connection lifecycle, throttled outbound push, inbound decoding
    - sync: Input synchronization, result handling, seed rotation, sessions
    - observability: Error reporting channel
    - models: Wire and state models

Example:
    from lightning_realtime.config import settings
    from lightning_realtime.sync import RealtimeSession

    async with RealtimeSession(settings) as session:
        session.set_prompt("a lighthouse at dusk")
"""

__version__ = "0.1.0"
__author__ = "Lightning Realtime Project"

__all__ = [
    "__version__",
]
