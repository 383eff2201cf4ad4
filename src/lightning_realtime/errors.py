"""
Error Taxonomy
==============

Errors surfaced by the realtime client.

None of these are fatal to the process. Transport errors are retried by the
connection itself and reported through its error callback; decoding errors
leave the previous display state in place.

Hierarchy:
    RealtimeError
        ├── RealtimeConnectionError  (connection failed or dropped)
        ├── TransmissionError        (a frame could not be enqueued/sent)
        ├── DecodingError            (payload is not a displayable image)
        ├── MalformedFrameError      (inbound frame missing required fields)
        └── RemoteError              (service pushed an error message)
"""

from typing import Optional


class RealtimeError(Exception):
    """Base class for all realtime client errors."""

    def __init__(self, message: str, connection_key: Optional[str] = None) -> None:
        super().__init__(message)
        self.connection_key = connection_key


class RealtimeConnectionError(RealtimeError):
    """Raised when the connection could not be established or was dropped."""
    pass


class TransmissionError(RealtimeError):
    """Raised when an outbound frame could not be enqueued or transmitted."""
    pass


class DecodingError(RealtimeError):
    """Raised when an inbound image payload cannot be decoded."""
    pass


class MalformedFrameError(RealtimeError):
    """Raised when an inbound frame cannot be parsed or lacks required fields."""
    pass


class RemoteError(RealtimeError):
    """Error message pushed by the remote service over the channel."""

    def __init__(
        self,
        message: str,
        reason: Optional[str] = None,
        connection_key: Optional[str] = None,
    ) -> None:
        super().__init__(message, connection_key=connection_key)
        self.reason = reason


__all__ = [
    "RealtimeError",
    "RealtimeConnectionError",
    "TransmissionError",
    "DecodingError",
    "MalformedFrameError",
    "RemoteError",
]
