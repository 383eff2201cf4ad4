"""
Wire Codec
==========

Encoding of outbound frames and decoding of inbound messages.

Binary WebSocket messages are msgpack maps; text messages are JSON objects.
Outbound frames are always msgpack because they carry a binary field.

Inbound messages fall into two kinds:
    - Control messages: maps with a "type" key (errors, notices)
    - Result messages: everything else, validated as ResultFrame

Design Rules:
    - This is the ONLY place that touches wire bytes
    - Parse failures raise MalformedFrameError, never raw library errors
"""

import json
import logging
from dataclasses import dataclass
from typing import Optional, Union

import msgpack
from pydantic import ValidationError

from lightning_realtime.errors import MalformedFrameError
from lightning_realtime.models.request import RequestFrame
from lightning_realtime.models.result import ResultFrame


logger = logging.getLogger(__name__)


ERROR_MESSAGE_TYPES = frozenset({"x-fal-error"})


@dataclass(frozen=True, slots=True)
class ControlMessage:
    """Non-result message pushed by the service."""

    type: str
    error: Optional[str] = None
    reason: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.type in ERROR_MESSAGE_TYPES


def encode_request(frame: RequestFrame) -> bytes:
    """Encode a request frame as a msgpack map."""
    return msgpack.packb(frame.to_wire(), use_bin_type=True)


def decode_message(raw: Union[bytes, str]) -> dict:
    """
    Decode a raw WebSocket message into a dict.

    Args:
        raw: Binary (msgpack) or text (JSON) message

    Returns:
        Decoded mapping

    Raises:
        MalformedFrameError: If the message cannot be decoded to a mapping
    """
    try:
        if isinstance(raw, (bytes, bytearray, memoryview)):
            data = msgpack.unpackb(bytes(raw), raw=False)
        else:
            data = json.loads(raw)
    except (msgpack.UnpackException, ValueError) as e:
        raise MalformedFrameError(f"Undecodable message: {e}") from e

    if not isinstance(data, dict):
        raise MalformedFrameError(
            f"Expected a mapping, got {type(data).__name__}"
        )
    return data


def parse_message(raw: Union[bytes, str]) -> Union[ResultFrame, ControlMessage]:
    """
    Decode and classify an inbound message.

    Returns:
        ControlMessage for maps carrying a "type" key, else a ResultFrame

    Raises:
        MalformedFrameError: If decoding or validation fails
    """
    data = decode_message(raw)

    if "type" in data:
        return ControlMessage(
            type=str(data["type"]),
            error=_optional_str(data.get("error")),
            reason=_optional_str(data.get("reason")),
        )

    try:
        return ResultFrame.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise MalformedFrameError(f"Invalid result frame ({fields})") from e


def _optional_str(value: object) -> Optional[str]:
    return None if value is None else str(value)
