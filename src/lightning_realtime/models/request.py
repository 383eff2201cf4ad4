"""
Request Frame Schema
====================

Outbound payload pushed to the remote service on every parameter change.

Output Contract (to the realtime endpoint, msgpack-encoded):
    {
        "_force_msgpack": b"",
        "enable_safety_checker": true,
        "image_size": "square_hd",
        "sync_mode": true,
        "num_images": 1,
        "num_inference_steps": "2",
        "prompt": "a lighthouse at dusk",
        "seed": 4182003
    }

Notes:
    - num_inference_steps is a text-encoded integer on the wire
    - seed is bounded by MAX_SEED so it always fits a msgpack int64
    - _force_msgpack is an empty binary field; it makes the service answer
      with binary msgpack frames so image bytes arrive unencoded
    - No identifier correlates a request with the result it produces
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Largest seed a msgpack signed integer can carry
MAX_SEED = 2**63 - 1


class ImageSize(str, Enum):
    """Output image sizes accepted by the service."""

    SQUARE_HD = "square_hd"
    SQUARE = "square"
    PORTRAIT_4_3 = "portrait_4_3"
    PORTRAIT_16_9 = "portrait_16_9"
    LANDSCAPE_4_3 = "landscape_4_3"
    LANDSCAPE_16_9 = "landscape_16_9"


class RequestFrame(BaseModel):
    """
    Merged outbound frame: fixed defaults overlaid with prompt and seed.

    Attributes:
        prompt: Current prompt text
        seed: Current seed
        num_inference_steps: Denoising steps, text-encoded
        image_size: Output size preset
        enable_safety_checker: Ask the service to filter unsafe output
        sync_mode: Return image bytes inline rather than as URLs
        num_images: Images per request
        force_msgpack: Reserved empty binary field (wire name "_force_msgpack")
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, use_enum_values=True)

    prompt: str = Field(..., description="Prompt text")

    seed: int = Field(..., ge=0, le=MAX_SEED, description="Seed controlling variation")

    num_inference_steps: str = Field(
        ...,
        description="Text-encoded integer step count",
    )

    image_size: ImageSize = Field(default=ImageSize.SQUARE_HD.value)

    enable_safety_checker: bool = Field(default=True)

    sync_mode: bool = Field(default=True)

    num_images: int = Field(default=1, ge=1)

    force_msgpack: bytes = Field(default=b"", alias="_force_msgpack")

    @field_validator("num_inference_steps", mode="before")
    @classmethod
    def _encode_steps(cls, value: object) -> str:
        steps = int(value)
        if steps < 1:
            raise ValueError("num_inference_steps must be >= 1")
        return str(steps)

    @property
    def steps(self) -> int:
        """Step count as an integer."""
        return int(self.num_inference_steps)

    def to_wire(self) -> dict:
        """Dict ready for the wire codec, using wire field names."""
        return self.model_dump(by_alias=True, mode="python")
