"""
Result Frame Schema
===================

Inbound payload pushed by the remote service whenever a render completes.

Input Contract (from the realtime endpoint):
    {
        "images": [
            {"content": b"<jpeg bytes>", "content_type": "image/jpeg",
             "width": 1024, "height": 1024}
        ],
        "timings": {"inference": 0.183},
        "seed": 4182003,
        "has_nsfw_concepts": [false]
    }

Guarantees:
    - None on ordering: results may arrive in any order relative to sends
    - No correlation id links a result to the request that caused it

An empty images list is a valid frame at this layer; it is rejected later
when the receiver tries to decode it.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ResultImage(BaseModel):
    """
    One generated image.

    Attributes:
        content: Raw encoded image bytes (sync mode)
        url: Image URL; may be a base64 data URI
        content_type: MIME type of the encoded bytes
        width: Reported width in pixels
        height: Reported height in pixels
    """

    model_config = ConfigDict(extra="ignore")

    content: Optional[bytes] = Field(default=None)
    url: Optional[str] = Field(default=None)
    content_type: str = Field(default="image/jpeg")
    width: Optional[int] = Field(default=None, ge=0)
    height: Optional[int] = Field(default=None, ge=0)

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the image bytes."""
        size = len(self.content) if self.content is not None else 0
        return f"ResultImage(content_type={self.content_type!r}, bytes={size})"


class ResultTimings(BaseModel):
    """Server-side timing breakdown, in seconds."""

    model_config = ConfigDict(extra="allow")

    inference: float = Field(
        ...,
        ge=0.0,
        description="Seconds spent producing this result on the server",
    )


class ResultFrame(BaseModel):
    """
    Validated result frame from the realtime endpoint.

    Attributes:
        images: Generated images in service order
        timings: Timing breakdown (inference at minimum)
        seed: Seed the service reports having used, if any
        has_nsfw_concepts: Per-image safety flags, if any
    """

    model_config = ConfigDict(extra="ignore")

    images: List[ResultImage] = Field(...)

    timings: ResultTimings = Field(...)

    seed: Optional[int] = Field(default=None)

    has_nsfw_concepts: Optional[List[bool]] = Field(default=None)

    @property
    def inference_time(self) -> float:
        """Inference duration in seconds."""
        return self.timings.inference
