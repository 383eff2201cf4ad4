"""
Image Decoder
=============

Dedicated module for turning result image payloads into validated bytes.

Design Rules:
    - This is the ONLY place in the codebase that decodes images
    - Accepts inline bytes or a base64 data URI
    - Validates by decoding with OpenCV; keeps the original encoded bytes
    - Fails fast with DecodingError on anything undisplayable
"""

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from lightning_realtime.errors import DecodingError
from lightning_realtime.models.result import ResultImage


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DecodedImage:
    """
    Encoded image bytes that are known to decode.

    Attributes:
        data: Original encoded bytes (JPEG/PNG/...)
        content_type: MIME type to serve the bytes with
        width: Decoded width in pixels
        height: Decoded height in pixels
    """

    data: bytes
    content_type: str
    width: int
    height: int

    def __repr__(self) -> str:
        return (
            f"DecodedImage({self.content_type}, {self.width}x{self.height}, "
            f"bytes={len(self.data)})"
        )


def extract_payload(image: ResultImage) -> Tuple[bytes, str]:
    """
    Get the encoded bytes and content type out of a result image.

    Raises:
        DecodingError: If the image carries neither bytes nor a data URI
    """
    if image.content:
        return image.content, image.content_type

    if image.url and image.url.startswith("data:"):
        header, _, encoded = image.url.partition(",")
        if not encoded or ";base64" not in header:
            raise DecodingError("Unsupported data URI (expected base64)")
        try:
            data = base64.b64decode(encoded, validate=True)
        except binascii.Error as e:
            raise DecodingError(f"Base64 decode failed: {e}") from e
        content_type = header[len("data:"):].split(";", 1)[0] or image.content_type
        return data, content_type

    raise DecodingError("Image payload has no inline content")


def decode_image_bytes(data: bytes) -> np.ndarray:
    """
    Decode encoded image bytes to a BGR matrix.

    Returns:
        BGR image as np.ndarray (H, W, 3), dtype=uint8

    Raises:
        DecodingError: If decoding fails or the image is invalid
    """
    if not data:
        raise DecodingError("Empty image payload")

    nparr = np.frombuffer(data, np.uint8)
    bgr = cv2.imdecode(nparr, cv2.IMREAD_COLOR)

    if bgr is None:
        raise DecodingError("Failed to decode image: cv2.imdecode returned None")

    if len(bgr.shape) != 3 or bgr.shape[2] != 3:
        raise DecodingError(f"Invalid image shape: {bgr.shape}")

    if bgr.dtype != np.uint8:
        raise DecodingError(f"Invalid dtype: {bgr.dtype}")

    return bgr


def decode_result_image(image: Optional[ResultImage]) -> DecodedImage:
    """
    Validate a result image and measure it.

    Args:
        image: First image of a result frame, or None if there was none

    Returns:
        DecodedImage with the original bytes and decoded dimensions

    Raises:
        DecodingError: If there is no image or it cannot be decoded
    """
    if image is None:
        raise DecodingError("Result frame contains no images")

    data, content_type = extract_payload(image)
    bgr = decode_image_bytes(data)
    height, width = bgr.shape[:2]

    if image.width and image.height and (image.width, image.height) != (width, height):
        logger.debug(
            f"Reported size {image.width}x{image.height} differs from "
            f"decoded size {width}x{height}"
        )

    return DecodedImage(
        data=data,
        content_type=content_type,
        width=width,
        height=height,
    )
