"""
Image Store
===========

Issues and releases displayable image handles.

Each result frame produces fresh image bytes. The store maps a URI-like
handle to those bytes until the handle is released, so the presentation
layer can render it and the receiver can free it once superseded.
"""

import logging
import uuid
from typing import Dict, Optional

from lightning_realtime.models.state import ImageHandle
from lightning_realtime.stream.image_decoder import DecodedImage


logger = logging.getLogger(__name__)


HANDLE_SCHEME = "blob:lightning-realtime/"


class ImageStore:
    """
    In-memory handle table for decoded images.

    Attributes:
        issued: Total handles issued
        released: Total handles released
    """

    def __init__(self) -> None:
        self._images: Dict[str, DecodedImage] = {}
        self.issued: int = 0
        self.released: int = 0

    @property
    def live_count(self) -> int:
        """Handles issued and not yet released."""
        return len(self._images)

    def issue(self, image: DecodedImage) -> ImageHandle:
        """Store `image` and return a new handle for it."""
        handle_id = uuid.uuid4().hex
        self._images[handle_id] = image
        self.issued += 1
        return ImageHandle(
            handle_id=handle_id,
            uri=f"{HANDLE_SCHEME}{handle_id}",
            content_type=image.content_type,
            width=image.width,
            height=image.height,
        )

    def get(self, handle_id: str) -> Optional[DecodedImage]:
        """Image for a live handle id, or None if unknown or released."""
        return self._images.get(handle_id)

    def release(self, handle: ImageHandle) -> bool:
        """
        Drop the bytes behind `handle`.

        Returns:
            True if the handle was live.
        """
        if self._images.pop(handle.handle_id, None) is None:
            return False
        self.released += 1
        logger.debug(f"Released image handle {handle.uri}")
        return True

    def clear(self) -> int:
        """Release every live handle; returns how many were released."""
        count = len(self._images)
        self._images.clear()
        self.released += count
        return count
