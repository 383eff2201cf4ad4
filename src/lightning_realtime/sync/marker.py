"""Best-effort session marker written on first activation."""

import logging
from pathlib import Path


logger = logging.getLogger(__name__)


def write_session_marker(path: str, value: str) -> bool:
    """
    Persist a flag saying the session has initialized.

    Failure is logged and otherwise ignored; the session continues.

    Returns:
        True if the marker was written.
    """
    marker = Path(path).expanduser()
    try:
        marker.parent.mkdir(parents=True, exist_ok=True)
        marker.write_text(f"{value}\n", encoding="utf-8")
    except OSError as e:
        logger.warning(f"Could not write session marker {marker}: {e}")
        return False
    logger.debug(f"Session marker written: {marker}")
    return True
