"""Image format detection helpers."""

import io
import logging
from typing import Optional

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

GENERIC_MIME_TYPES = {"", "application/octet-stream"}


def sniff_image_mime(data: bytes) -> Optional[str]:
    """
    Identify the MIME type of encoded image bytes.

    Returns:
        MIME type such as "image/png", or None if the bytes are not an image
    """
    if not data:
        return None

    try:
        with Image.open(io.BytesIO(data)) as image:
            fmt = image.format
    except (UnidentifiedImageError, OSError) as e:
        logger.debug(f"Could not identify image bytes: {e}")
        return None

    if not fmt:
        return None
    return Image.MIME.get(fmt.upper(), f"image/{fmt.lower()}")


def resolve_mime_type(data: bytes, declared: Optional[str]) -> Optional[str]:
    """Prefer the declared image MIME type, falling back to sniffing the bytes."""
    if declared and declared not in GENERIC_MIME_TYPES and declared.startswith("image/"):
        return declared
    return sniff_image_mime(data)


def extension_for(mime_type: str) -> str:
    """File extension for a MIME type ("image/png" -> "png")."""
    subtype = mime_type.split("/")[-1] if "/" in mime_type else ""
    return {"jpeg": "jpg", "svg+xml": "svg"}.get(subtype, subtype or "png")
