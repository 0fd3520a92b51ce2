"""
utils/media_utils.py

Purpose: Media validation helpers

- Content type checks (JPEG/PNG only)
- Size limits
- File extensions and base64 encoding for provider payloads
"""

import base64
from typing import Optional

ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png")

EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "video/mp4": ".mp4",
}


def normalize_content_type(content_type: Optional[str]) -> str:
    """
    Strips parameters and lower-cases a content type.

    Example: "image/JPEG; charset=binary" -> "image/jpeg"
    """
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def is_supported_image_type(content_type: Optional[str]) -> bool:
    return normalize_content_type(content_type) in ALLOWED_IMAGE_TYPES


def canonical_image_type(content_type: Optional[str]) -> str:
    """Maps image/jpg to image/jpeg; other types unchanged."""
    normalized = normalize_content_type(content_type)
    return "image/jpeg" if normalized == "image/jpg" else normalized


def extension_for(content_type: Optional[str]) -> str:
    return EXTENSIONS.get(normalize_content_type(content_type), "")


def format_size(num_bytes: int) -> str:
    """Human readable size, e.g. 10485760 -> '10 MB'."""
    mb = num_bytes / (1024 * 1024)
    if mb >= 1:
        return f"{mb:g} MB" if mb == int(mb) else f"{mb:.1f} MB"
    return f"{num_bytes // 1024} KB"


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")
