"""MIME type utilities for image handling.

This module provides helper functions for MIME type operations,
using the centralized mappings defined in constants.py.
"""

from __future__ import annotations

from printprep.constants import MIME_TO_EXTENSION, PIL_FORMAT_TO_MIME


def clean_mime_type(content_type: str) -> str:
    """Strip parameters and normalize case.

    Examples:
        >>> clean_mime_type("image/JPEG; charset=utf-8")
        'image/jpeg'
    """
    return content_type.lower().split(";")[0].strip()


def get_extension_from_mime(mime_type: str, default: str = ".jpg") -> str:
    """Get file extension from MIME type.

    Args:
        mime_type: MIME type string, e.g. "image/jpeg"
        default: Default extension if MIME type is not recognized

    Returns:
        File extension with leading dot, e.g. ".jpg"

    Examples:
        >>> get_extension_from_mime("image/png")
        '.png'
        >>> get_extension_from_mime("image/unknown")
        '.jpg'
    """
    return MIME_TO_EXTENSION.get(clean_mime_type(mime_type), default)


def get_format_label(mime_type: str) -> str | None:
    """Return the bare format label ("webp", "png", ...) for a MIME type."""
    ext = MIME_TO_EXTENSION.get(clean_mime_type(mime_type))
    return ext[1:] if ext else None


def mime_from_pil_format(pil_format: str | None) -> str | None:
    """Map a Pillow format name (``Image.format``) to a MIME type."""
    if not pil_format:
        return None
    return PIL_FORMAT_TO_MIME.get(pil_format.upper())
