"""printprep utilities."""

from printprep.utils.mime import (
    clean_mime_type,
    get_extension_from_mime,
    get_format_label,
    mime_from_pil_format,
)
from printprep.utils.output import atomic_write_json, atomic_write_text

__all__ = [
    # MIME
    "clean_mime_type",
    "get_extension_from_mime",
    "get_format_label",
    "mime_from_pil_format",
    # Output
    "atomic_write_json",
    "atomic_write_text",
]
