"""Format gate for the PDF renderer.

The renderer embeds JPEG and PNG; animated, vector and next-gen raster
formats are declared unsupported and rejected before any network work.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from printprep.constants import (
    DEFAULT_INLINE_REJECTION_MARKER,
    DEFAULT_UNSUPPORTED_FORMATS,
    INLINE_IMAGE_PREFIX,
    KNOWN_IMAGE_FORMATS,
)
from printprep.locators import parse_inline_payload
from printprep.utils.mime import get_extension_from_mime

_QUERY_OR_FRAGMENT = re.compile(r"[?#]")
_EXTENSION_PATTERN = re.compile(r"\.([a-z0-9]+)$")


def strip_query_and_fragment(locator: str) -> str:
    """Return the locator up to (not including) the first ``?`` or ``#``."""
    return _QUERY_OR_FRAGMENT.split(locator, maxsplit=1)[0]


def _trailing_extension(locator: str) -> str | None:
    match = _EXTENSION_PATTERN.search(strip_query_and_fragment(locator.lower()))
    return match.group(1) if match else None


class FormatGate:
    """Decides whether a locator can be embedded by the renderer.

    Args:
        unsupported: Format labels the renderer rejects (case-insensitive,
            leading dots are ignored)
        inline_marker: Inline payloads containing this text are rejected
    """

    def __init__(
        self,
        unsupported: Iterable[str] = DEFAULT_UNSUPPORTED_FORMATS,
        inline_marker: str = DEFAULT_INLINE_REJECTION_MARKER,
    ) -> None:
        self.unsupported = frozenset(
            fmt.strip().lower().lstrip(".") for fmt in unsupported if fmt.strip()
        )
        self.inline_marker = inline_marker.lower()

    def is_unsupported_label(self, label: str | None) -> bool:
        """Check a bare format label ("webp", "JPEG", ...) against the set."""
        return bool(label) and label.lower() in self.unsupported

    def is_embeddable(self, locator: str) -> bool:
        """Return False when the locator points at an unsupported format.

        Empty locators are embeddable: there is nothing to reject.
        """
        if not locator:
            return True

        value = locator.strip()
        lower = value.lower()
        if lower.startswith(INLINE_IMAGE_PREFIX):
            # Inline payloads carry no extension. The marker is matched
            # anywhere in the raw text, not only in the declared mime.
            if not self.inline_marker:
                return True
            mime, _ = parse_inline_payload(value)
            if mime and self.inline_marker in mime:
                return False
            return self.inline_marker not in value

        return not self.is_unsupported_label(_trailing_extension(lower))

    def format_of(self, locator: str) -> str | None:
        """Return an upper-case diagnostic label such as "PNG" or "WEBP"."""
        if not locator:
            return None

        value = locator.strip()
        if value.lower().startswith(INLINE_IMAGE_PREFIX):
            mime, _ = parse_inline_payload(value)
            if mime is None:
                return None
            return get_extension_from_mime(mime, default=".")[1:].upper() or None

        ext = _trailing_extension(value)
        if ext in KNOWN_IMAGE_FORMATS:
            return ext.upper()
        return None


_default_gate = FormatGate()


def is_embeddable(locator: str) -> bool:
    """Check a locator against the default unsupported format set."""
    return _default_gate.is_embeddable(locator)


def format_of(locator: str) -> str | None:
    """Diagnostic format label using the default gate."""
    return _default_gate.format_of(locator)
