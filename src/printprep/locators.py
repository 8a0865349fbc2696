"""Locator classification.

A locator is any string identifying an image: a network URL, an inline
``data:image/...`` payload or a site-relative path. ``classify`` tags each
locator with its provenance so later stages know how it must be sourced.
The function is pure: no network access, no environment lookups.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from printprep.constants import DEFAULT_TRUSTED_ORIGIN_MARKER, INLINE_IMAGE_PREFIX

# data:image/png;base64,AAAA -> ("image/png", ";base64", "AAAA")
_INLINE_PATTERN = re.compile(
    r"^data:(image/[^;,]+)((?:;[^,]*)?),(.*)$", re.DOTALL | re.IGNORECASE
)


class LocatorKind(str, Enum):
    """Provenance tag for an image locator."""

    INLINE_PAYLOAD = "inline_payload"
    LOCAL_ASSET = "local_asset"
    TRUSTED_ORIGIN_URL = "trusted_origin_url"
    PROTOCOL_RELATIVE_URL = "protocol_relative_url"
    EXTERNAL_URL = "external_url"
    INVALID = "invalid"


@dataclass(frozen=True)
class ClassifiedLocator:
    """A locator together with its provenance tag.

    Attributes:
        kind: Provenance tag
        locator: The trimmed locator string ("" for invalid input)
        mime: Declared MIME type (inline payloads only)
        data: Encoded payload text after the comma (inline payloads only)
    """

    kind: LocatorKind
    locator: str
    mime: str | None = None
    data: str | None = None

    @property
    def is_inline(self) -> bool:
        return self.kind is LocatorKind.INLINE_PAYLOAD

    @property
    def is_url(self) -> bool:
        return self.kind in (
            LocatorKind.TRUSTED_ORIGIN_URL,
            LocatorKind.PROTOCOL_RELATIVE_URL,
            LocatorKind.EXTERNAL_URL,
        )


INVALID = ClassifiedLocator(kind=LocatorKind.INVALID, locator="")


def parse_inline_payload(locator: str) -> tuple[str | None, str | None]:
    """Split an inline image locator into (mime, data).

    Returns (None, None) when the payload header is malformed.
    """
    match = _INLINE_PATTERN.match(locator)
    if not match:
        return None, None
    return match.group(1).lower(), match.group(3)


def classify(
    locator: Any,
    trusted_marker: str = DEFAULT_TRUSTED_ORIGIN_MARKER,
) -> ClassifiedLocator:
    """Classify a locator by provenance.

    Rules, first match wins:
    1. empty or non-string -> INVALID
    2. ``data:image/`` prefix -> INLINE_PAYLOAD
    3. contains the trusted-origin marker -> TRUSTED_ORIGIN_URL
    4. ``//`` prefix -> PROTOCOL_RELATIVE_URL
    5. ``/`` prefix -> LOCAL_ASSET
    6. anything else -> EXTERNAL_URL

    Args:
        locator: Value to classify (any type is accepted)
        trusted_marker: Substring identifying hosts that allow direct reads

    Returns:
        Immutable ClassifiedLocator
    """
    if not isinstance(locator, str):
        return INVALID

    value = locator.strip()
    if not value:
        return INVALID

    # Scheme and media type are case-insensitive
    if value[: len(INLINE_IMAGE_PREFIX)].lower() == INLINE_IMAGE_PREFIX:
        mime, data = parse_inline_payload(value)
        return ClassifiedLocator(
            kind=LocatorKind.INLINE_PAYLOAD, locator=value, mime=mime, data=data
        )

    if trusted_marker and trusted_marker in value:
        return ClassifiedLocator(kind=LocatorKind.TRUSTED_ORIGIN_URL, locator=value)

    # "//" must be checked before "/" or protocol-relative URLs look local
    if value.startswith("//"):
        return ClassifiedLocator(kind=LocatorKind.PROTOCOL_RELATIVE_URL, locator=value)

    if value.startswith("/"):
        return ClassifiedLocator(kind=LocatorKind.LOCAL_ASSET, locator=value)

    return ClassifiedLocator(kind=LocatorKind.EXTERNAL_URL, locator=value)
