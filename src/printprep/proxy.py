"""Proxy resolution: where to read each image from.

Only the relay guarantees a cross-origin-safe read for arbitrary hosts, so
external URLs are rewritten to go through it. Trusted-origin and local
assets are read directly to keep load off the relay.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote

from printprep.constants import (
    DEFAULT_RELAY_BASE_URL,
    DEFAULT_SECURE_SCHEME,
    RELAY_URL_PARAM,
)
from printprep.formats import FormatGate
from printprep.locators import ClassifiedLocator, LocatorKind

# Turns a site-relative path ("/img/a.png") into an absolute URL
BaseAddressResolver = Callable[[str], str]


def identity_resolver(path: str) -> str:
    """Default base-address resolver: leave the path unchanged."""
    return path


def origin_resolver(origin: str) -> BaseAddressResolver:
    """Build a resolver that prefixes paths with a site origin.

    Example:
        >>> origin_resolver("https://app.example.com/")("/img/a.png")
        'https://app.example.com/img/a.png'
    """
    base = origin.rstrip("/")

    def _resolve(path: str) -> str:
        return f"{base}{path}"

    return _resolve


class SourceMode(str, Enum):
    """How the worker obtains the payload."""

    DIRECT = "direct"  # value is already an inline payload
    FETCH = "fetch"  # value is a URL to read


@dataclass(frozen=True)
class EffectiveSource:
    """Resolved read plan for one locator.

    Attributes:
        mode: DIRECT (use value as-is) or FETCH (read value over the network)
        value: Inline payload or URL
        fallback_url: Direct URL to try when a relayed read answers with an
            error status (relayed sources only)
    """

    mode: SourceMode
    value: str
    fallback_url: str | None = None

    @property
    def is_direct(self) -> bool:
        return self.mode is SourceMode.DIRECT

    @property
    def is_relayed(self) -> bool:
        return self.fallback_url is not None


def build_relay_url(url: str, relay_base_url: str = DEFAULT_RELAY_BASE_URL) -> str:
    """Return ``<relay base>?url=<percent-encoded url>``."""
    separator = "&" if "?" in relay_base_url else "?"
    return f"{relay_base_url}{separator}{RELAY_URL_PARAM}={quote(url, safe='')}"


def fix_protocol_relative(url: str, scheme: str = DEFAULT_SECURE_SCHEME) -> str:
    """Prefix a ``//host/path`` URL with a scheme."""
    if url.startswith("//"):
        return f"{scheme}:{url}"
    return url


class ProxyResolver:
    """Maps classified locators to effective sources.

    Args:
        relay_base_url: Relay endpoint for external reads
        gate: Format gate; gate-rejected locators resolve to None
        base_address: Resolver for site-relative paths (identity by default)
    """

    def __init__(
        self,
        relay_base_url: str = DEFAULT_RELAY_BASE_URL,
        gate: FormatGate | None = None,
        base_address: BaseAddressResolver | None = None,
    ) -> None:
        self.relay_base_url = relay_base_url
        self.gate = gate or FormatGate()
        self.base_address = base_address or identity_resolver

    def resolve(self, classified: ClassifiedLocator) -> EffectiveSource | None:
        """Resolve a classified locator.

        Returns:
            EffectiveSource, or None when there is nothing embeddable to read
            (invalid locator or format rejected by the gate)
        """
        if classified.kind is LocatorKind.INVALID:
            return None
        if not self.gate.is_embeddable(classified.locator):
            return None

        locator = classified.locator
        kind = classified.kind

        if kind is LocatorKind.INLINE_PAYLOAD:
            return EffectiveSource(mode=SourceMode.DIRECT, value=locator)

        if kind is LocatorKind.TRUSTED_ORIGIN_URL:
            return EffectiveSource(mode=SourceMode.FETCH, value=locator)

        if kind is LocatorKind.LOCAL_ASSET:
            return EffectiveSource(mode=SourceMode.FETCH, value=self.base_address(locator))

        if kind is LocatorKind.PROTOCOL_RELATIVE_URL:
            locator = fix_protocol_relative(locator)

        return EffectiveSource(
            mode=SourceMode.FETCH,
            value=build_relay_url(locator, self.relay_base_url),
            fallback_url=locator,
        )
