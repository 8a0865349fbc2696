"""Network reads for image sources.

``HttpImageTransport`` wraps an ``httpx.AsyncClient``. Anything with an
async ``fetch(url) -> FetchedImage`` method satisfies ``ImageTransport``,
which is how tests and alternative runtimes plug in their own reads.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import TracebackType
from typing import Protocol, runtime_checkable

import httpx
from loguru import logger

from printprep.constants import (
    DEFAULT_ACCEPT_HEADER,
    DEFAULT_USER_AGENT,
    LOG_PREVIEW_CHARS,
)
from printprep.exceptions import FetchFailureError, FetchTimeoutError
from printprep.proxy import EffectiveSource


@dataclass(frozen=True)
class FetchedImage:
    """Raw bytes returned by a read."""

    content: bytes
    content_type: str = ""
    url: str = ""


@runtime_checkable
class ImageTransport(Protocol):
    """Reads image bytes from a URL.

    Implementations raise ``FetchFailureError`` for transport errors and
    non-success statuses.
    """

    async def fetch(self, url: str) -> FetchedImage: ...


class HttpImageTransport:
    """httpx-backed transport.

    Usable as an async context manager. A client passed in by the caller is
    not closed on exit.

    Args:
        client: Optional pre-configured AsyncClient (e.g. with MockTransport)
        timeout: Transport-level timeout in seconds; the worker pool enforces
            its own per-item budget on top of this
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers={
                "Accept": DEFAULT_ACCEPT_HEADER,
                "User-Agent": DEFAULT_USER_AGENT,
            },
            follow_redirects=True,
            timeout=timeout,
        )

    async def __aenter__(self) -> HttpImageTransport:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch(self, url: str) -> FetchedImage:
        """GET the URL and return its body.

        Raises:
            FetchTimeoutError: httpx timed out
            FetchFailureError: transport error or non-2xx status
        """
        try:
            response = await self._client.get(
                url, headers={"Accept": DEFAULT_ACCEPT_HEADER}
            )
        except httpx.TimeoutException as e:
            timeout = self._client.timeout.read
            raise FetchTimeoutError(url, timeout or 0.0) from e
        except httpx.HTTPError as e:
            raise FetchFailureError(
                f"Transport error: {type(e).__name__}: {e}", locator=url
            ) from e

        if not response.is_success:
            raise FetchFailureError(
                f"HTTP {response.status_code}",
                locator=url,
                status_code=response.status_code,
            )

        return FetchedImage(
            content=response.content,
            content_type=response.headers.get("content-type", ""),
            url=str(response.url),
        )


async def read_source(transport: ImageTransport, source: EffectiveSource) -> FetchedImage:
    """Read an effective source, falling back to a direct read.

    The direct retry only happens for relayed sources whose relay read
    answered with an HTTP error status. Transport errors on the relay are
    propagated unchanged.
    """
    try:
        return await transport.fetch(source.value)
    except FetchFailureError as e:
        if not source.is_relayed or e.status_code is None:
            raise
        logger.warning(
            f"Relay fetch failed (HTTP {e.status_code}), trying direct: "
            f"{source.fallback_url[:LOG_PREVIEW_CHARS]}"
        )
        return await transport.fetch(source.fallback_url)
