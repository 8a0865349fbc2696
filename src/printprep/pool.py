"""Bounded-concurrency fetch/convert worker pool.

A fixed number of logical workers pull from one shared ``WorkCursor`` until
the queue is exhausted. Every item ends in a tagged ``ConversionOutcome``;
failures never leave the pool, so one bad image cannot abort a document.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from loguru import logger

from printprep.cache import PayloadCache
from printprep.config import PrintprepConfig
from printprep.constants import (
    DEFAULT_FETCH_TIMEOUT,
    DEFAULT_POOL_WIDTH,
    DEFAULT_TRUSTED_ORIGIN_MARKER,
    LOG_PREVIEW_CHARS,
)
from printprep.exceptions import (
    FetchTimeoutError,
    ImageItemError,
    UnsupportedFormatError,
)
from printprep.fetch import ImageTransport, read_source
from printprep.formats import FormatGate
from printprep.image import PayloadConverter
from printprep.locators import LocatorKind, classify
from printprep.proxy import (
    BaseAddressResolver,
    EffectiveSource,
    ProxyResolver,
    origin_resolver,
)


@dataclass(frozen=True)
class ImageReference:
    """One image to prepare, identified by ``id``."""

    id: str
    locator: str
    collection_name: str = ""


class OutcomeStatus(str, Enum):
    """Result tag for one attempted reference."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class ConversionOutcome:
    """Tagged result of one attempt.

    Attributes:
        id: Reference id
        status: SUCCESS, SKIPPED (nothing to fetch) or FAILED
        payload: Inline payload (SUCCESS only)
        reason: Human-readable reason for SKIPPED/FAILED
        error_kind: Machine-readable error kind (see ``ImageItemError.kind``)
    """

    id: str
    status: OutcomeStatus
    payload: str | None = None
    reason: str | None = None
    error_kind: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS and bool(self.payload)

    @classmethod
    def success(cls, ref_id: str, payload: str) -> ConversionOutcome:
        return cls(id=ref_id, status=OutcomeStatus.SUCCESS, payload=payload)

    @classmethod
    def skipped(
        cls, ref_id: str, reason: str, error_kind: str | None = None
    ) -> ConversionOutcome:
        return cls(
            id=ref_id, status=OutcomeStatus.SKIPPED, reason=reason, error_kind=error_kind
        )

    @classmethod
    def failed(cls, ref_id: str, error: Exception) -> ConversionOutcome:
        kind = error.kind if isinstance(error, ImageItemError) else "unexpected"
        return cls(
            id=ref_id,
            status=OutcomeStatus.FAILED,
            reason=str(error) or type(error).__name__,
            error_kind=kind,
        )


class WorkCursor:
    """Shared claim counter for one pool invocation.

    ``claim`` has no suspension point, so on a single event loop the
    read-and-increment is atomic without a lock. Never reuse a cursor
    across invocations.
    """

    def __init__(self, length: int) -> None:
        self.length = length
        self._next = 0

    def claim(self) -> int | None:
        """Return the next unclaimed index, or None when exhausted."""
        if self._next >= self.length:
            return None
        index = self._next
        self._next += 1
        return index

    @property
    def claimed(self) -> int:
        return self._next


def build_queue(references: Iterable[ImageReference]) -> list[ImageReference]:
    """Drop references with empty id/locator and duplicate ids (first wins)."""
    queue: list[ImageReference] = []
    seen: dict[str, str] = {}
    for ref in references:
        if not ref.id or not ref.locator:
            continue
        if ref.id in seen:
            if seen[ref.id] != ref.locator:
                logger.warning(
                    f"Image id {ref.id} reused for a different locator, "
                    f"keeping the first: {ref.locator[:LOG_PREVIEW_CHARS]}"
                )
            else:
                logger.debug(f"Duplicate image id skipped: {ref.id}")
            continue
        seen[ref.id] = ref.locator
        queue.append(ref)
    return queue


class ImageWorkerPool:
    """Fetches and converts images with a fixed number of workers.

    Args:
        transport: Reads image bytes (``HttpImageTransport`` or a stub)
        width: Number of concurrent logical workers
        timeout: Per-item budget in seconds for read + conversion
        resolver: Proxy resolver (built from defaults when omitted)
        converter: Payload converter (built from defaults when omitted)
        trusted_marker: Trusted-origin marker passed to the classifier
        cache: Optional payload cache shared across invocations
    """

    def __init__(
        self,
        transport: ImageTransport,
        *,
        width: int = DEFAULT_POOL_WIDTH,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        resolver: ProxyResolver | None = None,
        converter: PayloadConverter | None = None,
        trusted_marker: str = DEFAULT_TRUSTED_ORIGIN_MARKER,
        cache: PayloadCache | None = None,
    ) -> None:
        if width < 1:
            raise ValueError(f"Pool width must be at least 1, got {width}")
        self.transport = transport
        self.width = width
        self.timeout = timeout
        self.resolver = resolver or ProxyResolver()
        self.converter = converter or PayloadConverter(gate=self.resolver.gate)
        self.trusted_marker = trusted_marker
        self.cache = cache

    @classmethod
    def from_config(
        cls,
        config: PrintprepConfig,
        transport: ImageTransport,
        *,
        base_address: BaseAddressResolver | None = None,
        cache: PayloadCache | None = None,
        relay_base_url: str | None = None,
    ) -> ImageWorkerPool:
        """Build a pool from configuration.

        When no base-address resolver is given and ``relay.site_origin`` is
        set, site-relative assets are resolved against that origin.
        ``relay_base_url`` overrides the configured relay and skips its
        ``env:`` resolution.

        Raises:
            EnvVarNotFoundError: the relay base URL references a missing
                environment variable
        """
        gate = FormatGate(
            unsupported=config.formats.unsupported,
            inline_marker=config.formats.inline_rejection_marker,
        )
        if base_address is None and config.relay.site_origin:
            base_address = origin_resolver(config.relay.site_origin)
        resolver = ProxyResolver(
            relay_base_url=relay_base_url or config.relay.get_resolved_base_url(),
            gate=gate,
            base_address=base_address,
        )
        converter = PayloadConverter(
            gate=gate,
            transcode=config.formats.transcode,
            quality=config.formats.quality,
        )
        return cls(
            transport,
            width=config.pool.width,
            timeout=config.pool.timeout,
            resolver=resolver,
            converter=converter,
            trusted_marker=config.relay.trusted_origin_marker,
            cache=cache,
        )

    async def run(self, references: Sequence[ImageReference]) -> list[ConversionOutcome]:
        """Attempt every reference and return outcomes in completion order."""
        queue = build_queue(references)
        if not queue:
            return []

        cursor = WorkCursor(len(queue))
        outcomes: list[ConversionOutcome] = []

        async def worker() -> None:
            while (index := cursor.claim()) is not None:
                outcomes.append(await self._attempt(queue[index]))

        worker_count = min(self.width, len(queue))
        await asyncio.gather(*(worker() for _ in range(worker_count)))
        return outcomes

    async def fetch_images(self, entries: Iterable[tuple[str, str]]) -> dict[str, str]:
        """Convert ``(id, locator)`` pairs; return payloads for successes only."""
        references = [ImageReference(id=ref_id, locator=url) for ref_id, url in entries]
        outcomes = await self.run(references)
        return {o.id: o.payload for o in outcomes if o.succeeded and o.payload}

    async def _attempt(self, ref: ImageReference) -> ConversionOutcome:
        classified = classify(ref.locator, self.trusted_marker)
        if classified.kind is LocatorKind.INVALID:
            return ConversionOutcome.skipped(ref.id, "Invalid locator")

        source = self.resolver.resolve(classified)
        if source is None:
            error = UnsupportedFormatError(
                classified.locator, self.resolver.gate.format_of(classified.locator)
            )
            logger.debug(
                f"Skipping {ref.id}: {error} ({classified.locator[:LOG_PREVIEW_CHARS]})"
            )
            return ConversionOutcome.skipped(ref.id, str(error), error.kind)

        if source.is_direct:
            return ConversionOutcome.success(ref.id, source.value)

        if self.cache is not None:
            cached = self.cache.get(source.value)
            if cached is not None:
                return ConversionOutcome.success(ref.id, cached)

        try:
            payload = await asyncio.wait_for(self._read_and_convert(source), self.timeout)
        except TimeoutError:
            error = FetchTimeoutError(source.value, self.timeout)
            logger.warning(f"Image {ref.id}: {error}")
            return ConversionOutcome.failed(ref.id, error)
        except Exception as e:
            logger.warning(
                f"Image {ref.id} failed: {e} ({source.value[:LOG_PREVIEW_CHARS]})"
            )
            return ConversionOutcome.failed(ref.id, e)

        if self.cache is not None:
            self.cache.set(source.value, payload)
        logger.debug(f"Converted {ref.id}: {ref.locator[:LOG_PREVIEW_CHARS]}")
        return ConversionOutcome.success(ref.id, payload)

    async def _read_and_convert(self, source: EffectiveSource) -> str:
        fetched = await read_source(self.transport, source)
        # Pillow decode/transcode must stay off the event loop
        return await asyncio.to_thread(self.converter.convert, fetched)


async def fetch_images(
    entries: Iterable[tuple[str, str]],
    transport: ImageTransport,
    config: PrintprepConfig | None = None,
) -> dict[str, str]:
    """Convert ``(id, url)`` pairs to inline payloads with a configured pool.

    Failed or skipped ids are simply absent from the result.
    """
    pool = ImageWorkerPool.from_config(config or PrintprepConfig(), transport)
    return await pool.fetch_images(entries)
