"""Document-level image preprocessing.

Runs the worker pool over every image-bearing collection of a document in
parallel and reassembles the document. Two rules govern this layer:

- All-or-nothing fallback: if anything unexpected escapes the fan-out, the
  original document is returned untouched. A partially converted document
  with mixed image sourcing is worse than a fully unconverted one.
- Soft cancellation: a superseded request discards its result and never
  touches the preprocessor's state. In-flight reads are not aborted.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from contextlib import AsyncExitStack
from enum import Enum
from typing import Any

from loguru import logger

from printprep.cache import PayloadCache
from printprep.config import DocumentConfig, PrintprepConfig
from printprep.exceptions import InvalidDocumentError, OrchestrationError
from printprep.fetch import HttpImageTransport, ImageTransport
from printprep.pool import ConversionOutcome, ImageReference, ImageWorkerPool
from printprep.proxy import BaseAddressResolver

Document = Mapping[str, Any]


class PreprocessState(str, Enum):
    """Lifecycle of a preprocessor."""

    IDLE = "idle"
    LOADING = "loading"
    DONE = "done"


class CancellationToken:
    """Cooperative cancellation flag for one generation request."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


def _entry_locator(entry: Mapping[str, Any], shape: DocumentConfig) -> str:
    """Primary image, else the first gallery image, else ""."""
    primary = entry.get(shape.image_field)
    if isinstance(primary, str) and primary.strip():
        return primary
    if shape.gallery_field:
        gallery = entry.get(shape.gallery_field)
        if isinstance(gallery, Sequence) and not isinstance(gallery, str) and gallery:
            first = gallery[0]
            if isinstance(first, str):
                return first
    return ""


def _entry_id(entry: Mapping[str, Any], collection: str, index: int, shape: DocumentConfig) -> str:
    value = entry.get(shape.id_field)
    if value is None or value == "":
        return f"{collection}:{index}"
    return str(value)


def validate_document(document: Any, collections: Sequence[str]) -> None:
    """Fail fast on documents that do not have the expected shape.

    Raises:
        InvalidDocumentError: document is not a mapping, a named collection
            is not a list, or a collection entry is not a mapping
    """
    if not isinstance(document, Mapping):
        raise InvalidDocumentError(
            f"Document must be a mapping, got {type(document).__name__}"
        )
    for name in collections:
        if name not in document or document[name] is None:
            continue
        items = document[name]
        if not isinstance(items, list):
            raise InvalidDocumentError(
                f"Collection '{name}' must be a list, got {type(items).__name__}"
            )
        for index, entry in enumerate(items):
            if not isinstance(entry, Mapping):
                raise InvalidDocumentError(
                    f"Entry {index} of '{name}' must be a mapping, got {type(entry).__name__}"
                )


class DocumentPreprocessor:
    """Converts the images of a document into inline payloads.

    Args:
        config: Configuration (defaults when omitted)
        transport: Image transport; when omitted an ``HttpImageTransport``
            is opened for each ``process`` call and closed afterwards
        base_address: Resolver for site-relative asset paths
        cache: Payload cache; by default one is created per preprocessor
            when ``cache.enabled`` is set

    Raises:
        EnvVarNotFoundError: ``relay.base_url`` uses ``env:`` syntax and the
            variable is not set
    """

    def __init__(
        self,
        config: PrintprepConfig | None = None,
        transport: ImageTransport | None = None,
        *,
        base_address: BaseAddressResolver | None = None,
        cache: PayloadCache | None = None,
    ) -> None:
        self.config = config or PrintprepConfig()
        # Resolved up front: a missing env: variable is a configuration error
        self.relay_base_url = self.config.relay.get_resolved_base_url()
        self.transport = transport
        self.base_address = base_address
        if cache is None and self.config.cache.enabled:
            cache = PayloadCache(self.config.cache.max_entries)
        self.cache = cache

        self.state = PreprocessState.IDLE
        self.document: Document | None = None
        self.outcomes: dict[str, list[ConversionOutcome]] = {}
        self._current_token: CancellationToken | None = None

    @property
    def is_loading(self) -> bool:
        return self.state is PreprocessState.LOADING

    @property
    def collections(self) -> list[str]:
        return list(self.config.document.collections)

    def submit(self, document: Document | None) -> asyncio.Task[Document | None]:
        """Supersede any running request and start processing ``document``.

        Must be called from inside a running event loop.
        """
        if self._current_token is not None:
            self._current_token.cancel()
        token = CancellationToken()
        self._current_token = token
        return asyncio.create_task(self.process(document, token))

    async def process(
        self,
        document: Document | None,
        token: CancellationToken | None = None,
    ) -> Document | None:
        """Preprocess one document.

        Returns:
            The processed document, the original document when the fan-out
            failed, or None when the document is None or the request was
            cancelled while in flight

        Raises:
            InvalidDocumentError: the document has the wrong shape
        """
        token = token or CancellationToken()

        if document is None:
            if not token.cancelled:
                self.document = None
                self.state = PreprocessState.DONE
            return None

        validate_document(document, self.collections)

        if token.cancelled:
            return None

        self.state = PreprocessState.LOADING
        logger.info("Starting image conversion")

        outcomes: dict[str, list[ConversionOutcome]] = {}
        try:
            processed = await self._convert_document(document, outcomes)
        except Exception as e:
            cause = e.exceptions[0] if isinstance(e, ExceptionGroup) else e
            failure = OrchestrationError("Image preprocessing failed", cause=cause)
            logger.opt(exception=cause).error(
                f"{failure}: {cause}, falling back to original document"
            )
            processed = document

        if token.cancelled:
            logger.debug("Generation request superseded, discarding result")
            return None

        self.document = processed
        self.outcomes = outcomes
        self.state = PreprocessState.DONE
        logger.info("Image conversion complete")
        return processed

    async def _convert_document(
        self,
        document: Document,
        outcomes: dict[str, list[ConversionOutcome]],
    ) -> Document:
        names = [name for name in self.collections if document.get(name)]
        if not names:
            return document

        async with AsyncExitStack() as stack:
            transport = self.transport
            if transport is None:
                transport = await stack.enter_async_context(HttpImageTransport())

            # A failing collection cancels its siblings before the fallback
            async with asyncio.TaskGroup() as group:
                tasks = [
                    group.create_task(self._convert_collection(name, document[name], transport))
                    for name in names
                ]

        processed = dict(document)
        for name, task in zip(names, tasks):
            items, collection_outcomes = task.result()
            processed[name] = items
            outcomes[name] = collection_outcomes
        return processed

    async def _convert_collection(
        self,
        name: str,
        items: list[Mapping[str, Any]],
        transport: ImageTransport,
    ) -> tuple[list[Any], list[ConversionOutcome]]:
        shape = self.config.document
        ids = [_entry_id(entry, name, index, shape) for index, entry in enumerate(items)]
        references = [
            ImageReference(id=ref_id, locator=_entry_locator(entry, shape), collection_name=name)
            for ref_id, entry in zip(ids, items)
        ]

        # Fresh pool per collection so no cursor is shared across the fan-out
        pool = ImageWorkerPool.from_config(
            self.config,
            transport,
            base_address=self.base_address,
            cache=self.cache,
            relay_base_url=self.relay_base_url,
        )
        outcomes = await pool.run(references)
        payloads = {o.id: o.payload for o in outcomes if o.succeeded}

        # Only the first locator seen for an id was converted
        queued: dict[str, str] = {}
        for ref in references:
            if ref.locator:
                queued.setdefault(ref.id, ref.locator)

        processed: list[Any] = []
        converted = 0
        for ref, entry in zip(references, items):
            payload = payloads.get(ref.id)
            if (
                payload
                and ref.locator == queued.get(ref.id)
                and payload != entry.get(shape.image_field)
            ):
                processed.append({**entry, shape.image_field: payload})
                converted += 1
            else:
                processed.append(entry)

        logger.info(f"Processed {len(items)} {name} items, {converted} converted")
        return processed, outcomes


async def preprocess_document(
    document: Document | None,
    config: PrintprepConfig | None = None,
    transport: ImageTransport | None = None,
    *,
    base_address: BaseAddressResolver | None = None,
) -> Document | None:
    """One-shot helper around ``DocumentPreprocessor.process``."""
    preprocessor = DocumentPreprocessor(config, transport, base_address=base_address)
    return await preprocessor.process(document)
