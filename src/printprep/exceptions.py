"""Exception hierarchy for printprep.

Item-local errors are raised inside a single fetch/convert attempt and are
always caught at the worker pool boundary, where they become a tagged
``ConversionOutcome``. They never reach the caller of the pipeline.

Error Hierarchy:
    PrintprepError (base)
    ├── ImageItemError (item-local, converted to an outcome)
    │   ├── UnsupportedFormatError (rejected at the gate, no network attempted)
    │   ├── FetchTimeoutError (read + conversion exceeded the per-item budget)
    │   ├── FetchFailureError (transport error or non-success status)
    │   └── ConversionFailureError (bytes could not become an inline payload)
    ├── OrchestrationError (document-level, triggers the fallback document)
    └── InvalidDocumentError (contract violation, raised to the caller)
"""

from __future__ import annotations


class PrintprepError(Exception):
    """Base exception for all printprep errors."""

    pass


class ImageItemError(PrintprepError):
    """Base class for failures scoped to a single image reference.

    Attributes:
        locator: The locator (or effective URL) being processed
        kind: Short machine-readable error kind used in outcomes
    """

    kind = "item_error"

    def __init__(self, message: str, *, locator: str = "") -> None:
        super().__init__(message)
        self.locator = locator


class UnsupportedFormatError(ImageItemError):
    """The renderer cannot embed this format."""

    kind = "unsupported_format"

    def __init__(self, locator: str, format_label: str | None = None) -> None:
        label = format_label or "unknown"
        super().__init__(f"Unsupported image format: {label}", locator=locator)
        self.format_label = format_label


class FetchTimeoutError(ImageItemError):
    """Reading and converting the image took longer than allowed."""

    kind = "fetch_timeout"

    def __init__(self, locator: str, timeout_seconds: float) -> None:
        super().__init__(
            f"Image fetch timed out after {timeout_seconds}s", locator=locator
        )
        self.timeout_seconds = timeout_seconds


class FetchFailureError(ImageItemError):
    """Transport error or non-success HTTP status.

    Attributes:
        status_code: HTTP status when the server answered, else None
    """

    kind = "fetch_failure"

    def __init__(
        self,
        message: str,
        *,
        locator: str = "",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, locator=locator)
        self.status_code = status_code


class ConversionFailureError(ImageItemError):
    """Fetched bytes could not be encoded as an inline payload."""

    kind = "conversion_failure"


class OrchestrationError(PrintprepError):
    """An unexpected failure escaped the per-collection fan-out."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class InvalidDocumentError(PrintprepError):
    """The input document does not have the expected shape."""

    pass
