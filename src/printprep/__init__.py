"""printprep - image preparation for print-ready travel documents."""

from __future__ import annotations

__version__ = "0.3.0"

from printprep.formats import FormatGate, format_of, is_embeddable
from printprep.locators import ClassifiedLocator, LocatorKind, classify
from printprep.orchestrator import (
    CancellationToken,
    DocumentPreprocessor,
    PreprocessState,
    preprocess_document,
)
from printprep.pool import (
    ConversionOutcome,
    ImageReference,
    ImageWorkerPool,
    OutcomeStatus,
    fetch_images,
)
from printprep.proxy import EffectiveSource, ProxyResolver, SourceMode

__all__ = [
    "__version__",
    # Classifier
    "ClassifiedLocator",
    "LocatorKind",
    "classify",
    # Format gate
    "FormatGate",
    "format_of",
    "is_embeddable",
    # Resolver
    "EffectiveSource",
    "ProxyResolver",
    "SourceMode",
    # Worker pool
    "ConversionOutcome",
    "ImageReference",
    "ImageWorkerPool",
    "OutcomeStatus",
    "fetch_images",
    # Orchestrator
    "CancellationToken",
    "DocumentPreprocessor",
    "PreprocessState",
    "preprocess_document",
]
