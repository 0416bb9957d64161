from __future__ import annotations

from superagents.models.cache import (
    CacheKey,
    CacheStats,
    GenerationCacheKey,
    ScanCacheKey,
    TtlClass,
)
from superagents.models.generation import (
    SUMMARY_DOCUMENT_NAME,
    Artifact,
    ArtifactBundle,
    ArtifactSource,
    Complexity,
    Failure,
    GenerationRequest,
    GenerationTask,
    ItemKind,
    ItemOutcome,
    Placeholder,
    ProgressEvent,
    Success,
    Tier,
)
from superagents.models.scan import ScanResult

__all__ = [
    # cache
    "CacheKey",
    "CacheStats",
    "GenerationCacheKey",
    "ScanCacheKey",
    "TtlClass",
    # generation
    "SUMMARY_DOCUMENT_NAME",
    "Artifact",
    "ArtifactBundle",
    "ArtifactSource",
    "Complexity",
    "Failure",
    "GenerationRequest",
    "GenerationTask",
    "ItemKind",
    "ItemOutcome",
    "Placeholder",
    "ProgressEvent",
    "Success",
    "Tier",
    # scan
    "ScanResult",
]
