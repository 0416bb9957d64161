"""Structural project scan with scan-class caching.

The scan only records which manifests exist and how many source files there
are; framework and dependency detection are out of scope. Results are cached
under the project root and its fingerprint, so any manifest or layout change
rescans and two identical checkouts never share an entry.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from superagents.fingerprint import (
    MANIFEST_FILES,
    SOURCE_DIRS,
    list_source_files,
    project_fingerprint,
)
from superagents.models.cache import ScanCacheKey, TtlClass
from superagents.models.scan import ScanResult

if TYPE_CHECKING:
    from pathlib import Path

    from superagents.protocols import CacheProtocol

log = structlog.get_logger()


def _scan(project_root: Path, fingerprint: str) -> ScanResult:
    manifests = [name for name in MANIFEST_FILES if (project_root / name).is_file()]
    return ScanResult(
        project_root=str(project_root),
        fingerprint=fingerprint,
        manifests=manifests,
        source_file_count=sum(
            len(list_source_files(project_root / name)) for name in SOURCE_DIRS
        ),
    )


async def scan_project(
    project_root: Path,
    cache: CacheProtocol,
    *,
    fingerprint: str | None = None,
) -> ScanResult:
    """Return the scan for ``project_root``, reusing a cached one when still valid."""
    project_root = project_root.resolve()
    fp = fingerprint or project_fingerprint(project_root)
    key = ScanCacheKey(fingerprint=fp, project_root=str(project_root))

    cached = await cache.get(key, TtlClass.SCAN)
    if cached is not None:
        try:
            result = ScanResult.model_validate_json(cached)
        except ValidationError:
            log.warning("scan_cache_invalid", fingerprint=fp)
        else:
            log.info("scan_cache_hit", fingerprint=fp)
            return result

    result = _scan(project_root, fp)
    await cache.set(key, result.model_dump_json(), TtlClass.SCAN)
    log.info(
        "scan_complete",
        fingerprint=fp,
        manifests=len(result.manifests),
        source_files=result.source_file_count,
    )
    return result
