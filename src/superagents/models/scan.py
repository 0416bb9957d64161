from __future__ import annotations

from pydantic import BaseModel


class ScanResult(BaseModel):
    """Structural summary of a project, cached under the scan TTL class."""

    project_root: str
    fingerprint: str
    manifests: list[str] = []  # Manifest file names present at the project root
    source_file_count: int = 0
