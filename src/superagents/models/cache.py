from __future__ import annotations

import hashlib
import json
from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class TtlClass(StrEnum):
    """Expiry policy an entry is written and read under."""

    SCAN = "scan"
    GENERATION = "generation"


class GenerationCacheKey(BaseModel):
    """Identity of one generated artifact. Every field participates in the digest."""

    model_config = ConfigDict(frozen=True)

    goal: str
    fingerprint: str
    kind: str
    name: str
    tier: str

    def digest(self) -> str:
        payload = json.dumps(self.model_dump(), sort_keys=True, ensure_ascii=False)
        return hashlib.md5(payload.encode("utf-8"), usedforsecurity=False).hexdigest()

    def label(self) -> str:
        return f"{self.kind}:{self.name}@{self.tier}"


class ScanCacheKey(BaseModel):
    """Identity of a cached codebase scan: project root plus fingerprint."""

    model_config = ConfigDict(frozen=True)

    fingerprint: str
    project_root: str

    def digest(self) -> str:
        return hashlib.md5(
            f"scan:{self.project_root}\x00{self.fingerprint}".encode(), usedforsecurity=False
        ).hexdigest()

    def label(self) -> str:
        return f"scan:{self.fingerprint}"


CacheKey = GenerationCacheKey | ScanCacheKey


class CacheStats(BaseModel):
    """Snapshot of cache contents, reported by ``superagents cache --stats``."""

    entry_counts: dict[str, int]
    total_bytes: int  # UTF-8 size of stored values
