from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel, field_validator

from superagents.models.scan import ScanResult


class ItemKind(StrEnum):
    SPECIALIST = "specialist"
    KNOWLEDGE_MODULE = "knowledge-module"
    SUMMARY_DOCUMENT = "summary-document"


class Tier(StrEnum):
    """Backend capability tiers, cheapest first. Ordering lives in tiers.TIER_ORDER."""

    HAIKU = "haiku"
    SONNET = "sonnet"
    OPUS = "opus"


class Complexity(StrEnum):
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


class ArtifactSource(StrEnum):
    GENERATED = "generated"
    CACHED = "cached"
    PLACEHOLDER = "placeholder"


SUMMARY_DOCUMENT_NAME = "CLAUDE.md"

_ITEM_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class GenerationRequest(BaseModel):
    """Everything one generation run needs, assembled by the caller."""

    goal: str
    fingerprint: str
    ceiling_tier: Tier = Tier.SONNET
    specialists: list[str] = []
    knowledge_modules: list[str] = []
    category: str | None = None
    scan: ScanResult | None = None

    @field_validator("goal")
    @classmethod
    def goal_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("goal must not be empty")
        return v

    @field_validator("specialists", "knowledge_modules")
    @classmethod
    def names_are_file_safe(cls, v: list[str]) -> list[str]:
        for name in v:
            if not _ITEM_NAME.match(name):
                raise ValueError(f"invalid item name: {name!r}")
        return v


class Artifact(BaseModel):
    """One rendered Markdown artifact, real or placeholder."""

    kind: ItemKind
    name: str
    content: str
    tier: Tier
    source: ArtifactSource

    @property
    def filename(self) -> str:
        if self.kind == ItemKind.SUMMARY_DOCUMENT:
            return self.name
        return f"{self.name}.md"

    @property
    def is_placeholder(self) -> bool:
        return self.source == ArtifactSource.PLACEHOLDER


class ArtifactBundle(BaseModel):
    """Final output of a run. Keyed by item name, never by completion order."""

    specialists: dict[str, Artifact]
    knowledge_modules: dict[str, Artifact]
    summary: Artifact

    def placeholders(self) -> list[Artifact]:
        artifacts = [*self.specialists.values(), *self.knowledge_modules.values(), self.summary]
        return [a for a in artifacts if a.is_placeholder]


@dataclass(frozen=True)
class GenerationTask:
    """Ephemeral unit of work for one requested item."""

    kind: ItemKind
    name: str
    tier: Tier


# ---------------------------------------------------------------------------
# Per-item outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Success:
    name: str
    content: str
    tier: Tier
    cached: bool = False


@dataclass(frozen=True)
class Placeholder:
    name: str
    content: str
    tier: Tier
    error: BaseException


@dataclass(frozen=True)
class Failure:
    name: str
    tier: Tier
    error: BaseException


ItemOutcome = Success | Placeholder | Failure


@dataclass(frozen=True)
class ProgressEvent:
    """Emitted once per completed item, in completion order."""

    completed: int
    total: int
    item: str
    ok: bool
