"""Capability tier selection.

Cheaper tiers are used for simpler items:
- haiku: simple knowledge modules
- sonnet: specialists and non-trivial knowledge modules
- the summary document follows whatever ceiling the user picked

The selected tier never exceeds the user's ceiling.
"""

from __future__ import annotations

from superagents.models.generation import Complexity, ItemKind, Tier

TIER_ORDER: tuple[Tier, ...] = (Tier.HAIKU, Tier.SONNET, Tier.OPUS)

_RANK: dict[Tier, int] = {tier: rank for rank, tier in enumerate(TIER_ORDER)}

# None means "defer to the ceiling".
_POLICY: dict[tuple[ItemKind, Complexity], Tier | None] = {
    (ItemKind.SPECIALIST, Complexity.SIMPLE): Tier.SONNET,
    (ItemKind.SPECIALIST, Complexity.MEDIUM): Tier.SONNET,
    (ItemKind.SPECIALIST, Complexity.COMPLEX): Tier.SONNET,
    (ItemKind.KNOWLEDGE_MODULE, Complexity.SIMPLE): Tier.HAIKU,
    (ItemKind.KNOWLEDGE_MODULE, Complexity.MEDIUM): Tier.SONNET,
    (ItemKind.KNOWLEDGE_MODULE, Complexity.COMPLEX): Tier.SONNET,
    (ItemKind.SUMMARY_DOCUMENT, Complexity.SIMPLE): None,
    (ItemKind.SUMMARY_DOCUMENT, Complexity.MEDIUM): None,
    (ItemKind.SUMMARY_DOCUMENT, Complexity.COMPLEX): None,
}

_SIMPLE_MODULES = (
    "markdown", "git", "npm", "eslint", "prettier",
    "yaml", "json", "dotenv", "editorconfig",
)

_COMPLEX_MODULES = (
    "nextjs", "react", "typescript", "graphql", "kubernetes",
    "docker", "aws", "terraform", "prisma", "drizzle",
    "trpc", "nestjs", "fastify", "express",
)


def tier_rank(tier: Tier) -> int:
    return _RANK[tier]


def select_tier(
    ceiling: Tier,
    kind: ItemKind,
    complexity: Complexity = Complexity.MEDIUM,
) -> Tier:
    """Return the cheapest policy tier for ``kind``, clamped to ``ceiling``."""
    preferred = _POLICY[(kind, complexity)]
    if preferred is None:
        return ceiling
    return preferred if _RANK[preferred] <= _RANK[ceiling] else ceiling


def complexity_for(kind: ItemKind, name: str) -> Complexity:
    """Estimate how demanding an item is from its name.

    Only knowledge modules vary; everything else is treated as medium.
    """
    if kind != ItemKind.KNOWLEDGE_MODULE:
        return Complexity.MEDIUM
    lowered = name.lower()
    if any(s in lowered for s in _SIMPLE_MODULES):
        return Complexity.SIMPLE
    if any(s in lowered for s in _COMPLEX_MODULES):
        return Complexity.COMPLEX
    return Complexity.MEDIUM
