"""Shared test fixtures for the superagents test suite."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import aiosqlite
import pytest

from superagents.cache import Cache
from superagents.models.generation import GenerationRequest, Tier

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


class FakeBackend:
    """In-memory BackendProtocol double.

    Fails for any prompt that mentions one of ``failures`` (item names, quoted
    the way the default prompt builder quotes them) and records every call.
    """

    def __init__(
        self,
        *,
        failures: dict[str, Exception] | None = None,
        summary_error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.failures = failures or {}
        self.summary_error = summary_error
        self.delay = delay
        self.calls: list[tuple[str, str]] = []
        self.kinds: list[str | None] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def generate(self, prompt: str, tier: str, *, kind: str | None = None) -> str:
        self.calls.append((prompt, tier))
        self.kinds.append(kind)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if self.summary_error is not None and "summary document" in prompt:
                raise self.summary_error
            for name, error in self.failures.items():
                if f"'{name}'" in prompt:
                    raise error
            return f"# Generated ({tier})\n\n{prompt.splitlines()[0]}"
        finally:
            self.in_flight -= 1

    def calls_for(self, name: str) -> int:
        return sum(1 for prompt, _ in self.calls if f"'{name}'" in prompt)


@pytest.fixture()
async def cache() -> AsyncGenerator[Cache, None]:
    """Cache backed by an in-memory SQLite database."""
    async with aiosqlite.connect(":memory:") as db:
        cache = Cache(db)
        await cache.init_db()
        yield cache


@pytest.fixture()
def request_factory():
    """Build GenerationRequests with sensible defaults."""

    def _make(**overrides) -> GenerationRequest:
        fields = {
            "goal": "Build a SaaS analytics dashboard",
            "fingerprint": "0" * 32,
            "ceiling_tier": Tier.SONNET,
            "specialists": ["backend-engineer", "frontend-engineer"],
            "knowledge_modules": ["react", "git"],
        }
        fields.update(overrides)
        return GenerationRequest(**fields)

    return _make


@pytest.fixture()
def backend_factory() -> type[FakeBackend]:
    """Return the FakeBackend class so tests can configure failures per call."""
    return FakeBackend
