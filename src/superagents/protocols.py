"""Protocol interfaces for swappable components.

The orchestrator and AppState reference these protocols, not the concrete
implementations. This allows:
- Tests to use lightweight in-memory implementations
- Other backends (e.g. a different generative API) to be swapped in without
  touching the orchestration logic
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from superagents.models.cache import CacheKey, CacheStats, TtlClass
    from superagents.models.generation import GenerationRequest, ItemKind, ProgressEvent


class CacheProtocol(Protocol):
    """Interface for the artifact cache."""

    async def get(self, key: CacheKey, ttl_class: TtlClass) -> str | None: ...

    async def set(self, key: CacheKey, value: str, ttl_class: TtlClass) -> None: ...

    async def clear(self) -> None: ...

    async def stats(self) -> CacheStats: ...


class BackendProtocol(Protocol):
    """Interface for the generative text backend.

    Implementations raise ``BackendError`` with a category the retry policy
    can classify. ``kind`` names the item kind being generated; backends may
    use it to size the completion.
    """

    async def generate(self, prompt: str, tier: str, *, kind: str | None = None) -> str: ...


class ProgressObserver(Protocol):
    """Receives one event per completed item, in completion order."""

    def item_completed(self, event: ProgressEvent) -> None: ...


class PromptBuilder(Protocol):
    """Renders the prompt text for one requested item."""

    def __call__(self, kind: ItemKind, name: str, request: GenerationRequest) -> str: ...
