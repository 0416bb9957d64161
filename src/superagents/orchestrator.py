"""Generation orchestration.

For every requested item the orchestrator resolves a tier, consults the
artifact cache, and on a miss calls the backend under the retry policy,
with all calls of one kind fanned out through the bounded executor.

Per-item results are collected as ``Success``/``Failure`` outcomes and reduced
once the whole batch has finished:

- more than half failed  -> ``BatchGenerationError`` for the entire run
- otherwise              -> each ``Failure`` becomes a ``Placeholder``

Only real generations are written to the cache.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import structlog

from superagents.concurrency import DEFAULT_CONCURRENCY, run_all
from superagents.errors import BatchGenerationError
from superagents.models.cache import GenerationCacheKey, TtlClass
from superagents.models.generation import (
    SUMMARY_DOCUMENT_NAME,
    Artifact,
    ArtifactBundle,
    ArtifactSource,
    Failure,
    GenerationTask,
    ItemKind,
    Placeholder,
    Success,
)
from superagents.placeholders import render_placeholder
from superagents.prompts import build_prompt
from superagents.retry import DEFAULT_BASE_DELAY_SECONDS, DEFAULT_MAX_RETRIES, with_retry
from superagents.tiers import complexity_for, select_tier

if TYPE_CHECKING:
    from collections.abc import Sequence

    from superagents.models.generation import (
        GenerationRequest,
        ItemOutcome,
        ProgressEvent,
    )
    from superagents.protocols import (
        BackendProtocol,
        CacheProtocol,
        ProgressObserver,
        PromptBuilder,
    )

log = structlog.get_logger()

_WRAPPING_FENCE = re.compile(r"\A```(?:markdown|md)?[ \t]*\n(.*?)\n?```\Z", re.DOTALL)


def clean_response(text: str) -> str:
    """Strip a Markdown code fence, but only one that wraps the whole response."""
    stripped = text.strip()
    match = _WRAPPING_FENCE.match(stripped)
    if match is None:
        return stripped
    return match.group(1).strip()


def exceeds_failure_threshold(failed: int, total: int) -> bool:
    """True when strictly more than half of a batch failed. Exactly half is tolerated."""
    return total > 0 and failed * 2 > total


class LogProgressObserver:
    """ProgressObserver that reports completions through structlog."""

    def __init__(self, kind: str | None = None) -> None:
        self._log = log.bind(kind=kind) if kind else log

    def item_completed(self, event: ProgressEvent) -> None:
        self._log.info(
            "generation_progress",
            completed=event.completed,
            total=event.total,
            item=event.item,
            ok=event.ok,
        )


class GenerationOrchestrator:
    """Turns a GenerationRequest into a complete ArtifactBundle."""

    def __init__(
        self,
        cache: CacheProtocol,
        backend: BackendProtocol,
        *,
        prompt_builder: PromptBuilder = build_prompt,
        concurrency: int = DEFAULT_CONCURRENCY,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
        observer: ProgressObserver | None = None,
    ) -> None:
        self._cache = cache
        self._backend = backend
        self._prompt_builder = prompt_builder
        self._concurrency = concurrency
        self._max_retries = max_retries
        self._base_delay = base_delay
        self._observer = observer

    async def generate_all(self, request: GenerationRequest) -> ArtifactBundle:
        """Generate specialists, then knowledge modules, then the summary document.

        Raises BatchGenerationError as soon as one kind's batch is batch-fatal;
        no bundle is produced in that case.
        """
        log.info(
            "generation_started",
            specialists=len(request.specialists),
            knowledge_modules=len(request.knowledge_modules),
            ceiling_tier=str(request.ceiling_tier),
        )
        specialists = await self.generate_batch(
            ItemKind.SPECIALIST, request.specialists, request
        )
        knowledge_modules = await self.generate_batch(
            ItemKind.KNOWLEDGE_MODULE, request.knowledge_modules, request
        )
        summary = await self.generate_summary(request)

        bundle = ArtifactBundle(
            specialists=specialists,
            knowledge_modules=knowledge_modules,
            summary=summary,
        )
        log.info(
            "generation_complete",
            specialists=len(specialists),
            knowledge_modules=len(knowledge_modules),
            placeholders=len(bundle.placeholders()),
        )
        return bundle

    async def generate_batch(
        self,
        kind: ItemKind,
        names: Sequence[str],
        request: GenerationRequest,
    ) -> dict[str, Artifact]:
        """Generate every item of one kind. Raises BatchGenerationError on majority failure."""
        outcomes = await self._run_batch(kind, names, request)
        return self._reduce(kind, outcomes, request, fatal_on_majority=True)

    async def generate_summary(self, request: GenerationRequest) -> Artifact:
        """Generate the summary document. Failure always degrades to a placeholder."""
        outcomes = await self._run_batch(
            ItemKind.SUMMARY_DOCUMENT, [SUMMARY_DOCUMENT_NAME], request
        )
        artifacts = self._reduce(
            ItemKind.SUMMARY_DOCUMENT, outcomes, request, fatal_on_majority=False
        )
        return artifacts[SUMMARY_DOCUMENT_NAME]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _plan(self, kind: ItemKind, name: str, request: GenerationRequest) -> GenerationTask:
        tier = select_tier(request.ceiling_tier, kind, complexity_for(kind, name))
        return GenerationTask(kind=kind, name=name, tier=tier)

    @staticmethod
    def _cache_key(task: GenerationTask, request: GenerationRequest) -> GenerationCacheKey:
        return GenerationCacheKey(
            goal=request.goal,
            fingerprint=request.fingerprint,
            kind=str(task.kind),
            name=task.name,
            tier=str(task.tier),
        )

    async def _run_batch(
        self,
        kind: ItemKind,
        names: Sequence[str],
        request: GenerationRequest,
    ) -> list[ItemOutcome]:
        unique_names = list(dict.fromkeys(names))
        if not unique_names:
            return []
        tasks = [self._plan(kind, name, request) for name in unique_names]

        async def _worker(task: GenerationTask) -> Success:
            return await self._generate_one(task, request)

        results = await run_all(
            tasks,
            _worker,
            self._concurrency,
            observer=self._observer,
            identify=lambda t: f"{t.kind}:{t.name}",
        )

        outcomes: list[ItemOutcome] = []
        for result in results:
            task = result.item
            if result.ok and result.value is not None:
                outcomes.append(result.value)
            else:
                log.warning(
                    "generation_failed",
                    kind=str(task.kind),
                    name=task.name,
                    tier=str(task.tier),
                    error=str(result.error),
                )
                outcomes.append(Failure(name=task.name, tier=task.tier, error=result.error))
        return outcomes

    async def _generate_one(self, task: GenerationTask, request: GenerationRequest) -> Success:
        key = self._cache_key(task, request)
        cached = await self._cache.get(key, TtlClass.GENERATION)
        if cached is not None:
            log.info("cache_hit", kind=str(task.kind), name=task.name, tier=str(task.tier))
            return Success(name=task.name, content=cached, tier=task.tier, cached=True)

        prompt = self._prompt_builder(task.kind, task.name, request)
        log.debug("generation_requested", kind=str(task.kind), name=task.name, tier=str(task.tier))

        response = await with_retry(
            lambda: self._backend.generate(prompt, str(task.tier), kind=str(task.kind)),
            self._max_retries,
            self._base_delay,
            label=f"{task.kind}:{task.name}",
        )
        content = clean_response(response)

        await self._cache.set(key, content, TtlClass.GENERATION)
        return Success(name=task.name, content=content, tier=task.tier)

    def _reduce(
        self,
        kind: ItemKind,
        outcomes: list[ItemOutcome],
        request: GenerationRequest,
        *,
        fatal_on_majority: bool,
    ) -> dict[str, Artifact]:
        failures = [o for o in outcomes if isinstance(o, Failure)]

        if fatal_on_majority and exceeds_failure_threshold(len(failures), len(outcomes)):
            log.error(
                "batch_failed",
                kind=str(kind),
                failed=len(failures),
                total=len(outcomes),
            )
            raise BatchGenerationError(
                kind=str(kind),
                failed=len(failures),
                total=len(outcomes),
                errors=[(f.name, f.error) for f in failures],
            )

        if failures:
            log.warning(
                "batch_degraded",
                kind=str(kind),
                placeholders=len(failures),
                total=len(outcomes),
            )

        artifacts: dict[str, Artifact] = {}
        for outcome in outcomes:
            resolved = outcome
            if isinstance(outcome, Failure):
                resolved = Placeholder(
                    name=outcome.name,
                    content=render_placeholder(kind, outcome.name, request),
                    tier=outcome.tier,
                    error=outcome.error,
                )
            artifacts[resolved.name] = _to_artifact(kind, resolved)
        return artifacts


def _to_artifact(kind: ItemKind, outcome: Success | Placeholder) -> Artifact:
    if isinstance(outcome, Placeholder):
        source = ArtifactSource.PLACEHOLDER
    elif outcome.cached:
        source = ArtifactSource.CACHED
    else:
        source = ArtifactSource.GENERATED
    return Artifact(
        kind=kind,
        name=outcome.name,
        content=outcome.content,
        tier=outcome.tier,
        source=source,
    )
