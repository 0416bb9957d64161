"""Bounded-concurrency execution of independent generation tasks."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

import structlog

from superagents.models.generation import ProgressEvent

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence

    from superagents.protocols import ProgressObserver

log = structlog.get_logger()

T = TypeVar("T")
R = TypeVar("R")

# Concurrent backend calls per batch; keeps us under external rate limits.
DEFAULT_CONCURRENCY = 3


@dataclass(frozen=True)
class TaskResult(Generic[T, R]):
    """Outcome of one worker invocation: exactly one of value/error is meaningful."""

    item: T
    value: R | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def run_all(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    limit: int = DEFAULT_CONCURRENCY,
    *,
    observer: ProgressObserver | None = None,
    identify: Callable[[T], str] = str,
) -> list[TaskResult[T, R]]:
    """Run ``worker`` once per item with at most ``limit`` in flight.

    Returns results in submission order. A failing item is recorded as a
    ``TaskResult`` with ``error`` set and never cancels its siblings. The
    observer, if any, is notified in completion order.
    """
    if limit < 1:
        raise ValueError(f"concurrency limit must be >= 1, got {limit}")
    if not items:
        return []

    semaphore = asyncio.Semaphore(limit)
    total = len(items)
    completed = 0

    async def _run(item: T) -> TaskResult[T, R]:
        nonlocal completed
        async with semaphore:
            try:
                result: TaskResult[T, R] = TaskResult(item=item, value=await worker(item))
            except Exception as exc:
                log.debug("task_failed", item=identify(item), error=str(exc))
                result = TaskResult(item=item, error=exc)
        completed += 1
        if observer is not None:
            try:
                observer.item_completed(
                    ProgressEvent(
                        completed=completed, total=total, item=identify(item), ok=result.ok
                    )
                )
            except Exception:
                log.warning("progress_observer_error", item=identify(item), exc_info=True)
        return result

    return list(await asyncio.gather(*(_run(item) for item in items)))
