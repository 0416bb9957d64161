"""Retry policy for single generation calls.

Only transient failures are retried: rate limiting, backend overload, and
network-level errors (connection resets, timeouts). Everything else is
re-raised on the first attempt without any delay.
"""

from __future__ import annotations

import asyncio
import random
from typing import TYPE_CHECKING, TypeVar

import httpx
import structlog

from superagents.errors import BackendError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

log = structlog.get_logger()

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_SECONDS = 1.0


def _jittered_delay(base_seconds: float) -> float:
    return base_seconds * random.uniform(0.8, 1.2)


def is_retryable(error: BaseException) -> bool:
    """Classify an exception raised by a generation call."""
    if isinstance(error, BackendError):
        return error.retryable
    return isinstance(
        error, (httpx.TransportError, TimeoutError, ConnectionError)
    )


def backoff_delay(base_delay: float, attempt: int, *, jitter: bool = True) -> float:
    """Delay before retry number ``attempt + 1`` (``attempt`` is 0-based)."""
    delay = base_delay * (2**attempt)
    return _jittered_delay(delay) if jitter else delay


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
    *,
    jitter: bool = True,
    label: str = "operation",
) -> T:
    """Invoke ``operation`` up to ``1 + max_retries`` times.

    Non-retryable errors propagate immediately. After the last retryable
    failure the final error is re-raised unchanged.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as exc:
            if not is_retryable(exc):
                raise
            if attempt >= max_retries:
                log.warning(
                    "retry_exhausted", label=label, attempts=attempt + 1, error=str(exc)
                )
                raise
            delay = backoff_delay(base_delay, attempt, jitter=jitter)
            log.info(
                "retry_scheduled",
                label=label,
                attempt=attempt + 1,
                max_retries=max_retries,
                delay_seconds=round(delay, 2),
                error=str(exc),
            )
            await asyncio.sleep(delay)
            attempt += 1
