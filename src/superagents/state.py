"""Application state container.

AppState is created once per CLI invocation (inside ``open_app_state``) and
handed to the command handlers. It owns the cache connection and HTTP client
lifecycles; nothing in the package holds them as module-level globals.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from superagents.backend import build_backend, build_http_client
from superagents.cache import open_cache

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    import httpx

    from superagents.config import Settings
    from superagents.protocols import BackendProtocol, CacheProtocol

log = structlog.get_logger()


@dataclass
class AppState:
    """Holds all shared runtime state for one invocation."""

    settings: Settings
    cache: CacheProtocol
    backend: BackendProtocol | None = None
    http_client: httpx.AsyncClient | None = None


@asynccontextmanager
async def open_app_state(
    settings: Settings, *, with_backend: bool = True
) -> AsyncGenerator[AppState, None]:
    """Create and tear down the cache and (optionally) the backend client."""
    db_path = Path(settings.cache.db_path).expanduser()

    async with open_cache(db_path, settings.cache) as cache:
        http_client: httpx.AsyncClient | None = None
        if with_backend and settings.backend.auth_method == "api-key":
            http_client = build_http_client(settings.backend)
        try:
            backend = build_backend(settings.backend, http_client) if with_backend else None
            yield AppState(
                settings=settings,
                cache=cache,
                backend=backend,
                http_client=http_client,
            )
        finally:
            if http_client is not None:
                await http_client.aclose()
            log.debug("app_state_closed")
