"""Integration test fixtures.

Provides a fully wired AppState on a temporary SQLite file with the real
Messages API backend, whose HTTP traffic is intercepted by respx.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import httpx
import pytest
import respx

from superagents.config import Settings
from superagents.state import open_app_state

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Iterator
    from pathlib import Path

    from superagents.state import AppState

API_URL = "https://api.anthropic.com/v1/messages"


def completion_for(request: httpx.Request) -> httpx.Response:
    """Echo the first prompt line back as a fenced Markdown completion."""
    body = json.loads(request.content)
    first_line = body["messages"][0]["content"].splitlines()[0]
    text = f"```markdown\n# {body['model']}\n\n{first_line}\n```"
    return httpx.Response(200, json={"content": [{"type": "text", "text": text}]})


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        backend={"api_key": "sk-test"},
        generation={"base_delay_seconds": 0},
        cache={"db_path": str(tmp_path / "cache" / "cache.db")},
    )


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    (root / "src" / "app").mkdir(parents=True)
    (root / "package.json").write_text('{"name": "dashboard", "dependencies": {}}')
    (root / "src" / "app" / "page.tsx").write_text("export default function Page() {}")
    return root


@pytest.fixture()
def messages_api() -> Iterator[respx.Route]:
    with respx.mock(assert_all_called=False) as router:
        yield router.post(API_URL).mock(side_effect=completion_for)


@pytest.fixture()
async def app_state(settings: Settings) -> AsyncGenerator[AppState, None]:
    async with open_app_state(settings) as state:
        yield state
