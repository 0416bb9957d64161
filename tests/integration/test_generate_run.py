"""End-to-end generation runs: fingerprint, scan, orchestrate, write.

Uses a real AppState (file-backed cache, httpx client) with the Messages API
mocked by respx.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import httpx
import pytest

from superagents.errors import BatchGenerationError
from superagents.fingerprint import project_fingerprint
from superagents.models.generation import ArtifactSource, GenerationRequest, Tier
from superagents.orchestrator import GenerationOrchestrator
from superagents.scanner import scan_project
from superagents.state import open_app_state
from superagents.writer import write_bundle

if TYPE_CHECKING:
    from pathlib import Path

    import respx

    from superagents.config import Settings
    from superagents.models.generation import ArtifactBundle
    from superagents.state import AppState


async def _run(state: AppState, project: Path, **request_fields) -> ArtifactBundle:
    fingerprint = project_fingerprint(project)
    scan = await scan_project(project, state.cache, fingerprint=fingerprint)
    request = GenerationRequest(
        goal=request_fields.pop("goal", "Build a SaaS analytics dashboard"),
        fingerprint=fingerprint,
        scan=scan,
        specialists=request_fields.pop("specialists", ["frontend-engineer", "api-designer"]),
        knowledge_modules=request_fields.pop("knowledge_modules", ["nextjs", "git"]),
        **request_fields,
    )
    orchestrator = GenerationOrchestrator(state.cache, state.backend, base_delay=0.0)
    return await orchestrator.generate_all(request)


class TestGenerateRun:
    async def test_full_run_writes_project_files(
        self, app_state: AppState, project: Path, messages_api: respx.Route
    ) -> None:
        bundle = await _run(app_state, project)
        summary = write_bundle(bundle, project)

        assert messages_api.call_count == 5
        assert len(summary.written) == 5
        assert summary.placeholders == []
        agent = (project / ".claude" / "agents" / "frontend-engineer.md").read_text()
        assert not agent.startswith("```")
        assert "'frontend-engineer' specialist agent" in agent

    async def test_prompts_carry_scan_context(
        self, app_state: AppState, project: Path, messages_api: respx.Route
    ) -> None:
        await _run(app_state, project, specialists=["qa"], knowledge_modules=[])

        prompt = messages_api.calls[0].request.content.decode()
        assert "Manifests: package.json" in prompt
        assert "Source files: 1" in prompt

    async def test_rerun_is_served_from_cache(
        self, settings: Settings, project: Path, messages_api: respx.Route
    ) -> None:
        async with open_app_state(settings) as state:
            await _run(state, project)
        assert messages_api.call_count == 5

        async with open_app_state(settings) as state:
            bundle = await _run(state, project)

        assert messages_api.call_count == 5
        assert bundle.specialists["api-designer"].source == ArtifactSource.CACHED
        stats = await _stats(settings)
        assert stats.entry_counts == {"scan": 1, "generation": 5}

    async def test_manifest_change_invalidates_everything(
        self, app_state: AppState, project: Path, messages_api: respx.Route
    ) -> None:
        await _run(app_state, project)
        (project / "package.json").write_text('{"name": "dashboard", "version": "2"}')
        await _run(app_state, project)

        assert messages_api.call_count == 10

    async def test_ceiling_controls_models(
        self,
        app_state: AppState,
        project: Path,
        messages_api: respx.Route,
        settings: Settings,
    ) -> None:
        await _run(app_state, project, ceiling_tier=Tier.HAIKU)

        models = {_model(c.request) for c in messages_api.calls}
        assert models == {settings.backend.models["haiku"]}

    async def test_transient_errors_are_retried(
        self, app_state: AppState, project: Path, messages_api: respx.Route
    ) -> None:
        messages_api.side_effect = [
            httpx.Response(429, text="slow down"),
            httpx.Response(529, text="overloaded"),
            _ok("# Agent"),
            _ok("# Agent"),
        ]
        bundle = await _run(app_state, project, specialists=["qa"], knowledge_modules=[])

        assert messages_api.call_count == 4
        assert bundle.placeholders() == []

    async def test_rejected_majority_aborts_run(
        self, app_state: AppState, project: Path, messages_api: respx.Route
    ) -> None:
        messages_api.side_effect = None
        messages_api.return_value = httpx.Response(401, text="invalid x-api-key")

        with pytest.raises(BatchGenerationError) as exc_info:
            await _run(app_state, project)

        assert exc_info.value.failed == 2
        # Non-retryable: one attempt per specialist, nothing beyond the first batch
        assert messages_api.call_count == 2


def _ok(text: str) -> httpx.Response:
    return httpx.Response(200, json={"content": [{"type": "text", "text": text}]})


def _model(request: httpx.Request) -> str:
    return json.loads(request.content)["model"]


async def _stats(settings: Settings):
    async with open_app_state(settings, with_backend=False) as state:
        return await state.cache.stats()
