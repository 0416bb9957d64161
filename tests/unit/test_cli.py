"""Unit tests for superagents.cli.

Every test points the cache at a temporary database through the environment,
and structlog configuration is left untouched so captured streams are not
retained by cached loggers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from superagents.cli import _build_parser, _settings_for, main
from superagents.errors import BackendError, BackendErrorCategory

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    db_path = tmp_path / "cache" / "cache.db"
    monkeypatch.setenv("SUPERAGENTS__CACHE__DB_PATH", str(db_path))
    monkeypatch.setenv("SUPERAGENTS__BACKEND__API_KEY", "sk-test")
    monkeypatch.setenv("SUPERAGENTS__GENERATION__BASE_DELAY_SECONDS", "0")
    monkeypatch.chdir(tmp_path)
    with patch("superagents.cli.setup_logging"):
        yield db_path


@pytest.fixture()
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "package.json").write_text('{"name": "demo"}')
    (root / "src" / "index.ts").write_text("export {}")
    return root


class TestArgumentParsing:
    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([]) == 1
        assert "usage:" in capsys.readouterr().out

    def test_generate_flags(self) -> None:
        args = _build_parser().parse_args(
            [
                "generate",
                "--goal", "Ship it",
                "--specialist", "qa",
                "--specialist", "devops",
                "--knowledge-module", "git",
                "--tier", "opus",
            ]
        )
        assert args.specialists == ["qa", "devops"]
        assert args.knowledge_modules == ["git"]
        assert args.project == "."
        assert args.force is False

    def test_tier_flag_overrides_settings(self) -> None:
        args = _build_parser().parse_args(["generate", "--goal", "x", "--tier", "opus"])
        assert _settings_for(args).generation.ceiling_tier == "opus"

    def test_verbose_enables_debug(self) -> None:
        args = _build_parser().parse_args(["-v", "cache", "--stats"])
        assert _settings_for(args).logging.level == "DEBUG"

    def test_invalid_tier_rejected(self) -> None:
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["generate", "--goal", "x", "--tier", "huge"])


class TestCacheCommand:
    def test_stats_on_empty_cache(self, isolated_env: Path, capsys) -> None:
        assert main(["cache", "--stats"]) == 0
        out = capsys.readouterr().out
        assert f"Location: {isolated_env}" in out
        assert "generation entries: 0" in out
        assert "scan entries: 0" in out
        assert "Total size: 0.0 KB" in out

    def test_clear(self, capsys) -> None:
        assert main(["cache", "--clear"]) == 0
        assert "Cache cleared" in capsys.readouterr().out

    def test_without_flags_prints_usage(self, capsys) -> None:
        assert main(["cache"]) == 0
        assert "superagents cache --stats" in capsys.readouterr().out


class TestGenerateCommand:
    def test_writes_bundle(self, project: Path, backend_factory, capsys) -> None:
        with patch("superagents.state.build_backend", return_value=backend_factory()):
            code = main(
                [
                    "generate",
                    "--goal", "Build a SaaS analytics dashboard",
                    "--project", str(project),
                    "--specialist", "backend-engineer",
                    "--knowledge-module", "react",
                ]
            )

        assert code == 0
        assert (project / ".claude" / "agents" / "backend-engineer.md").exists()
        assert (project / ".claude" / "skills" / "react.md").exists()
        assert (project / "CLAUDE.md").exists()
        assert "Wrote 3 files" in capsys.readouterr().out

    def test_reports_placeholders(self, project: Path, backend_factory, capsys) -> None:
        backend = backend_factory(
            failures={"qa": BackendError(BackendErrorCategory.REJECTED, "400")}
        )
        with patch("superagents.state.build_backend", return_value=backend):
            code = main(
                [
                    "generate",
                    "--goal", "Ship it",
                    "--project", str(project),
                    "--specialist", "qa",
                    "--specialist", "devops",
                ]
            )

        assert code == 0
        assert "1 placeholder(s) need regeneration: qa" in capsys.readouterr().out

    def test_batch_failure_exits_nonzero(self, project: Path, backend_factory, capsys) -> None:
        backend = backend_factory(
            failures={"qa": BackendError(BackendErrorCategory.REJECTED, "400")}
        )
        with patch("superagents.state.build_backend", return_value=backend):
            code = main(
                ["generate", "--goal", "Ship it", "--project", str(project), "--specialist", "qa"]
            )

        assert code == 1
        assert "Generation failed for 1/1 specialists" in capsys.readouterr().err
        assert not (project / ".claude").exists()

    def test_existing_output_needs_force(self, project: Path, backend_factory, capsys) -> None:
        (project / ".claude").mkdir()
        backend = backend_factory()
        with patch("superagents.state.build_backend", return_value=backend):
            code = main(
                [
                    "generate",
                    "--goal", "Ship it",
                    "--project", str(project),
                    "--specialist", "a",
                    "--specialist", "b",
                ]
            )

        assert code == 1
        assert "--force" in capsys.readouterr().err
        assert backend.calls == []

    def test_force_replaces_existing_output(self, project: Path, backend_factory) -> None:
        stale = project / ".claude" / "agents" / "stale.md"
        stale.parent.mkdir(parents=True)
        stale.write_text("old")
        with patch("superagents.state.build_backend", return_value=backend_factory()):
            code = main(
                [
                    "generate",
                    "--goal", "Ship it",
                    "--project", str(project),
                    "--specialist", "qa",
                    "--force",
                ]
            )

        assert code == 0
        assert not stale.exists()
        assert (project / ".claude" / "agents" / "qa.md").exists()

    def test_no_items_selected_is_invalid_input(
        self, project: Path, backend_factory, capsys
    ) -> None:
        backend = backend_factory()
        with patch("superagents.state.build_backend", return_value=backend):
            code = main(["generate", "--goal", "Ship it", "--project", str(project)])

        assert code == 1
        assert "No specialists or knowledge modules selected" in capsys.readouterr().err
        assert backend.calls == []
        assert not (project / "CLAUDE.md").exists()

    def test_blank_goal_is_invalid_input(self, project: Path, capsys) -> None:
        code = main(
            ["generate", "--goal", "   ", "--project", str(project), "--specialist", "qa"]
        )
        assert code == 1
        assert capsys.readouterr().err.startswith("Error:")

    def test_unsafe_item_name_is_invalid_input(self, project: Path, capsys) -> None:
        code = main(
            ["generate", "--goal", "x", "--project", str(project), "--specialist", "../evil"]
        )
        assert code == 1
        assert "invalid item name" in capsys.readouterr().err

    def test_missing_api_key(
        self, project: Path, monkeypatch: pytest.MonkeyPatch, capsys
    ) -> None:
        monkeypatch.delenv("SUPERAGENTS__BACKEND__API_KEY")
        code = main(
            ["generate", "--goal", "x", "--project", str(project), "--specialist", "qa"]
        )
        assert code == 1
        assert "API key" in capsys.readouterr().err
