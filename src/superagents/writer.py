"""Writes an ArtifactBundle into a project.

Layout:
  <project>/CLAUDE.md
  <project>/.claude/agents/<specialist>.md
  <project>/.claude/skills/<knowledge-module>.md
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from superagents.errors import ErrorCode, SuperAgentsError

if TYPE_CHECKING:
    from pathlib import Path

    from superagents.models.generation import ArtifactBundle

log = structlog.get_logger()

OUTPUT_DIR = ".claude"


@dataclass
class WriteSummary:
    written: list[Path] = field(default_factory=list)
    placeholders: list[str] = field(default_factory=list)


def check_output_dir(project_root: Path, *, force: bool = False) -> Path:
    """Return the output directory, raising OUTPUT_EXISTS if it is taken and not ``force``.

    Checked once before generation starts and again when the bundle is written.
    """
    output_dir = project_root / OUTPUT_DIR
    if output_dir.exists() and not force:
        raise SuperAgentsError(
            code=ErrorCode.OUTPUT_EXISTS,
            message=f"{output_dir} already exists.",
            suggestion="Re-run with --force to replace it.",
        )
    return output_dir


def write_bundle(
    bundle: ArtifactBundle, project_root: Path, *, force: bool = False
) -> WriteSummary:
    """Write every artifact in ``bundle``. Replaces ``.claude/`` only when ``force``."""
    output_dir = check_output_dir(project_root, force=force)
    if output_dir.exists():
        shutil.rmtree(output_dir)

    agents_dir = output_dir / "agents"
    skills_dir = output_dir / "skills"
    agents_dir.mkdir(parents=True)
    skills_dir.mkdir(parents=True)

    summary = WriteSummary()
    targets = [
        *((agents_dir / a.filename, a) for a in bundle.specialists.values()),
        *((skills_dir / a.filename, a) for a in bundle.knowledge_modules.values()),
        (project_root / bundle.summary.filename, bundle.summary),
    ]
    for path, artifact in targets:
        path.write_text(artifact.content, encoding="utf-8")
        summary.written.append(path)
        if artifact.is_placeholder:
            summary.placeholders.append(artifact.name)

    log.info("bundle_written", files=len(summary.written), placeholders=len(summary.placeholders))
    return summary
