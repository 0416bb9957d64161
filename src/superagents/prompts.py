"""Default prompt builder.

Prompt wording is deliberately minimal; callers that want richer prompts pass
their own PromptBuilder to the orchestrator.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from superagents.models.generation import ItemKind

if TYPE_CHECKING:
    from superagents.models.generation import GenerationRequest


def _project_context(request: GenerationRequest) -> str:
    lines = [f"Goal: {request.goal}"]
    if request.category:
        lines.append(f"Category: {request.category}")
    if request.scan is not None:
        manifests = ", ".join(request.scan.manifests) or "none"
        lines.append(f"Manifests: {manifests}")
        lines.append(f"Source files: {request.scan.source_file_count}")
    return "\n".join(lines)


def build_prompt(kind: ItemKind, name: str, request: GenerationRequest) -> str:
    context = _project_context(request)

    if kind == ItemKind.SPECIALIST:
        return (
            f"Write a Markdown definition for a '{name}' specialist agent.\n"
            "Start with YAML front matter (name, description, tools), then cover "
            "responsibilities, key patterns, and critical rules for this project.\n\n"
            f"{context}"
        )

    if kind == ItemKind.KNOWLEDGE_MODULE:
        return (
            f"Write a Markdown knowledge module about '{name}'.\n"
            "Cover when to use it, key concepts, short code examples, and common "
            "pitfalls, focused on this project.\n\n"
            f"{context}"
        )

    specialists = ", ".join(request.specialists) or "none"
    modules = ", ".join(request.knowledge_modules) or "none"
    return (
        "Write the project summary document (CLAUDE.md) for this repository.\n"
        "Describe the vision, the tech stack, coding principles, and how to use "
        "the available specialists and knowledge modules.\n\n"
        f"{context}\n"
        f"Specialists: {specialists}\n"
        f"Knowledge modules: {modules}"
    )
