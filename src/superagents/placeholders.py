"""Deterministic stand-in artifacts for items whose generation failed.

Placeholders depend only on the item name and the request, so two runs with
the same inputs produce identical text. They are never written to the cache.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from superagents.models.generation import SUMMARY_DOCUMENT_NAME, ItemKind

if TYPE_CHECKING:
    from superagents.models.generation import GenerationRequest


def _retry_note(name: str) -> str:
    return (
        f"> This file is a placeholder: generation failed for {name}. "
        "Run `superagents generate` again later to replace it."
    )


_FOOTER = "---\n\nGenerated by SuperAgents\n"


def _bullets(names: list[str]) -> str:
    return "\n".join(f"- **{n}**" for n in names) or "- None selected"


def placeholder_specialist(name: str, request: GenerationRequest) -> str:
    modules = ", ".join(request.knowledge_modules)
    return f"""---
name: {name}
description: |
  {name} specialist for {request.goal}
tools: Read, Edit, Write, Glob, Grep, Bash
skills: {modules}
---

# {name}

{_retry_note(name)}

## Project Context

**Goal:** {request.goal}
**Category:** {request.category or "unspecified"}

## Responsibilities

This specialist helps you achieve the project goal by handling {name}-related tasks.

## Critical Rules

1. Always understand the project goal
2. Follow existing codebase patterns
3. Write clean, maintainable code
4. Test your changes

{_FOOTER}"""


def placeholder_knowledge_module(name: str, request: GenerationRequest) -> str:
    return f"""# {name} Skill

> Knowledge for {name} in the context of: {request.goal}

{_retry_note(name)}

## When to Use

Use this skill when working with {name} related tasks.

{_FOOTER}"""


def placeholder_summary(
    request: GenerationRequest, name: str = SUMMARY_DOCUMENT_NAME
) -> str:
    return f"""# {request.goal}

{_retry_note(name)}

## Vision

{request.goal}

## Available Specialists

{_bullets(request.specialists)}

## Available Knowledge Modules

{_bullets(request.knowledge_modules)}

{_FOOTER}"""


def render_placeholder(kind: ItemKind, name: str, request: GenerationRequest) -> str:
    if kind == ItemKind.SPECIALIST:
        return placeholder_specialist(name, request)
    if kind == ItemKind.KNOWLEDGE_MODULE:
        return placeholder_knowledge_module(name, request)
    return placeholder_summary(request, name)
