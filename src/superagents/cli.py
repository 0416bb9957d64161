"""Command-line entrypoint.

Responsibilities (and nothing more):
- Parse arguments and build Settings
- Configure structlog
- Open AppState for the duration of one command
- Render SuperAgentsError as a message and a non-zero exit code

Usage:
    superagents generate --goal TEXT [--project DIR] [--specialist NAME]...
                         [--knowledge-module NAME]... [--tier TIER] [--force]
    superagents cache --stats | --clear
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import structlog
from pydantic import ValidationError

from superagents import __version__
from superagents.config import Settings
from superagents.errors import ErrorCode, SuperAgentsError
from superagents.fingerprint import project_fingerprint
from superagents.models.generation import GenerationRequest, Tier
from superagents.orchestrator import GenerationOrchestrator, LogProgressObserver
from superagents.scanner import scan_project
from superagents.state import open_app_state
from superagents.writer import check_output_dir, write_bundle

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [*shared_processors, structlog.processors.JSONRenderer()]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        # stdout is reserved for command output
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def run_generate(args: argparse.Namespace, settings: Settings) -> int:
    project_root = Path(args.project).expanduser().resolve()
    if not args.specialists and not args.knowledge_modules:
        raise SuperAgentsError(
            code=ErrorCode.INVALID_INPUT,
            message="No specialists or knowledge modules selected.",
            suggestion="Pass at least one --specialist or --knowledge-module.",
        )
    check_output_dir(project_root, force=args.force)

    async with open_app_state(settings) as state:
        if state.backend is None:
            raise RuntimeError("backend not initialized")

        fingerprint = project_fingerprint(project_root)
        scan = await scan_project(project_root, state.cache, fingerprint=fingerprint)

        try:
            request = GenerationRequest(
                goal=args.goal,
                fingerprint=fingerprint,
                ceiling_tier=Tier(settings.generation.ceiling_tier),
                specialists=args.specialists,
                knowledge_modules=args.knowledge_modules,
                category=args.category,
                scan=scan,
            )
        except ValidationError as exc:
            raise SuperAgentsError(
                code=ErrorCode.INVALID_INPUT,
                message=str(exc),
                suggestion="Provide a non-empty goal and plain item names "
                "(letters, digits, '.', '_', '-').",
            ) from exc

        orchestrator = GenerationOrchestrator(
            state.cache,
            state.backend,
            concurrency=settings.generation.concurrency,
            max_retries=settings.generation.max_retries,
            base_delay=settings.generation.base_delay_seconds,
            observer=LogProgressObserver(),
        )
        bundle = await orchestrator.generate_all(request)

    summary = write_bundle(bundle, project_root, force=args.force)
    print(f"Wrote {len(summary.written)} files to {project_root}")
    if summary.placeholders:
        print(
            f"{len(summary.placeholders)} placeholder(s) need regeneration: "
            + ", ".join(summary.placeholders)
        )
    return 0


async def run_cache(args: argparse.Namespace, settings: Settings) -> int:
    async with open_app_state(settings, with_backend=False) as state:
        if args.clear:
            await state.cache.clear()
            print("Cache cleared")
            return 0

        if args.stats:
            stats = await state.cache.stats()
            print(f"Location: {Path(settings.cache.db_path).expanduser()}")
            for ttl_class, count in sorted(stats.entry_counts.items()):
                print(f"{ttl_class} entries: {count}")
            print(f"Total size: {stats.total_bytes / 1024:.1f} KB")
            return 0

    print("Cache commands:")
    print("  superagents cache --stats   View cache size")
    print("  superagents cache --clear   Delete cached data")
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="superagents",
        description="Generate goal-aware specialists and knowledge modules for a project",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command")

    p_generate = subparsers.add_parser("generate", help="Generate artifacts for a project")
    p_generate.add_argument("--goal", required=True, help="What you are building")
    p_generate.add_argument(
        "--project", default=".", help="Project root (default: current directory)"
    )
    p_generate.add_argument(
        "--specialist", dest="specialists", action="append", default=[],
        help="Specialist to generate (repeatable)",
    )
    p_generate.add_argument(
        "--knowledge-module", dest="knowledge_modules", action="append", default=[],
        help="Knowledge module to generate (repeatable)",
    )
    p_generate.add_argument("--category", default=None, help="Project category hint")
    p_generate.add_argument(
        "--tier", choices=[t.value for t in Tier], default=None,
        help="Most capable backend tier to use (default: from settings)",
    )
    p_generate.add_argument(
        "--force", action="store_true", help="Replace an existing .claude directory"
    )
    p_generate.set_defaults(func=run_generate)

    p_cache = subparsers.add_parser("cache", help="View or clear cached data")
    group = p_cache.add_mutually_exclusive_group()
    group.add_argument("--stats", action="store_true", help="Show cache size and entries")
    group.add_argument("--clear", action="store_true", help="Delete all cached data")
    p_cache.set_defaults(func=run_cache)

    return parser


def _settings_for(args: argparse.Namespace) -> Settings:
    overrides: dict = {}
    if getattr(args, "tier", None):
        overrides["generation"] = {"ceiling_tier": args.tier}
    if args.verbose:
        overrides["logging"] = {"level": "DEBUG"}
    return Settings(**overrides)


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    settings = _settings_for(args)
    setup_logging(settings)

    try:
        return asyncio.run(args.func(args, settings))
    except SuperAgentsError as exc:
        log.debug("command_failed", code=exc.code, message=exc.message)
        print(f"Error: {exc.message}", file=sys.stderr)
        if exc.suggestion:
            print(f"  {exc.suggestion}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
