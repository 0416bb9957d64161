"""Project fingerprinting for cache invalidation.

A fingerprint is an MD5 digest (32 hex chars) over the raw bytes of a fixed,
ordered list of manifest files followed by the sorted relative paths of every
file under each source root (``src/`` and ``app/`` for a project). File
contents under a source root are never read: adding or removing a file changes
the fingerprint, editing one does not.
"""

from __future__ import annotations

import hashlib
import os
from typing import TYPE_CHECKING

import structlog

from superagents.errors import ErrorCode, SuperAgentsError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

log = structlog.get_logger()

MANIFEST_FILES: tuple[str, ...] = (
    "package.json",
    "tsconfig.json",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "requirements.txt",
    "pyproject.toml",
    "go.mod",
    "Cargo.toml",
)

SOURCE_DIR = "src"
# Next.js App Router routes live beside src/, not inside it.
APP_DIR = "app"
SOURCE_DIRS: tuple[str, ...] = (SOURCE_DIR, APP_DIR)

_SKIPPED_DIRS = frozenset({"node_modules", "dist", "build", "__pycache__"})

# Precedes each listing so that a manifest ending in a path-like line cannot
# collide with a listing entry, and so that listings of different roots stay apart.
_SECTION_SEPARATOR = b"\x00--source-listing--\x00"


def _read_manifest(path: Path) -> bytes:
    """Return the manifest bytes, or ``b""`` if it is absent or unreadable."""
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return b""
    except OSError:
        log.debug("fingerprint_manifest_unreadable", path=str(path), exc_info=True)
        return b""


def list_source_files(source_root: Path) -> list[str]:
    """Sorted POSIX-style relative paths of all files under ``source_root``.

    Raises SuperAgentsError when the root exists but cannot be listed.
    """
    if not source_root.exists():
        return []
    if not source_root.is_dir():
        raise SuperAgentsError(
            code=ErrorCode.SOURCE_ROOT_UNREADABLE,
            message=f"Source root is not a directory: {source_root}",
            suggestion="Point --project at the repository root.",
        )

    def _raise(exc: OSError) -> None:
        raise exc

    files: list[str] = []
    try:
        for dirpath, dirnames, filenames in os.walk(source_root, onerror=_raise):
            dirnames[:] = [
                d for d in dirnames if not d.startswith(".") and d not in _SKIPPED_DIRS
            ]
            rel_dir = os.path.relpath(dirpath, source_root)
            for name in filenames:
                if name.startswith("."):
                    continue
                rel = name if rel_dir == "." else os.path.join(rel_dir, name)
                files.append(rel.replace(os.sep, "/"))
    except OSError as exc:
        raise SuperAgentsError(
            code=ErrorCode.SOURCE_ROOT_UNREADABLE,
            message=f"Cannot list source root {source_root}: {exc}",
            suggestion="Check the directory permissions and try again.",
        ) from exc

    return sorted(files)


def fingerprint(
    manifest_paths: Sequence[Path],
    source_root: Path,
    extra_roots: Sequence[Path] = (),
) -> str:
    """Compute the fingerprint of a project.

    ``manifest_paths`` must be given in the same order on every call. Missing
    manifests contribute nothing. Each listed root (``source_root`` first, then
    ``extra_roots`` in order) is hashed behind its own separator; a missing root
    contributes an empty listing and an unreadable one raises
    ``SuperAgentsError``.
    """
    digest = hashlib.md5(usedforsecurity=False)
    for path in manifest_paths:
        digest.update(_read_manifest(path))

    file_count = 0
    for root in (source_root, *extra_roots):
        listing = list_source_files(root)
        digest.update(_SECTION_SEPARATOR)
        digest.update("\n".join(listing).encode("utf-8"))
        file_count += len(listing)

    value = digest.hexdigest()
    log.debug(
        "fingerprint_computed", source_root=str(source_root), files=file_count, value=value
    )
    return value


def project_fingerprint(project_root: Path) -> str:
    """Fingerprint a project using the default manifest list, ``src/`` and ``app/``."""
    return fingerprint(
        [project_root / name for name in MANIFEST_FILES],
        project_root / SOURCE_DIR,
        [project_root / APP_DIR],
    )
