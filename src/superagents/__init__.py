"""SuperAgents: goal-aware specialist and knowledge-module generation."""

from __future__ import annotations

import warnings
from importlib.metadata import PackageNotFoundError, version

_DIST_NAME = "superagents"
_FALLBACK_VERSION = "0.0.0+unknown"

try:
    __version__ = version(_DIST_NAME)
except PackageNotFoundError:
    # Running from a checkout that was never installed.
    warnings.warn(
        f"No installed metadata for {_DIST_NAME!r}; reporting version {_FALLBACK_VERSION!r}.",
        RuntimeWarning,
        stacklevel=2,
    )
    __version__ = _FALLBACK_VERSION
