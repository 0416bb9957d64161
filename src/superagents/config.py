"""Configuration loading.

Sources, strongest first:
  1. Constructor arguments  (CLI flags are passed through here)
  2. Environment variables  (SUPERAGENTS__BACKEND__API_KEY=...)
  3. superagents.yaml       (searched in cwd, then platform config dir)
  4. Hardcoded defaults

The config file is optional; all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_CACHE_DIR = platformdirs.user_cache_dir("superagents")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_CACHE_DIR) / "cache.db")


def _find_config_file() -> str | None:
    """Return the path of the first superagents.yaml found, or None."""
    candidates = [
        Path("superagents.yaml"),
        Path(platformdirs.user_config_dir("superagents")) / "superagents.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class BackendSettings(BaseModel):
    auth_method: Literal["api-key", "claude-cli"] = "api-key"
    api_key: str | None = None
    base_url: str = "https://api.anthropic.com"
    api_version: str = "2023-06-01"
    timeout_seconds: float = 180.0
    max_tokens: int = 8000
    # Per item kind; kinds not listed fall back to max_tokens
    max_tokens_by_kind: dict[str, int] = {
        "specialist": 8000,
        "knowledge-module": 4000,
        "summary-document": 6000,
    }
    cli_command: str = "claude"
    models: dict[str, str] = {
        "haiku": "claude-3-5-haiku-20241022",
        "sonnet": "claude-sonnet-4-5-20250929",
        "opus": "claude-opus-4-5-20251101",
    }


class GenerationSettings(BaseModel):
    ceiling_tier: Literal["haiku", "sonnet", "opus"] = "sonnet"
    concurrency: int = 3
    max_retries: int = 3
    base_delay_seconds: float = 1.0


class CacheSettings(BaseModel):
    db_path: str = _DEFAULT_DB_PATH
    scan_ttl_hours: int = 24
    generation_ttl_hours: int = 7 * 24


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    format: Literal["json", "text"] = "text"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: SUPERAGENTS__GENERATION__MAX_RETRIES=5
        env_prefix="SUPERAGENTS__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    backend: BackendSettings = BackendSettings()
    generation: GenerationSettings = GenerationSettings()
    cache: CacheSettings = CacheSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # CLI overrides arrive as constructor kwargs
            env_settings,
            YamlConfigSettingsSource(settings_cls),
            # no .env or secrets-dir support
        )
