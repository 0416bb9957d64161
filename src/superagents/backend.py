"""Generative backend clients.

Two implementations of BackendProtocol:

- ``MessagesApiBackend`` talks to the Messages HTTP API through an injected
  httpx.AsyncClient. The state lifecycle owns the client.
- ``ClaudeCliBackend`` shells out to a locally authenticated ``claude`` CLI.

Both translate every failure into ``BackendError`` with a category the retry
policy understands. Neither retries on its own.
"""

from __future__ import annotations

import asyncio
import re
from typing import TYPE_CHECKING

import httpx
import structlog

from superagents.errors import BackendError, BackendErrorCategory

if TYPE_CHECKING:
    from superagents.config import BackendSettings
    from superagents.protocols import BackendProtocol

log = structlog.get_logger()

_OVERLOADED_STATUSES = frozenset({503, 529})
_RATE_LIMIT_PATTERN = re.compile(r"rate.?limit|too many requests|\b429\b", re.IGNORECASE)


def build_http_client(settings: BackendSettings) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once per invocation."""
    return httpx.AsyncClient(
        base_url=settings.base_url,
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers={"User-Agent": "superagents/1.0"},
        limits=httpx.Limits(
            max_connections=10,
            max_keepalive_connections=5,
        ),
    )


def _category_for_status(status_code: int) -> BackendErrorCategory:
    if status_code == 429:
        return BackendErrorCategory.RATE_LIMITED
    if status_code in _OVERLOADED_STATUSES:
        return BackendErrorCategory.OVERLOADED
    return BackendErrorCategory.REJECTED


class MessagesApiBackend:
    """HTTP backend for the Messages API."""

    def __init__(self, client: httpx.AsyncClient, settings: BackendSettings) -> None:
        if not settings.api_key:
            raise BackendError(
                BackendErrorCategory.REJECTED,
                "An API key is required for the api-key auth method.",
            )
        self._client = client
        self._settings = settings

    def model_for(self, tier: str) -> str:
        try:
            return self._settings.models[tier]
        except KeyError:
            raise BackendError(
                BackendErrorCategory.REJECTED, f"No model configured for tier '{tier}'"
            ) from None

    def max_tokens_for(self, kind: str | None) -> int:
        if kind is None:
            return self._settings.max_tokens
        return self._settings.max_tokens_by_kind.get(kind, self._settings.max_tokens)

    async def generate(self, prompt: str, tier: str, *, kind: str | None = None) -> str:
        model = self.model_for(tier)
        max_tokens = self.max_tokens_for(kind)
        log.debug("backend_request", model=model, kind=kind, max_tokens=max_tokens)
        try:
            response = await self._client.post(
                "/v1/messages",
                headers={
                    "x-api-key": self._settings.api_key or "",
                    "anthropic-version": self._settings.api_version,
                    "content-type": "application/json",
                },
                json={
                    "model": model,
                    "max_tokens": max_tokens,
                    "messages": [{"role": "user", "content": prompt}],
                },
            )
        except httpx.TimeoutException as exc:
            raise BackendError(
                BackendErrorCategory.TIMEOUT, f"Request to {model} timed out: {exc}"
            ) from exc
        except httpx.HTTPError as exc:
            raise BackendError(
                BackendErrorCategory.NETWORK, f"Network error calling {model}: {exc}"
            ) from exc

        if not response.is_success:
            raise BackendError(
                _category_for_status(response.status_code),
                f"HTTP {response.status_code} from {model}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            body = response.json()
            text = "".join(
                block["text"] for block in body["content"] if block.get("type") == "text"
            )
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise BackendError(
                BackendErrorCategory.MALFORMED_RESPONSE,
                f"Unexpected response body from {model}",
                status_code=response.status_code,
            ) from exc

        if not text.strip():
            raise BackendError(
                BackendErrorCategory.MALFORMED_RESPONSE,
                f"Empty completion from {model}",
                status_code=response.status_code,
            )

        log.info("backend_response", model=model, content_length=len(text))
        return text


class ClaudeCliBackend:
    """Backend that pipes prompts through ``claude --print``."""

    def __init__(self, settings: BackendSettings) -> None:
        self._command = settings.cli_command
        self._timeout = settings.timeout_seconds

    async def generate(self, prompt: str, tier: str, *, kind: str | None = None) -> str:
        args = [self._command, "--print", "--model", tier]
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise BackendError(
                BackendErrorCategory.REJECTED,
                f"'{self._command}' command not found. Install and log in to the CLI first.",
            ) from exc

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(prompt.encode("utf-8")), timeout=self._timeout
            )
        except TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise BackendError(
                BackendErrorCategory.TIMEOUT,
                f"CLI timed out after {self._timeout:.0f} seconds",
            ) from exc

        if proc.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip() or "No error message"
            category = (
                BackendErrorCategory.RATE_LIMITED
                if _RATE_LIMIT_PATTERN.search(detail)
                else BackendErrorCategory.REJECTED
            )
            raise BackendError(category, f"CLI exited with code {proc.returncode}: {detail}")

        text = stdout.decode("utf-8", errors="replace").strip()
        if not text:
            raise BackendError(BackendErrorCategory.MALFORMED_RESPONSE, "CLI returned no output")
        return text


def build_backend(
    settings: BackendSettings, client: httpx.AsyncClient | None = None
) -> BackendProtocol:
    """Pick the backend implementation for the configured auth method."""
    if settings.auth_method == "claude-cli":
        return ClaudeCliBackend(settings)
    if client is None:
        raise ValueError("api-key backend requires an httpx.AsyncClient")
    return MessagesApiBackend(client, settings)
