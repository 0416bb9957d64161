from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    SOURCE_ROOT_UNREADABLE = "SOURCE_ROOT_UNREADABLE"
    BACKEND_ERROR = "BACKEND_ERROR"
    BATCH_GENERATION_FAILED = "BATCH_GENERATION_FAILED"
    INVALID_INPUT = "INVALID_INPUT"
    OUTPUT_EXISTS = "OUTPUT_EXISTS"


class BackendErrorCategory(StrEnum):
    RATE_LIMITED = "rate_limited"
    OVERLOADED = "overloaded"
    NETWORK = "network"
    TIMEOUT = "timeout"
    REJECTED = "rejected"
    MALFORMED_RESPONSE = "malformed_response"


RETRYABLE_CATEGORIES: frozenset[BackendErrorCategory] = frozenset(
    {
        BackendErrorCategory.RATE_LIMITED,
        BackendErrorCategory.OVERLOADED,
        BackendErrorCategory.NETWORK,
        BackendErrorCategory.TIMEOUT,
    }
)


class SuperAgentsError(Exception):
    """Raised for all expected failure conditions.

    Caught by cli.py and rendered as a message plus suggestion. Never catch
    this inside business logic; let it propagate so the operator sees
    what went wrong and what to try next.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
                "recoverable": self.recoverable,
            }
        }


class BackendError(SuperAgentsError):
    """A single generation call failed.

    ``category`` drives the retry decision; ``status_code`` is set when the
    failure came from an HTTP response.
    """

    def __init__(
        self,
        category: BackendErrorCategory,
        message: str,
        *,
        status_code: int | None = None,
    ) -> None:
        retryable = category in RETRYABLE_CATEGORIES
        super().__init__(
            code=ErrorCode.BACKEND_ERROR,
            message=message,
            suggestion=(
                "The generation backend is busy or unreachable. Try again shortly."
                if retryable
                else "Check your API key, model configuration, and backend settings."
            ),
            recoverable=retryable,
        )
        self.category = category
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.category in RETRYABLE_CATEGORIES


class BatchGenerationError(SuperAgentsError):
    """More than half of one kind's items failed permanently."""

    def __init__(
        self,
        kind: str,
        failed: int,
        total: int,
        errors: list[tuple[str, BaseException]],
    ) -> None:
        sample = "; ".join(f"{name}: {error}" for name, error in errors[:3])
        message = f"Generation failed for {failed}/{total} {kind}s."
        if sample:
            message = f"{message} Errors: {sample}"
        super().__init__(
            code=ErrorCode.BATCH_GENERATION_FAILED,
            message=message,
            suggestion="This usually indicates an API or authentication issue. "
            "Check your credentials and retry.",
            recoverable=True,
        )
        self.kind = kind
        self.failed = failed
        self.total = total
        self.errors = errors
