from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from src.agents.error_classifier import classify
from src.specs.common.enums import FailureKind
from src.specs.common.errors import (
    AuthError,
    RateLimitError,
    ResearchError,
    TransportError,
    UnknownRemoteError,
)
from src.shared.logging_utils import error as log_error

T = TypeVar("T")

_FAILURE_TEMPLATES: Dict[FailureKind, str] = {
    FailureKind.AUTH: "Authentication failed. Please check your API key",
    FailureKind.RATE_LIMIT: "Rate limit exceeded. Please wait a moment before trying again",
    FailureKind.TRANSPORT: "The request could not reach the assistant service",
    FailureKind.UNKNOWN: "An unexpected error occurred",
}

_FAILURE_TYPES = {
    FailureKind.AUTH: AuthError,
    FailureKind.RATE_LIMIT: RateLimitError,
    FailureKind.TRANSPORT: TransportError,
    FailureKind.UNKNOWN: UnknownRemoteError,
}


def translate(exc: BaseException, context: str) -> ResearchError:
    """Build the typed failure for a raw transport error."""
    kind = classify(exc)
    detail = str(exc).strip()
    message = f"{_FAILURE_TEMPLATES[kind]} while {context}"
    if detail:
        message = f"{message}: {detail}"
    return _FAILURE_TYPES[kind](message, details={"kind": kind.value, "context": context})


class RequestGateway:
    """Single translation boundary between the engine and the transport.

    ``execute`` awaits one zero-argument remote operation. Results pass
    through untouched; raw errors are classified and re-raised as a
    ``ResearchError`` naming the failure kind and the caller's context.
    """

    def __init__(self, *, trace_id: Optional[str] = None) -> None:
        self._trace_id = trace_id

    async def execute(self, operation: Callable[[], Awaitable[T]], context: str) -> T:
        try:
            return await operation()
        except ResearchError:
            raise
        except Exception as exc:
            failure = translate(exc, context)
            log_error(
                self._trace_id,
                "gateway:request_failed",
                context=context,
                kind=failure.details.get("kind"),
                error=str(exc),
            )
            raise failure from exc


__all__ = ["RequestGateway", "translate"]
