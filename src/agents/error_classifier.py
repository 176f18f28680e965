from typing import Any, Mapping, Optional

from azure.core.exceptions import ClientAuthenticationError, ServiceRequestError

from src.specs.common.enums import FailureKind

AUTH_MARKERS = ("authentication", "api key", "unauthorized")
RATE_LIMIT_MARKERS = ("rate limit", "too many requests")
CROSS_ORIGIN_MARKERS = ("cors", "cross-origin")
FETCH_FAILURE_MARKER = "failed to fetch"


def _field(error: Any, name: str) -> Any:
    if isinstance(error, Mapping):
        return error.get(name)
    return getattr(error, name, None)


def _status(error: Any) -> Optional[int]:
    candidates = [_field(error, "status_code"), _field(error, "status")]
    response = _field(error, "response")
    if response is not None:
        candidates.append(getattr(response, "status_code", None))
    for value in candidates:
        try:
            if value is not None:
                return int(value)
        except (TypeError, ValueError):
            continue
    return None


def _message(error: Any) -> str:
    text = _field(error, "message")
    if not isinstance(text, str) or not text:
        text = "" if isinstance(error, Mapping) else str(error)
    return text.lower()


def _name(error: Any) -> str:
    if isinstance(error, Mapping):
        return str(error.get("name") or "")
    return type(error).__name__


def classify(error: Any) -> FailureKind:
    """Categorize a failure raised by the transport layer.

    Rules are checked in priority order: auth, rate limit, transport,
    unknown. Accepts exceptions or plain mappings and never raises.
    """
    try:
        status = _status(error)
        message = _message(error)
        if (
            status == 401
            or isinstance(error, ClientAuthenticationError)
            or any(m in message for m in AUTH_MARKERS)
        ):
            return FailureKind.AUTH
        if status == 429 or any(m in message for m in RATE_LIMIT_MARKERS):
            return FailureKind.RATE_LIMIT
        if (
            isinstance(error, (ServiceRequestError, ConnectionError))
            or any(m in message for m in CROSS_ORIGIN_MARKERS)
            or (_name(error) == "TypeError" and FETCH_FAILURE_MARKER in message)
        ):
            return FailureKind.TRANSPORT
    except Exception:
        return FailureKind.UNKNOWN
    return FailureKind.UNKNOWN


__all__ = ["classify"]
