"""
Host-independent handlers behind the research HTTP routes.

Each handler takes the session and the parsed JSON body and returns a
``(status_code, model)`` pair; the Functions blueprint only adapts requests
and responses.
"""
import functools
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from pydantic import BaseModel, ValidationError

from src.agents.research_session import ResearchSession
from src.specs.common.errors import (
    AuthError,
    CampaignError,
    ConfigurationError,
    DisconnectedError,
    PreconditionError,
    RateLimitError,
    RemoteRunFailure,
    ResearchError,
    RunTimeoutError,
    TransportError,
    UnknownRemoteError,
)
from src.specs.models.http import (
    CampaignRequest,
    ChatMessageRequest,
    ConnectRequest,
    ErrorResponse,
    OperationResponse,
    ResearchPhaseRequest,
    SelectAssistantRequest,
    UserContentPatch,
)
from src.shared.logging_utils import error as log_error

ApiResult = Tuple[int, BaseModel]

ERROR_STATUS = {
    PreconditionError: 400,
    AuthError: 401,
    DisconnectedError: 409,
    RateLimitError: 429,
    ConfigurationError: 500,
    UnknownRemoteError: 500,
    TransportError: 502,
    RemoteRunFailure: 502,
    RunTimeoutError: 504,
}


def status_for(exc: ResearchError) -> int:
    if isinstance(exc, CampaignError):
        return status_for(exc.cause)
    for exc_type, status in ERROR_STATUS.items():
        if isinstance(exc, exc_type):
            return status
    return 500


def error_result(exc: ResearchError) -> ApiResult:
    return status_for(exc), ErrorResponse(message=str(exc), errorCode=exc.code, details=exc.details)


def _guarded(handler: Callable[..., Awaitable[ApiResult]]) -> Callable[..., Awaitable[ApiResult]]:
    @functools.wraps(handler)
    async def wrapper(*args: Any, **kwargs: Any) -> ApiResult:
        try:
            return await handler(*args, **kwargs)
        except ValidationError as exc:
            return 400, ErrorResponse(message=f"Invalid request: {exc}", errorCode="INVALID_REQUEST")
        except ResearchError as exc:
            log_error(None, "http:research_failed", handler=handler.__name__, code=exc.code, error=str(exc))
            return error_result(exc)

    return wrapper


def _state_payload(session: ResearchSession) -> Dict[str, Any]:
    return session.snapshot().to_public_dict()


@_guarded
async def connect(session: ResearchSession, body: Optional[Dict[str, Any]]) -> ApiResult:
    req = ConnectRequest.model_validate(body or {})
    await session.connect(req.apiKey)
    return 200, OperationResponse(message="Connected", data=_state_payload(session))


@_guarded
async def disconnect(session: ResearchSession, body: Optional[Dict[str, Any]] = None) -> ApiResult:
    await session.disconnect()
    return 200, OperationResponse(message="Disconnected")


@_guarded
async def select_assistant(session: ResearchSession, body: Optional[Dict[str, Any]]) -> ApiResult:
    req = SelectAssistantRequest.model_validate(body or {})
    assistant = session.select_assistant(req.assistantId)
    return 200, OperationResponse(data={"selectedAssistant": assistant.model_dump()})


@_guarded
async def update_assistant(
    session: ResearchSession, assistant_id: str, body: Optional[Dict[str, Any]]
) -> ApiResult:
    updated = await session.update_assistant(assistant_id, body or {})
    return 200, OperationResponse(message="Assistant updated", data={"assistant": updated.model_dump()})


@_guarded
async def fetch_instructions(session: ResearchSession, body: Optional[Dict[str, Any]] = None) -> ApiResult:
    instructions = await session.fetch_instructions()
    return 200, OperationResponse(data={"instructions": instructions})


@_guarded
async def start_phase(session: ResearchSession, body: Optional[Dict[str, Any]]) -> ApiResult:
    req = ResearchPhaseRequest.model_validate(body or {})
    await session.start_research_phase(req.phase, req.keyword)
    result = session.snapshot().researchThreads[req.phase]
    return 200, OperationResponse(
        message=f"Completed {req.phase.value} analysis",
        data={"phase": req.phase.value, "result": result.model_dump() if result else None},
    )


@_guarded
async def run_campaign(session: ResearchSession, body: Optional[Dict[str, Any]]) -> ApiResult:
    req = CampaignRequest.model_validate(body or {})
    await session.run_campaign(req.keyword, req.phases)
    return 200, OperationResponse(message="All phases have been analyzed", data=_state_payload(session))


@_guarded
async def generate_article(session: ResearchSession, body: Optional[Dict[str, Any]] = None) -> ApiResult:
    generation = await session.generate_article()
    return 200, OperationResponse(message="Article generated", data={"articleGeneration": generation.model_dump(mode="json")})


@_guarded
async def start_chat(session: ResearchSession, body: Optional[Dict[str, Any]] = None) -> ApiResult:
    thread_id = await session.proceed_to_chat()
    return 200, OperationResponse(data={"threadId": thread_id})


@_guarded
async def send_message(session: ResearchSession, body: Optional[Dict[str, Any]]) -> ApiResult:
    req = ChatMessageRequest.model_validate(body or {})
    reply = await session.send_message(req.content)
    return 200, OperationResponse(data={"message": reply.model_dump()})


@_guarded
async def update_user_content(session: ResearchSession, body: Optional[Dict[str, Any]]) -> ApiResult:
    patch = UserContentPatch.model_validate(body or {})
    content = session.update_user_content(patch.to_partial())
    return 200, OperationResponse(data={"userContent": content.model_dump()})


@_guarded
async def get_state(session: ResearchSession, body: Optional[Dict[str, Any]] = None) -> ApiResult:
    return 200, OperationResponse(data=_state_payload(session))


__all__ = [
    "ERROR_STATUS",
    "status_for",
    "error_result",
    "connect",
    "disconnect",
    "select_assistant",
    "update_assistant",
    "fetch_instructions",
    "start_phase",
    "run_campaign",
    "generate_article",
    "start_chat",
    "send_message",
    "update_user_content",
    "get_state",
]
