from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import azure.functions as func
from pydantic import BaseModel

from src.agents.research_session import ResearchSession
from src.http import research_api
from src.shared.config import EngineSettings
from src.specs.models.http import ErrorResponse
from src.shared.logging_utils import info as log_info, error as log_error

bp = func.Blueprint()

# One session per worker process; the credential lives only in memory.
_session: Optional[ResearchSession] = None


def get_session() -> ResearchSession:
    global _session
    if _session is None:
        _session = ResearchSession(settings=EngineSettings.from_env())
    return _session


def _read_body(req: func.HttpRequest) -> Tuple[Optional[Dict[str, Any]], Optional[func.HttpResponse]]:
    if not req.get_body():
        return {}, None
    try:
        body = req.get_json()
    except ValueError as exc:
        log_error(None, "http:bad_json", url=req.url, error=str(exc))
        return None, _respond(400, ErrorResponse(message="Invalid JSON body"))
    if not isinstance(body, dict):
        return None, _respond(400, ErrorResponse(message="JSON body must be an object"))
    return body, None


def _respond(status: int, model: BaseModel) -> func.HttpResponse:
    return func.HttpResponse(
        body=model.model_dump_json(),
        mimetype="application/json",
        status_code=status,
    )


async def _dispatch(
    req: func.HttpRequest,
    handler: Callable[..., Awaitable[research_api.ApiResult]],
    *args: Any,
) -> func.HttpResponse:
    body, bad_request = _read_body(req)
    if bad_request is not None:
        return bad_request
    log_info(None, "http:request", route=handler.__name__, method=req.method)
    status, model = await handler(get_session(), *args, body)
    return _respond(status, model)


@bp.function_name(name="research_connect")
@bp.route(route="research/connect", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
async def research_connect(req: func.HttpRequest) -> func.HttpResponse:
    return await _dispatch(req, research_api.connect)


@bp.function_name(name="research_disconnect")
@bp.route(route="research/disconnect", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
async def research_disconnect(req: func.HttpRequest) -> func.HttpResponse:
    return await _dispatch(req, research_api.disconnect)


@bp.function_name(name="research_select_assistant")
@bp.route(route="research/assistants/select", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
async def research_select_assistant(req: func.HttpRequest) -> func.HttpResponse:
    return await _dispatch(req, research_api.select_assistant)


@bp.function_name(name="research_assistant_instructions")
@bp.route(route="research/assistants/instructions", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
async def research_assistant_instructions(req: func.HttpRequest) -> func.HttpResponse:
    return await _dispatch(req, research_api.fetch_instructions)


@bp.function_name(name="research_update_assistant")
@bp.route(route="research/assistants/{assistantId}", methods=["PATCH"], auth_level=func.AuthLevel.ANONYMOUS)
async def research_update_assistant(req: func.HttpRequest) -> func.HttpResponse:
    return await _dispatch(req, research_api.update_assistant, req.route_params.get("assistantId", ""))


@bp.function_name(name="research_phase")
@bp.route(route="research/phase", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
async def research_phase(req: func.HttpRequest) -> func.HttpResponse:
    return await _dispatch(req, research_api.start_phase)


@bp.function_name(name="research_campaign")
@bp.route(route="research/campaign", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
async def research_campaign(req: func.HttpRequest) -> func.HttpResponse:
    return await _dispatch(req, research_api.run_campaign)


@bp.function_name(name="research_article")
@bp.route(route="research/article", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
async def research_article(req: func.HttpRequest) -> func.HttpResponse:
    return await _dispatch(req, research_api.generate_article)


@bp.function_name(name="research_chat_start")
@bp.route(route="research/chat/start", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
async def research_chat_start(req: func.HttpRequest) -> func.HttpResponse:
    return await _dispatch(req, research_api.start_chat)


@bp.function_name(name="research_chat")
@bp.route(route="research/chat", methods=["POST"], auth_level=func.AuthLevel.ANONYMOUS)
async def research_chat(req: func.HttpRequest) -> func.HttpResponse:
    return await _dispatch(req, research_api.send_message)


@bp.function_name(name="research_user_content")
@bp.route(route="research/user-content", methods=["PATCH"], auth_level=func.AuthLevel.ANONYMOUS)
async def research_user_content(req: func.HttpRequest) -> func.HttpResponse:
    return await _dispatch(req, research_api.update_user_content)


@bp.function_name(name="research_state")
@bp.route(route="research/state", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
async def research_state(req: func.HttpRequest) -> func.HttpResponse:
    return await _dispatch(req, research_api.get_state)
