from datetime import datetime
from typing import Any, Dict, List, Optional

from azure.ai.agents.aio import AgentsClient as AsyncAgentsClient
from azure.ai.agents.models import (
    CodeInterpreterToolDefinition,
    FileSearchToolDefinition,
    ListSortOrder,
)
from azure.core.credentials import AzureKeyCredential
from azure.identity.aio import DefaultAzureCredential as AsyncDefaultAzureCredential

from src.specs.common.errors import ConfigurationError
from src.specs.models.domain import AssistantSummary, ResearchMessage, RunHandle, WorkUnit
from src.shared.config import EngineSettings
from src.shared.state_common import now_ms

_TOOL_TYPES = {
    "code_interpreter": CodeInterpreterToolDefinition,
    "file_search": FileSearchToolDefinition,
}

_PATCH_FIELDS = {
    "model": "model",
    "name": "name",
    "description": "description",
    "instructions": "instructions",
    "tools": "tools",
    "temperature": "temperature",
    "topP": "top_p",
    "metadata": "metadata",
}


def _content_to_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        chunks: List[str] = []
        for part in content:
            text = getattr(part, "text", None)
            if text is None and isinstance(part, dict):
                text = part.get("text")
            value = getattr(text, "value", None)
            if value is None and isinstance(text, dict):
                value = text.get("value")
            if value is None and isinstance(text, str):
                value = text
            if isinstance(value, str):
                chunks.append(value)
        return "\n".join(chunks)
    return ""


def _timestamp_ms(value: Any) -> int:
    if isinstance(value, datetime):
        return int(value.timestamp() * 1000)
    if isinstance(value, (int, float)):
        # service timestamps are epoch seconds
        return int(value * 1000)
    return now_ms()


def _tool_to_dict(tool: Any) -> Dict[str, Any]:
    tool_type = tool.get("type") if isinstance(tool, dict) else getattr(tool, "type", None)
    return {"type": str(tool_type)} if tool_type else {}


def _to_sdk_tools(tools: List[Dict[str, Any]]) -> List[Any]:
    converted: List[Any] = []
    for tool in tools:
        factory = _TOOL_TYPES.get(str(tool.get("type")))
        converted.append(factory() if factory else tool)
    return converted


def _to_sdk_kwargs(patch: Dict[str, Any]) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {}
    for key, value in patch.items():
        target = _PATCH_FIELDS.get(key)
        if target is None or value is None:
            continue
        kwargs[target] = _to_sdk_tools(value) if key == "tools" else value
    return kwargs


def to_assistant_summary(agent: Any) -> AssistantSummary:
    return AssistantSummary(
        id=agent.id,
        name=getattr(agent, "name", None),
        description=getattr(agent, "description", None),
        model=getattr(agent, "model", None),
        instructions=getattr(agent, "instructions", None),
        tools=[t for t in (_tool_to_dict(t) for t in (getattr(agent, "tools", None) or [])) if t],
        temperature=getattr(agent, "temperature", None),
        topP=getattr(agent, "top_p", None),
        metadata=dict(getattr(agent, "metadata", None) or {}),
    )


def to_research_message(message: Any) -> ResearchMessage:
    role = getattr(message, "role", None)
    return ResearchMessage(
        id=message.id,
        role=str(getattr(role, "value", role) or "assistant"),
        content=_content_to_text(getattr(message, "content", "")),
        createdAt=_timestamp_ms(getattr(message, "created_at", None)),
    )


class AgentsTransport:
    """Assistant transport backed by the Azure AI Agents async client."""

    def __init__(self, client: AsyncAgentsClient, *, credential: Any = None) -> None:
        self._client = client
        self._credential = credential

    async def create_thread(self) -> WorkUnit:
        thread = await self._client.threads.create()
        return WorkUnit(threadId=thread.id)

    async def post_message(self, thread_id: str, role: str, content: str) -> Any:
        return await self._client.messages.create(thread_id=thread_id, role=role, content=content)

    async def create_run(self, thread_id: str, assistant_id: str) -> RunHandle:
        run = await self._client.runs.create(thread_id=thread_id, agent_id=assistant_id)
        return RunHandle(threadId=thread_id, runId=run.id)

    async def get_run_status(self, thread_id: str, run_id: str) -> str:
        run = await self._client.runs.get(thread_id=thread_id, run_id=run_id)
        status = getattr(run, "status", None)
        return str(getattr(status, "value", status) or "").lower()

    async def list_messages(self, thread_id: str) -> List[ResearchMessage]:
        pager = self._client.messages.list(thread_id=thread_id, order=ListSortOrder.DESCENDING)
        return [to_research_message(m) async for m in pager]

    async def list_assistants(self, *, limit: int = 20) -> List[AssistantSummary]:
        found: List[AssistantSummary] = []
        async for agent in self._client.list_agents(limit=limit, order=ListSortOrder.DESCENDING):
            found.append(to_assistant_summary(agent))
            if len(found) >= limit:
                break
        return found

    async def retrieve_assistant(self, assistant_id: str) -> AssistantSummary:
        return to_assistant_summary(await self._client.get_agent(assistant_id))

    async def update_assistant(self, assistant_id: str, patch: Dict[str, Any]) -> AssistantSummary:
        agent = await self._client.update_agent(assistant_id, **_to_sdk_kwargs(patch))
        return to_assistant_summary(agent)

    async def create_assistant(self, spec: Dict[str, Any]) -> AssistantSummary:
        agent = await self._client.create_agent(**_to_sdk_kwargs(spec))
        return to_assistant_summary(agent)

    async def close(self) -> None:
        await self._client.close()
        if self._credential is not None and hasattr(self._credential, "close"):
            await self._credential.close()


def create_agents_transport(api_key: str, settings: Optional[EngineSettings] = None) -> AgentsTransport:
    """Build the production transport for a session credential."""
    settings = settings or EngineSettings.from_env()
    if not settings.projectEndpoint:
        raise ConfigurationError("PROJECT_ENDPOINT is required for the agents client")
    if settings.authMode == "identity":
        credential: Any = AsyncDefaultAzureCredential(
            exclude_managed_identity_credential=settings.disableManagedIdentity
        )
    else:
        credential = AzureKeyCredential(api_key)
    client = AsyncAgentsClient(settings.projectEndpoint, credential)
    return AgentsTransport(client, credential=credential)


__all__ = [
    "AgentsTransport",
    "create_agents_transport",
    "to_assistant_summary",
    "to_research_message",
]
