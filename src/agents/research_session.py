from typing import Any, Callable, Dict, Optional, Sequence, Union

from pydantic import SecretStr

from src.agents.agents_transport import create_agents_transport
from src.agents.aggregation_composer import AggregationComposer
from src.agents.assistant_registry import ensure_research_assistant
from src.agents.campaign_runner import SequentialCampaignRunner
from src.agents.chat_agent import ChatAgent
from src.agents.phase_orchestrator import PhaseOrchestrator
from src.agents.request_gateway import RequestGateway
from src.agents.run_poller import Sleep
from src.specs.agents.research_instructions import format_instructions, validate_instructions
from src.specs.common.enums import PhaseId
from src.specs.common.errors import PreconditionError
from src.specs.common.transport_spec import AssistantTransport
from src.specs.models.domain import (
    AdditionalContent,
    ArtifactGeneration,
    AssistantChanges,
    AssistantSummary,
    ResearchMessage,
    ResearchState,
    UserContent,
)
from src.shared.config import EngineSettings
from src.shared.logging_utils import info as log_info
from src.shared.state import StateListener, StateStore

TransportFactory = Callable[[str, EngineSettings], AssistantTransport]


class ResearchSession:
    """Facade exposed to UI collaborators.

    Owns the state store and the transport for one credential. Operations
    delegate to the agents; the only forced teardown is ``disconnect``.
    """

    def __init__(
        self,
        *,
        settings: Optional[EngineSettings] = None,
        transport_factory: Optional[TransportFactory] = None,
        store: Optional[StateStore] = None,
        sleep: Optional[Sleep] = None,
        trace_id: Optional[str] = None,
    ) -> None:
        self._settings = settings or EngineSettings.from_env()
        self._transport_factory = transport_factory or create_agents_transport
        self._store = store or StateStore()
        self._sleep = sleep
        self._trace_id = trace_id
        self._gateway = RequestGateway(trace_id=trace_id)
        self._transport: Optional[AssistantTransport] = None

    @property
    def store(self) -> StateStore:
        return self._store

    def snapshot(self) -> ResearchState:
        return self._store.snapshot()

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        return self._store.subscribe(listener)

    def _require_transport(self) -> AssistantTransport:
        if self._transport is None:
            raise PreconditionError("No assistant selected or API key missing")
        return self._transport

    def _agent_kwargs(self) -> Dict[str, Any]:
        return {
            "transport": self._require_transport(),
            "store": self._store,
            "settings": self._settings,
            "gateway": self._gateway,
            "sleep": self._sleep,
        }

    def _traced(self, agent):
        return agent.with_run_trace(self._trace_id) if self._trace_id else agent

    # ---- connection ----

    async def connect(self, api_key: str) -> ResearchState:
        key = (api_key or "").strip()
        if not key:
            raise PreconditionError("API key is required")

        transport = self._transport_factory(key, self._settings)
        try:
            await ensure_research_assistant(transport, self._gateway, self._settings)
            assistants = await self._gateway.execute(
                lambda: transport.list_assistants(limit=self._settings.assistantListLimit),
                "fetching assistants",
            )
        except Exception:
            await transport.close()
            raise

        previous, self._transport = self._transport, transport
        if previous is not None:
            await previous.close()
        self._store.update(apiKey=SecretStr(key), assistants=assistants, isConnected=True)
        log_info(self._trace_id, "session:connected", assistants=len(assistants))
        return self._store.snapshot()

    async def disconnect(self) -> None:
        """Reset all state; in-flight runs are abandoned without notifying the service."""
        transport, self._transport = self._transport, None
        self._store.reset()
        if transport is not None:
            await transport.close()
        log_info(self._trace_id, "session:disconnected")

    def select_assistant(self, assistant_id: str) -> AssistantSummary:
        state = self._store.snapshot()
        match = next((a for a in state.assistants if a.id == assistant_id), None)
        if match is None:
            raise PreconditionError(f"Unknown assistant '{assistant_id}'")
        self._store.update(selectedAssistant=match)
        return match

    # ---- research ----

    async def start_research_phase(self, phase: Union[PhaseId, str], keyword: str) -> bool:
        if not keyword or not keyword.strip():
            raise PreconditionError("No keyword provided")
        agent = self._traced(PhaseOrchestrator(**self._agent_kwargs()))
        await agent.run_phase(PhaseId(phase), keyword)
        return True

    async def run_campaign(self, keyword: str, phases: Optional[Sequence[Union[PhaseId, str]]] = None) -> bool:
        if not keyword or not keyword.strip():
            raise PreconditionError("No keyword provided")
        orchestrator = self._traced(PhaseOrchestrator(**self._agent_kwargs()))
        runner = SequentialCampaignRunner(orchestrator, trace_id=self._trace_id)
        ordered = [PhaseId(p) for p in phases] if phases is not None else None
        return await runner.run_campaign(keyword, ordered)

    async def generate_article(self) -> ArtifactGeneration:
        agent = self._traced(AggregationComposer(**self._agent_kwargs()))
        return await agent.generate_artifact()

    def update_user_content(self, partial: Dict[str, Any]) -> UserContent:
        current = self._store.snapshot().userContent
        merged = current.model_dump()
        for key, value in partial.items():
            if key == "additionalContent":
                extra = AdditionalContent.model_validate({**merged["additionalContent"], **(value or {})})
                merged["additionalContent"] = extra.model_dump()
            elif key in ("links", "media"):
                merged[key] = value or []
            else:
                raise PreconditionError(f"Unknown user content field '{key}'")
        content = UserContent.model_validate(merged)
        self._store.update(userContent=content)
        return content

    # ---- chat ----

    async def proceed_to_chat(self) -> str:
        agent = self._traced(ChatAgent(**self._agent_kwargs()))
        thread = await agent.start_chat()
        return thread.threadId

    def go_back(self) -> None:
        self._store.update(showChat=False, messages=[], threadId=None)

    async def send_message(self, content: str) -> ResearchMessage:
        agent = self._traced(ChatAgent(**self._agent_kwargs()))
        return await agent.send_message(content)

    # ---- assistant settings ----

    async def update_assistant(
        self, assistant_id: str, changes: Union[AssistantChanges, Dict[str, Any]]
    ) -> AssistantSummary:
        transport = self._require_transport()
        if isinstance(changes, dict):
            changes = AssistantChanges.model_validate(changes)
        if changes.instructions is not None:
            validate_instructions(changes.instructions)
            changes = changes.model_copy(update={"instructions": format_instructions(changes.instructions)})
        patch = changes.to_patch()
        updated = await self._gateway.execute(
            lambda: transport.update_assistant(assistant_id, patch),
            "updating assistant",
        )

        def _apply(state: ResearchState) -> Dict[str, Any]:
            assistants = [updated if a.id == assistant_id else a for a in state.assistants]
            selected = state.selectedAssistant
            if selected is not None and selected.id == assistant_id:
                selected = updated
            return {"assistants": assistants, "selectedAssistant": selected}

        self._store.replace(_apply)
        return updated

    async def fetch_instructions(self) -> str:
        state = self._store.snapshot()
        transport = self._require_transport()
        if state.selectedAssistant is None:
            raise PreconditionError("No assistant selected or API key missing")
        assistant_id = state.selectedAssistant.id
        assistant = await self._gateway.execute(
            lambda: transport.retrieve_assistant(assistant_id),
            "fetching assistant instructions",
        )
        return format_instructions(assistant.instructions or "")


__all__ = ["ResearchSession", "TransportFactory"]
