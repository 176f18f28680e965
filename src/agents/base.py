from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple

from src.agents.request_gateway import RequestGateway
from src.agents.run_poller import RunPoller, Sleep
from src.specs.common.errors import DisconnectedError, PreconditionError, ResearchError
from src.specs.common.transport_spec import AssistantTransport
from src.specs.models.domain import ResearchState, RunCompletion, WorkUnit
from src.shared.config import EngineSettings
from src.shared.state import StateStore


class Agent(ABC):
    """Abstract base class for the run-driven agents.

    Holds the collaborators every agent shares and implements the common
    pipeline: thread -> user message -> run -> poll. Supports attaching a
    trace id used for logging.
    """

    def __init__(
        self,
        *,
        transport: AssistantTransport,
        store: StateStore,
        settings: Optional[EngineSettings] = None,
        gateway: Optional[RequestGateway] = None,
        sleep: Optional[Sleep] = None,
    ) -> None:
        self._trace_id: str | None = None
        self._transport = transport
        self._store = store
        self._settings = settings or EngineSettings()
        self._gateway = gateway or RequestGateway()
        self._sleep = sleep

    def with_run_trace(self, trace_id: str) -> "Agent":
        """Attach a trace id for downstream logging."""

        self._trace_id = trace_id
        return self

    def _poller(self) -> RunPoller:
        return RunPoller(
            self._gateway,
            self._transport,
            poll_interval=self._settings.poll_interval_seconds,
            sleep=self._sleep,
            trace_id=self._trace_id,
        )

    @staticmethod
    def _require_assistant(state: ResearchState) -> str:
        if state.selectedAssistant is None or state.apiKey is None:
            raise PreconditionError("No assistant selected or API key missing")
        return state.selectedAssistant.id

    def _check_disconnected(self, exc: ResearchError, epoch: int, context: str) -> None:
        """Report a failure that outlived a disconnect as ``DisconnectedError``.

        A reset closes the transport, so calls still in flight fail with
        transport-level errors; those belong to the old session.
        """
        if isinstance(exc, DisconnectedError) or self._store.is_current(epoch):
            return
        raise DisconnectedError(f"Session disconnected during {context}") from exc

    async def _run_prompt(
        self,
        *,
        assistant_id: str,
        prompt: str,
        label: str,
        max_attempts: int,
        epoch: int,
        thread: Optional[WorkUnit] = None,
    ) -> Tuple[WorkUnit, RunCompletion]:
        """Submit ``prompt`` on a thread (a new one unless given) and poll the run."""
        transport = self._transport
        if thread is None:
            thread = await self._gateway.execute(transport.create_thread, f"creating {label} thread")
        work = thread
        await self._gateway.execute(
            lambda: transport.post_message(work.threadId, "user", prompt),
            f"creating {label} message",
        )
        handle = await self._gateway.execute(
            lambda: transport.create_run(work.threadId, assistant_id),
            f"starting {label} run",
        )
        completion = await self._poller().poll(
            handle,
            max_attempts=max_attempts,
            context=label,
            is_active=lambda: self._store.is_current(epoch),
        )
        return work, completion

    @abstractmethod
    async def run(self, *args: Any, **kwargs: Any) -> Any:
        """Execute the agent and return its structured output."""


__all__ = ["Agent"]
