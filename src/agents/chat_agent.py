from src.agents.base import Agent
from src.specs.common.errors import PreconditionError, ResearchError
from src.specs.models.domain import ResearchMessage, WorkUnit
from src.shared.logging_utils import info as log_info, error as log_error
from src.shared.state_common import now_ms


class ChatAgent(Agent):
    """Ad-hoc chat turns on one long-lived thread."""

    async def run(self, content: str) -> ResearchMessage:
        return await self.send_message(content)

    async def start_chat(self) -> WorkUnit:
        state = self._store.snapshot()
        self._require_assistant(state)
        thread = await self._gateway.execute(self._transport.create_thread, "creating chat thread")
        self._store.update(showChat=True, threadId=thread.threadId, epoch=state.epoch)
        log_info(self._trace_id, "chat:started", threadId=thread.threadId)
        return thread

    async def send_message(self, content: str) -> ResearchMessage:
        state = self._store.snapshot()
        if not state.threadId or state.selectedAssistant is None or state.apiKey is None:
            raise PreconditionError("Thread, assistant, or API key not initialized")
        if state.isLoading:
            # one run at a time per thread
            raise PreconditionError("A message is already being processed")
        if not content or not content.strip():
            raise PreconditionError("Message content is empty")
        epoch = state.epoch

        user_message = ResearchMessage(id=str(now_ms()), role="user", content=content, createdAt=now_ms())
        self._store.replace(
            lambda s: {"isLoading": True, "messages": [*s.messages, user_message]},
            epoch=epoch,
        )
        try:
            _, completion = await self._run_prompt(
                assistant_id=state.selectedAssistant.id,
                prompt=content,
                label="chat",
                max_attempts=self._settings.chatMaxAttempts,
                epoch=epoch,
                thread=WorkUnit(threadId=state.threadId),
            )
        except ResearchError as exc:
            self._store.update(isLoading=False, epoch=epoch)
            log_error(self._trace_id, "chat:failed", code=exc.code, error=str(exc))
            self._check_disconnected(exc, epoch, "chat")
            raise

        reply = ResearchMessage(
            id=completion.message.id,
            role="assistant",
            content=completion.text,
            createdAt=now_ms(),
        )
        self._store.replace(
            lambda s: {"isLoading": False, "messages": [*s.messages, reply]},
            epoch=epoch,
        )
        return reply


__all__ = ["ChatAgent"]
