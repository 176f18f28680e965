from typing import Optional

from src.agents.base import Agent
from src.specs.agents.research_prompts import build_research_prompt
from src.specs.common.enums import PhaseId
from src.specs.common.errors import PreconditionError, ResearchError
from src.specs.models.domain import PhaseResult, ResearchMessage
from src.shared.logging_utils import info as log_info, error as log_error
from src.shared.state_common import now_ms


class PhaseOrchestrator(Agent):
    """Run one research phase and commit its result into the campaign map.

    Every invocation creates a brand-new thread and run. On success the
    phase slot holds a completed ``PhaseResult``; on any failure the slot is
    reset to ``None`` and the error propagates.
    """

    async def run(self, phase: PhaseId, keyword: str) -> PhaseResult:
        return await self.run_phase(phase, keyword)

    async def run_phase(self, phase: PhaseId, keyword: str, *, max_attempts: Optional[int] = None) -> PhaseResult:
        phase = PhaseId(phase)
        state = self._store.snapshot()
        epoch = state.epoch
        try:
            assistant_id = self._require_assistant(state)
            if not keyword or not keyword.strip():
                raise PreconditionError("No keyword provided")
            prompt = build_research_prompt(phase, keyword)
            log_info(self._trace_id, "phase:started", phase=phase.value, keyword=keyword)
            work, completion = await self._run_prompt(
                assistant_id=assistant_id,
                prompt=prompt,
                label=f"{phase.value} research",
                max_attempts=max_attempts if max_attempts is not None else self._settings.phaseMaxAttempts,
                epoch=epoch,
            )
        except ResearchError as exc:
            self._store.set_phase(phase, None, epoch=epoch)
            log_error(self._trace_id, "phase:failed", phase=phase.value, code=exc.code, error=str(exc))
            self._check_disconnected(exc, epoch, f"{phase.value} research")
            raise

        message = completion.message
        result = PhaseResult(
            threadId=work.threadId,
            messages=[
                ResearchMessage(
                    id=message.id,
                    role="assistant",
                    content=message.content,
                    createdAt=now_ms(),
                )
            ],
            completed=True,
            resultText=message.content,
            timestamp=now_ms(),
        )
        self._store.set_phase(phase, result, epoch=epoch)
        log_info(
            self._trace_id,
            "phase:completed",
            phase=phase.value,
            threadId=work.threadId,
            attempts=completion.attempts,
            resultLen=len(result.resultText),
        )
        return result


__all__ = ["PhaseOrchestrator"]
