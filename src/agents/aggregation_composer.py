from typing import List, Optional, Tuple

from src.agents.base import Agent
from src.specs.agents.research_prompts import build_synthesis_prompt
from src.specs.common.enums import GenerationStatus, PhaseId
from src.specs.common.errors import ResearchError
from src.specs.models.domain import ArtifactGeneration, ResearchState
from src.shared.logging_utils import info as log_info, error as log_error


def completed_blocks(state: ResearchState) -> List[Tuple[PhaseId, str]]:
    """Completed phase results in campaign-map order."""
    return [
        (phase, result.resultText)
        for phase, result in state.researchThreads.items()
        if result is not None and result.completed
    ]


class AggregationComposer(Agent):
    """Synthesize the final article from every completed phase.

    Partial campaigns are accepted: with no completed phase the synthesis
    request is still sent with an empty research section.
    """

    async def run(self) -> ArtifactGeneration:
        return await self.generate_artifact()

    async def generate_artifact(self, *, max_attempts: Optional[int] = None) -> ArtifactGeneration:
        epoch = self._store.epoch
        self._store.update(
            articleGeneration=ArtifactGeneration(status=GenerationStatus.GENERATING),
            epoch=epoch,
        )
        state = self._store.snapshot()
        try:
            assistant_id = self._require_assistant(state)
            blocks = completed_blocks(state)
            prompt = build_synthesis_prompt(blocks, state.userContent)
            log_info(
                self._trace_id,
                "article:started",
                phases=[p.value for p, _ in blocks],
                promptLen=len(prompt),
            )
            _, completion = await self._run_prompt(
                assistant_id=assistant_id,
                prompt=prompt,
                label="article synthesis",
                max_attempts=max_attempts if max_attempts is not None else self._settings.synthesisMaxAttempts,
                epoch=epoch,
            )
        except ResearchError as exc:
            self._store.update(
                articleGeneration=ArtifactGeneration(status=GenerationStatus.ERROR, error=str(exc)),
                epoch=epoch,
            )
            log_error(self._trace_id, "article:failed", code=exc.code, error=str(exc))
            self._check_disconnected(exc, epoch, "article synthesis")
            raise

        generation = ArtifactGeneration(status=GenerationStatus.COMPLETE, content=completion.text)
        self._store.update(articleGeneration=generation, epoch=epoch)
        log_info(self._trace_id, "article:completed", contentLen=len(completion.text))
        return generation


__all__ = ["AggregationComposer", "completed_blocks"]
