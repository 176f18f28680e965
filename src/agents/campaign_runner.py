from typing import List, Optional, Sequence

from src.agents.phase_orchestrator import PhaseOrchestrator
from src.specs.common.enums import PhaseId, automated_phases
from src.specs.common.errors import CampaignError, PreconditionError, ResearchError
from src.shared.logging_utils import info as log_info, error as log_error


class SequentialCampaignRunner:
    """Run the automated phases for one keyword, strictly in order.

    Stops on the first failing phase; phases after it are not attempted and
    keep whatever value they held before the campaign. Success makes the
    campaign eligible for aggregation but does not start it.
    """

    def __init__(self, orchestrator: PhaseOrchestrator, *, trace_id: Optional[str] = None) -> None:
        self._orchestrator = orchestrator
        self._trace_id = trace_id

    async def run_campaign(self, keyword: str, phases: Optional[Sequence[PhaseId]] = None) -> bool:
        ordered: List[PhaseId] = automated_phases()
        if phases is not None:
            requested = {PhaseId(p) for p in phases}
            manual = sorted(p.value for p in requested if not p.is_automated)
            if manual:
                raise PreconditionError(f"Phases cannot be sequenced automatically: {', '.join(manual)}")
            # canonical order regardless of how the subset was given
            ordered = [p for p in ordered if p in requested]

        log_info(self._trace_id, "campaign:started", keyword=keyword, phases=[p.value for p in ordered])
        for index, phase in enumerate(ordered, start=1):
            try:
                await self._orchestrator.run_phase(phase, keyword)
            except ResearchError as exc:
                log_error(
                    self._trace_id,
                    "campaign:aborted",
                    phase=phase.value,
                    completed=index - 1,
                    total=len(ordered),
                    error=str(exc),
                )
                raise CampaignError(phase.value, exc) from exc
            log_info(self._trace_id, "campaign:progress", phase=phase.value, completed=index, total=len(ordered))

        log_info(self._trace_id, "campaign:completed", keyword=keyword)
        return True


__all__ = ["SequentialCampaignRunner"]
