from typing import Any, Callable, Dict, List, Optional, Union

from src.specs.common.enums import PhaseId
from src.specs.models.domain import PhaseResult, ResearchState
from src.shared.logging_utils import info as log_info, warning as log_warning, error as log_error

StateListener = Callable[[ResearchState], None]
StateUpdate = Callable[[ResearchState], Union[ResearchState, Dict[str, Any]]]


class StateStore:
    """Owned, versioned container for the session's ``ResearchState``.

    Every write replaces the whole snapshot (copy-on-write) and bumps
    ``version``. ``reset`` starts a new epoch; writes tagged with an older
    epoch are dropped so work that outlived a disconnect cannot leak into
    the fresh session.
    """

    def __init__(self, initial: Optional[ResearchState] = None) -> None:
        self._state = initial or ResearchState()
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> ResearchState:
        return self._state

    @property
    def epoch(self) -> int:
        return self._state.epoch

    def snapshot(self) -> ResearchState:
        return self._state

    def is_current(self, epoch: int) -> bool:
        return self._state.epoch == epoch

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def replace(self, fn: StateUpdate, *, epoch: Optional[int] = None) -> bool:
        current = self._state
        if epoch is not None and epoch != current.epoch:
            log_warning(None, "state:write_dropped", staleEpoch=epoch, epoch=current.epoch)
            return False
        produced = fn(current)
        if isinstance(produced, dict):
            produced = current.model_copy(update=produced)
        self._commit(produced.model_copy(update={"version": current.version + 1, "epoch": current.epoch}))
        return True

    def update(self, *, epoch: Optional[int] = None, **changes: Any) -> bool:
        return self.replace(lambda _: changes, epoch=epoch)

    def set_phase(self, phase: PhaseId, result: Optional[PhaseResult], *, epoch: Optional[int] = None) -> bool:
        def _apply(state: ResearchState) -> Dict[str, Any]:
            threads = dict(state.researchThreads)
            threads[phase] = result
            return {"researchThreads": threads}

        return self.replace(_apply, epoch=epoch)

    def reset(self) -> ResearchState:
        current = self._state
        self._commit(ResearchState(version=current.version + 1, epoch=current.epoch + 1))
        log_info(None, "state:reset", epoch=self._state.epoch)
        return self._state

    def _commit(self, new_state: ResearchState) -> None:
        self._state = new_state
        for listener in list(self._listeners):
            try:
                listener(new_state)
            except Exception as exc:
                log_error(None, "state:listener_failed", error=str(exc))


__all__ = ["StateStore", "StateListener"]
