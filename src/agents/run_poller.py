import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from src.agents.request_gateway import RequestGateway
from src.specs.common.enums import FAILED_RUN_STATUSES, PollState, RunStatus
from src.specs.common.errors import DisconnectedError, RemoteRunFailure, RunTimeoutError
from src.specs.common.transport_spec import AssistantTransport
from src.specs.models.domain import RunCompletion, RunHandle
from src.shared.logging_utils import info as log_info

Sleep = Callable[[float], Awaitable[Any]]

_TRANSITIONS: Dict[PollState, Set[PollState]] = {
    PollState.SUBMITTED: {PollState.POLLING},
    PollState.POLLING: {PollState.COMPLETED, PollState.FAILED, PollState.TIMED_OUT},
    PollState.COMPLETED: set(),
    PollState.FAILED: set(),
    PollState.TIMED_OUT: set(),
}


def _status_name(raw: Any) -> str:
    return str(getattr(raw, "value", raw) or "").lower()


class RunPoller:
    """Drive one remote run to a terminal state.

    ``Submitted -> Polling -> Completed | Failed | TimedOut``. Each call to
    ``poll`` keeps its own state and attempt counter, so independent runs
    can be polled concurrently. Status checks for one run are strictly
    sequential: check, wait, check. ``sleep`` is injectable so tests can
    drive the loop without wall-clock delays.
    """

    def __init__(
        self,
        gateway: RequestGateway,
        transport: AssistantTransport,
        *,
        poll_interval: float = 1.0,
        sleep: Optional[Sleep] = None,
        trace_id: Optional[str] = None,
    ) -> None:
        self._gateway = gateway
        self._transport = transport
        self._interval = poll_interval
        self._sleep = sleep or asyncio.sleep
        self._trace_id = trace_id

    def _advance(self, handle: RunHandle, current: PollState, target: PollState) -> PollState:
        if target not in _TRANSITIONS[current]:
            raise RuntimeError(f"Invalid run state transition {current.value} -> {target.value}")
        log_info(
            self._trace_id,
            "run:state",
            threadId=handle.threadId,
            runId=handle.runId,
            fromState=current.value,
            toState=target.value,
        )
        return target

    async def poll(
        self,
        handle: RunHandle,
        *,
        max_attempts: int,
        context: str,
        is_active: Optional[Callable[[], bool]] = None,
    ) -> RunCompletion:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        state = self._advance(handle, PollState.SUBMITTED, PollState.POLLING)

        for attempt in range(1, max_attempts + 1):
            if is_active is not None and not is_active():
                raise DisconnectedError(f"Session disconnected during {context}")

            raw = await self._gateway.execute(
                lambda: self._transport.get_run_status(handle.threadId, handle.runId),
                f"checking run status for {context}",
            )
            status = _status_name(raw)
            log_info(self._trace_id, "run:poll:status", runId=handle.runId, status=status, attempt=attempt)

            if status == RunStatus.COMPLETED.value:
                messages = await self._gateway.execute(
                    lambda: self._transport.list_messages(handle.threadId),
                    f"retrieving results for {context}",
                )
                if not messages:
                    self._advance(handle, state, PollState.FAILED)
                    raise RemoteRunFailure(
                        status,
                        context,
                        details={"reason": "no messages returned", "runId": handle.runId},
                    )
                self._advance(handle, state, PollState.COMPLETED)
                return RunCompletion(handle=handle, message=messages[0], attempts=attempt)

            if status in {s.value for s in FAILED_RUN_STATUSES}:
                self._advance(handle, state, PollState.FAILED)
                raise RemoteRunFailure(
                    status,
                    context,
                    details={"runId": handle.runId, "attempts": attempt},
                )

            if attempt < max_attempts:
                await self._sleep(self._interval)

        self._advance(handle, state, PollState.TIMED_OUT)
        raise RunTimeoutError(max_attempts, context, details={"runId": handle.runId})


__all__ = ["RunPoller"]
