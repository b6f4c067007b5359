"""
Trace recording for playground runs.

A trace is append-only until it is finalized: ``pending`` on creation,
``running`` once started, then ``completed`` or ``failed``. Consumers only
ever receive deep copies.
"""
import logging
import threading
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from .exceptions import RunNotFoundError, TraceFinalizedError
from .models import (
    ActionResult,
    ExecutionMode,
    ExecutionTrace,
    RunSummary,
    TraceMetadata,
    TraceStatus,
)
from .utils import format_amount, now_ms, to_decimal

logger = logging.getLogger(__name__)


def summarize_steps(steps: Sequence[ActionResult], total_steps: Optional[int] = None) -> RunSummary:
    """
    Tally step outcomes and aggregate gas.

    Args:
        steps: Recorded step results
        total_steps: Number of planned steps (defaults to ``len(steps)``)

    Returns:
        RunSummary with gas summed over ``gas_used`` or, when absent,
        ``gas_estimate``
    """
    successful = sum(1 for step in steps if step.ok)
    failed = sum(1 for step in steps if step.status == "error")
    gas = Decimal(0)
    for step in steps:
        if step.gas is not None:
            gas += to_decimal(step.gas)
    return RunSummary(
        total_steps=len(steps) if total_steps is None else total_steps,
        successful_steps=successful,
        failed_steps=failed,
        total_gas=format_amount(gas),
    )


class TraceRecorder:
    """
    Process-wide registry of execution traces keyed by run id.

    Args:
        store: Optional state store; when given, every appended step refreshes
            the trace's virtual state snapshot from it
    """

    def __init__(self, store: Optional[Any] = None):
        self.store = store
        self._traces: Dict[str, ExecutionTrace] = {}
        self._lock = threading.RLock()

    def create_trace(
        self,
        run_id: str,
        mode: ExecutionMode,
        plan_id: Optional[str] = None,
        planned_steps: Optional[int] = None,
    ) -> ExecutionTrace:
        """
        Register a new ``pending`` trace.

        Args:
            run_id: Identifier of the run
            mode: Execution mode of the run
            plan_id: Identifier of the plan being run
            planned_steps: Number of actions in the plan; caps the step count
        """
        trace = ExecutionTrace(
            run_id=run_id,
            plan_id=plan_id,
            mode=ExecutionMode(mode),
            status=TraceStatus.PENDING,
            planned_steps=planned_steps,
            metadata=TraceMetadata(start_time=now_ms()),
        )
        with self._lock:
            self._traces[run_id] = trace
        return trace.model_copy(deep=True)

    def start(self, run_id: str) -> None:
        trace = self._live(run_id)
        if trace.is_final:
            raise TraceFinalizedError(f"Trace {run_id} is already {trace.status}")
        trace.status = TraceStatus.RUNNING.value
        trace.metadata.start_time = now_ms()

    def add_step(self, run_id: str, result: ActionResult) -> None:
        """
        Append a step result.

        Raises:
            RunNotFoundError: If the run has no trace
            TraceFinalizedError: If the trace is completed or failed, or it
                already holds as many steps as the plan has actions
        """
        trace = self._live(run_id)
        if trace.is_final:
            raise TraceFinalizedError(f"Cannot add step to {trace.status} trace {run_id}")
        if trace.planned_steps is not None and len(trace.steps) >= trace.planned_steps:
            raise TraceFinalizedError(
                f"Trace {run_id} already holds all {trace.planned_steps} planned steps"
            )

        trace.steps.append(result.model_copy(deep=True))
        self._refresh_state(trace)

    def add_warning(self, run_id: str, warning: str) -> None:
        self._live(run_id).warnings.append(warning)

    def add_error(self, run_id: str, error: str) -> None:
        self._live(run_id).errors.append(error)

    def complete(self, run_id: str) -> None:
        self._finalize(run_id, TraceStatus.COMPLETED)

    def fail(self, run_id: str, reason: str) -> None:
        trace = self._finalize(run_id, TraceStatus.FAILED)
        trace.errors.append(reason)

    def get(self, run_id: str) -> Optional[ExecutionTrace]:
        """Deep copy of a trace, or None."""
        with self._lock:
            trace = self._traces.get(run_id)
            return trace.model_copy(deep=True) if trace is not None else None

    def summary(self, run_id: str) -> Optional[Dict[str, Any]]:
        """
        Read-only summary of one trace.

        Returns:
            Dictionary with status, step tallies, gas and timing, or None for
            an unknown run
        """
        trace = self.get(run_id)
        if trace is None:
            return None
        tally = summarize_steps(trace.steps, trace.planned_steps)
        return {
            "runId": trace.run_id,
            "planId": trace.plan_id,
            "mode": trace.mode,
            "status": trace.status,
            **tally.model_dump(by_alias=True),
            "warnings": len(trace.warnings),
            "errors": len(trace.errors),
            "startTime": trace.metadata.start_time,
            "duration": trace.metadata.duration,
        }

    def list_summaries(self) -> List[Dict[str, Any]]:
        """Summaries of every trace, most recent first."""
        with self._lock:
            run_ids = [
                trace.run_id for trace in
                sorted(self._traces.values(), key=lambda t: t.metadata.start_time, reverse=True)
            ]
        return [s for s in (self.summary(run_id) for run_id in run_ids) if s is not None]

    def all_traces(self) -> List[ExecutionTrace]:
        with self._lock:
            return [trace.model_copy(deep=True) for trace in self._traces.values()]

    def delete(self, run_id: str) -> bool:
        with self._lock:
            return self._traces.pop(run_id, None) is not None

    def evict_older_than(self, max_age_seconds: float, now: Optional[int] = None) -> int:
        """Remove traces started more than ``max_age_seconds`` ago."""
        cutoff = (now_ms() if now is None else now) - int(max_age_seconds * 1000)
        with self._lock:
            expired = [
                run_id for run_id, trace in self._traces.items()
                if trace.metadata.start_time < cutoff
            ]
            for run_id in expired:
                del self._traces[run_id]
        return len(expired)

    def _live(self, run_id: str) -> ExecutionTrace:
        with self._lock:
            trace = self._traces.get(run_id)
        if trace is None:
            raise RunNotFoundError(f"No trace for run {run_id}")
        return trace

    def _finalize(self, run_id: str, status: TraceStatus) -> ExecutionTrace:
        trace = self._live(run_id)
        if trace.is_final:
            raise TraceFinalizedError(f"Trace {run_id} is already {trace.status}")

        end = now_ms()
        trace.status = status.value
        trace.metadata.end_time = end
        trace.metadata.duration = end - trace.metadata.start_time
        self._refresh_state(trace)
        logger.info(
            f"Run {run_id} {status.value}: {len(trace.steps)} step(s) "
            f"in {trace.metadata.duration}ms"
        )
        return trace

    def _refresh_state(self, trace: ExecutionTrace) -> None:
        if self.store is None:
            return
        snapshot = self.store.snapshot(trace.run_id)
        if snapshot is not None:
            trace.virtual_state = snapshot
