"""
Executor contract shared by every action kind.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Optional

from ..models import ActionResult, ActionStatus, ExecutionAction, ExecutionMode, VirtualState
from ..state import VirtualStateStore

logger = logging.getLogger(__name__)


@dataclass
class ExecutionContext:
    """
    Everything an executor may touch while handling one action of one run.

    ``chain`` and ``decision`` are the external collaborators; either may be
    None when the process has none configured.
    """
    run_id: str
    mode: ExecutionMode
    store: VirtualStateStore
    recorder: Optional[Any] = None
    chain: Optional[Any] = None
    decision: Optional[Any] = None

    @property
    def state(self) -> Optional[VirtualState]:
        return self.store.get(self.run_id)

    @property
    def is_live(self) -> bool:
        return self.mode == ExecutionMode.EXECUTE

    def warn(self, message: str) -> None:
        """Add a warning to the run's trace."""
        logger.debug(f"[{self.run_id}] {message}")
        if self.recorder is not None:
            self.recorder.add_warning(self.run_id, message)


def simulated(action: ExecutionAction, result: Any, gas_estimate: str = "0") -> ActionResult:
    return ActionResult(
        action=action,
        status=ActionStatus.SIMULATED,
        result=result,
        gas_estimate=gas_estimate,
    )


def succeeded(
    action: ExecutionAction,
    result: Any,
    gas_used: str = "0",
    tx_hash: Optional[str] = None,
) -> ActionResult:
    return ActionResult(
        action=action,
        status=ActionStatus.SUCCESS,
        result=result,
        gas_used=gas_used,
        tx_hash=tx_hash,
    )


def failed(action: ExecutionAction, message: str, tx_hash: Optional[str] = None) -> ActionResult:
    return ActionResult(
        action=action,
        status=ActionStatus.ERROR,
        error=message,
        tx_hash=tx_hash,
    )


class ActionExecutor(ABC):
    """
    Handler for one action kind, with one strategy per execution mode.

    The registry validates required fields and resolves the run state before
    calling a strategy, so strategies may assume both.
    """

    action_type: ClassVar[str] = ""

    # Whether the execute strategy needs a chain client
    requires_chain: ClassVar[bool] = False

    def validate(self, action: ExecutionAction) -> Optional[str]:
        """
        Check required fields.

        Returns:
            Error message, or None when the action can be dispatched
        """
        missing = action.missing_fields()
        if missing:
            return f"Missing required field(s): {', '.join(missing)}"
        return None

    @abstractmethod
    def simulate(self, ctx: ExecutionContext, action: ExecutionAction) -> ActionResult:
        """Run the action against the virtual ledger only."""
        pass

    @abstractmethod
    def execute(self, ctx: ExecutionContext, action: ExecutionAction) -> ActionResult:
        """Run the action against the live collaborators."""
        pass
