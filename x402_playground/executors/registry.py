"""
Action kind to executor table.
"""
import logging
from typing import Dict, Iterable, List, Optional

from ..exceptions import ChainClientError
from ..models import ActionResult, ExecutionAction, ExecutionMode
from .base import ActionExecutor, ExecutionContext, failed

logger = logging.getLogger(__name__)


class ExecutorRegistry:
    """
    Resolves an action's ``type`` to its executor and runs the strategy for
    the context's mode.

    Kinds without a registered executor (including the reserved ``swap``)
    are rejected with ``Unsupported action type: <kind>``.
    """

    def __init__(self, executors: Iterable[ActionExecutor] = ()):
        self._executors: Dict[str, ActionExecutor] = {}
        for executor in executors:
            self.register(executor)

    def register(self, executor: ActionExecutor, kind: Optional[str] = None) -> None:
        kind = kind or executor.action_type
        if not kind:
            raise ValueError(f"{type(executor).__name__} does not declare an action type")
        self._executors[kind] = executor

    def get(self, kind: str) -> Optional[ActionExecutor]:
        return self._executors.get(kind)

    def kinds(self) -> List[str]:
        return sorted(self._executors)

    def dispatch(self, ctx: ExecutionContext, action: ExecutionAction) -> ActionResult:
        """
        Run one action.

        Validation and state problems are returned as ``error`` results
        without touching the ledger. Chain client failures are converted to
        ``error`` results carrying the transaction hash when one exists.
        """
        executor = self._executors.get(action.type)
        if executor is None:
            return failed(action, f"Unsupported action type: {action.type}")

        problem = executor.validate(action)
        if problem:
            return failed(action, problem)

        if ctx.state is None:
            return failed(action, "Invalid run state")

        if not ctx.is_live:
            strategy = executor.simulate
        elif executor.requires_chain and ctx.chain is None:
            return failed(action, "No chain client configured for execute mode")
        else:
            strategy = executor.execute

        logger.debug(f"[{ctx.run_id}] dispatching {action.type} ({ExecutionMode(ctx.mode).value})")
        try:
            return strategy(ctx, action)
        except ChainClientError as e:
            logger.error(f"[{ctx.run_id}] {action.type} failed on chain: {e}")
            return failed(action, str(e), tx_hash=e.tx_hash)
