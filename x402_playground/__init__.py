"""
x402 Playground - execution plan engine for x402 agent workflows on Cronos.
"""
from .exceptions import (
    ChainClientError,
    DecisionQueryError,
    PlanValidationError,
    PlaygroundError,
    RunNotFoundError,
    TraceFinalizedError,
)
from .models import (
    ActionResult,
    ActionStatus,
    ActionType,
    ExecutionAction,
    ExecutionMode,
    ExecutionPlan,
    ExecutionTrace,
    PlanGraph,
    RunResult,
    RunSummary,
    ValidationReport,
    VirtualState,
    parse_action,
)
from .plan_builder import OrderReport, PlanBuilder
from .playground import Playground
from .runner import Runner
from .state import VirtualStateStore
from .trace import TraceRecorder
from .validation import validate_plan
from .version import __version__

__all__ = [
    "ActionResult",
    "ActionStatus",
    "ActionType",
    "ChainClientError",
    "DecisionQueryError",
    "ExecutionAction",
    "ExecutionMode",
    "ExecutionPlan",
    "ExecutionTrace",
    "OrderReport",
    "PlanBuilder",
    "PlanGraph",
    "PlanValidationError",
    "Playground",
    "PlaygroundError",
    "RunNotFoundError",
    "RunResult",
    "RunSummary",
    "Runner",
    "TraceFinalizedError",
    "TraceRecorder",
    "ValidationReport",
    "VirtualState",
    "VirtualStateStore",
    "__version__",
    "parse_action",
    "validate_plan",
]
