"""
Action executors, one per action kind.
"""
from .agent import LLMAgentExecutor, fallback_decision
from .base import ActionExecutor, ExecutionContext, failed, simulated, succeeded
from .condition import ConditionExecutor
from .contracts import ApproveTokenExecutor, ContractCallExecutor
from .payment import PaymentExecutor
from .reads import ReadBalanceExecutor, ReadStateExecutor
from .registry import ExecutorRegistry


def default_registry() -> ExecutorRegistry:
    """Registry with every supported action kind (``swap`` stays unsupported)."""
    return ExecutorRegistry([
        ReadBalanceExecutor(),
        PaymentExecutor(),
        ContractCallExecutor(),
        ReadStateExecutor(),
        ApproveTokenExecutor(),
        ConditionExecutor(),
        LLMAgentExecutor(),
    ])


__all__ = [
    "ActionExecutor",
    "ApproveTokenExecutor",
    "ConditionExecutor",
    "ContractCallExecutor",
    "ExecutionContext",
    "ExecutorRegistry",
    "LLMAgentExecutor",
    "PaymentExecutor",
    "ReadBalanceExecutor",
    "ReadStateExecutor",
    "default_registry",
    "failed",
    "fallback_decision",
    "simulated",
    "succeeded",
]
