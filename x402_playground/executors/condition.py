"""
``condition``: a single numeric comparison against the run's balances.

This is deliberately not an expression language. At most one variable is
resolved and substituted, then the first ``>``, ``<`` or ``==``/``===``
between two numeric literals decides the outcome. Anything else is false.
"""
import re
from decimal import Decimal
from typing import Optional, Tuple

from ..models import ActionResult, ActionType, ConditionAction
from ..utils import format_amount
from .base import ActionExecutor, ExecutionContext, simulated, succeeded

BALANCE_REF = re.compile(r"step_\d+\.balance|balance")

MAX_CONDITION_LENGTH = 256

# Operands cannot start inside another number, so a search over a long run
# of digits stays linear.
_NUMBER = r"(?<![\d.])(\d+(?:\.\d+)?)"
COMPARISONS = (
    (re.compile(_NUMBER + r"\s*>\s*" + _NUMBER), lambda a, b: a > b),
    (re.compile(_NUMBER + r"\s*<\s*" + _NUMBER), lambda a, b: a < b),
    (re.compile(_NUMBER + r"\s*===?\s*" + _NUMBER), lambda a, b: a == b),
)


def evaluate(expression: str) -> bool:
    """Evaluate the first supported comparison in ``expression``."""
    # substitution may lengthen a condition that passed validation
    if len(expression) > 2 * MAX_CONDITION_LENGTH:
        return False
    for pattern, compare in COMPARISONS:
        match = pattern.search(expression)
        if match:
            return compare(Decimal(match.group(1)), Decimal(match.group(2)))
    return False


def resolve(
    ctx: ExecutionContext,
    condition: str,
    variable: Optional[str],
) -> Tuple[Optional[str], str]:
    """
    Resolve the variable and substitute it into the condition.

    ``balance`` and ``step_<n>.balance`` resolve to the native balance, a
    token symbol to that token's balance, and any other variable to 0.

    Returns:
        Tuple of (resolved value or None, substituted condition)
    """
    native = ctx.store.native_token
    balances = ctx.state.wallet.balances

    if variable:
        if BALANCE_REF.fullmatch(variable):
            value = ctx.store.get_balance(ctx.run_id, native)
        elif variable in balances:
            value = ctx.store.get_balance(ctx.run_id, variable)
        else:
            value = Decimal(0)
        rendered = format_amount(value)
        substituted = BALANCE_REF.sub(rendered, condition)
        if not BALANCE_REF.fullmatch(variable):
            substituted = re.sub(r"\b" + re.escape(variable) + r"\b", rendered, substituted)
        return rendered, substituted

    if BALANCE_REF.search(condition):
        rendered = format_amount(ctx.store.get_balance(ctx.run_id, native))
        return rendered, BALANCE_REF.sub(rendered, condition)

    return None, condition


class ConditionExecutor(ActionExecutor):
    """Evaluates a bounded comparison; never fails on an odd expression."""

    action_type = ActionType.CONDITION.value

    def validate(self, action: ConditionAction) -> Optional[str]:
        problem = super().validate(action)
        if problem:
            return problem
        if len(action.condition) > MAX_CONDITION_LENGTH:
            return f"Condition too long (max {MAX_CONDITION_LENGTH} characters)"
        return None

    def _evaluate(self, ctx: ExecutionContext, action: ConditionAction) -> dict:
        resolved, evaluated = resolve(ctx, action.condition, action.variable)
        outcome = evaluate(evaluated)
        return {
            "condition": action.condition,
            "variable": action.variable,
            "resolvedValue": resolved,
            "evaluatedCondition": evaluated,
            "result": outcome,
            "message": "Condition TRUE" if outcome else "Condition FALSE",
        }

    def simulate(self, ctx: ExecutionContext, action: ConditionAction) -> ActionResult:
        return simulated(action, self._evaluate(ctx, action))

    def execute(self, ctx: ExecutionContext, action: ConditionAction) -> ActionResult:
        return succeeded(action, self._evaluate(ctx, action))
