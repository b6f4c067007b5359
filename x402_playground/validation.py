"""
Side-effect free structural checks of an execution plan.
"""
from typing import Any, List

from .exceptions import PlanValidationError
from .executors.condition import MAX_CONDITION_LENGTH
from .models import ACTION_MODELS, ActionType, ExecutionMode, ValidationReport, parse_action
from .utils import to_decimal

RESERVED_TYPES = {ActionType.SWAP.value}


def _check_amount(index: int, field: str, value: Any, errors: List[str]) -> None:
    if value is None:
        return
    try:
        amount = to_decimal(value)
    except ValueError:
        errors.append(f"Action {index}: invalid '{field}' {value!r}")
        return
    if amount <= 0:
        errors.append(f"Action {index}: '{field}' must be greater than zero")


def validate_plan(payload: Any) -> ValidationReport:
    """
    Validate a plan payload without running it.

    Checks the mode, that ``actions`` is a list, that every action has a
    known type and its required fields, and that amounts are positive.
    Execute-mode payments produce a warning since they move real funds.

    Args:
        payload: Plan dictionary as received from a client

    Returns:
        ValidationReport; ``valid`` is True when no errors were found
    """
    errors: List[str] = []
    warnings: List[str] = []

    if not isinstance(payload, dict):
        return ValidationReport(valid=False, errors=["Execution plan must be a JSON object"])

    mode = payload.get("mode")
    if mode not in (ExecutionMode.SIMULATE.value, ExecutionMode.EXECUTE.value):
        errors.append("Invalid or missing 'mode' (must be 'simulate' or 'execute')")

    actions = payload.get("actions")
    if not isinstance(actions, list):
        errors.append("Missing or invalid 'actions' array")
        return ValidationReport(valid=False, errors=errors, warnings=warnings)

    if not actions:
        warnings.append("Plan has no actions")

    for index, raw in enumerate(actions):
        if not isinstance(raw, dict):
            errors.append(f"Action {index}: must be an object")
            continue

        kind = raw.get("type")
        if not kind:
            errors.append(f"Action {index}: missing 'type'")
            continue
        if not isinstance(kind, str):
            errors.append(f"Action {index}: unknown action type {kind!r}")
            continue
        if kind in RESERVED_TYPES:
            errors.append(f"Action {index}: action type '{kind}' is not supported yet")
            continue
        if kind not in ACTION_MODELS:
            errors.append(f"Action {index}: unknown action type '{kind}'")
            continue

        try:
            action = parse_action(raw)
        except PlanValidationError as e:
            errors.extend(f"Action {index}: {message}" for message in e.errors)
            continue

        for name in action.missing_fields():
            errors.append(f"Action {index}: missing '{name}'")

        if kind in (ActionType.X402_PAYMENT.value, ActionType.APPROVE_TOKEN.value):
            _check_amount(index, "amount", getattr(action, "amount", None), errors)

        if kind == ActionType.CONDITION.value:
            condition = getattr(action, "condition", None) or ""
            if len(condition) > MAX_CONDITION_LENGTH:
                errors.append(
                    f"Action {index}: 'condition' is longer than {MAX_CONDITION_LENGTH} characters"
                )

        if mode == ExecutionMode.EXECUTE.value and kind == ActionType.X402_PAYMENT.value:
            warnings.append(f"Action {index}: Will send a real transaction")

    return ValidationReport(
        valid=not errors,
        errors=errors,
        warnings=warnings,
        actions_count=len(actions),
    )

