"""
Utility functions for the x402 playground.
"""
import random
import string
import time
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Union

AmountLike = Union[str, int, float, Decimal]

_RUN_ID_ALPHABET = string.digits + string.ascii_lowercase


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def generate_run_id() -> str:
    """
    Generate a unique run identifier.

    Returns:
        Identifier of the form ``run_<epoch ms>_<7 base36 chars>``
    """
    suffix = "".join(random.choice(_RUN_ID_ALPHABET) for _ in range(7))
    return f"run_{now_ms()}_{suffix}"


def to_decimal(value: AmountLike) -> Decimal:
    """
    Parse an amount into a finite Decimal.

    Floats are converted through their shortest string form so that
    ``0.1`` becomes ``Decimal("0.1")`` rather than its binary expansion.

    Raises:
        ValueError: If the value is not a finite decimal number
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    if isinstance(value, float):
        value = repr(value)
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Invalid amount: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return result


def format_amount(value: Decimal) -> str:
    """Render a Decimal in plain normalized notation ("10", "9.5", "0.001")."""
    normalized = value.normalize()
    if normalized == 0:
        return "0"
    return format(normalized, "f")


def redact_prompt(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Remove prompt text from a payload before logging it.

    Args:
        payload: Dictionary payload to sanitize

    Returns:
        Shallow copy with the prompt and query replaced by their length
    """
    if not isinstance(payload, dict):
        return {"type": str(type(payload))}

    result = payload.copy()
    for key in ("prompt", "query"):
        if key in result:
            result[key] = f"[REDACTED - {len(str(result[key]))} chars]"
    return result
