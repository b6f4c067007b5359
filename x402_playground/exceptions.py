"""
Exceptions for the x402 playground execution engine.
"""
from typing import List, Optional


class PlaygroundError(Exception):
    """Base exception for all playground errors."""
    pass


class PlanValidationError(PlaygroundError):
    """Raised when an execution plan is structurally invalid."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = errors or [message]
        super().__init__(message)


class RunNotFoundError(PlaygroundError):
    """Raised when a run id is not known to the store or recorder."""
    pass


class TraceFinalizedError(PlaygroundError):
    """Raised when appending to a trace that is completed, failed or full."""
    pass


class ChainClientError(PlaygroundError):
    """Raised when the chain client fails (RPC, signing, revert)."""

    def __init__(self, message: str, tx_hash: Optional[str] = None):
        self.tx_hash = tx_hash
        super().__init__(message)


class DecisionQueryError(PlaygroundError):
    """Raised when the decision-query collaborator cannot answer."""
    pass
