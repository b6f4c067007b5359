"""
``llm_agent``: ask the decision collaborator, or fall back to a heuristic.

The action never fails because the agent service is unreachable. The two
paths are explicit: :meth:`LLMAgentExecutor._consult` returns either a
response or the reason there is none, and a missing response routes to
:func:`fallback_decision`.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from .._rate_limited_log import rate_limited_log
from ..decision import DEFAULT_AGENT_ID, DecisionResponse
from ..exceptions import DecisionQueryError
from ..models import ActionResult, ActionType, LLMAgentAction
from ..utils import format_amount
from .base import ActionExecutor, ExecutionContext, simulated, succeeded

logger = logging.getLogger(__name__)

FALLBACK_THRESHOLD = Decimal(1)
FALLBACK_SHARE = Decimal("0.2")
FALLBACK_CAP = Decimal(10)
FALLBACK_CONFIDENCE = 0.85


def fallback_decision(balance: Decimal, native_token: str = "TCRO") -> Dict[str, Any]:
    """
    Deterministic decision used when no agent answers.

    Execute only when the balance exceeds 1, spending at most 20% of it and
    never more than 10.
    """
    should_execute = balance > FALLBACK_THRESHOLD
    amount = min(balance * FALLBACK_SHARE, FALLBACK_CAP)
    shown = format_amount(balance)
    if should_execute:
        reasoning = (
            f"Balance: {shown} {native_token}. "
            f"Recommending {amount.quantize(Decimal('0.01'))} {native_token} for execution."
        )
    else:
        reasoning = f"Insufficient balance: {shown} {native_token}."
    return {
        "decision": "execute" if should_execute else "skip",
        "reasoning": reasoning,
        "confidence": FALLBACK_CONFIDENCE,
        "parameters": {"amount": format_amount(amount), "shouldExecute": should_execute},
        "fallback": True,
    }


class LLMAgentExecutor(ActionExecutor):
    """Same behavior in both modes; only the result status differs."""

    action_type = ActionType.LLM_AGENT.value

    def _consult(
        self,
        ctx: ExecutionContext,
        action: LLMAgentAction,
        agent_id: str,
        context: str,
    ) -> Tuple[Optional[DecisionResponse], Optional[str]]:
        if ctx.decision is None:
            return None, "No decision client configured"
        try:
            return ctx.decision.query(action.prompt, context=context, agent_id=agent_id), None
        except DecisionQueryError as e:
            rate_limited_log(f"Agent {agent_id} unavailable, using fallback: {e}", logger_instance=logger)
            return None, str(e)
        except Exception as e:
            logger.error(f"Unexpected error from decision client: {e}")
            return None, f"Agent query failed: {str(e)}"

    def _decide(self, ctx: ExecutionContext, action: LLMAgentAction) -> Dict[str, Any]:
        agent_id = action.agent_id or DEFAULT_AGENT_ID
        native = ctx.store.native_token
        state = ctx.state
        balance = ctx.store.get_balance(ctx.run_id, native)
        context = (
            f"Current balance: {format_amount(balance)} {native}, "
            f"Address: {state.wallet.address}"
        )

        response, error = self._consult(ctx, action, agent_id, context)

        if response is None:
            ctx.warn(f"[FALLBACK] AI Agent API unavailable, using mock response. Error: {error}")
            result = fallback_decision(balance, native)
            result["error"] = error
            return result

        ctx.warn(
            f"[AI AGENT] Agent: {agent_id}, Model: {action.model}, "
            f"Execution time: {response.execution_time or 0}ms"
        )
        return {
            "agentId": agent_id,
            "response": response.response,
            "executionTime": response.execution_time,
            "model": action.model,
            "query": action.prompt,
            "context": dict(state.wallet.balances),
        }

    def simulate(self, ctx: ExecutionContext, action: LLMAgentAction) -> ActionResult:
        return simulated(action, self._decide(ctx, action))

    def execute(self, ctx: ExecutionContext, action: LLMAgentAction) -> ActionResult:
        return succeeded(action, self._decide(ctx, action))
