"""
Tests for llm_agent actions and the fallback heuristic.
"""
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from x402_playground.decision import StubDecisionClient
from x402_playground.executors import fallback_decision
from x402_playground.models import ExecutionMode, LLMAgentAction

from conftest import TEST_WALLET


class TestFallbackDecision:

    def test_executes_above_threshold(self):
        decision = fallback_decision(Decimal("10"))
        assert decision["decision"] == "execute"
        assert decision["confidence"] == 0.85
        assert decision["parameters"] == {"amount": "2", "shouldExecute": True}
        assert decision["fallback"] is True
        assert "Recommending 2.00 TCRO" in decision["reasoning"]

    def test_amount_is_capped(self):
        decision = fallback_decision(Decimal("500"))
        assert decision["parameters"]["amount"] == "10"

    @pytest.mark.parametrize("balance", ["1", "0.5", "0"])
    def test_skips_at_or_below_threshold(self, balance):
        decision = fallback_decision(Decimal(balance))
        assert decision["decision"] == "skip"
        assert decision["parameters"]["shouldExecute"] is False
        assert decision["reasoning"] == f"Insufficient balance: {balance} TCRO."


def test_agent_answer(registry, make_ctx, stub_decision, recorder):
    ctx = make_ctx()
    action = LLMAgentAction(prompt="Should I pay the invoice?", agent_id="planner")
    result = registry.dispatch(ctx, action)

    assert result.status == "simulated"
    assert result.result["response"] == "Proceed with the payment"
    assert result.result["agentId"] == "planner"
    assert result.result["executionTime"] == 42
    assert result.result["context"] == {"TCRO": "10", "USDC": "1000"}

    query = stub_decision.queries[-1]
    assert query["prompt"] == "Should I pay the invoice?"
    assert query["agent_id"] == "planner"
    assert query["context"] == f"Current balance: 10 TCRO, Address: {TEST_WALLET}"

    warnings = recorder.get(ctx.run_id).warnings
    assert warnings == ["[AI AGENT] Agent: planner, Model: gpt-4-turbo, Execution time: 42ms"]


def test_default_agent_id(registry, make_ctx, stub_decision):
    ctx = make_ctx()
    registry.dispatch(ctx, LLMAgentAction(prompt="hi"))
    assert stub_decision.queries[-1]["agent_id"] == "risk-analyzer"


def test_agent_unavailable_uses_fallback(registry, make_ctx, recorder):
    decision = StubDecisionClient(error="Agent query failed: 503")
    ctx = make_ctx(decision=decision)
    result = registry.dispatch(ctx, LLMAgentAction(prompt="Pay?"))

    assert result.status == "simulated"
    assert result.result["fallback"] is True
    assert result.result["decision"] == "execute"
    assert result.result["error"] == "Agent query failed: 503"
    assert recorder.get(ctx.run_id).warnings == [
        "[FALLBACK] AI Agent API unavailable, using mock response. Error: Agent query failed: 503"
    ]


def test_unexpected_client_error_uses_fallback(registry, make_ctx):
    decision = MagicMock()
    decision.query.side_effect = RuntimeError("socket closed")
    ctx = make_ctx(decision=decision, balances={"TCRO": "0.5"})
    result = registry.dispatch(ctx, LLMAgentAction(prompt="Pay?"))

    assert result.ok
    assert result.result["decision"] == "skip"
    assert result.result["error"] == "Agent query failed: socket closed"


def test_no_decision_client(registry, make_ctx):
    ctx = make_ctx(decision=None)
    result = registry.dispatch(ctx, LLMAgentAction(prompt="Pay?"))
    assert result.result["fallback"] is True
    assert result.result["error"] == "No decision client configured"


def test_execute_mode_status(registry, make_ctx):
    ctx = make_ctx(ExecutionMode.EXECUTE)
    result = registry.dispatch(ctx, LLMAgentAction(prompt="Pay?"))
    assert result.status == "success"


def test_missing_prompt(registry, make_ctx, stub_decision):
    ctx = make_ctx()
    result = registry.dispatch(ctx, LLMAgentAction())
    assert result.error == "Missing required field(s): prompt"
    assert stub_decision.queries == []
