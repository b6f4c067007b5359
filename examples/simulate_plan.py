#!/usr/bin/env python3
"""
Simulate an x402 payment plan against the virtual ledger.
"""
import json
import os

from x402_playground import Playground
from x402_playground.chain import get_stub_chain_client
from x402_playground.config import PlaygroundSettings
from x402_playground.decision import StubDecisionClient


def main():
    """
    Demonstrate a simulated run.

    This example shows how to:
    1. Build a playground without touching a chain or an agent service
    2. Simulate a plan that reads, decides, checks and pays
    3. Inspect the trace and the summary
    """
    recipient = os.environ.get("RECIPIENT", "0x000000000000000000000000000000000000dEaD")

    settings = PlaygroundSettings.from_env()
    playground = Playground(
        settings=settings,
        chain_client=get_stub_chain_client(settings.executor_address),
        decision_client=StubDecisionClient(response="Proceed: the invoice is within budget"),
    )

    plan = {
        "mode": "simulate",
        "planId": "example-invoice",
        "actions": [
            {"type": "read_balance", "token": "TCRO"},
            {"type": "llm_agent", "prompt": "Should I pay the 0.5 TCRO invoice?"},
            {"type": "condition", "condition": "balance > 1"},
            {"type": "x402_payment", "to": recipient, "amount": "0.5"},
            {"type": "read_balance", "token": "TCRO"},
        ],
    }

    result = playground.simulate(plan)

    print(f"Run {result.run_id}: {'success' if result.success else 'failed'}")
    for index, step in enumerate(result.trace.steps):
        print(f"  step {index} {step.action.type:<14} {step.status:<10} gas={step.gas}")
    for warning in result.trace.warnings:
        print(f"  warning: {warning}")

    print(json.dumps(result.summary.model_dump(by_alias=True), indent=2))


if __name__ == "__main__":
    main()
