#!/usr/bin/env python3
"""
Order a node/edge plan graph and run it.
"""
import json
import pathlib
import sys

from x402_playground import PlanBuilder, Playground
from x402_playground.chain import get_stub_chain_client
from x402_playground.config import PlaygroundSettings
from x402_playground.decision import StubDecisionClient


def main():
    """
    Demonstrate graph ordering.

    Nodes are declared out of order; the edges decide which runs first.
    """
    path = pathlib.Path(sys.argv[1]) if len(sys.argv) > 1 else pathlib.Path(__file__).with_name("sample_graph.json")
    graph = json.loads(path.read_text())

    ordered = PlanBuilder().order(graph["nodes"], graph.get("edges", []))
    print("Execution order:", " -> ".join(node.id for node in ordered))

    settings = PlaygroundSettings.from_env()
    playground = Playground(
        settings=settings,
        chain_client=get_stub_chain_client(settings.executor_address),
        decision_client=StubDecisionClient(),
    )
    result = playground.simulate(graph)

    print(json.dumps(result.model_dump(mode="json", by_alias=True, exclude_none=True)["summary"], indent=2))


if __name__ == "__main__":
    main()
