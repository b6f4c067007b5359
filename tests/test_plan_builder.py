"""
Tests for graph ordering and plan building.
"""
import pytest

from x402_playground.exceptions import PlanValidationError
from x402_playground.models import PaymentAction, PlanGraph, ReadBalanceAction, UnknownAction
from x402_playground.plan_builder import PlanBuilder


def _ids(nodes):
    return [node.id for node in nodes]


@pytest.fixture
def builder():
    return PlanBuilder()


def test_linear_chain(builder):
    nodes = [{"id": "c"}, {"id": "b"}, {"id": "a"}]
    edges = [{"source": "a", "target": "b"}, {"source": "b", "target": "c"}]
    assert _ids(builder.order(nodes, edges)) == ["a", "b", "c"]


def test_independent_nodes_keep_declaration_order(builder):
    nodes = [{"id": "x"}, {"id": "y"}, {"id": "z"}]
    assert _ids(builder.order(nodes, [])) == ["x", "y", "z"]


def test_diamond(builder):
    nodes = [{"id": "d"}, {"id": "b"}, {"id": "c"}, {"id": "a"}]
    edges = [
        {"source": "a", "target": "b"},
        {"source": "a", "target": "c"},
        {"source": "b", "target": "d"},
        {"source": "c", "target": "d"},
    ]
    assert _ids(builder.order(nodes, edges)) == ["a", "b", "c", "d"]


def test_isolated_node_scheduled_in_prefix(builder):
    nodes = [{"id": "a"}, {"id": "b"}, {"id": "lonely"}]
    edges = [{"source": "b", "target": "a"}]
    assert _ids(builder.order(nodes, edges)) == ["b", "lonely", "a"]


def test_cycle_appended_in_declaration_order(builder):
    nodes = [{"id": "start"}, {"id": "p"}, {"id": "q"}]
    edges = [
        {"source": "start", "target": "p"},
        {"source": "p", "target": "q"},
        {"source": "q", "target": "p"},
    ]
    report = builder.order_with_report(nodes, edges)
    assert _ids(report.ordered) == ["start", "p", "q"]
    assert report.unresolved == ["p", "q"]


def test_unknown_edge_endpoints_ignored(builder):
    nodes = [{"id": "a"}, {"id": "b"}]
    edges = [{"source": "ghost", "target": "a"}, {"source": "b", "target": "nowhere"}]
    report = builder.order_with_report(nodes, edges)
    assert _ids(report.ordered) == ["a", "b"]
    assert report.unresolved == []


def test_duplicate_ids_rejected(builder):
    with pytest.raises(PlanValidationError, match="Duplicate node id: a"):
        builder.order([{"id": "a"}, {"id": "a"}], [])


def test_node_without_id_rejected(builder):
    with pytest.raises(PlanValidationError):
        builder.order([{"type": "read_balance"}], [])


def test_empty_graph(builder):
    report = builder.order_with_report([], [])
    assert report.ordered == []
    assert report.unresolved == []


class TestBuild:

    def test_build_assigns_step_ids(self, builder):
        graph = {
            "mode": "simulate",
            "planId": "graph-1",
            "nodes": [
                {"id": "pay", "type": "x402_payment", "params": {"to": "0xA", "amount": "0.5"}},
                {"id": "check", "type": "read_balance"},
            ],
            "edges": [{"source": "check", "target": "pay"}],
        }
        plan, report = builder.build(graph)

        assert plan.plan_id == "graph-1"
        assert plan.mode == "simulate"
        assert report.unresolved == []
        assert isinstance(plan.actions[0], ReadBalanceAction)
        assert isinstance(plan.actions[1], PaymentAction)
        assert [a.step_id for a in plan.actions] == ["step_0", "step_1"]
        assert plan.actions[1].amount == "0.5"

    def test_build_generates_plan_id(self, builder):
        plan = builder.build_plan({"nodes": [{"id": "n", "type": "read_balance"}]})
        assert plan.plan_id.startswith("plan_")

    def test_build_mode_override(self, builder):
        graph = PlanGraph(nodes=[{"id": "n", "type": "read_balance"}])
        plan = builder.build_plan(graph, mode="execute")
        assert plan.mode == "execute"

    def test_unknown_node_type_survives_build(self, builder):
        plan = builder.build_plan({"nodes": [{"id": "n", "type": "teleport"}]})
        assert isinstance(plan.actions[0], UnknownAction)

    def test_build_rejects_non_object(self, builder):
        with pytest.raises(PlanValidationError):
            builder.build(["not", "a", "graph"])

    def test_build_rejects_missing_nodes(self, builder):
        with pytest.raises(PlanValidationError):
            builder.build({"edges": []})
