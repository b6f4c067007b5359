"""
Turn a node/edge plan graph into a linear, deterministic action sequence.
"""
import logging
from collections import deque
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple, Union

from .exceptions import PlanValidationError
from .models import ExecutionMode, ExecutionPlan, PlanEdge, PlanGraph, PlanNode, parse_action
from .utils import now_ms

logger = logging.getLogger(__name__)

NodeLike = Union[PlanNode, Dict[str, Any]]
EdgeLike = Union[PlanEdge, Dict[str, Any]]


class OrderReport(NamedTuple):
    """Topological order plus the ids the sort could not resolve."""
    ordered: List[PlanNode]
    unresolved: List[str]


def _as_node(node: NodeLike) -> PlanNode:
    if isinstance(node, PlanNode):
        return node
    try:
        return PlanNode.model_validate(node)
    except ValueError as e:
        raise PlanValidationError(f"Invalid plan node: {e}")


def _as_edge(edge: EdgeLike) -> PlanEdge:
    if isinstance(edge, PlanEdge):
        return edge
    try:
        return PlanEdge.model_validate(edge)
    except ValueError as e:
        raise PlanValidationError(f"Invalid plan edge: {e}")


class PlanBuilder:
    """
    Orders plan graphs with Kahn's algorithm.

    Zero in-degree nodes are scheduled first-seen-first-served, so identical
    input always yields identical output. Nodes caught in a cycle never reach
    zero in-degree; they are appended after the sorted prefix in declaration
    order instead of raising, so every node appears exactly once.
    """

    def order(self, nodes: Sequence[NodeLike], edges: Sequence[EdgeLike]) -> List[PlanNode]:
        """
        Order nodes so that every edge source precedes its target.

        Args:
            nodes: Plan nodes in declaration order
            edges: Dependency edges (``source`` runs before ``target``)

        Returns:
            Every node exactly once

        Raises:
            PlanValidationError: If two nodes share an id
        """
        return self.order_with_report(nodes, edges).ordered

    def order_with_report(
        self,
        nodes: Sequence[NodeLike],
        edges: Sequence[EdgeLike],
    ) -> OrderReport:
        """Like :meth:`order`, also returning the ids appended by the fallback."""
        plan_nodes = [_as_node(node) for node in nodes]

        by_id: Dict[str, PlanNode] = {}
        for node in plan_nodes:
            if node.id in by_id:
                raise PlanValidationError(f"Duplicate node id: {node.id}")
            by_id[node.id] = node

        adjacency: Dict[str, List[str]] = {node.id: [] for node in plan_nodes}
        in_degree: Dict[str, int] = {node.id: 0 for node in plan_nodes}

        for raw in edges:
            edge = _as_edge(raw)
            if edge.source not in by_id or edge.target not in by_id:
                logger.debug(f"Ignoring edge with unknown endpoint: {edge.source} -> {edge.target}")
                continue
            adjacency[edge.source].append(edge.target)
            in_degree[edge.target] += 1

        queue = deque(node.id for node in plan_nodes if in_degree[node.id] == 0)
        ordered: List[PlanNode] = []
        visited = set()

        while queue:
            node_id = queue.popleft()
            ordered.append(by_id[node_id])
            visited.add(node_id)
            for target in adjacency[node_id]:
                in_degree[target] -= 1
                if in_degree[target] == 0:
                    queue.append(target)

        unresolved = [node.id for node in plan_nodes if node.id not in visited]
        if unresolved:
            logger.warning(f"Plan graph has a cycle; appending in declaration order: {unresolved}")
            ordered.extend(by_id[node_id] for node_id in unresolved)

        return OrderReport(ordered, unresolved)

    def build(
        self,
        graph: Union[PlanGraph, Dict[str, Any]],
        mode: Optional[Union[ExecutionMode, str]] = None,
    ) -> Tuple[ExecutionPlan, OrderReport]:
        """
        Convert a plan graph into an ordered execution plan.

        Each action gets ``step_id = "step_<i>"`` in execution order; a plan
        without an id gets ``plan_<epoch ms>``.

        Args:
            graph: Plan graph (model or payload with ``nodes``/``edges``)
            mode: Overrides the graph's mode when given

        Returns:
            Tuple of (plan, order report)

        Raises:
            PlanValidationError: If the graph or one of its actions is invalid
        """
        if not isinstance(graph, PlanGraph):
            if not isinstance(graph, dict):
                raise PlanValidationError("Plan graph must be a JSON object")
            try:
                graph = PlanGraph.model_validate(graph)
            except ValueError as e:
                raise PlanValidationError(f"Invalid plan graph: {e}")

        report = self.order_with_report(graph.nodes, graph.edges)

        actions = []
        for index, node in enumerate(report.ordered):
            action = parse_action(node.action_payload())
            action.step_id = f"step_{index}"
            actions.append(action)

        plan = ExecutionPlan(
            mode=ExecutionMode(mode) if mode is not None else graph.mode,
            plan_id=graph.plan_id or f"plan_{now_ms()}",
            description=graph.description,
            actions=actions,
            context=graph.context,
        )
        return plan, report

    def build_plan(
        self,
        graph: Union[PlanGraph, Dict[str, Any]],
        mode: Optional[Union[ExecutionMode, str]] = None,
    ) -> ExecutionPlan:
        return self.build(graph, mode)[0]
