"""Shortest-path-first (SPF) algorithms over the residual network.

Two methods are provided:

- ``spf_label_correcting``: FIFO label-correcting relaxation (Bellman-Ford
  with a work queue). Tolerates negative residual costs and detects
  negative-cost cycles reachable from the source.
- ``spf_dijkstra_reduced``: Dijkstra over reduced costs
  ``cost + p[tail] - p[head]`` for potentials ``p`` carried over from the
  previous augmentation. Refuses to run (``InvalidPotentials``) as soon as it
  meets an arc whose reduced cost is negative or whose endpoint has no
  potential, so callers can fall back to label-correcting.

Notes:
    Only residual arcs with at least ``MIN_CAP`` remaining capacity are used.
    The destination node is never expanded: residual arcs leaving the sink
    cannot lie on a simple source-to-sink path.

    Tie-breaking is deterministic: a label only changes on a strict
    improvement (beyond ``COST_EPSILON``), residual arcs are scanned in arc
    insertion order (forward before backward), and the work queue is FIFO.
"""

from __future__ import annotations

from collections import deque
from heapq import heappop, heappush
from typing import Deque, Dict, List, Optional, Set, Tuple

from flowassign.algorithms.base import COST_EPSILON, MIN_CAP, Cost, SpfMethod
from flowassign.algorithms.types import ResidualPath
from flowassign.exceptions import NegativeCycleError
from flowassign.graph.flow_network import FlowNetwork, NodeID, ResidualArc
from flowassign.logging import get_logger

logger = get_logger(__name__)

Pred = Dict[NodeID, ResidualArc]


class InvalidPotentials(Exception):
    """Carried potentials do not make every scanned reduced cost non-negative."""


def spf_label_correcting(
    graph: FlowNetwork,
    src_node: NodeID,
    dst_node: Optional[NodeID] = None,
) -> Tuple[Dict[NodeID, Cost], Pred]:
    """Label-correcting SPF tolerant of negative residual costs.

    Args:
        graph: Flow network with current flows.
        src_node: Source node.
        dst_node: Optional destination; it is labelled but never expanded.

    Returns:
        A tuple of (costs, pred):
          - costs: Minimal residual cost from ``src_node`` to each reachable node.
          - pred: For each reachable node except the source, the residual arc
            through which its label was last improved.

    Raises:
        KeyError: If ``src_node`` is not in the graph.
        NegativeCycleError: If a negative-cost cycle is reachable from the source.
    """
    if src_node not in graph:
        raise KeyError(f"Source node '{src_node}' is not in the graph.")

    num_nodes = graph.number_of_nodes()
    costs: Dict[NodeID, Cost] = {src_node: 0.0}
    # Number of arcs on the current best path; reaching num_nodes means a cycle
    hops: Dict[NodeID, int] = {src_node: 0}
    pred: Pred = {}

    queue: Deque[NodeID] = deque([src_node])
    queued: Set[NodeID] = {src_node}

    while queue:
        node_id = queue.popleft()
        queued.discard(node_id)
        if node_id == dst_node:
            continue

        node_cost = costs[node_id]
        for res in graph.residual_arcs(node_id):
            if graph.residual_capacity(res) < MIN_CAP:
                continue
            neighbor_id = graph.residual_head(res)
            new_cost = node_cost + graph.residual_cost(res)
            if neighbor_id in costs and new_cost >= costs[neighbor_id] - COST_EPSILON:
                continue

            costs[neighbor_id] = new_cost
            pred[neighbor_id] = res
            hops[neighbor_id] = hops[node_id] + 1
            if hops[neighbor_id] >= num_nodes:
                raise NegativeCycleError(neighbor_id)
            if neighbor_id not in queued:
                queue.append(neighbor_id)
                queued.add(neighbor_id)

    return costs, pred


def spf_dijkstra_reduced(
    graph: FlowNetwork,
    src_node: NodeID,
    potentials: Dict[NodeID, Cost],
    dst_node: Optional[NodeID] = None,
) -> Tuple[Dict[NodeID, Cost], Pred]:
    """Dijkstra SPF over reduced costs.

    Explores the whole reachable residual network (no early exit) so that the
    returned costs can serve as potentials for the next call.

    Args:
        graph: Flow network with current flows.
        src_node: Source node.
        potentials: Node potentials from a previous shortest-path computation.
        dst_node: Optional destination; it is labelled but never expanded.

    Returns:
        A tuple of (costs, pred) with true (not reduced) residual costs.

    Raises:
        KeyError: If ``src_node`` is not in the graph.
        InvalidPotentials: If a scanned arc has negative reduced cost or an
            endpoint without a potential.
    """
    if src_node not in graph:
        raise KeyError(f"Source node '{src_node}' is not in the graph.")
    if src_node not in potentials:
        raise InvalidPotentials(f"No potential for source node {src_node}")

    reduced: Dict[NodeID, Cost] = {src_node: 0.0}
    pred: Pred = {}
    settled: Set[NodeID] = set()
    # Insertion counter keeps heap ordering deterministic on equal costs
    counter = 0
    min_pq: List[Tuple[Cost, int, NodeID]] = [(0.0, counter, src_node)]

    while min_pq:
        current_cost, _, node_id = heappop(min_pq)
        if node_id in settled or current_cost > reduced[node_id]:
            continue
        settled.add(node_id)
        if node_id == dst_node:
            continue

        node_potential = potentials[node_id]
        for res in graph.residual_arcs(node_id):
            if graph.residual_capacity(res) < MIN_CAP:
                continue
            neighbor_id = graph.residual_head(res)
            if neighbor_id not in potentials:
                raise InvalidPotentials(f"No potential for node {neighbor_id}")
            edge_cost = graph.residual_cost(res) + node_potential - potentials[neighbor_id]
            if edge_cost < -COST_EPSILON:
                raise InvalidPotentials(
                    f"Negative reduced cost {edge_cost} on arc {res.arc_id}"
                )
            if edge_cost < 0:
                edge_cost = 0.0

            new_cost = current_cost + edge_cost
            if neighbor_id in settled:
                continue
            if neighbor_id in reduced and new_cost >= reduced[neighbor_id] - COST_EPSILON:
                continue
            reduced[neighbor_id] = new_cost
            pred[neighbor_id] = res
            counter += 1
            heappush(min_pq, (new_cost, counter, neighbor_id))

    src_potential = potentials[src_node]
    costs = {
        node: cost - src_potential + potentials[node] for node, cost in reduced.items()
    }
    return costs, pred


def resolve_path(
    graph: FlowNetwork,
    src_node: NodeID,
    dst_node: NodeID,
    costs: Dict[NodeID, Cost],
    pred: Pred,
) -> Optional[ResidualPath]:
    """Rebuild the source-to-destination path from a predecessor map.

    Returns:
        The path, or None if ``dst_node`` was not reached.

    Raises:
        NegativeCycleError: If the predecessor chain loops.
    """
    if dst_node not in pred:
        return None

    arcs: List[ResidualArc] = []
    nodes: List[NodeID] = [dst_node]
    node_id = dst_node
    limit = graph.number_of_nodes()
    while node_id != src_node:
        res = pred[node_id]
        arcs.append(res)
        node_id = graph.residual_tail(res)
        nodes.append(node_id)
        if len(arcs) > limit:
            raise NegativeCycleError(node_id)

    arcs.reverse()
    nodes.reverse()
    bottleneck = min(graph.residual_capacity(res) for res in arcs)
    return ResidualPath(
        arcs=tuple(arcs),
        nodes=tuple(nodes),
        cost=costs[dst_node],
        bottleneck=bottleneck,
    )


class ShortestPathOracle:
    """Stateful min-cost path finder for successive augmentations.

    With ``SpfMethod.DIJKSTRA_POTENTIALS`` the oracle keeps the last computed
    distances as potentials. Whenever those potentials are unusable (first call,
    after a bounds change, newly reachable nodes) it transparently recomputes
    with label-correcting, so results never depend on the acceleration.

    Attributes:
        method: Selected `SpfMethod`.
        fallbacks: Number of times Dijkstra fell back to label-correcting.
        calls: Number of completed path queries.
    """

    def __init__(self, method: SpfMethod = SpfMethod.LABEL_CORRECTING) -> None:
        self.method = SpfMethod(method)
        self.potentials: Optional[Dict[NodeID, Cost]] = None
        self.fallbacks = 0
        self.calls = 0

    def invalidate(self) -> None:
        """Drop carried potentials (e.g. after arc bounds change)."""
        self.potentials = None

    def find(
        self, graph: FlowNetwork, src_node: NodeID, dst_node: NodeID
    ) -> Optional[ResidualPath]:
        """Return a minimum-cost residual path, or None if ``dst_node`` is unreachable.

        Raises:
            NegativeCycleError: If a negative-cost cycle is reachable from the source.
        """
        if self.method == SpfMethod.DIJKSTRA_POTENTIALS and self.potentials is not None:
            try:
                costs, pred = spf_dijkstra_reduced(graph, src_node, self.potentials, dst_node)
            except InvalidPotentials as exc:
                logger.debug(f"Potentials rejected ({exc}); using label-correcting")
                self.fallbacks += 1
                costs, pred = spf_label_correcting(graph, src_node, dst_node)
        else:
            costs, pred = spf_label_correcting(graph, src_node, dst_node)

        if self.method == SpfMethod.DIJKSTRA_POTENTIALS:
            self.potentials = costs
        self.calls += 1
        return resolve_path(graph, src_node, dst_node, costs, pred)


def shortest_path(
    graph: FlowNetwork,
    src_node: NodeID,
    dst_node: NodeID,
) -> Optional[ResidualPath]:
    """One-off label-correcting shortest residual path from ``src_node`` to ``dst_node``."""
    costs, pred = spf_label_correcting(graph, src_node, dst_node)
    return resolve_path(graph, src_node, dst_node, costs, pred)
