"""Strict flow network with bounded arcs and derived residual arcs.

`FlowNetwork` extends `networkx.MultiDiGraph` to enforce explicit node
management and monotonically increasing integer arc ids. Each logical arc is
stored exactly once with its bounds, cost, and current flow; the two residual
directions are derived views addressed by `ResidualArc(arc_id, forward)`, so
they can never drift out of sync.

Arc attributes:
    lower, upper: True flow bounds given at construction.
    eff_lower, eff_upper: Bounds currently used for residual capacities. They
        equal the true bounds except while the augmenter deliberately relaxes
        an arc (see `set_effective_bounds`).
    cost: Per-unit cost of forward flow.
    flow: Current integer flow.
"""

from __future__ import annotations

from enum import IntEnum
from pickle import dumps, loads
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Tuple

import networkx as nx

NodeID = int
ArcID = int
AttrDict = Dict[str, Any]
ArcTuple = Tuple[NodeID, NodeID, ArcID, AttrDict]


class GraphError(ValueError):
    """Invalid operation on a `FlowNetwork`."""


class NodeRole(IntEnum):
    """Role of a node in the assignment network."""

    SOURCE = 0
    SINK = 1
    WORKER = 2
    TASK = 3


class ResidualArc(NamedTuple):
    """Handle to one direction of a stored arc.

    ``forward=True`` pushes flow along the arc; ``forward=False`` undoes it.
    """

    arc_id: ArcID
    forward: bool


class FlowNetwork(nx.MultiDiGraph):
    """A multi-directed graph of bounded, costed arcs with flow.

    This class enforces:
      - Nodes must be added explicitly; duplicates raise `GraphError`.
      - Arcs may only join existing nodes.
      - Arc ids are integers assigned in insertion order and never reused.
      - ``0 <= lower <= upper`` on every arc.

    Inherits from:
        networkx.MultiDiGraph
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._arcs: Dict[ArcID, ArcTuple] = {}
        self._next_arc_id: int = 0

    def new_edge_key(self, u: NodeID, v: NodeID, key: Optional[int] = None) -> int:  # type: ignore[override]
        """Return a new unique integer arc id.

        Signature matches NetworkX's ``new_edge_key(self, u, v, key=None)``.
        """
        next_arc_id = self._next_arc_id
        self._next_arc_id += 1
        return next_arc_id

    def copy(self, as_view: bool = False) -> FlowNetwork:  # type: ignore[override]
        """Return a pickle-based deep copy, flows and arc ids included."""
        if as_view:
            raise GraphError("FlowNetwork does not support views.")
        return loads(dumps(self))

    #
    # Node management
    #
    def add_node(self, node_for_adding: NodeID, **attr: Any) -> None:
        """Add a single node, disallowing duplicates.

        Args:
            node_for_adding: The node to add.
            **attr: Node attributes, typically ``role`` and ``index``.

        Raises:
            GraphError: If the node already exists.
        """
        if node_for_adding in self:
            raise GraphError(f"Node '{node_for_adding}' already exists in this graph.")
        super().add_node(node_for_adding, **attr)

    def role(self, node: NodeID) -> Optional[NodeRole]:
        return self.nodes[node].get("role")

    #
    # Arc management
    #
    def add_arc(
        self,
        u: NodeID,
        v: NodeID,
        lower: int = 0,
        upper: int = 1,
        cost: float = 0.0,
        **attr: Any,
    ) -> ArcID:
        """Add a bounded arc from ``u`` to ``v`` carrying zero flow.

        Args:
            u: Tail node. Must exist.
            v: Head node. Must exist.
            lower: Minimum flow on the arc.
            upper: Maximum flow on the arc.
            cost: Per-unit cost of flow.
            **attr: Extra attributes stored on the arc.

        Returns:
            ArcID: The id of the new arc.

        Raises:
            GraphError: If an endpoint is missing or the bounds are malformed.
        """
        if u not in self:
            raise GraphError(f"Source node '{u}' does not exist.")
        if v not in self:
            raise GraphError(f"Target node '{v}' does not exist.")
        if lower < 0:
            raise GraphError(f"Arc {u}->{v} has negative lower bound {lower}.")
        if lower > upper:
            raise GraphError(
                f"Arc {u}->{v} has lower bound {lower} above upper bound {upper}."
            )

        key = self.new_edge_key(u, v)
        super().add_edge(
            u,
            v,
            key=key,
            lower=lower,
            upper=upper,
            eff_lower=lower,
            eff_upper=upper,
            cost=cost,
            flow=0,
            **attr,
        )
        self._arcs[key] = (u, v, key, self[u][v][key])
        return key

    def add_edge(self, u_for_edge, v_for_edge, key=None, **attr):  # type: ignore[override]
        """Alias for `add_arc` so generic networkx callers keep the invariants."""
        if key is not None:
            raise GraphError("Arc ids are assigned by the network.")
        return self.add_arc(u_for_edge, v_for_edge, **attr)

    def remove_edge(self, u, v, key=None):  # type: ignore[override]
        raise GraphError("Arcs cannot be removed from a FlowNetwork.")

    def remove_node(self, n):  # type: ignore[override]
        raise GraphError("Nodes cannot be removed from a FlowNetwork.")

    def get_arcs(self) -> Dict[ArcID, ArcTuple]:
        """Return all arcs as ``arc_id -> (tail, head, arc_id, attributes)``."""
        return self._arcs

    def arc(self, arc_id: ArcID) -> AttrDict:
        """Return the attribute dictionary of an arc.

        Raises:
            GraphError: If no arc with this id exists.
        """
        if arc_id not in self._arcs:
            raise GraphError(f"Arc with id='{arc_id}' not found.")
        return self._arcs[arc_id][3]

    def endpoints(self, arc_id: ArcID) -> Tuple[NodeID, NodeID]:
        tail, head, _, _ = self._arcs[arc_id]
        return tail, head

    def arcs_between(self, u: NodeID, v: NodeID) -> List[ArcID]:
        """List all arc ids from ``u`` to ``v``."""
        if u not in self._adj or v not in self._adj[u]:
            return []
        return list(self._adj[u][v].keys())

    def set_effective_bounds(self, arc_id: ArcID, lower: int, upper: int) -> None:
        """Change the bounds used for residual capacities of an arc.

        The current flow is left untouched; only the interpretation of how much
        of it may be added or undone changes.
        """
        if lower < 0 or lower > upper:
            raise GraphError(f"Invalid effective bounds [{lower}, {upper}] on arc {arc_id}.")
        attr = self.arc(arc_id)
        attr["eff_lower"] = lower
        attr["eff_upper"] = upper

    def restore_bounds(self, arc_id: ArcID) -> None:
        attr = self.arc(arc_id)
        attr["eff_lower"] = attr["lower"]
        attr["eff_upper"] = attr["upper"]

    #
    # Residual view
    #
    def residual_arcs(self, node: NodeID) -> Iterator[ResidualArc]:
        """Yield residual arcs leaving ``node``.

        Forward directions of out-arcs come first, then backward directions of
        in-arcs, each in arc insertion order. Capacity is not filtered here.
        """
        for arcs_map in self._adj[node].values():
            for arc_id in arcs_map:
                yield ResidualArc(arc_id, True)
        for arcs_map in self._pred[node].values():
            for arc_id in arcs_map:
                yield ResidualArc(arc_id, False)

    def residual_head(self, res: ResidualArc) -> NodeID:
        tail, head, _, _ = self._arcs[res.arc_id]
        return head if res.forward else tail

    def residual_tail(self, res: ResidualArc) -> NodeID:
        tail, head, _, _ = self._arcs[res.arc_id]
        return tail if res.forward else head

    def residual_capacity(self, res: ResidualArc) -> int:
        """Remaining capacity in the given direction (never negative)."""
        attr = self._arcs[res.arc_id][3]
        if res.forward:
            cap = attr["eff_upper"] - attr["flow"]
        else:
            cap = attr["flow"] - attr["eff_lower"]
        return cap if cap > 0 else 0

    def residual_cost(self, res: ResidualArc) -> float:
        cost = self._arcs[res.arc_id][3]["cost"]
        return cost if res.forward else -cost

    def push(self, res: ResidualArc, amount: int) -> None:
        """Push ``amount`` units along a residual arc.

        Raises:
            GraphError: If ``amount`` exceeds the residual capacity.
        """
        available = self.residual_capacity(res)
        if amount < 0 or amount > available:
            raise GraphError(
                f"Cannot push {amount} on arc {res.arc_id} "
                f"({'forward' if res.forward else 'backward'}), capacity {available}."
            )
        attr = self._arcs[res.arc_id][3]
        attr["flow"] += amount if res.forward else -amount

    #
    # Inspection
    #
    def imbalance(self, node: NodeID) -> int:
        """Return inflow minus outflow at ``node``."""
        inflow = sum(
            attr["flow"] for arcs_map in self._pred[node].values() for attr in arcs_map.values()
        )
        outflow = sum(
            attr["flow"] for arcs_map in self._adj[node].values() for attr in arcs_map.values()
        )
        return inflow - outflow

    def unbalanced_nodes(self) -> Dict[NodeID, int]:
        """Return worker/task nodes violating conservation, with their imbalance."""
        result: Dict[NodeID, int] = {}
        for node, data in self.nodes(data=True):
            if data.get("role") in (NodeRole.SOURCE, NodeRole.SINK):
                continue
            delta = self.imbalance(node)
            if delta:
                result[node] = delta
        return result

    def out_of_bounds_arcs(self, effective: bool = True) -> List[ArcID]:
        """Return arcs whose flow lies outside their (effective or true) bounds."""
        lo_key, hi_key = ("eff_lower", "eff_upper") if effective else ("lower", "upper")
        return [
            arc_id
            for arc_id, (_, _, _, attr) in self._arcs.items()
            if not attr[lo_key] <= attr["flow"] <= attr[hi_key]
        ]

    def total_cost(self) -> float:
        return sum(attr["flow"] * attr["cost"] for _, _, _, attr in self._arcs.values())
