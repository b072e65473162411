"""Graph primitives.

This package provides `FlowNetwork`, a strict multi-directed graph whose arcs
carry flow bounds, cost, and current flow, together with the residual-arc
handles used by the shortest-path and augmentation algorithms.
"""

from flowassign.graph.flow_network import (
    ArcID,
    FlowNetwork,
    GraphError,
    NodeID,
    NodeRole,
    ResidualArc,
)

__all__ = [
    "ArcID",
    "FlowNetwork",
    "GraphError",
    "NodeID",
    "NodeRole",
    "ResidualArc",
]
