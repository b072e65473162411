"""Types and data structures for the assignment algorithms.

Defines the task bound record, the builder's node/arc index, residual paths
returned by the oracle, and immutable assignment summaries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Tuple

from flowassign.algorithms.base import Cost
from flowassign.graph.flow_network import ArcID, NodeID, ResidualArc


class TaskBounds(NamedTuple):
    """Minimum and maximum number of workers a task may receive."""

    lower: int
    upper: int


@dataclass
class NetworkIndex:
    """Maps input worker/task positions to node ids and arc ids.

    Attributes:
        source: Source node id.
        sink: Sink node id.
        workers: Node id per worker index.
        tasks: Node id per task index.
        source_arcs: Source -> worker arc per worker index.
        sink_arcs: Task -> sink arc per task index.
        cost_arcs: Worker -> task arc per ``(worker, task)`` with a present cost.
        bounds: Input bounds per task index.
    """

    source: NodeID
    sink: NodeID
    workers: List[NodeID] = field(default_factory=list)
    tasks: List[NodeID] = field(default_factory=list)
    source_arcs: List[ArcID] = field(default_factory=list)
    sink_arcs: List[ArcID] = field(default_factory=list)
    cost_arcs: Dict[Tuple[int, int], ArcID] = field(default_factory=dict)
    bounds: List[TaskBounds] = field(default_factory=list)

    @property
    def num_workers(self) -> int:
        return len(self.workers)

    @property
    def num_tasks(self) -> int:
        return len(self.tasks)


@dataclass(frozen=True)
class ResidualPath:
    """A source-to-sink path in the residual network.

    Attributes:
        arcs: Residual arcs in order from source to sink.
        nodes: Visited nodes, source first.
        cost: Sum of residual costs along the path.
        bottleneck: Minimum residual capacity along the path.
    """

    arcs: Tuple[ResidualArc, ...]
    nodes: Tuple[NodeID, ...]
    cost: Cost
    bottleneck: int

    def __len__(self) -> int:
        return len(self.arcs)


@dataclass(frozen=True)
class Assignment:
    """A single worker assigned to a task at a cost."""

    worker: int
    task: int
    cost: Cost


@dataclass(frozen=True)
class Assigned:
    """Successful solve outcome.

    Attributes:
        assignments: One record per assigned worker, ordered by worker index.
        task_load: Realized worker count per task index.
        total_cost: Sum of assignment costs.
        unassigned_workers: Workers left without a task. Always empty unless
            full assignment was not required.
        iterations: Number of augmentations performed.
    """

    assignments: Tuple[Assignment, ...]
    task_load: Tuple[int, ...]
    total_cost: Cost
    unassigned_workers: Tuple[int, ...] = ()
    iterations: int = 0

    ok = True

    def unwrap(self) -> Assigned:
        return self

    def as_mapping(self) -> Dict[int, int]:
        """Return ``worker -> task`` for every assignment."""
        return {a.worker: a.task for a in self.assignments}

    def workers_for(self, task: int) -> List[int]:
        return [a.worker for a in self.assignments if a.task == task]
