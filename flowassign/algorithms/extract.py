"""Read assignments and task loads off a solved network."""

from __future__ import annotations

from typing import Dict, List, Sequence

from flowassign.algorithms.types import Assigned, Assignment, NetworkIndex
from flowassign.exceptions import ConsistencyError
from flowassign.graph.flow_network import FlowNetwork


def task_load(graph: FlowNetwork, index: NetworkIndex) -> List[int]:
    """Return the realized worker count per task index."""
    return [graph.arc(arc_id)["flow"] for arc_id in index.sink_arcs]


def task_bound_violations(
    graph: FlowNetwork, index: NetworkIndex
) -> Dict[int, int]:
    """Return ``task -> load`` for tasks whose load lies outside ``[lower, upper]``."""
    return {
        task: load
        for task, (load, bounds) in enumerate(zip(task_load(graph, index), index.bounds))
        if not bounds.lower <= load <= bounds.upper
    }


def extract_assignment(
    graph: FlowNetwork,
    index: NetworkIndex,
    unassigned_workers: Sequence[int] = (),
    iterations: int = 0,
) -> Assigned:
    """Build an `Assigned` result from the final flow.

    Every worker -> task arc carrying one unit of flow becomes an `Assignment`.

    Raises:
        ConsistencyError: If a worker has more than one saturated arc, or a
            task's realized load disagrees with its sink arc.
    """
    by_worker: Dict[int, Assignment] = {}
    loads = [0] * index.num_tasks
    for (worker, task), arc_id in index.cost_arcs.items():
        attr = graph.arc(arc_id)
        if attr["flow"] < 1:
            continue
        if worker in by_worker:
            raise ConsistencyError(
                f"Worker {worker} assigned to tasks {by_worker[worker].task} and {task}"
            )
        by_worker[worker] = Assignment(worker=worker, task=task, cost=attr["cost"])
        loads[task] += 1

    sink_loads = task_load(graph, index)
    if loads != sink_loads:
        raise ConsistencyError(
            f"Task loads {loads} disagree with task -> sink flows {sink_loads}"
        )

    assignments = tuple(by_worker[w] for w in sorted(by_worker))
    return Assigned(
        assignments=assignments,
        task_load=tuple(loads),
        total_cost=sum(a.cost for a in assignments),
        unassigned_workers=tuple(unassigned_workers),
        iterations=iterations,
    )
