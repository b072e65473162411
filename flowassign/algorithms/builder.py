"""Translate worker/task/cost input into a flow network.

Layout of the built network:

- node 0 is the source and node 1 the sink;
- task nodes follow in input order, then worker nodes in input order;
- ``task -> sink`` arcs carry the task bounds ``[lower, upper]`` at cost 0;
- ``source -> worker`` arcs carry ``[0, 1]`` at cost 0;
- ``worker -> task`` arcs carry ``[0, 1]`` at the input cost, and are omitted
  when the cost is absent.
"""

from __future__ import annotations

import math
from numbers import Real
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

from flowassign.algorithms.types import NetworkIndex, TaskBounds
from flowassign.exceptions import DimensionMismatchError, MalformedBoundsError
from flowassign.graph.flow_network import FlowNetwork, NodeRole
from flowassign.logging import get_logger

logger = get_logger(__name__)

TaskInput = Union[TaskBounds, Tuple[int, int], Mapping[str, int]]
CostCell = Optional[float]

SOURCE: int = 0
SINK: int = 1


def is_absent(cell: Any) -> bool:
    """Return True when a cost cell encodes "no arc" (None, NaN, or blank text)."""
    if cell is None:
        return True
    if isinstance(cell, str):
        return cell.strip() == ""
    if isinstance(cell, Real):
        return math.isnan(float(cell))
    return False


def normalize_tasks(tasks: Sequence[TaskInput]) -> list[TaskBounds]:
    """Coerce task records to `TaskBounds` and validate them.

    Accepts `TaskBounds`, ``(lower, upper)`` pairs, or mappings with
    ``lower``/``upper`` keys.

    Raises:
        MalformedBoundsError: If any task has ``lower > upper`` or ``lower < 0``.
    """
    result: list[TaskBounds] = []
    bad: dict[int, Tuple[int, int]] = {}
    for idx, entry in enumerate(tasks):
        if isinstance(entry, Mapping):
            lower, upper = entry["lower"], entry["upper"]
        else:
            lower, upper = entry
        bounds = TaskBounds(int(lower), int(upper))
        if bounds.lower < 0 or bounds.lower > bounds.upper:
            bad[idx] = bounds
        result.append(bounds)
    if bad:
        raise MalformedBoundsError(bad)
    return result


def build_network(
    tasks: Sequence[TaskInput],
    cost_table: Sequence[Sequence[CostCell]],
    num_workers: Optional[int] = None,
) -> Tuple[FlowNetwork, NetworkIndex]:
    """Build the assignment flow network.

    Args:
        tasks: Task bounds in task order.
        cost_table: Worker-major table; ``cost_table[i][j]`` is the cost of
            worker ``i`` doing task ``j`` or an absent marker.
        num_workers: Expected worker count. Defaults to the number of rows.

    Returns:
        The network (zero flow everywhere) and its `NetworkIndex`.

    Raises:
        MalformedBoundsError: If any task bounds are malformed.
        DimensionMismatchError: If the table shape disagrees with the counts.
    """
    bounds = normalize_tasks(tasks)
    rows = [list(row) for row in cost_table]

    if num_workers is not None and num_workers != len(rows):
        raise DimensionMismatchError(
            f"Cost table has {len(rows)} worker rows, expected {num_workers}.",
            expected=num_workers,
            actual=len(rows),
        )
    for worker, row in enumerate(rows):
        if len(row) != len(bounds):
            raise DimensionMismatchError(
                f"Cost row for worker {worker} has {len(row)} entries, "
                f"expected {len(bounds)} (one per task).",
                expected=len(bounds),
                actual=len(row),
            )

    graph = FlowNetwork()
    graph.add_node(SOURCE, role=NodeRole.SOURCE)
    graph.add_node(SINK, role=NodeRole.SINK)
    index = NetworkIndex(source=SOURCE, sink=SINK, bounds=bounds)

    next_node = SINK + 1
    for task, task_bounds in enumerate(bounds):
        graph.add_node(next_node, role=NodeRole.TASK, index=task)
        index.tasks.append(next_node)
        index.sink_arcs.append(
            graph.add_arc(next_node, SINK, task_bounds.lower, task_bounds.upper, 0.0)
        )
        next_node += 1

    for worker, row in enumerate(rows):
        graph.add_node(next_node, role=NodeRole.WORKER, index=worker)
        index.workers.append(next_node)
        index.source_arcs.append(graph.add_arc(SOURCE, next_node, 0, 1, 0.0))
        for task, cell in enumerate(row):
            if is_absent(cell):
                continue
            index.cost_arcs[(worker, task)] = graph.add_arc(
                next_node, index.tasks[task], 0, 1, float(cell)
            )
        next_node += 1

    logger.debug(
        f"Built network: {index.num_workers} workers, {index.num_tasks} tasks, "
        f"{len(index.cost_arcs)} cost arcs"
    )
    return graph, index
