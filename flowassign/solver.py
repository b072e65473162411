"""Synchronous entry point for solving bounded assignment problems.

``solve`` builds the flow network, runs two-phase min-cost augmentation, and
extracts the assignment. Every solver failure is returned as a typed
`Failure` rather than raised, so callers can branch on ``result.ok`` and
inspect ``result.kind``; ``result.unwrap()`` converts back to an exception.

Example:
    from flowassign import solve

    result = solve([(1, 2), (0, 1)], [[1, 2], [2, 1]])
    if result.ok:
        print(result.total_cost)  # 2
"""

from __future__ import annotations

from dataclasses import dataclass
from time import perf_counter
from typing import Optional, Sequence, Union

from flowassign.algorithms.augment import CancelToken, MinCostAugmenter, ProgressCallback
from flowassign.algorithms.builder import CostCell, TaskInput, build_network
from flowassign.algorithms.extract import extract_assignment
from flowassign.algorithms.types import Assigned
from flowassign.config import DEFAULT_CONFIG, SolverConfig
from flowassign.exceptions import AssignmentError, FailureKind
from flowassign.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Failure:
    """Unsuccessful solve outcome wrapping the classified error."""

    error: AssignmentError

    ok = False

    @property
    def kind(self) -> FailureKind:
        return self.error.kind

    @property
    def message(self) -> str:
        return str(self.error)

    def unwrap(self) -> Assigned:
        raise self.error


Result = Union[Assigned, Failure]


def solve(
    tasks: Sequence[TaskInput],
    cost_table: Sequence[Sequence[CostCell]],
    *,
    num_workers: Optional[int] = None,
    config: Optional[SolverConfig] = None,
    cancel: Optional[CancelToken] = None,
    progress: Optional[ProgressCallback] = None,
) -> Result:
    """Assign every worker to one task within task bounds at minimum total cost.

    Args:
        tasks: ``(lower, upper)`` worker bounds per task.
        cost_table: Worker-major costs; ``None``, NaN, or blank marks a pair
            as infeasible.
        num_workers: Optional expected worker count, checked against the table.
        config: Solver configuration; defaults to `DEFAULT_CONFIG`.
        cancel: Optional cancellation signal (e.g. `threading.Event`) polled
            between augmentations.
        progress: Optional ``progress(assigned, num_workers)`` callback.

    Returns:
        `Assigned` on success, otherwise `Failure` carrying one of
        `MalformedBoundsError`, `DimensionMismatchError`, `TaskInfeasibleError`,
        `WorkerUnassignableError`, `NegativeCycleError`, `SolveCancelled`, or
        `ConsistencyError`.
    """
    cfg = config or DEFAULT_CONFIG
    start = perf_counter()
    try:
        graph, index = build_network(tasks, cost_table, num_workers=num_workers)
        logger.info(
            f"Solving assignment of {index.num_workers} workers to {index.num_tasks} tasks"
        )
        augmenter = MinCostAugmenter(graph, index, cfg, cancel=cancel, progress=progress)
        augmenter.run()
        result = extract_assignment(
            graph,
            index,
            unassigned_workers=augmenter.unassigned_workers,
            iterations=augmenter.iterations,
        )
    except AssignmentError as exc:
        logger.warning(f"Solve failed ({exc.kind.value}): {exc}")
        return Failure(exc)

    logger.info(
        f"Assigned {len(result.assignments)} workers at total cost {result.total_cost} "
        f"in {perf_counter() - start:.3f} s ({result.iterations} augmentations)"
    )
    return result
