"""Exception hierarchy for assignment solving.

Every failure the solver can report derives from `AssignmentError` and carries
a `FailureKind` plus the entities involved, so callers can explain which
constraint failed and on which workers or tasks.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence


class FailureKind(str, Enum):
    """Classification of solver failures."""

    MALFORMED_BOUNDS = "malformed_bounds"
    DIMENSION_MISMATCH = "dimension_mismatch"
    TASK_INFEASIBLE = "task_infeasible"
    WORKER_UNASSIGNABLE = "worker_unassignable"
    NEGATIVE_CYCLE = "negative_cycle"
    CANCELLED = "cancelled"
    INTERNAL = "internal"


class AssignmentError(Exception):
    """Base class for all solver failures."""

    kind: FailureKind = FailureKind.INTERNAL


class MalformedBoundsError(AssignmentError, ValueError):
    """One or more tasks have ``lower > upper`` or a negative bound."""

    kind = FailureKind.MALFORMED_BOUNDS

    def __init__(self, tasks: Dict[int, Sequence[int]]) -> None:
        self.tasks = dict(tasks)
        details = ", ".join(
            f"task {idx} [{lo}, {hi}]" for idx, (lo, hi) in sorted(self.tasks.items())
        )
        super().__init__(f"Malformed task bounds: {details}")


class DimensionMismatchError(AssignmentError, ValueError):
    """Cost table shape disagrees with the worker or task count."""

    kind = FailureKind.DIMENSION_MISMATCH

    def __init__(self, message: str, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(message)


class TaskInfeasibleError(AssignmentError):
    """Minimum worker requirements cannot be met.

    Attributes:
        shortfalls: Task index -> number of workers missing from its minimum.
    """

    kind = FailureKind.TASK_INFEASIBLE

    def __init__(self, shortfalls: Dict[int, int]) -> None:
        self.shortfalls = dict(sorted(shortfalls.items()))
        details = ", ".join(
            f"task {idx} short by {missing}"
            for idx, missing in self.shortfalls.items()
        )
        super().__init__(f"Not enough workers to meet task minimums: {details}")

    @property
    def tasks(self) -> List[int]:
        return list(self.shortfalls)


class WorkerUnassignableError(AssignmentError):
    """Max flow was reached with workers left unassigned."""

    kind = FailureKind.WORKER_UNASSIGNABLE

    def __init__(self, workers: Iterable[int]) -> None:
        self.workers = sorted(workers)
        super().__init__(
            f"Unable to assign all workers: {len(self.workers)} unassigned "
            f"(workers {', '.join(str(w) for w in self.workers)})"
        )


class NegativeCycleError(AssignmentError):
    """A negative-cost cycle is reachable in the residual network.

    This never happens under correct augmentation; it is surfaced instead of
    looping forever.
    """

    kind = FailureKind.NEGATIVE_CYCLE

    def __init__(self, node: Optional[int] = None) -> None:
        self.node = node
        super().__init__(f"Negative cycle detected in residual network at node {node}")


class SolveCancelled(AssignmentError):
    """The caller requested early termination."""

    kind = FailureKind.CANCELLED

    def __init__(self, iterations: int = 0) -> None:
        self.iterations = iterations
        super().__init__(f"Solve cancelled after {iterations} augmentations")


class ConsistencyError(AssignmentError):
    """Internal invariant violated (conservation, bounds, or double assignment)."""

    kind = FailureKind.INTERNAL
