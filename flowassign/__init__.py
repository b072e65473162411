"""flowassign: minimum-cost worker/task assignment with task bounds.

Every worker is assigned to exactly one task. Every task receives between its
minimum and maximum number of workers. The total assignment cost is minimal.
The problem is solved as a min-cost flow with lower bounds using two-phase
successive shortest paths.

Primary API:
    solve() - Solve one instance; returns `Assigned` or `Failure`
    SolveJob - Solve on a background thread with progress and cancellation
    solve_many() - Solve independent instances, optionally in parallel
    read_problem() - Load a named problem from CSV or YAML

Example:
    from flowassign import solve

    result = solve(
        tasks=[(1, 2), (0, 1)],
        cost_table=[[1.0, 2.0], [2.0, 1.0]],
    )
    if result.ok:
        for a in result.assignments:
            print(a.worker, a.task, a.cost)
    else:
        print(result.kind, result.message)
"""

from __future__ import annotations

from flowassign import cli, logging
from flowassign.algorithms.base import SpfMethod
from flowassign.algorithms.types import Assigned, Assignment, TaskBounds
from flowassign.config import SolverConfig
from flowassign.exceptions import (
    AssignmentError,
    ConsistencyError,
    DimensionMismatchError,
    FailureKind,
    MalformedBoundsError,
    NegativeCycleError,
    SolveCancelled,
    TaskInfeasibleError,
    WorkerUnassignableError,
)
from flowassign.io import InputFormatError, Problem, read_problem
from flowassign.runner import SolveJob, solve_many
from flowassign.solver import Failure, Result, solve

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Solving
    "solve",
    "SolveJob",
    "solve_many",
    "SolverConfig",
    "SpfMethod",
    # Results
    "Result",
    "Assigned",
    "Assignment",
    "Failure",
    "TaskBounds",
    # Errors
    "AssignmentError",
    "FailureKind",
    "MalformedBoundsError",
    "DimensionMismatchError",
    "TaskInfeasibleError",
    "WorkerUnassignableError",
    "NegativeCycleError",
    "SolveCancelled",
    "ConsistencyError",
    # IO
    "Problem",
    "read_problem",
    "InputFormatError",
    # Modules
    "cli",
    "logging",
]
