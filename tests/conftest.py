"""Global pytest configuration and shared assignment instances.

Instances are ``(tasks, cost_table)`` pairs: ``tasks`` holds ``(lower, upper)``
per task and ``cost_table`` is worker-major with ``None`` for pairs that are
not allowed.
"""

from __future__ import annotations

import itertools
from typing import List, Optional, Sequence, Tuple

import pytest

from flowassign.logging import reset_logging

Bounds = Tuple[int, int]
Table = List[List[Optional[float]]]


def brute_force_min_cost(
    tasks: Sequence[Bounds], cost_table: Table
) -> Optional[float]:
    """Return the optimal total cost by enumeration, or None if infeasible.

    Only usable for a handful of workers and tasks.
    """
    best: Optional[float] = None
    choices = [
        [t for t, cost in enumerate(row) if cost is not None] for row in cost_table
    ]
    for combo in itertools.product(*choices):
        loads = [0] * len(tasks)
        for task in combo:
            loads[task] += 1
        if any(not lo <= load <= hi for load, (lo, hi) in zip(loads, tasks)):
            continue
        total = sum(cost_table[w][t] for w, t in enumerate(combo))
        if best is None or total < best:
            best = total
    return best


@pytest.fixture
def bf_min_cost():
    return brute_force_min_cost


@pytest.fixture
def two_by_two():
    # Each worker prefers a different task; both minimums met directly.
    #
    #        t0[1,2]  t1[0,1]
    #   w0     1        2
    #   w1     2        1
    tasks = [(1, 2), (0, 1)]
    costs = [[1, 2], [2, 1]]
    return tasks, costs


@pytest.fixture
def reroute_needed():
    # w1 cannot serve t1, so w0 has to move off its cheapest task.
    #
    #        t0[1,2]  t1[1,1]
    #   w0     1        2
    #   w1     2        -
    tasks = [(1, 2), (1, 1)]
    costs = [[1, 2], [2, None]]
    return tasks, costs


@pytest.fixture
def ten_by_five():
    # Ten workers, five tasks; optimum total cost is 12.5.
    tasks = [(1, 2), (2, 2), (0, 2), (2, 3), (1, 2)]
    costs = [
        [3, 4, 1.5, 1.5, 5],
        [4, 3, 6, 2, 1],
        [2, 5, 4, 1, 3],
        [3, 5, 1, 4, 0],
        [1, 4, 2, 3, 5],
        [5, 3, 1, 4, 2],
        [1, 3, 5, 4, 2],
        [4, 3, 5, 1, 2],
        [5, 2, 3, 4, 1],
        [2, 5, 1, 3, 4],
    ]
    return tasks, costs


@pytest.fixture
def sample_csv_text():
    return (
        ",Task A,Task B,Task C\n"
        ",1,2,0\n"
        ",2,2,3\n"
        "Worker 1,3,4,1.5\n"
        "Worker 2,4,,2\n"
        "Worker 3,2,5,4\n"
        "Worker 4,1,4,2\n"
    )


@pytest.fixture
def sample_yaml_text():
    return (
        "tasks:\n"
        "  - {name: Task A, min: 1, max: 2}\n"
        "  - {name: Task B, min: 1, max: 1}\n"
        "workers:\n"
        "  - name: Worker 1\n"
        "    costs: {Task A: 3, Task B: 4}\n"
        "  - name: Worker 2\n"
        "    costs: {Task A: 1}\n"
    )


@pytest.fixture
def clean_logging():
    """Reset logging state before and after a test."""
    reset_logging()
    yield
    reset_logging()
