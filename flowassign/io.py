"""Read assignment problems from CSV or YAML and write solved assignments.

CSV layout (one header cell per task; the first column is ignored in the
three task rows and holds the worker name in worker rows)::

    ,        Task A, Task B, Task C
    ,        1,      2,      0
    ,        2,      2,      3
    Worker 1, 3.0,   4.0,    1.5
    Worker 2, 4.0,   ,       2.0

Task minima and maxima are non-negative integers; a maximum of 0 means 0.
Costs are any real numbers, negative included. A blank cost marks the pair as
infeasible (no arc), which is different from a zero cost.

YAML layout::

    tasks:
      - {name: Task A, min: 1, max: 2}
      - {name: Task B, min: 2, max: 2}
    workers:
      - name: Worker 1
        costs: {Task A: 3.0, Task B: 4.0}

Tasks missing from a worker's ``costs`` are infeasible for that worker.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd
import yaml

from flowassign.algorithms.types import Assigned, TaskBounds
from flowassign.logging import get_logger
from flowassign.solver import Result, solve

logger = get_logger(__name__)

PathLike = Union[str, Path]


class InputFormatError(ValueError):
    """Input file does not follow the expected layout."""


@dataclass
class Problem:
    """A named assignment problem.

    Attributes:
        task_names: Task names in task order.
        worker_names: Worker names in worker order.
        tasks: Bounds per task.
        cost_table: Worker-major costs, ``None`` where infeasible.
    """

    task_names: List[str] = field(default_factory=list)
    worker_names: List[str] = field(default_factory=list)
    tasks: List[TaskBounds] = field(default_factory=list)
    cost_table: List[List[Optional[float]]] = field(default_factory=list)

    @property
    def num_workers(self) -> int:
        return len(self.worker_names)

    @property
    def num_tasks(self) -> int:
        return len(self.task_names)

    @property
    def total_min(self) -> int:
        return sum(b.lower for b in self.tasks)

    @property
    def total_max(self) -> int:
        return sum(b.upper for b in self.tasks)

    def solve(self, **kwargs: Any) -> Result:
        """Solve this problem; keyword arguments are passed to `solve`."""
        return solve(self.tasks, self.cost_table, num_workers=self.num_workers, **kwargs)


def _field_counts(path: PathLike) -> List[int]:
    """Comma-separated field count of each non-blank line.

    pandas pads short rows, so the raw counts are needed to tell a missing
    trailing field from a blank one.
    """
    text = Path(path).read_text()
    return [line.count(",") + 1 for line in text.splitlines() if line.strip()]


def _parse_count(raw: Any, what: str) -> int:
    text = str(raw).strip()
    try:
        value = int(text)
    except ValueError:
        raise InputFormatError(f'Expected integer {what}, found "{raw}"') from None
    if value < 0:
        raise InputFormatError(f'Expected integer {what}, found "{raw}"')
    return value


def _parse_cost(raw: Any) -> Optional[float]:
    text = str(raw).strip()
    if text == "":
        return None
    try:
        value = float(text)
    except ValueError:
        raise InputFormatError(
            f'Expected numeric value for worker affinity, found "{raw}"'
        ) from None
    if math.isnan(value):
        raise InputFormatError(
            f'Expected numeric value for worker affinity, found "{raw}"'
        )
    return value


def read_csv(path: PathLike) -> Problem:
    """Read a problem from a CSV file laid out as described in the module docs.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        InputFormatError: If the contents are malformed.
    """
    counts = _field_counts(path)
    if not counts:
        raise InputFormatError("Empty input file!")
    if len(counts) < 2:
        raise InputFormatError("No minimum requirements for tasks!")
    if len(counts) < 3:
        raise InputFormatError("No maximum capacities for tasks!")
    width = counts[0]
    if not width == counts[1] == counts[2]:
        raise InputFormatError(
            "Mismatched input data for tasks: each task must have both a minimum "
            "and a maximum number of workers specified."
        )

    try:
        frame = pd.read_csv(
            path,
            header=None,
            names=list(range(max(counts))),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.ParserError as exc:
        raise InputFormatError(f"Malformed CSV input: {exc}") from None

    rows = frame.fillna("").values.tolist()
    names_row, minima_row, maxima_row = rows[0], rows[1], rows[2]

    problem = Problem()
    for col in range(1, width):
        lower = _parse_count(minima_row[col], "minimum")
        upper = _parse_count(maxima_row[col], "maximum")
        if upper < lower:
            raise InputFormatError("Maximum cannot be less than minimum!")
        problem.task_names.append(str(names_row[col]).strip())
        problem.tasks.append(TaskBounds(lower, upper))

    for row, count in zip(rows[3:], counts[3:]):
        worker = str(row[0]).strip()
        if count < width:
            raise InputFormatError(f"Too few task affinities for worker {worker}!")
        costs: List[Optional[float]] = []
        for col in range(1, width):
            costs.append(_parse_cost(row[col]))
        problem.worker_names.append(worker)
        problem.cost_table.append(costs)

    logger.debug(
        f"Read {problem.num_tasks} tasks and {problem.num_workers} workers from {path}"
    )
    return problem


def read_yaml(path: PathLike) -> Problem:
    """Read a problem from a YAML file laid out as described in the module docs.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        InputFormatError: If the contents are malformed.
    """
    data = yaml.safe_load(Path(path).read_text())
    if not data:
        raise InputFormatError("Empty input file!")
    if not isinstance(data, dict):
        raise InputFormatError("Top-level YAML must be a mapping with 'tasks' and 'workers'.")

    problem = Problem()
    for entry in data.get("tasks") or []:
        if not isinstance(entry, dict) or "name" not in entry:
            raise InputFormatError(f"Task entry must be a mapping with a name: {entry!r}")
        if "min" not in entry or "max" not in entry:
            raise InputFormatError(
                "Mismatched input data for tasks: each task must have both a minimum "
                "and a maximum number of workers specified."
            )
        lower = _parse_count(entry["min"], "minimum")
        upper = _parse_count(entry["max"], "maximum")
        if upper < lower:
            raise InputFormatError("Maximum cannot be less than minimum!")
        problem.task_names.append(str(entry["name"]))
        problem.tasks.append(TaskBounds(lower, upper))

    task_positions = {name: idx for idx, name in enumerate(problem.task_names)}
    for entry in data.get("workers") or []:
        if not isinstance(entry, dict) or "name" not in entry:
            raise InputFormatError(f"Worker entry must be a mapping with a name: {entry!r}")
        worker = str(entry["name"])
        row: List[Optional[float]] = [None] * problem.num_tasks
        for task_name, raw in (entry.get("costs") or {}).items():
            if task_name not in task_positions:
                raise InputFormatError(
                    f"Affinity provided for unknown task {task_name} (worker {worker})"
                )
            row[task_positions[task_name]] = None if raw is None else _parse_cost(raw)
        problem.worker_names.append(worker)
        problem.cost_table.append(row)

    return problem


def read_problem(path: PathLike) -> Problem:
    """Read a problem, choosing the format from the file suffix."""
    suffix = Path(path).suffix.lower()
    if suffix in (".yaml", ".yml"):
        return read_yaml(path)
    if suffix == ".csv":
        return read_csv(path)
    raise InputFormatError(f"Unsupported input format '{suffix}' (expected .csv, .yaml or .yml)")


def assignment_frame(problem: Problem, result: Assigned) -> pd.DataFrame:
    """Tabulate assignments as ``worker, task, cost`` rows in worker order.

    Workers left unassigned (only possible when full assignment is not
    required) appear with empty task and cost.
    """
    by_worker = result.as_mapping()
    costs = {a.worker: a.cost for a in result.assignments}
    records = []
    for worker, name in enumerate(problem.worker_names):
        task = by_worker.get(worker)
        records.append(
            {
                "worker": name,
                "task": problem.task_names[task] if task is not None else None,
                "cost": costs.get(worker),
            }
        )
    return pd.DataFrame.from_records(records, columns=["worker", "task", "cost"])


def write_csv(path: PathLike, problem: Problem, result: Assigned) -> None:
    """Write assignments to ``path`` as CSV."""
    frame = assignment_frame(problem, result)
    frame.to_csv(path, index=False)
    logger.debug(f"Wrote {len(frame)} assignment rows to {path}")


def assignment_to_dict(problem: Problem, result: Assigned) -> Dict[str, Any]:
    """Return a JSON-serializable summary of a solved problem."""
    return {
        "status": "ok",
        "total_cost": result.total_cost,
        "assignments": [
            {
                "worker": problem.worker_names[a.worker],
                "task": problem.task_names[a.task],
                "cost": a.cost,
            }
            for a in result.assignments
        ],
        "tasks": {
            name: {
                "min": bounds.lower,
                "max": bounds.upper,
                "assigned": result.task_load[idx],
            }
            for idx, (name, bounds) in enumerate(zip(problem.task_names, problem.tasks))
        },
        "unassigned": [problem.worker_names[w] for w in result.unassigned_workers],
    }


def write_json(path: PathLike, problem: Problem, result: Assigned) -> None:
    Path(path).write_text(json.dumps(assignment_to_dict(problem, result), indent=2))
