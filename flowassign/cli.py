"""Command-line interface for flowassign."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from time import perf_counter
from typing import Any, List, Optional

from flowassign.algorithms.base import SpfMethod
from flowassign.config import SolverConfig
from flowassign.io import (
    InputFormatError,
    Problem,
    assignment_to_dict,
    read_problem,
    write_csv,
    write_json,
)
from flowassign.logging import get_logger, set_global_log_level
from flowassign.solver import Failure

logger = get_logger(__name__)

_METHODS = {
    "label-correcting": SpfMethod.LABEL_CORRECTING,
    "dijkstra": SpfMethod.DIJKSTRA_POTENTIALS,
}


def _format_table(
    headers: List[str],
    rows: List[List[str]],
    min_width: int = 8,
) -> str:
    """Format data as a simple ASCII table.

    Args:
        headers: Column headers
        rows: Data rows
        min_width: Minimum column width

    Returns:
        Formatted table string
    """
    if not rows:
        return ""

    all_data = [headers] + rows
    col_widths = []
    for col_idx in range(len(headers)):
        max_width = max(len(str(row[col_idx])) for row in all_data)
        col_widths.append(max(max_width, min_width))

    def format_row(row_data: List[str]) -> str:
        return "   " + " | ".join(
            f"{str(item):<{col_widths[i]}}" for i, item in enumerate(row_data)
        )

    lines = [format_row(headers)]
    lines.append("   " + "-+-".join("-" * width for width in col_widths))
    for row in rows:
        lines.append(format_row(row))
    return "\n".join(lines)


def _format_cost(value: Any) -> str:
    """Return cost formatted with up to three decimals.

    Examples:
        0.1 -> "0.1"; 10.0 -> "10"; 1234.567 -> "1,234.567".
    """
    s = f"{float(value):,.3f}"
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    return s


def _format_duration(seconds: float) -> str:
    """Return a concise human-readable duration string.

    Examples:
        0.123 -> "123.0 ms"; 1.234 -> "1.23 s"; 75.2 -> "1m 15.2s".
    """
    if seconds < 1.0:
        return f"{seconds * 1000.0:.1f} ms"
    if seconds < 60.0:
        return f"{seconds:.2f} s"
    minutes = int(seconds // 60)
    rem = seconds - minutes * 60
    return f"{minutes}m {rem:.1f}s"


def _describe_failure(problem: Problem, failure: Failure) -> str:
    """Render a failure with task and worker names instead of indices."""
    error = failure.error
    shortfalls = getattr(error, "shortfalls", None)
    if shortfalls:
        parts = [
            f"{problem.task_names[task]} needs {missing} more"
            for task, missing in shortfalls.items()
        ]
        return f"Task minimums cannot be met: {', '.join(parts)}"
    workers = getattr(error, "workers", None)
    if workers:
        names = ", ".join(problem.worker_names[w] for w in workers)
        return f"Unable to assign all workers: {names}"
    return failure.message


def _solve(
    path: Path,
    output: Optional[Path],
    stdout: bool,
    allow_unassigned: bool,
    method: str,
    check: bool,
) -> None:
    """Solve a problem file and write assignments.

    Args:
        path: Input CSV or YAML file.
        output: Optional output file; ``.json`` writes JSON, anything else CSV.
        stdout: Whether to print the JSON summary to stdout.
        allow_unassigned: Report unassigned workers instead of failing.
        method: Shortest-path method name.
        check: Verify flow invariants after every augmentation.
    """
    logger.info(f"Loading problem from: {path}")
    start = perf_counter()

    try:
        problem = read_problem(path)
    except FileNotFoundError:
        logger.error(f"Input file not found: {path}")
        print(f"❌ ERROR: Input file not found: {path}")
        sys.exit(1)
    except InputFormatError as e:
        logger.error(f"Invalid input: {e}")
        print(f"❌ ERROR: Invalid input: {e}")
        sys.exit(1)

    config = SolverConfig(
        spf_method=_METHODS[method],
        require_full_assignment=not allow_unassigned,
        check_invariants=check,
    )
    result = problem.solve(config=config)
    if isinstance(result, Failure):
        message = _describe_failure(problem, result)
        logger.error(f"Solve failed ({result.kind.value}): {message}")
        print(f"❌ ERROR: {message}")
        sys.exit(1)

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        if output.suffix.lower() == ".json":
            write_json(output, problem, result)
        else:
            write_csv(output, problem, result)
        logger.info(f"Assignments written to: {output}")
        print(f"✅ Assignments written to: {output}")

    if stdout:
        print(json.dumps(assignment_to_dict(problem, result), indent=2))
    else:
        rows = [
            [problem.worker_names[a.worker], problem.task_names[a.task], _format_cost(a.cost)]
            for a in result.assignments
        ]
        print(_format_table(["Worker", "Task", "Cost"], rows))
        print(f"Total cost: {_format_cost(result.total_cost)}")
        if result.unassigned_workers:
            names = ", ".join(problem.worker_names[w] for w in result.unassigned_workers)
            print(f"Unassigned: {names}")

    logger.info(f"Solve completed successfully in {_format_duration(perf_counter() - start)}")


def _inspect(path: Path) -> None:
    """Print task bounds and quick feasibility checks for a problem file."""
    try:
        problem = read_problem(path)
    except FileNotFoundError:
        print(f"❌ ERROR: Input file not found: {path}")
        sys.exit(1)
    except InputFormatError as e:
        print(f"❌ ERROR: Invalid input: {e}")
        sys.exit(1)

    rows = []
    for idx, (name, bounds) in enumerate(zip(problem.task_names, problem.tasks)):
        candidates = sum(1 for row in problem.cost_table if row[idx] is not None)
        rows.append([name, str(bounds.lower), str(bounds.upper), str(candidates)])
    print(f"Workers: {problem.num_workers}   Tasks: {problem.num_tasks}")
    print(_format_table(["Task", "Min", "Max", "Candidates"], rows))

    ok = True
    if problem.num_workers < problem.total_min:
        print(f"⚠️  Not enough workers to assign! ({problem.num_workers} < {problem.total_min})")
        ok = False
    if problem.num_workers > problem.total_max:
        print(f"⚠️  Not enough capacity for workers! ({problem.num_workers} > {problem.total_max})")
        ok = False
    idle = [w for w, row in zip(problem.worker_names, problem.cost_table) if all(c is None for c in row)]
    if idle:
        print(f"⚠️  Workers without any feasible task: {', '.join(idle)}")
        ok = False
    if ok:
        print("✅ Totals are consistent; run 'solve' for a definitive answer")


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the ``flowassign`` command.

    Args:
        argv: Optional list of command-line arguments. If ``None``, ``sys.argv``
            is used.
    """
    parser = argparse.ArgumentParser(
        prog="flowassign",
        description="Assign workers to tasks within task bounds at minimum cost.",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--quiet", action="store_true", help="Suppress informational logs"
    )

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
        title="Available commands",
        metavar="{solve,inspect}",
        help="Available commands",
    )

    solve_parser = subparsers.add_parser("solve", help="Solve an assignment problem")
    solve_parser.add_argument("input", type=Path, help="Path to problem CSV or YAML")
    solve_parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Write assignments to this file (.json for JSON, otherwise CSV)",
    )
    solve_parser.add_argument(
        "--stdout", action="store_true", help="Print a JSON summary to stdout"
    )
    solve_parser.add_argument(
        "--allow-unassigned",
        action="store_true",
        help="Report workers that cannot be assigned instead of failing",
    )
    solve_parser.add_argument(
        "--method",
        choices=sorted(_METHODS),
        default="label-correcting",
        help="Shortest-path method used during augmentation",
    )
    solve_parser.add_argument(
        "--check",
        action="store_true",
        help="Verify flow conservation and bounds after every augmentation",
    )

    inspect_parser = subparsers.add_parser(
        "inspect", help="Show task bounds and quick feasibility checks"
    )
    inspect_parser.add_argument("input", type=Path, help="Path to problem CSV or YAML")

    effective_args = sys.argv[1:] if argv is None else argv
    if not effective_args:
        parser.print_help()
        raise SystemExit(0)

    args = parser.parse_args(effective_args)

    if args.verbose:
        set_global_log_level(logging.DEBUG)
        logger.debug("Debug logging enabled")
    elif args.quiet:
        set_global_log_level(logging.WARNING)
    else:
        set_global_log_level(logging.INFO)

    if args.command == "solve":
        _solve(
            path=args.input,
            output=args.output,
            stdout=args.stdout,
            allow_unassigned=args.allow_unassigned,
            method=args.method,
            check=args.check,
        )
    elif args.command == "inspect":
        _inspect(args.input)


if __name__ == "__main__":
    main()
