import json
import logging
from pathlib import Path

import pandas as pd
import pytest

from flowassign import cli

# Utilities


def extract_json_from_stdout(output: str) -> str:
    """Return the JSON payload from stdout that may include status lines.

    This helper isolates the first balanced JSON object for reliable parsing.
    """
    json_start = output.find("{")
    if json_start == -1:
        return output

    brace_count = 0
    json_end = -1
    for i in range(json_start, len(output)):
        if output[i] == "{":
            brace_count += 1
        elif output[i] == "}":
            brace_count -= 1
            if brace_count == 0:
                json_end = i + 1
                break
    return output[json_start:json_end] if json_end != -1 else output


@pytest.fixture(autouse=True)
def _reset_logging(clean_logging):
    yield


@pytest.fixture
def problem_csv(tmp_path: Path, sample_csv_text: str) -> Path:
    path = tmp_path / "problem.csv"
    path.write_text(sample_csv_text)
    return path


@pytest.fixture
def infeasible_csv(tmp_path: Path) -> Path:
    path = tmp_path / "infeasible.csv"
    path.write_text(",A,B\n,1,1\n,1,1\nW1,1,\nW2,2,\n")
    return path


# solve


def test_solve_prints_table_and_total(problem_csv: Path, capsys) -> None:
    cli.main(["--quiet", "solve", str(problem_csv)])
    out = capsys.readouterr().out
    assert "Worker" in out and "Task" in out and "Cost" in out
    assert "Total cost: 12" in out


def test_solve_writes_csv(problem_csv: Path, tmp_path: Path, capsys) -> None:
    out_path = tmp_path / "nested" / "assignments.csv"
    cli.main(["--quiet", "solve", str(problem_csv), "--output", str(out_path)])

    assert out_path.exists()
    frame = pd.read_csv(out_path)
    assert list(frame.columns) == ["worker", "task", "cost"]
    assert len(frame) == 4
    assert "Assignments written to" in capsys.readouterr().out


def test_solve_writes_json_by_suffix(problem_csv: Path, tmp_path: Path) -> None:
    out_path = tmp_path / "result.json"
    cli.main(["--quiet", "solve", str(problem_csv), "-o", str(out_path)])

    data = json.loads(out_path.read_text())
    assert data["status"] == "ok"
    assert data["total_cost"] == pytest.approx(12)


def test_solve_stdout_json(problem_csv: Path, capsys) -> None:
    cli.main(["--quiet", "solve", str(problem_csv), "--stdout"])
    payload = json.loads(extract_json_from_stdout(capsys.readouterr().out))
    assert payload["tasks"]["Task B"]["assigned"] == 2
    assert len(payload["assignments"]) == 4


def test_solve_dijkstra_method(problem_csv: Path, capsys) -> None:
    cli.main(["--quiet", "solve", str(problem_csv), "--method", "dijkstra", "--check"])
    assert "Total cost: 12" in capsys.readouterr().out


def test_solve_yaml(tmp_path: Path, sample_yaml_text: str, capsys) -> None:
    path = tmp_path / "problem.yaml"
    path.write_text(sample_yaml_text)
    cli.main(["--quiet", "solve", str(path)])
    assert "Total cost: 5" in capsys.readouterr().out


def test_solve_allow_unassigned(tmp_path: Path, capsys) -> None:
    path = tmp_path / "p.csv"
    path.write_text(",A\n,0\n,1\nW1,1\nW2,2\n")

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--quiet", "solve", str(path)])
    assert exc_info.value.code == 1
    assert "Unable to assign all workers: W2" in capsys.readouterr().out

    cli.main(["--quiet", "solve", str(path), "--allow-unassigned"])
    assert "Unassigned: W2" in capsys.readouterr().out


def test_solve_infeasible_exits_with_names(infeasible_csv: Path, capsys) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--quiet", "solve", str(infeasible_csv)])
    assert exc_info.value.code == 1
    out = capsys.readouterr().out
    assert "❌ ERROR:" in out
    assert "B needs 1 more" in out


def test_solve_missing_file(tmp_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["solve", str(tmp_path / "missing.csv")])
    assert exc_info.value.code == 1
    assert "Input file not found" in capsys.readouterr().out


def test_solve_invalid_input(tmp_path: Path, capsys) -> None:
    path = tmp_path / "bad.csv"
    path.write_text(",A\n,2\n,1\n")
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["solve", str(path)])
    assert exc_info.value.code == 1
    out = capsys.readouterr().out
    assert "Invalid input" in out
    assert "Maximum cannot be less than minimum!" in out


# inspect


def test_inspect_prints_task_table(problem_csv: Path, capsys) -> None:
    cli.main(["inspect", str(problem_csv)])
    out = capsys.readouterr().out
    assert "Workers: 4   Tasks: 3" in out
    assert "Candidates" in out
    assert "Task B" in out
    assert "Totals are consistent" in out


def test_inspect_flags_shortage(tmp_path: Path, capsys) -> None:
    path = tmp_path / "short.csv"
    path.write_text(",A,B\n,2,2\n,2,2\nW1,1,1\nW2,,\n")
    cli.main(["inspect", str(path)])
    out = capsys.readouterr().out
    assert "Not enough workers to assign! (2 < 4)" in out
    assert "Workers without any feasible task: W2" in out


def test_inspect_flags_excess(tmp_path: Path, capsys) -> None:
    path = tmp_path / "excess.csv"
    path.write_text(",A\n,0\n,1\nW1,1\nW2,1\n")
    cli.main(["inspect", str(path)])
    assert "Not enough capacity for workers! (2 > 1)" in capsys.readouterr().out


def test_inspect_missing_file(tmp_path: Path, capsys) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["inspect", str(tmp_path / "nope.yaml")])
    assert exc_info.value.code == 1
    assert "Input file not found" in capsys.readouterr().out


# arguments and logging


def test_no_arguments_prints_help(capsys) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main([])
    assert exc_info.value.code == 0
    assert "usage: flowassign" in capsys.readouterr().out


def test_unknown_method_rejected(problem_csv: Path) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["solve", str(problem_csv), "--method", "astar"])
    assert exc_info.value.code == 2


def test_verbose_sets_debug_level(problem_csv: Path) -> None:
    cli.main(["--verbose", "solve", str(problem_csv)])
    assert logging.getLogger("flowassign").level == logging.DEBUG


def test_quiet_sets_warning_level(problem_csv: Path) -> None:
    cli.main(["--quiet", "solve", str(problem_csv)])
    assert logging.getLogger("flowassign").level == logging.WARNING


def test_default_level_logs_progress(problem_csv: Path, caplog) -> None:
    with caplog.at_level(logging.INFO, logger="flowassign"):
        cli.main(["solve", str(problem_csv)])
    messages = [r.getMessage() for r in caplog.records]
    assert any("Loading problem from" in m for m in messages)
    assert any("Solve completed successfully" in m for m in messages)


def test_helpers() -> None:
    assert cli._format_cost(12.0) == "12"
    assert cli._format_cost(1234.5678) == "1,234.568"
    assert cli._format_duration(0.5) == "500.0 ms"
    assert cli._format_duration(75.2) == "1m 15.2s"
    assert cli._format_table(["A"], []) == ""
    table = cli._format_table(["A", "B"], [["x", "y"]], min_width=3)
    assert table.splitlines()[1] == "   ----+----"
