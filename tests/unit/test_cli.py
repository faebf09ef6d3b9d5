"""Unit tests for the workflow-runner CLI."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from agent_workflow_runner.main import EXIT_DEADLOCK, EXIT_FAILED, EXIT_INVALID, EXIT_OK, main


def _write_workflow(path: Path, tasks: list[dict[str, Any]]) -> Path:
    path.write_text(
        json.dumps(
            {
                "id": "cli-wf",
                "agents": [{"id": "writer", "model": "test-model"}],
                "tasks": [{"agent_id": "writer", **task} for task in tasks],
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def chain_file(tmp_path: Path) -> Path:
    return _write_workflow(
        tmp_path / "chain.json",
        [
            {"id": "A", "name": "A"},
            {"id": "B", "name": "B", "dependencies": ["A"]},
        ],
    )


def test_validate_accepts_good_workflow(
    chain_file: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main(["validate", str(chain_file)]) == EXIT_OK
    assert "Workflow cli-wf is valid (2 tasks)" in capsys.readouterr().out


def test_validate_lists_problems(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = _write_workflow(
        tmp_path / "cycle.json",
        [
            {"id": "A", "dependencies": ["B"]},
            {"id": "B", "dependencies": ["A"]},
        ],
    )

    assert main(["validate", str(path)]) == EXIT_INVALID
    assert "Dependency cycle" in capsys.readouterr().err


def test_unreadable_workflow_is_invalid(tmp_path: Path) -> None:
    assert main(["validate", str(tmp_path / "missing.json")]) == EXIT_INVALID

    broken = tmp_path / "broken.json"
    broken.write_text('{"id": "x", "tasks": [{"id": "A"}]}', encoding="utf-8")
    assert main(["validate", str(broken)]) == EXIT_INVALID


def test_run_writes_execution_report(chain_file: Path, tmp_path: Path, capability: Any) -> None:
    output = tmp_path / "out" / "report.json"

    code = main(
        ["run", str(chain_file), "--input", '{"topic": "x"}', "--output", str(output)],
        capability=capability,
    )

    assert code == EXIT_OK
    report = json.loads(output.read_text(encoding="utf-8"))
    assert report["execution"]["status"] == "completed"
    assert report["execution"]["workflow_input"] == {"topic": "x"}
    assert report["execution"]["results"]["B"]["output"] == {"done": "B"}
    assert report["summary"]["completed"] == 2
    assert capability.called_tasks() == ["A", "B"]


def test_run_with_failed_task_exits_failed(
    chain_file: Path, tmp_path: Path, capability: Any, capsys: pytest.CaptureFixture[str]
) -> None:
    def _fail(_context: dict[str, Any]) -> str:
        raise RuntimeError("no capacity")

    capability.responses["A"] = _fail
    output = tmp_path / "report.json"

    assert main(["run", str(chain_file), "--output", str(output)], capability=capability) == (
        EXIT_FAILED
    )
    report = json.loads(output.read_text(encoding="utf-8"))
    assert report["summary"]["failed"] == 1
    assert report["summary"]["skipped"] == 1
    assert report["execution"]["status"] == "failed"
    assert report["execution"]["error"].startswith("Blocked:")
    assert "Blocked:" in capsys.readouterr().err


def test_run_rejects_non_object_input(chain_file: Path, capability: Any) -> None:
    assert main(["run", str(chain_file), "--input", "[1, 2]"], capability=capability) == (
        EXIT_INVALID
    )
    assert capability.calls == []


def test_run_rejects_invalid_workflow(tmp_path: Path, capability: Any) -> None:
    path = _write_workflow(tmp_path / "dangling.json", [{"id": "A", "dependencies": ["ghost"]}])

    assert main(["run", str(path)], capability=capability) == EXIT_INVALID
    assert capability.calls == []


def test_run_reports_deadlock(
    tmp_path: Path, capability: Any, monkeypatch: pytest.MonkeyPatch
) -> None:
    # Skip pre-run validation so the scheduler meets the cycle itself.
    monkeypatch.setattr(
        "agent_workflow_runner.workflow.scheduler.validate_workflow", lambda _workflow: None
    )
    path = _write_workflow(
        tmp_path / "cycle.json",
        [
            {"id": "A", "dependencies": ["B"]},
            {"id": "B", "dependencies": ["A"]},
        ],
    )
    output = tmp_path / "report.json"

    assert main(["run", str(path), "--output", str(output)], capability=capability) == (
        EXIT_DEADLOCK
    )
    report = json.loads(output.read_text(encoding="utf-8"))
    assert report["execution"]["status"] == "failed"
    assert "Deadlock" in report["execution"]["error"]
