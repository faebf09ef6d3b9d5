"""Unit tests for structured logging."""

from __future__ import annotations

import json
import logging

from agent_workflow_runner.core.logging import JsonFormatter, TextFormatter, configure_logging


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="agent_workflow_runner.workflow.scheduler",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Dispatching %s",
        args=("wave",),
        exc_info=None,
    )
    record.__dict__.update(extra)
    return record


def test_json_formatter_lifts_run_context() -> None:
    line = JsonFormatter().format(
        _record(workflow_id="wf-1", wave=2, tasks=["B", "C"], task_id="B")
    )

    payload = json.loads(line)
    assert payload["message"] == "Dispatching wave"
    assert payload["level"] == "INFO"
    assert payload["workflow_id"] == "wf-1"
    assert payload["task_id"] == "B"
    assert payload["wave"] == 2
    assert payload["extra"] == {"tasks": ["B", "C"]}


def test_json_formatter_omits_empty_extra() -> None:
    payload = json.loads(JsonFormatter().format(_record()))

    assert "extra" not in payload
    assert "workflow_id" not in payload


def test_json_formatter_serializes_unknown_types() -> None:
    payload = json.loads(JsonFormatter().format(_record(path=object())))

    assert payload["extra"]["path"].startswith("<object object")


def test_text_formatter_appends_context() -> None:
    line = TextFormatter().format(_record(workflow_id="wf-1", wave=1))

    assert "Dispatching wave" in line
    assert line.endswith("workflow_id=wf-1 wave=1")


def test_configure_logging_replaces_handlers() -> None:
    configure_logging("warning", "text")
    configure_logging("debug")

    root = logging.getLogger()
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, JsonFormatter)
    assert root.level == logging.DEBUG
    assert logging.getLogger("openai").level == logging.WARNING
