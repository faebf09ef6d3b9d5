"""CLI entrypoint for the workflow runner.

Workflows are read from JSON files shaped like ``Workflow``. The capability
behind every agent is the LLM provider selected in configuration.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from agent_workflow_runner import __version__
from agent_workflow_runner.core.config import RunnerConfig
from agent_workflow_runner.llm.factory import LLMFactory
from agent_workflow_runner.workflow.errors import (
    BlockedDependencyError,
    DeadlockError,
    WorkflowValidationError,
)
from agent_workflow_runner.workflow.graph import validate_workflow
from agent_workflow_runner.workflow.invoker import Capability
from agent_workflow_runner.workflow.models import Workflow, WorkflowExecution
from agent_workflow_runner.workflow.scheduler import Scheduler, get_execution_summary
from agent_workflow_runner.workflow.state_machine import ExecutionStatus

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID = 2
EXIT_DEADLOCK = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow-runner",
        description="Run multi-agent task workflows with dependency-ordered waves",
    )
    parser.add_argument(
        "--version", action="version", version=f"agent-workflow-runner {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Validate a workflow file")
    validate.add_argument("workflow", type=Path, help="Path to a workflow JSON file")

    run = subparsers.add_parser("run", help="Run a workflow to completion")
    run.add_argument("workflow", type=Path, help="Path to a workflow JSON file")
    run.add_argument(
        "--input",
        dest="workflow_input",
        default=None,
        help="Workflow-level input as a JSON object, e.g. '{\"topic\": \"x\"}'",
    )
    run.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the final execution as JSON to this path instead of stdout",
    )

    return parser


def _load_workflow(path: Path) -> Workflow:
    return Workflow.model_validate_json(path.read_text(encoding="utf-8"))


def _parse_input(value: str | None) -> dict[str, Any]:
    if value is None:
        return {}
    parsed = json.loads(value)
    if not isinstance(parsed, dict):
        raise ValueError("--input must be a JSON object")
    return parsed


def _report(execution: WorkflowExecution, output: Path | None) -> None:
    payload = {
        "execution": execution.snapshot(),
        "summary": get_execution_summary(execution).to_json(),
    }
    text = json.dumps(payload, indent=2, ensure_ascii=False) + "\n"
    if output is None:
        sys.stdout.write(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")


def _log_progress(execution: WorkflowExecution) -> None:
    logger.info(
        "Progress",
        extra={
            "workflow_id": execution.workflow_id,
            "status": execution.status.value,
            "progress": execution.progress,
        },
    )


def main(argv: list[str] | None = None, *, capability: Capability | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = RunnerConfig()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return EXIT_INVALID

    config.setup_logging()

    try:
        workflow = _load_workflow(args.workflow)
    except (OSError, ValidationError) as e:
        print(f"Could not load workflow {args.workflow}: {e}", file=sys.stderr)
        return EXIT_INVALID

    try:
        if args.command == "validate":
            validate_workflow(workflow)
            print(f"Workflow {workflow.id} is valid ({len(workflow.tasks)} tasks)")
            return EXIT_OK

        if args.command == "run":
            workflow_input = _parse_input(args.workflow_input)
            if capability is None:
                capability = LLMFactory.create_capability(config.llm)

            scheduler_config = config.scheduler
            if scheduler_config.default_model is None:
                scheduler_config = scheduler_config.model_copy(
                    update={"default_model": LLMFactory.default_model(config.llm)}
                )
            scheduler = Scheduler.from_config(capability, scheduler_config)

            try:
                execution = scheduler.run(workflow, None, workflow_input, _log_progress)
            except BlockedDependencyError as e:
                print(str(e), file=sys.stderr)
                _report(e.execution, args.output)
                return EXIT_FAILED
            except DeadlockError as e:
                print(str(e), file=sys.stderr)
                _report(e.execution, args.output)
                return EXIT_DEADLOCK

            _report(execution, args.output)
            return EXIT_OK if execution.status == ExecutionStatus.COMPLETED else EXIT_FAILED

        logger.error("Unknown command", extra={"command": args.command})
        return EXIT_INVALID

    except WorkflowValidationError as e:
        for problem in e.problems:
            print(problem, file=sys.stderr)
        return EXIT_INVALID

    except ValueError as e:
        # Bad --input JSON or provider configuration.
        print(str(e), file=sys.stderr)
        return EXIT_INVALID

    except Exception:
        logger.exception("Command failed")
        return EXIT_FAILED


if __name__ == "__main__":
    raise SystemExit(main())
