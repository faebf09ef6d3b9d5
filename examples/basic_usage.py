#!/usr/bin/env python3
"""Programmatic workflow run example.

This demonstrates using the runner components directly:

* load settings from `.env`
* build the LLM-backed capability
* run a workflow file, printing progress after every wave
* pause the run after the first wave, then resume it
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from agent_workflow_runner.core.config import RunnerConfig
from agent_workflow_runner.llm import LLMFactory
from agent_workflow_runner.workflow import (
    ExecutionStatus,
    Scheduler,
    Workflow,
    WorkflowExecution,
    get_execution_summary,
    pause_workflow,
)


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a workflow (programmatic example).")
    parser.add_argument(
        "--workflow",
        type=Path,
        default=Path(__file__).with_name("research_workflow.json"),
        help="Workflow JSON file",
    )
    parser.add_argument("--topic", default="solid-state batteries", help="Workflow input topic")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    config = RunnerConfig()
    config.setup_logging()

    workflow = Workflow.model_validate_json(args.workflow.read_text(encoding="utf-8"))
    capability = LLMFactory.create_capability(config.llm)
    scheduler = Scheduler.from_config(capability, config.scheduler)

    def on_progress(execution: WorkflowExecution) -> None:
        print(f"[{execution.status.value}] {execution.progress:.0f}%")
        if execution.status == ExecutionStatus.RUNNING and execution.results:
            pause_workflow(execution)

    execution = scheduler.run(workflow, None, {"topic": args.topic}, on_progress)
    if execution.status == ExecutionStatus.PAUSED:
        print("Paused after the first wave; resuming")
        execution = scheduler.resume(
            execution, workflow, None, lambda e: print(f"{e.progress:.0f}%")
        )

    summary = get_execution_summary(execution)
    print(f"Finished with status {execution.status.value}: {summary.to_json()}")
    return 0 if execution.status == ExecutionStatus.COMPLETED else 1


if __name__ == "__main__":
    raise SystemExit(main())
