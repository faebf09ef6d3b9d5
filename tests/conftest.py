"""Test configuration and fixtures."""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from agent_workflow_runner.core.config import LLMConfig, RunnerConfig, SchedulerConfig
from agent_workflow_runner.workflow.models import Agent, AgentRole, Task, Workflow


class FakeCapability:
    """Thread-safe capability double that records every call.

    ``responses`` maps a task name to either a string or a callable taking the
    call's context. A callable may raise to simulate a capability failure.
    Unknown tasks answer with a JSON object naming the task.
    """

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def __call__(self, model: str, prompt: str, context: dict[str, Any], **kwargs: Any) -> str:
        task_name = _task_name(prompt)
        with self._lock:
            self.calls.append(
                {"task": task_name, "model": model, "prompt": prompt, "context": context, **kwargs}
            )
        response = self.responses.get(task_name)
        if callable(response):
            return response(context)
        if response is not None:
            return response
        return f'{{"done": "{task_name}"}}'

    def called_tasks(self) -> list[str]:
        with self._lock:
            return [call["task"] for call in self.calls]


def _task_name(prompt: str) -> str:
    for line in prompt.splitlines():
        if line.startswith("Task: "):
            return line[len("Task: ") :]
    return ""


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep settings from picking up a developer's .env or WORKFLOW_ variables.

    Root logging is restored afterwards since the CLI reconfigures it.
    """
    for name in list(os.environ):
        if name.startswith("WORKFLOW_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def llm_config() -> LLMConfig:
    """Provide a test LLM configuration."""
    return LLMConfig(
        provider="openai",
        openai_api_key="test-key",
        openai_model="gpt-4",
    )


@pytest.fixture
def scheduler_config() -> SchedulerConfig:
    """Provide a scheduler configuration with a short timeout and no backoff."""
    return SchedulerConfig(invocation_timeout_seconds=5.0, default_model="test-model")


@pytest.fixture
def runner_config(llm_config: LLMConfig, scheduler_config: SchedulerConfig) -> RunnerConfig:
    """Provide a test runner configuration."""
    return RunnerConfig(
        log_level="DEBUG",
        debug=True,
        llm=llm_config,
        scheduler=scheduler_config,
    )


@pytest.fixture
def agents() -> list[Agent]:
    return [
        Agent(id="researcher", name="Researcher", role=AgentRole.RESEARCHER, model="test-model"),
        Agent(id="analyst", name="Analyst", role=AgentRole.ANALYST, model="test-model"),
    ]


@pytest.fixture
def make_workflow(agents: list[Agent]) -> Callable[..., Workflow]:
    """Build a workflow from ``{task_id: [dependency, ...]}``.

    Task names equal their ids so the fake capability can tell them apart.
    """

    def _make(graph: dict[str, list[str]], *, max_retries: int = 0) -> Workflow:
        tasks = [
            Task(
                id=task_id,
                name=task_id,
                description=f"Work on {task_id}",
                agent_id="researcher" if i % 2 == 0 else "analyst",
                dependencies=deps,
                max_retries=max_retries,
            )
            for i, (task_id, deps) in enumerate(graph.items())
        ]
        return Workflow(id="wf-1", name="Test workflow", tasks=tasks, agents=agents)

    return _make


@pytest.fixture
def diamond(make_workflow: Callable[..., Workflow]) -> Workflow:
    """A -> {B, C} -> D."""
    return make_workflow({"A": [], "B": ["A"], "C": ["A"], "D": ["B", "C"]})


@pytest.fixture
def capability() -> FakeCapability:
    return FakeCapability()
