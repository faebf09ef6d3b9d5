"""Workflow data model.

Agents and workflows are inputs owned by the (external) management layer.
``TaskResult`` and ``WorkflowExecution`` are produced by the scheduler for
a single run.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from agent_workflow_runner.workflow.state_machine import TERMINAL_STATUSES, ExecutionStatus


def utc_now() -> datetime:
    return datetime.now(UTC)


class AgentRole(str, Enum):
    RESEARCHER = "researcher"
    ANALYST = "analyst"
    EXECUTOR = "executor"
    REVIEWER = "reviewer"
    CUSTOM = "custom"


class TaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class WorkflowStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"


class Agent(BaseModel):
    """An execution capability descriptor.

    ``model``, ``temperature`` and ``max_tokens`` only matter to the capability
    being invoked; the scheduler never looks at them.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    role: AgentRole = AgentRole.CUSTOM
    description: str = ""
    capabilities: list[str] = Field(default_factory=list)
    model: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, gt=0)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Task(BaseModel):
    """A unit of work executed by exactly one agent."""

    id: str
    name: str = ""
    description: str = ""
    agent_id: str
    status: TaskStatus = TaskStatus.PENDING
    dependencies: list[str] = Field(default_factory=list)
    input: dict[str, Any] | None = None
    output: dict[str, Any] | None = None
    error: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    retry_count: int = Field(default=0, ge=0)
    max_retries: int = Field(default=3, ge=0)

    @model_validator(mode="after")
    def _check_dependencies(self) -> Task:
        if self.id in self.dependencies:
            raise ValueError(f"Task {self.id} cannot depend on itself")
        if len(set(self.dependencies)) != len(self.dependencies):
            raise ValueError(f"Task {self.id} lists a dependency more than once")
        return self


class Workflow(BaseModel):
    id: str
    name: str = ""
    description: str = ""
    status: WorkflowStatus = WorkflowStatus.DRAFT
    tasks: list[Task] = Field(default_factory=list)
    agents: list[Agent] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    def get_task(self, task_id: str) -> Task | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def get_agent(self, agent_id: str) -> Agent | None:
        for agent in self.agents:
            if agent.id == agent_id:
                return agent
        return None


class TaskResult(BaseModel):
    """Outcome of one task in one run attempt.

    A retry produces a new result that replaces the previous one in the
    execution's result map; results are never mutated in place.
    """

    task_id: str
    status: TaskStatus
    output: dict[str, Any] | None = None
    error: str | None = None
    retry_count: int = 0
    retries_exhausted: bool = False
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @model_validator(mode="after")
    def _output_or_error(self) -> TaskResult:
        if self.output is not None and self.error is not None:
            raise ValueError("A task result carries either an output or an error, not both")
        return self

    @property
    def succeeded(self) -> bool:
        return self.status == TaskStatus.COMPLETED


class WorkflowExecution(BaseModel):
    """Mutable run-scoped record owned by the scheduler.

    A paused execution is a live object: keep it to resume the run.
    All reads and writes that span more than one field go through ``lock``.
    """

    workflow_id: str
    status: ExecutionStatus = ExecutionStatus.PENDING
    results: dict[str, TaskResult] = Field(default_factory=dict)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    progress: float = 0.0
    total_tasks: int = 0
    workflow_input: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None

    _lock: Any = PrivateAttr(default_factory=threading.RLock)
    _driving: bool = PrivateAttr(default=False)

    @property
    def lock(self) -> Any:
        return self._lock

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def record(self, result: TaskResult) -> None:
        """Store ``result`` as the latest outcome of its task and refresh progress."""

        with self._lock:
            self.results[result.task_id] = result
            if self.total_tasks:
                self.progress = round(len(self.results) / self.total_tasks * 100, 2)

    def completed_ids(self) -> set[str]:
        with self._lock:
            return {task_id for task_id, r in self.results.items() if r.succeeded}

    def failed_ids(self) -> set[str]:
        with self._lock:
            return {
                task_id for task_id, r in self.results.items() if r.status == TaskStatus.FAILED
            }

    def snapshot(self) -> dict[str, Any]:
        """JSON-ready copy of the execution, consistent across fields."""

        with self._lock:
            return self.model_dump(mode="json")

    def task_status(self, task_id: str) -> TaskStatus:
        """Status of a task as seen by this execution.

        A task without a result is ``pending`` while the run is live and
        ``skipped`` once it has terminated (its dependencies never completed).
        """

        with self._lock:
            result = self.results.get(task_id)
            if result is not None:
                return result.status
            return TaskStatus.SKIPPED if self.is_terminal else TaskStatus.PENDING

    def claim_driver(self) -> bool:
        """Mark a scheduling loop as attached; False if one already is."""

        with self._lock:
            if self._driving:
                return False
            self._driving = True
            return True

    def release_driver(self) -> None:
        with self._lock:
            self._driving = False
