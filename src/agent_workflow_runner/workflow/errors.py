"""Run-level errors raised by the workflow core.

Per-task failures never surface here: they are recorded as failed
``TaskResult`` entries. Only run-level impossibility is raised: a graph
that can never make progress, or remaining tasks that are all blocked
behind a failed dependency.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agent_workflow_runner.workflow.models import WorkflowExecution


class WorkflowError(Exception):
    """Base class for workflow core errors."""


class WorkflowValidationError(WorkflowError):
    """A workflow failed pre-run validation.

    Raised before a run starts; no execution is created.
    """

    def __init__(self, problems: list[str]) -> None:
        self.problems = list(problems)
        super().__init__("Workflow validation failed: " + "; ".join(self.problems))


class DeadlockError(WorkflowError):
    """No task is ready but unresolved tasks remain.

    The execution has already been moved to ``failed`` with ``completed_at``
    stamped when this is raised.
    """

    def __init__(
        self,
        execution: WorkflowExecution,
        unresolved: list[str],
        message: str | None = None,
    ) -> None:
        self.execution = execution
        self.unresolved = list(unresolved)
        super().__init__(
            message
            or "Deadlock: no task is ready but unresolved tasks remain "
            f"({', '.join(sorted(self.unresolved))}); "
            "the dependency graph contains a cycle or an unsatisfiable dependency"
        )


class BlockedDependencyError(DeadlockError):
    """Every unresolved task depends, directly or transitively, on a failed task.

    The graph itself is sound; the run cannot make progress because of task
    failures. Blocked tasks have no result. The execution is ``failed`` with
    ``completed_at`` stamped.
    """

    def __init__(
        self, execution: WorkflowExecution, blocked: list[str], failed: list[str]
    ) -> None:
        self.failed = sorted(failed)
        super().__init__(
            execution,
            blocked,
            f"Blocked: tasks ({', '.join(sorted(blocked))}) depend on failed tasks "
            f"({', '.join(self.failed)}) and can never run",
        )
