"""Wave scheduler: drives a workflow's task graph to completion.

One controller loop per run. Each iteration computes the ready set (unresolved
tasks whose dependencies all have a completed result), dispatches it as a wave
on a thread pool and waits for the whole wave before looking again. A task in
wave N+1 therefore never starts before every task of wave N has a result, and
the outputs it depends on are always in the result map when it starts.

Pause is cooperative: the wave in flight finishes and is recorded, and no new
wave starts. Resume continues on the same execution object, so outputs of
tasks completed before the pause stay visible to their dependents.

A run whose remaining tasks all wait on a failed task ends ``failed`` and
raises ``BlockedDependencyError``; a graph that cannot progress at all raises
its parent, ``DeadlockError``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any

from agent_workflow_runner.core.config import SchedulerConfig
from agent_workflow_runner.workflow.errors import (
    BlockedDependencyError,
    DeadlockError,
    WorkflowError,
)
from agent_workflow_runner.workflow.graph import validate_workflow
from agent_workflow_runner.workflow.invoker import Capability, TaskInvoker
from agent_workflow_runner.workflow.models import (
    Agent,
    Task,
    TaskResult,
    TaskStatus,
    Workflow,
    WorkflowExecution,
    utc_now,
)
from agent_workflow_runner.workflow.retry import RetryPolicy
from agent_workflow_runner.workflow.state_machine import (
    ExecutionStatus,
    IllegalTransitionError,
    transition,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[WorkflowExecution], None]


class Scheduler:
    """Run, pause, resume and stop workflow executions.

    Args:
        invoker: Executes a single task against its agent.
        retry_policy: Decides on re-invocation of failed tasks. Defaults to a
            policy without backoff over ``invoker``.
        max_parallel: Cap on concurrently running tasks within a wave. None
            lets a wave run as wide as its ready set.
    """

    def __init__(
        self,
        invoker: TaskInvoker,
        retry_policy: RetryPolicy | None = None,
        *,
        max_parallel: int | None = None,
    ) -> None:
        self.invoker = invoker
        self.retry_policy = retry_policy or RetryPolicy(invoker)
        self.max_parallel = max_parallel

    @classmethod
    def from_config(cls, capability: Capability, config: SchedulerConfig) -> Scheduler:
        invoker = TaskInvoker(
            capability,
            timeout_seconds=config.invocation_timeout_seconds,
            default_model=config.default_model,
        )
        retry_policy = RetryPolicy(invoker, backoff_seconds=config.retry_backoff_seconds)
        return cls(invoker, retry_policy, max_parallel=config.max_parallel)

    def run(
        self,
        workflow: Workflow,
        agents: Iterable[Agent] | None = None,
        workflow_input: Mapping[str, Any] | None = None,
        on_progress: ProgressCallback | None = None,
        *,
        validate: bool = True,
    ) -> WorkflowExecution:
        """Run ``workflow`` until it terminates or is paused.

        ``agents`` defaults to the workflow's own agent list. Task definitions
        are copied per run; the caller's workflow is never mutated.

        Raises:
            WorkflowValidationError: before the run starts, if ``validate`` is set
                and the workflow is invalid.
            DeadlockError: if no task can ever become ready. The execution it
                carries is terminal (``failed``).
            BlockedDependencyError: if the run ends with tasks that can never
                run because a dependency failed. Also terminal (``failed``).
        """

        if validate:
            validate_workflow(workflow)

        execution = WorkflowExecution(
            workflow_id=workflow.id,
            total_tasks=len(workflow.tasks),
            workflow_input=dict(workflow_input or {}),
        )
        with execution.lock:
            execution.status = transition(current=execution.status, to=ExecutionStatus.RUNNING)
            execution.started_at = utc_now()
        execution.claim_driver()

        logger.info(
            "Workflow run started",
            extra={"workflow_id": workflow.id, "total_tasks": execution.total_tasks},
        )
        _emit(execution, on_progress)

        tasks = [task.model_copy(deep=True) for task in workflow.tasks]
        try:
            return self._drive(execution, tasks, _agent_index(workflow, agents), on_progress)
        finally:
            execution.release_driver()

    def resume(
        self,
        execution: WorkflowExecution,
        workflow: Workflow,
        agents: Iterable[Agent] | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> WorkflowExecution:
        """Continue a paused execution with the tasks that have no result yet.

        Raises:
            IllegalTransitionError: if the execution is not paused.
            WorkflowError: if the loop that was paused is still finishing its wave.
            DeadlockError: as for ``run``.
        """

        with execution.lock:
            if execution.status != ExecutionStatus.PAUSED:
                raise IllegalTransitionError(
                    f"Can only resume paused executions (status: {execution.status.value})"
                )
            if not execution.claim_driver():
                raise WorkflowError(
                    f"Execution of workflow {execution.workflow_id} is still finishing its "
                    "current wave"
                )
            execution.status = transition(current=execution.status, to=ExecutionStatus.RUNNING)
            remaining = [
                task.model_copy(deep=True)
                for task in workflow.tasks
                if task.id not in execution.results
            ]

        logger.info(
            "Workflow run resumed",
            extra={"workflow_id": execution.workflow_id, "remaining_tasks": len(remaining)},
        )
        _emit(execution, on_progress)

        try:
            return self._drive(execution, remaining, _agent_index(workflow, agents), on_progress)
        finally:
            execution.release_driver()

    def pause(self, execution: WorkflowExecution) -> WorkflowExecution:
        return pause_workflow(execution)

    def stop(self, execution: WorkflowExecution) -> WorkflowExecution:
        return stop_workflow(execution)

    def _drive(
        self,
        execution: WorkflowExecution,
        tasks: list[Task],
        agents: dict[str, Agent],
        on_progress: ProgressCallback | None,
    ) -> WorkflowExecution:
        wave = 0
        while True:
            with execution.lock:
                if execution.status != ExecutionStatus.RUNNING:
                    logger.info(
                        "Workflow run halted",
                        extra={
                            "workflow_id": execution.workflow_id,
                            "status": execution.status.value,
                            "waves": wave,
                        },
                    )
                    break

                unresolved = [t for t in tasks if t.id not in execution.results]
                if not unresolved:
                    self._finish(execution)
                    break

                completed = execution.completed_ids()
                ready = [t for t in unresolved if set(t.dependencies) <= completed]
                if not ready:
                    blocked = _blocked_by_failure(unresolved, execution.failed_ids())
                    stuck = [t.id for t in unresolved if t.id not in blocked]
                    if stuck:
                        error = self._deadlock(execution, stuck)
                    else:
                        error = self._blocked(execution, sorted(blocked))
                else:
                    error = None

            if error is not None:
                _emit(execution, on_progress)
                raise error

            if not self._run_wave(execution, wave + 1, ready, agents):
                continue
            wave += 1
            _emit(execution, on_progress)

        _emit(execution, on_progress)
        return execution

    def _run_wave(
        self,
        execution: WorkflowExecution,
        wave: int,
        ready: list[Task],
        agents: dict[str, Agent],
    ) -> bool:
        """Dispatch ``ready`` as one wave and record every result.

        Returns False without dispatching if the run is no longer running.
        """

        workers = len(ready) if self.max_parallel is None else min(self.max_parallel, len(ready))

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"wave-{wave}") as pool:
            # The status check and the submissions share the lock: a pause either
            # withholds the whole wave or lands after every task is in flight.
            with execution.lock:
                if execution.status != ExecutionStatus.RUNNING:
                    return False
                outputs = {
                    task_id: result.output
                    for task_id, result in execution.results.items()
                    if result.succeeded
                }
                workflow_input = dict(execution.workflow_input)
                logger.info(
                    "Dispatching wave",
                    extra={
                        "workflow_id": execution.workflow_id,
                        "wave": wave,
                        "tasks": [t.id for t in ready],
                    },
                )
                futures = {
                    pool.submit(self._execute_task, task, agents, outputs, workflow_input): task
                    for task in ready
                }
            for future in as_completed(futures):
                task = futures[future]
                try:
                    result = future.result()
                except Exception as e:
                    logger.exception(
                        "Task execution raised",
                        extra={"workflow_id": execution.workflow_id, "task_id": task.id},
                    )
                    result = TaskResult(
                        task_id=task.id,
                        status=TaskStatus.FAILED,
                        error=str(e) or e.__class__.__name__,
                        retry_count=task.retry_count,
                        completed_at=utc_now(),
                    )
                execution.record(result)

        logger.info(
            "Wave finished",
            extra={
                "workflow_id": execution.workflow_id,
                "wave": wave,
                "progress": execution.progress,
            },
        )
        return True

    def _execute_task(
        self,
        task: Task,
        agents: dict[str, Agent],
        outputs: Mapping[str, Any],
        workflow_input: Mapping[str, Any],
    ) -> TaskResult:
        agent = agents.get(task.agent_id)
        if agent is None:
            logger.warning(
                "Agent not found for task",
                extra={"task_id": task.id, "agent_id": task.agent_id},
            )
            return TaskResult(
                task_id=task.id,
                status=TaskStatus.FAILED,
                error=f"Agent not found: {task.agent_id}",
                retry_count=task.retry_count,
                completed_at=utc_now(),
            )

        dependency_outputs = {dep_id: outputs.get(dep_id) for dep_id in task.dependencies}
        result = self.invoker.invoke(task, agent, dependency_outputs, workflow_input)
        while result.status == TaskStatus.FAILED and not result.retries_exhausted:
            result = self.retry_policy.maybe_retry(
                task, agent, result, dependency_outputs, workflow_input
            )
        return result

    @staticmethod
    def _finish(execution: WorkflowExecution) -> None:
        """Move a fully resolved (or fully blocked) execution to its terminal status."""

        failed = execution.failed_ids()
        to = ExecutionStatus.FAILED if failed else ExecutionStatus.COMPLETED
        execution.status = transition(current=execution.status, to=to)
        if to == ExecutionStatus.COMPLETED:
            execution.progress = 100.0
        execution.completed_at = utc_now()
        logger.info(
            "Workflow run finished",
            extra={
                "workflow_id": execution.workflow_id,
                "status": to.value,
                "failed_tasks": sorted(failed),
            },
        )

    @staticmethod
    def _blocked(execution: WorkflowExecution, blocked: list[str]) -> BlockedDependencyError:
        Scheduler._finish(execution)
        error = BlockedDependencyError(execution, blocked, sorted(execution.failed_ids()))
        execution.error = str(error)
        logger.error(
            "Remaining tasks blocked by failed dependencies",
            extra={
                "workflow_id": execution.workflow_id,
                "blocked": blocked,
                "failed_tasks": error.failed,
            },
        )
        return error

    @staticmethod
    def _deadlock(execution: WorkflowExecution, stuck: list[str]) -> DeadlockError:
        execution.status = transition(current=execution.status, to=ExecutionStatus.FAILED)
        execution.completed_at = utc_now()
        error = DeadlockError(execution, stuck)
        execution.error = str(error)
        logger.error(
            "Workflow deadlocked",
            extra={"workflow_id": execution.workflow_id, "unresolved": sorted(stuck)},
        )
        return error


def _agent_index(workflow: Workflow, agents: Iterable[Agent] | None) -> dict[str, Agent]:
    source = workflow.agents if agents is None else agents
    return {agent.id: agent for agent in source}


def _blocked_by_failure(unresolved: list[Task], failed: set[str]) -> set[str]:
    """Ids of unresolved tasks that (transitively) depend on a failed task."""

    blocked: set[str] = set()
    changed = True
    while changed:
        changed = False
        for task in unresolved:
            if task.id in blocked:
                continue
            if any(dep in failed or dep in blocked for dep in task.dependencies):
                blocked.add(task.id)
                changed = True
    return blocked


def _emit(execution: WorkflowExecution, on_progress: ProgressCallback | None) -> None:
    if on_progress is None:
        return
    try:
        on_progress(execution)
    except Exception:
        logger.exception(
            "Progress callback failed", extra={"workflow_id": execution.workflow_id}
        )


def run_workflow(
    workflow: Workflow,
    agents: Iterable[Agent] | None,
    workflow_input: Mapping[str, Any] | None = None,
    on_progress: ProgressCallback | None = None,
    *,
    capability: Capability,
    config: SchedulerConfig | None = None,
) -> WorkflowExecution:
    scheduler = Scheduler.from_config(capability, config or SchedulerConfig())
    return scheduler.run(workflow, agents, workflow_input, on_progress)


def pause_workflow(execution: WorkflowExecution) -> WorkflowExecution:
    """Withhold the next wave. In-flight tasks still complete and are recorded."""

    with execution.lock:
        execution.status = transition(current=execution.status, to=ExecutionStatus.PAUSED)
    logger.info("Workflow pause requested", extra={"workflow_id": execution.workflow_id})
    return execution


def resume_workflow(
    execution: WorkflowExecution,
    workflow: Workflow,
    agents: Iterable[Agent] | None,
    on_progress: ProgressCallback | None = None,
    *,
    capability: Capability,
    config: SchedulerConfig | None = None,
) -> WorkflowExecution:
    scheduler = Scheduler.from_config(capability, config or SchedulerConfig())
    return scheduler.resume(execution, workflow, agents, on_progress)


def stop_workflow(execution: WorkflowExecution) -> WorkflowExecution:
    """Finalize an execution as ``completed`` regardless of task outcomes."""

    with execution.lock:
        execution.status = transition(current=execution.status, to=ExecutionStatus.COMPLETED)
        execution.completed_at = utc_now()
    logger.info("Workflow stopped", extra={"workflow_id": execution.workflow_id})
    return execution


@dataclass(frozen=True, slots=True)
class ExecutionSummary:
    total: int
    completed: int
    failed: int
    pending: int
    skipped: int
    duration_seconds: float | None

    def to_json(self) -> dict[str, object]:
        return {
            "total": self.total,
            "completed": self.completed,
            "failed": self.failed,
            "pending": self.pending,
            "skipped": self.skipped,
            "duration_seconds": self.duration_seconds,
        }


def get_execution_summary(execution: WorkflowExecution) -> ExecutionSummary:
    with execution.lock:
        statuses = [r.status for r in execution.results.values()]
        unresolved = max(execution.total_tasks - len(statuses), 0)
        duration = None
        if execution.started_at and execution.completed_at:
            duration = (execution.completed_at - execution.started_at).total_seconds()
        terminal = execution.is_terminal

    return ExecutionSummary(
        total=execution.total_tasks,
        completed=statuses.count(TaskStatus.COMPLETED),
        failed=statuses.count(TaskStatus.FAILED),
        pending=0 if terminal else unresolved,
        skipped=unresolved if terminal else 0,
        duration_seconds=duration,
    )
