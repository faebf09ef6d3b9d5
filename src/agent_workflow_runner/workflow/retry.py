"""Retry policy for failed task results."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping
from typing import Any

from agent_workflow_runner.workflow.invoker import TaskInvoker
from agent_workflow_runner.workflow.models import Agent, Task, TaskResult, TaskStatus

logger = logging.getLogger(__name__)


class RetryPolicy:
    """Decide whether a failed task gets another attempt.

    Each call to ``maybe_retry`` re-invokes at most once; the scheduler decides
    whether to call again. ``task.retry_count`` is the only state mutated, so
    pass per-run task copies when the same task objects are shared.
    """

    def __init__(
        self,
        invoker: TaskInvoker,
        *,
        backoff_seconds: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._invoker = invoker
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep
        self._lock = threading.Lock()

    def maybe_retry(
        self,
        task: Task,
        agent: Agent,
        previous: TaskResult,
        dependency_outputs: Mapping[str, Any],
        workflow_input: Mapping[str, Any] | None = None,
    ) -> TaskResult:
        if previous.status != TaskStatus.FAILED:
            return previous

        with self._lock:
            exhausted = task.retry_count >= task.max_retries
            if not exhausted:
                task.retry_count += 1
            attempt = task.retry_count

        if exhausted:
            logger.warning(
                "Retry budget exhausted",
                extra={"task_id": task.id, "max_retries": task.max_retries},
            )
            return previous.model_copy(
                update={
                    "error": f"Max retries ({task.max_retries}) exceeded: {previous.error}",
                    "retries_exhausted": True,
                    "retry_count": attempt,
                }
            )

        logger.info(
            "Retrying task",
            extra={
                "task_id": task.id,
                "attempt": attempt,
                "max_retries": task.max_retries,
                "previous_error": previous.error,
            },
        )
        if self.backoff_seconds:
            self._sleep(self.backoff_seconds)
        return self._invoker.invoke(task, agent, dependency_outputs, workflow_input)
