"""Single-task invocation against an agent capability.

The invoker knows nothing about scheduling. Capability errors and timeouts
come back as failed ``TaskResult`` values; they are data, not exceptions.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Protocol

from agent_workflow_runner.workflow.models import Agent, Task, TaskResult, TaskStatus, utc_now

logger = logging.getLogger(__name__)


class Capability(Protocol):
    """Opaque language-model capability supplied by the hosting application."""

    def __call__(
        self,
        model: str,
        prompt: str,
        context: dict[str, Any],
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str: ...


class InvocationTimeout(Exception):
    pass


def build_prompt(task: Task, agent: Agent, dependency_outputs: Mapping[str, Any]) -> str:
    lines = [f"You are a {agent.role.value} agent named {agent.name or agent.id}.", ""]
    if agent.capabilities:
        lines += [f"Your capabilities: {', '.join(agent.capabilities)}", ""]
    lines.append(f"Task: {task.name or task.id}")
    lines += [f"Description: {task.description}", ""]

    if dependency_outputs:
        lines.append("Previous task results:")
        lines += [json.dumps(dict(dependency_outputs), indent=2, default=str), ""]

    if task.input:
        lines.append("Task input:")
        lines += [json.dumps(task.input, indent=2, default=str), ""]

    lines.append(
        "Please complete this task and provide the output in a clear, structured format."
    )
    return "\n".join(lines)


def parse_output(text: Any) -> dict[str, Any]:
    """Interpret capability text as a JSON object, else wrap it as ``{"result": text}``.

    Never raises: a shape degradation is not a task failure. A capability that
    breaks its contract and returns a non-string is coerced (None reads as "").
    """

    if not isinstance(text, str):
        text = "" if text is None else str(text)

    content = text.strip()
    if content.startswith("```json"):
        content = content[7:]
    if content.startswith("```"):
        content = content[3:]
    if content.endswith("```"):
        content = content[:-3]
    content = content.strip()

    try:
        parsed = json.loads(content)
    except (ValueError, RecursionError):
        return {"result": text}
    if isinstance(parsed, dict):
        return parsed
    return {"result": text}


class TaskInvoker:
    """Run one task against its agent's capability and produce a ``TaskResult``.

    Args:
        capability: Callable honouring the ``Capability`` protocol.
        timeout_seconds: Per-invocation time limit; None disables it. A timed-out
            call keeps running on a daemon thread but its result is discarded.
        default_model: Model used when the agent does not name one.
    """

    def __init__(
        self,
        capability: Capability,
        *,
        timeout_seconds: float | None = 120.0,
        default_model: str | None = None,
    ) -> None:
        self._capability = capability
        self.timeout_seconds = timeout_seconds
        self.default_model = default_model

    def invoke(
        self,
        task: Task,
        agent: Agent,
        dependency_outputs: Mapping[str, Any],
        workflow_input: Mapping[str, Any] | None = None,
    ) -> TaskResult:
        """Invoke ``task`` once.

        The scheduler guarantees ``task.agent_id == agent.id`` and that every
        dependency of ``task`` is present in ``dependency_outputs``; neither is
        re-checked here. Neither ``task`` nor ``agent`` is mutated.
        """

        started_at = utc_now()
        model = agent.model or self.default_model
        if not model:
            return self._failed(task, started_at, "Agent model not configured")

        prompt = build_prompt(task, agent, dependency_outputs)
        context: dict[str, Any] = {
            **(workflow_input or {}),
            **(task.input or {}),
            "dependencies": dict(dependency_outputs),
        }

        logger.debug(
            "Invoking task",
            extra={"task_id": task.id, "agent_id": agent.id, "model": model},
        )
        try:
            text = self._call(model, prompt, context, agent)
        except Exception as e:
            logger.warning(
                "Task invocation failed",
                extra={"task_id": task.id, "agent_id": agent.id, "error": str(e)},
            )
            return self._failed(task, started_at, str(e) or e.__class__.__name__)

        return TaskResult(
            task_id=task.id,
            status=TaskStatus.COMPLETED,
            output=parse_output(text),
            retry_count=task.retry_count,
            started_at=started_at,
            completed_at=utc_now(),
        )

    def _call(self, model: str, prompt: str, context: dict[str, Any], agent: Agent) -> str:
        kwargs = {"temperature": agent.temperature, "max_tokens": agent.max_tokens}
        if self.timeout_seconds is None:
            return self._capability(model, prompt, context, **kwargs)

        outcome: dict[str, Any] = {}

        def _target() -> None:
            try:
                outcome["text"] = self._capability(model, prompt, context, **kwargs)
            except BaseException as e:  # re-raised on the calling thread
                outcome["error"] = e

        # Daemon: an abandoned call must not hold up interpreter exit.
        worker = threading.Thread(target=_target, name="capability", daemon=True)
        worker.start()
        worker.join(self.timeout_seconds)
        if worker.is_alive():
            raise InvocationTimeout(f"Invocation timed out after {self.timeout_seconds:g}s")
        if "error" in outcome:
            raise outcome["error"]
        return outcome["text"]

    @staticmethod
    def _failed(task: Task, started_at: datetime, error: str) -> TaskResult:
        return TaskResult(
            task_id=task.id,
            status=TaskStatus.FAILED,
            error=error,
            retry_count=task.retry_count,
            started_at=started_at,
            completed_at=utc_now(),
        )
