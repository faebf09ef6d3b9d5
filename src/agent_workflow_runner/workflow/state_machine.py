from __future__ import annotations

from enum import Enum


class ExecutionStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"


ALLOWED_TRANSITIONS: dict[ExecutionStatus, set[ExecutionStatus]] = {
    ExecutionStatus.PENDING: {ExecutionStatus.RUNNING},
    ExecutionStatus.RUNNING: {
        ExecutionStatus.PAUSED,
        ExecutionStatus.COMPLETED,
        ExecutionStatus.FAILED,
    },
    ExecutionStatus.PAUSED: {
        ExecutionStatus.RUNNING,
        ExecutionStatus.COMPLETED,
        ExecutionStatus.FAILED,
    },
    ExecutionStatus.COMPLETED: set(),
    ExecutionStatus.FAILED: set(),
}

TERMINAL_STATUSES: frozenset[ExecutionStatus] = frozenset(
    {ExecutionStatus.COMPLETED, ExecutionStatus.FAILED}
)


class IllegalTransitionError(ValueError):
    pass


def can_transition(*, current: ExecutionStatus, to: ExecutionStatus) -> bool:
    return to in ALLOWED_TRANSITIONS.get(current, set())


def transition(*, current: ExecutionStatus, to: ExecutionStatus) -> ExecutionStatus:
    """Return ``to`` if the execution may move there from ``current``.

    ``completed`` and ``failed`` are terminal for a given execution object.
    """

    if not can_transition(current=current, to=to):
        raise IllegalTransitionError(f"Illegal transition: {current.value} -> {to.value}")
    return to
