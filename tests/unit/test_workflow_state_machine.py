"""Unit tests for the execution status state machine.

Illegal transitions fail loudly; terminal statuses have no way out.
"""

from __future__ import annotations

import pytest

from agent_workflow_runner.workflow.state_machine import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    ExecutionStatus,
    IllegalTransitionError,
    can_transition,
    transition,
)


@pytest.mark.parametrize(
    ("current", "to"),
    [
        (ExecutionStatus.PENDING, ExecutionStatus.RUNNING),
        (ExecutionStatus.RUNNING, ExecutionStatus.PAUSED),
        (ExecutionStatus.RUNNING, ExecutionStatus.COMPLETED),
        (ExecutionStatus.RUNNING, ExecutionStatus.FAILED),
        (ExecutionStatus.PAUSED, ExecutionStatus.RUNNING),
        (ExecutionStatus.PAUSED, ExecutionStatus.COMPLETED),
    ],
)
def test_transition_allows_documented_moves(
    current: ExecutionStatus, to: ExecutionStatus
) -> None:
    assert transition(current=current, to=to) == to


@pytest.mark.parametrize(
    ("current", "to"),
    [
        (ExecutionStatus.PENDING, ExecutionStatus.PAUSED),
        (ExecutionStatus.PENDING, ExecutionStatus.COMPLETED),
        (ExecutionStatus.PAUSED, ExecutionStatus.PAUSED),
        (ExecutionStatus.COMPLETED, ExecutionStatus.RUNNING),
        (ExecutionStatus.FAILED, ExecutionStatus.RUNNING),
        (ExecutionStatus.FAILED, ExecutionStatus.COMPLETED),
    ],
)
def test_transition_rejects_illegal_transitions(
    current: ExecutionStatus, to: ExecutionStatus
) -> None:
    with pytest.raises(IllegalTransitionError, match="Illegal transition"):
        transition(current=current, to=to)


def test_terminal_statuses_have_no_outgoing_transitions() -> None:
    for status in TERMINAL_STATUSES:
        assert ALLOWED_TRANSITIONS[status] == set()
        assert not any(can_transition(current=status, to=to) for to in ExecutionStatus)


def test_illegal_transition_is_a_value_error() -> None:
    assert issubclass(IllegalTransitionError, ValueError)
