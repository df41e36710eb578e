"""
State transition validation for task descriptors.

Task lifecycle: PENDING → RUNNING → SUCCESS | FAILED
A task whose queue shuts down before it starts goes PENDING → FAILED.

The retry happens inside RUNNING: a task does not leave RUNNING between
its first and second attempt.

INVARIANT: Within a batch, terminal task states (SUCCESS, FAILED) are
immutable. A task that settled never regresses to RUNNING and never flips
between SUCCESS and FAILED.

Submitting a descriptor to a new batch requeues it (requeue_task): its
status goes back to PENDING and the previous run's bookkeeping is cleared.
"""

from typing import FrozenSet, Optional, Set, Tuple

from .errors import InvalidStateTransitionError
from .models import TaskDescriptor, TaskStatus


TERMINAL_TASK_STATES: FrozenSet[TaskStatus] = frozenset({
    TaskStatus.SUCCESS,
    TaskStatus.FAILED,
})


_TASK_TRANSITIONS: Set[Tuple[TaskStatus, TaskStatus]] = {
    (TaskStatus.PENDING, TaskStatus.RUNNING),
    (TaskStatus.RUNNING, TaskStatus.SUCCESS),
    (TaskStatus.RUNNING, TaskStatus.FAILED),
    # Abandoned before starting (queue shut down)
    (TaskStatus.PENDING, TaskStatus.FAILED),
}


def is_task_terminal(status: TaskStatus) -> bool:
    """Check if a task status is terminal (immutable)."""
    return status in TERMINAL_TASK_STATES


def can_transition_task(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """
    Check if a task state transition is legal.

    Args:
        from_status: Current task status
        to_status: Target task status

    Returns:
        True if the transition is allowed, False otherwise
    """
    # Allow staying in same non-terminal state (idempotent operations)
    if from_status == to_status:
        return not is_task_terminal(from_status)

    return (from_status, to_status) in _TASK_TRANSITIONS


def validate_task_transition(
    from_status: TaskStatus,
    to_status: TaskStatus,
    task_id: Optional[str] = None,
) -> None:
    """
    Validate a task state transition, raising an exception if illegal.

    ``task_id`` only enriches the error message.

    Raises:
        InvalidStateTransitionError: If the transition is not allowed
    """
    if not can_transition_task(from_status, to_status):
        raise InvalidStateTransitionError(from_status, to_status, task_id)


def transition_task(task: TaskDescriptor, to_status: TaskStatus) -> None:
    """Move a task to ``to_status`` after validating the transition."""
    validate_task_transition(task.status, to_status, task.id)
    task.status = to_status


def requeue_task(task: TaskDescriptor) -> None:
    """
    Reset a task for a fresh run, whatever state the last run left it in.

    This is the only way out of a terminal state and happens only when a
    descriptor is submitted to a new batch.
    """
    task.status = TaskStatus.PENDING
    task.attempts = 0
    task.error = None
    task.output = None
