"""
Task error types.

Every error raised by this package derives from JobError.
"""

from typing import Optional

from .models import TaskStatus


class JobError(Exception):
    """Base exception for task descriptor failures."""
    pass


class InvalidStateTransitionError(JobError):
    """A task was asked to move between two statuses that are not linked."""

    def __init__(
        self,
        from_status: TaskStatus,
        to_status: TaskStatus,
        task_id: Optional[str] = None,
    ):
        self.from_status = from_status
        self.to_status = to_status
        self.task_id = task_id
        subject = f"task {task_id}" if task_id else "task"
        super().__init__(f"Cannot move {subject} from {from_status.value} to {to_status.value}")


class TaskConfigurationError(JobError):
    """
    Raised when a task descriptor cannot be executed as described.

    Examples: a stitch task without an A file, a merge task without a B file.
    """

    def __init__(self, task_id: str, reason: str):
        self.task_id = task_id
        self.reason = reason
        super().__init__(f"Task {task_id}: {reason}")
