"""
Task descriptors: the unit of work of a batch.

This package defines the task data model and its lifecycle rules.
It does NOT generate tasks (see clipmill.generation) and does NOT
execute them (see clipmill.execution).
"""

from .errors import (
    JobError,
    InvalidStateTransitionError,
    TaskConfigurationError,
)
from .models import (
    TaskStatus,
    TaskKind,
    Position,
    StitchConfig,
    MergeConfig,
    ResizeConfig,
    TaskConfig,
    TaskFile,
    TaskDescriptor,
    BatchOutcome,
    BatchAggregate,
)
from .state import (
    can_transition_task,
    is_task_terminal,
    requeue_task,
    transition_task,
    validate_task_transition,
)

__all__ = [
    # Errors
    "JobError",
    "InvalidStateTransitionError",
    "TaskConfigurationError",
    # Models
    "TaskStatus",
    "TaskKind",
    "Position",
    "StitchConfig",
    "MergeConfig",
    "ResizeConfig",
    "TaskConfig",
    "TaskFile",
    "TaskDescriptor",
    "BatchOutcome",
    "BatchAggregate",
    # State validation
    "can_transition_task",
    "is_task_terminal",
    "requeue_task",
    "transition_task",
    "validate_task_transition",
]
