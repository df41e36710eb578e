"""
Batch execution: queue, runner, engine and executors.

The runner wraps each task descriptor into a job, pushes it into the
JobQueue and reports progress through an event sink. The executor turns
a single descriptor into FFmpeg invocations and a committed output file.
"""

from .base import (
    EngineExecutionError,
    EngineNotAvailableError,
    EngineType,
    ExecutionEngine,
    LogCallback,
)
from .errors import ExecutionError, OutputCommitError, QueueShutdownError
from .events import (
    BatchEvent,
    BatchEventType,
    EventChannel,
    EventRecorder,
    EventSink,
    log_event,
)
from .executors import TaskExecutor
from .ffmpeg import FFmpegEngine
from .output import SafeOutput
from .queue import JobQueue
from .runner import BatchRunner, ExecuteOne, RetryPolicy, run_batch

__all__ = [
    # Engine
    "EngineExecutionError",
    "EngineNotAvailableError",
    "EngineType",
    "ExecutionEngine",
    "FFmpegEngine",
    "LogCallback",
    # Errors
    "ExecutionError",
    "OutputCommitError",
    "QueueShutdownError",
    # Events
    "BatchEvent",
    "BatchEventType",
    "EventChannel",
    "EventRecorder",
    "EventSink",
    "log_event",
    # Scheduling
    "JobQueue",
    "BatchRunner",
    "ExecuteOne",
    "RetryPolicy",
    "run_batch",
    # Executors
    "SafeOutput",
    "TaskExecutor",
]
