"""
Execution engine abstraction layer.

The transcoding engine is a black box: it receives an ordered argument
vector, runs as a separate process, streams diagnostic text and exits
with success or failure.

Design rules:
- One process per engine run
- Diagnostic text is delivered incrementally, never only at exit
- Non-zero exit code = failure, carrying the accumulated diagnostics
- Engines hold no per-task state
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Awaitable, Callable, Optional, Sequence

from .errors import ExecutionError

# Receives each diagnostic chunk as it is produced
LogCallback = Callable[[str], Awaitable[None]]


class EngineType(str, Enum):
    """Supported execution engines."""

    FFMPEG = "ffmpeg"


class ExecutionEngine(ABC):
    """
    Abstract base class for execution engines.

    All engines must implement:
    - available: whether the engine binary can be located
    - run: execute one argument vector to completion
    """

    @property
    @abstractmethod
    def engine_type(self) -> EngineType:
        """Return the engine type identifier."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable engine name for logs."""
        pass

    @property
    @abstractmethod
    def available(self) -> bool:
        """True if the engine can be spawned on this system."""
        pass

    @abstractmethod
    async def run(self, args: Sequence[str], on_log: Optional[LogCallback] = None) -> None:
        """
        Run the engine once with ``args``.

        Args:
            args: Argument vector, without the binary itself
            on_log: Optional coroutine receiving diagnostic text as produced

        Raises:
            EngineNotAvailableError: Engine cannot be located or spawned
            EngineExecutionError: Engine exited with a non-zero code
        """
        pass


class EngineNotAvailableError(ExecutionError):
    """Raised when an engine is requested but cannot be located or spawned."""

    def __init__(self, engine_type: EngineType, reason: str = ""):
        self.engine_type = engine_type
        self.reason = reason
        message = f"Engine '{engine_type.value}' is not available"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class EngineExecutionError(ExecutionError):
    """Raised when an engine process exits with a non-zero code."""

    def __init__(
        self,
        engine_type: EngineType,
        exit_code: Optional[int] = None,
        stderr: Optional[str] = None,
    ):
        self.engine_type = engine_type
        self.exit_code = exit_code
        self.stderr = stderr

        message = f"{engine_type.value} exit code={exit_code}"
        if stderr:
            message += f"\n{stderr}"
        super().__init__(message)
