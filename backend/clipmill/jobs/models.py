"""
Task descriptor and batch aggregate models.

A batch is a collection of independent task descriptors.
One task failing must never block other tasks.

Descriptors use Pydantic for validation and are JSON-serialisable in the
wire format consumed by callers (camelCase ``outputDir``).
State transitions are validated externally (see state.py).

Task configuration is a tagged union on ``kind``: each task category
(stitch, merge, resize) carries its own typed configuration.
"""

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class TaskStatus(str, Enum):
    """
    Task status.

    Each task moves independently through these states.
    """

    PENDING = "pending"  # Generated, not yet started
    RUNNING = "running"  # Attempt in progress (including the retry)
    SUCCESS = "success"  # Output committed
    FAILED = "failed"  # All attempts exhausted


class TaskKind(str, Enum):
    """Task categories understood by the executors."""

    STITCH = "stitch"
    MERGE = "merge"
    RESIZE = "resize"


Quality = Literal["low", "medium", "high"]


class Position(BaseModel):
    """Placement rectangle on the output canvas, in output pixels."""

    model_config = ConfigDict(extra="forbid")

    x: float
    y: float
    width: float
    height: float


class StitchConfig(BaseModel):
    """A+B front/back stitching: A plays first, then B."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["stitch"] = "stitch"
    orientation: Literal["landscape", "portrait"] = "landscape"
    quality: Quality = "medium"


class MergeConfig(BaseModel):
    """
    Composite merge: B video over a background canvas.

    Optional A intro, cover still and background image come from the
    task's files; positions default to the canvas layout when omitted.
    """

    model_config = ConfigDict(extra="forbid")

    kind: Literal["merge"] = "merge"
    orientation: Literal["horizontal", "vertical"] = "horizontal"
    quality: Quality = "medium"
    a_position: Optional[Position] = None
    b_position: Optional[Position] = None
    bg_position: Optional[Position] = None
    cover_position: Optional[Position] = None
    cover_duration: float = Field(default=1.0, gt=0)


class ResizeConfig(BaseModel):
    """Smart resize to one target size with a blurred fill background."""

    model_config = ConfigDict(extra="forbid")

    kind: Literal["resize"] = "resize"
    mode: str
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    suffix: str = ""
    blur_amount: int = Field(default=20, ge=0)


TaskConfig = Annotated[
    Union[StitchConfig, MergeConfig, ResizeConfig],
    Field(discriminator="kind"),
]


class TaskFile(BaseModel):
    """
    One input file of a task.

    ``index`` is the 1-based position of the file inside its source list,
    used for output naming and display.
    """

    model_config = ConfigDict(extra="forbid")

    path: str
    index: int
    category: str
    category_name: str


class TaskDescriptor(BaseModel):
    """
    A single transcoding task.

    Created by the task generators, status mutated by the batch runner,
    persisted or discarded by the caller.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    # Identity
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))

    # State
    status: TaskStatus = TaskStatus.PENDING

    # Inputs
    files: List[TaskFile] = Field(default_factory=list)
    config: TaskConfig

    # Output
    output_dir: str = Field(alias="outputDir")
    concurrency: int = 0

    # Execution bookkeeping (filled in by the runner)
    attempts: int = 0
    error: Optional[str] = None
    output: Optional[str] = None

    def find_file(self, category: str) -> Optional[TaskFile]:
        """Return the first file tagged with ``category``, if any."""
        for task_file in self.files:
            if task_file.category == category:
                return task_file
        return None

    def to_wire(self) -> Dict[str, Any]:
        """Serialise to the JSON wire format (camelCase ``outputDir``)."""
        return self.model_dump(mode="json", by_alias=True)


class BatchOutcome(str, Enum):
    """
    Batch-level outcome classification.

    Derived from the aggregate counters, never captured during execution.
    """

    EMPTY = "EMPTY"  # No tasks were submitted
    COMPLETE = "COMPLETE"  # Every task succeeded
    PARTIAL = "PARTIAL"  # Some tasks succeeded, some failed
    FAILED = "FAILED"  # Every task failed


@dataclass
class BatchAggregate:
    """
    Done/failed/total counters for one batch invocation.

    Mutated only from the event loop thread, so increments are atomic with
    respect to each other.
    """

    total: int
    done: int = 0
    failed: int = 0

    def record_success(self) -> None:
        self.done += 1

    def record_failure(self) -> None:
        self.failed += 1

    @property
    def settled(self) -> bool:
        """True once every task reached a terminal state."""
        return self.done + self.failed == self.total

    @property
    def outcome(self) -> BatchOutcome:
        if self.total == 0:
            return BatchOutcome.EMPTY
        if self.failed == 0 and self.done == self.total:
            return BatchOutcome.COMPLETE
        if self.done == 0 and self.failed == self.total:
            return BatchOutcome.FAILED
        return BatchOutcome.PARTIAL

    def to_dict(self) -> Dict[str, int]:
        return {"done": self.done, "failed": self.failed, "total": self.total}
