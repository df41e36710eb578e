"""
Batch execution events.

Ordered record of what happened while a batch ran. Events are
observational: they explain what happened without altering behavior.

Design rules:
- Events are immutable once created
- Within one task, events are strictly ordered:
  task-start → task-log* → task-progress | task-failed
- Across tasks, events interleave freely
- Event delivery NEVER gates execution (sink failures are logged)

Producers write to a sink (anything with an async ``send``). Two sinks
are provided:
- EventChannel: bounded asyncio queue drained by a separate consumer task
- EventRecorder: in-memory timeline, used by the HTTP API and tests
"""

import asyncio
import inspect
import logging
from datetime import datetime
from enum import Enum
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Protocol, Tuple

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class BatchEventType(str, Enum):
    """Event types, in lifecycle order."""

    BATCH_START = "batch-start"
    TASK_START = "task-start"
    TASK_LOG = "task-log"
    TASK_PROGRESS = "task-progress"
    TASK_FAILED = "task-failed"
    BATCH_FINISH = "batch-finish"


# Wire payload fields per event type
_PAYLOAD_FIELDS: Dict[BatchEventType, Tuple[str, ...]] = {
    BatchEventType.BATCH_START: ("total", "concurrency"),
    BatchEventType.TASK_START: ("index",),
    BatchEventType.TASK_LOG: ("index", "message"),
    BatchEventType.TASK_PROGRESS: ("done", "failed", "total", "index", "output"),
    BatchEventType.TASK_FAILED: ("done", "failed", "total", "index", "error"),
    BatchEventType.BATCH_FINISH: ("done", "failed", "total"),
}


class BatchEvent(BaseModel):
    """
    Single batch event.

    Only the fields relevant to ``type`` are set; see ``to_payload``.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: BatchEventType
    timestamp: datetime = Field(default_factory=datetime.now)

    index: Optional[int] = None
    task_id: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None
    output: Optional[str] = None

    done: Optional[int] = None
    failed: Optional[int] = None
    total: Optional[int] = None
    concurrency: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        """Wire payload: the event-specific fields only."""
        return {name: getattr(self, name) for name in _PAYLOAD_FIELDS[self.type]}

    def to_dict(self) -> Dict[str, Any]:
        """Payload plus type and timestamp, for JSON transport."""
        data = {"type": self.type.value, "timestamp": self.timestamp.isoformat()}
        data.update(self.to_payload())
        return data

    def __str__(self) -> str:
        parts = [self.type.value]
        if self.index is not None:
            parts.append(f"#{self.index}")
        if self.message:
            parts.append(f"- {self.message.rstrip()}")
        if self.error:
            parts.append(f"- {self.error.splitlines()[0]}")
        if self.type in (BatchEventType.TASK_PROGRESS, BatchEventType.TASK_FAILED,
                         BatchEventType.BATCH_FINISH):
            parts.append(f"({self.done} done, {self.failed} failed, {self.total} total)")
        return " ".join(parts)


class EventSink(Protocol):
    """Anything events can be sent to."""

    async def send(self, event: BatchEvent) -> None:
        ...


class EventRecorder:
    """
    In-memory event timeline.

    Captures events in order; read back with get_events().
    """

    def __init__(self):
        self._events: List[BatchEvent] = []

    async def send(self, event: BatchEvent) -> None:
        self._events.append(event)

    def get_events(self) -> List[BatchEvent]:
        """All recorded events in order."""
        return self._events.copy()

    def get_events_for_task(self, index: int) -> List[BatchEvent]:
        """All events tagged with task ``index``, in order."""
        return [e for e in self._events if e.index == index]

    def of_type(self, event_type: BatchEventType) -> List[BatchEvent]:
        return [e for e in self._events if e.type == event_type]

    def clear(self) -> None:
        self._events.clear()


_CLOSED = object()


class EventChannel:
    """
    Bounded message channel between the batch runner and a consumer.

    The runner awaits send(); when the buffer is full the runner waits for
    the consumer. close() lets the consumer finish after draining.
    """

    def __init__(self, maxsize: int = 1000):
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, event: BatchEvent) -> None:
        if self._closed:
            raise RuntimeError("Cannot send on a closed event channel")
        await self._queue.put(event)

    async def close(self) -> None:
        """Signal end of stream; events already sent are still delivered."""
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[BatchEvent]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item

    async def drain(self, consumer: Callable[[BatchEvent], Any]) -> int:
        """
        Deliver every event to ``consumer`` until the channel closes.

        ``consumer`` may be a plain function or a coroutine function.

        Returns:
            Number of events delivered
        """
        delivered = 0
        async for event in self:
            try:
                result = consumer(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"[EventChannel] Consumer failed on {event.type.value} event")
            delivered += 1
        return delivered


def log_event(event: BatchEvent) -> None:
    """Consumer that writes events to the module logger."""
    if event.type == BatchEventType.TASK_LOG:
        logger.debug(f"[Batch] {event}")
    elif event.type == BatchEventType.TASK_FAILED:
        logger.warning(f"[Batch] {event}")
    else:
        logger.info(f"[Batch] {event}")
