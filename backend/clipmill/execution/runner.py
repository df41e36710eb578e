"""
Batch runner: per-task lifecycle, retry and progress events.

Per-task lifecycle:
    pending → attempt 1 → success
                        → attempt 2 → success | failed

Design rules:
- The runner does NOT bound concurrency; the JobQueue it submits to does
- One task failing never aborts its siblings (settle-all semantics)
- Diagnostic text is forwarded as task-log events as it is produced
- Counters are updated before the matching event is built, so every
  progress/failed event carries a consistent done/failed/total snapshot
- Every task is counted exactly once, even if it never got to run
- Descriptors are requeued on submission, so tasks from an earlier batch
  (failed or not) run again from scratch
- Retries are immediate by default; the attempt count and delay are
  parameters of RetryPolicy
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Set

from ..jobs.models import BatchAggregate, TaskDescriptor, TaskStatus
from ..jobs.state import requeue_task, transition_task
from .base import LogCallback
from .events import BatchEvent, BatchEventType, EventSink
from .queue import JobQueue

logger = logging.getLogger(__name__)

# Executes one task; returns the committed output path (or None)
ExecuteOne = Callable[[TaskDescriptor, LogCallback], Awaitable[Optional[str]]]


@dataclass(frozen=True)
class RetryPolicy:
    """
    How often a task is attempted.

    Attributes:
        max_attempts: Total attempts including the first (2 = one retry)
        delay_seconds: Pause between attempts (0 = immediate retry)
    """

    max_attempts: int = 2
    delay_seconds: float = 0.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.delay_seconds < 0:
            raise ValueError(f"delay_seconds must be >= 0, got {self.delay_seconds}")


@dataclass
class _Batch:
    execute_one: ExecuteOne
    emit: EventSink
    aggregate: BatchAggregate
    settled: Set[int] = field(default_factory=set)


class BatchRunner:
    """
    Runs a batch of task descriptors to completion.

    Each task is wrapped into a job function and pushed into the queue.
    Without a queue every task starts immediately.
    """

    def __init__(
        self,
        queue: Optional[JobQueue] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.queue = queue
        self.retry_policy = retry_policy or RetryPolicy()

    async def run_batch(
        self,
        descriptors: Sequence[TaskDescriptor],
        execute_one: ExecuteOne,
        emit: EventSink,
    ) -> BatchAggregate:
        """
        Execute every descriptor and report progress through ``emit``.

        Args:
            descriptors: Tasks to run; their status is updated in place
            execute_one: Coroutine function executing one task
            emit: Event sink receiving the batch's events

        Returns:
            Final aggregate, with done + failed == total
        """
        batch = _Batch(
            execute_one=execute_one,
            emit=emit,
            aggregate=BatchAggregate(total=len(descriptors)),
        )
        aggregate = batch.aggregate

        for descriptor in descriptors:
            requeue_task(descriptor)

        await self._emit(emit, BatchEvent(
            type=BatchEventType.BATCH_START,
            total=aggregate.total,
            concurrency=self.queue.concurrency if self.queue else None,
        ))
        logger.info(f"[BatchRunner] Starting batch of {aggregate.total} task(s)")

        handles = [
            self._submit(self._job_for(index, descriptor, batch))
            for index, descriptor in enumerate(descriptors)
        ]
        results: List[Any] = await asyncio.gather(*handles, return_exceptions=True)

        for index, result in enumerate(results):
            if index not in batch.settled:
                # Never ran (queue shut down) or the lifecycle itself broke
                await self._fail_unsettled(index, descriptors[index], result, batch)

        await self._emit(emit, BatchEvent(
            type=BatchEventType.BATCH_FINISH,
            done=aggregate.done,
            failed=aggregate.failed,
            total=aggregate.total,
        ))
        logger.info(
            f"[BatchRunner] Batch finished: {aggregate.done} done, "
            f"{aggregate.failed} failed, {aggregate.total} total"
        )
        return aggregate

    def _submit(self, job_fn: Callable[[], Awaitable[None]]) -> "asyncio.Future[Any]":
        if self.queue is not None:
            return self.queue.push(job_fn)
        return asyncio.ensure_future(job_fn())

    def _job_for(
        self,
        index: int,
        descriptor: TaskDescriptor,
        batch: _Batch,
    ) -> Callable[[], Awaitable[None]]:
        async def job() -> None:
            await self._run_task(index, descriptor, batch)
        return job

    async def _run_task(self, index: int, descriptor: TaskDescriptor, batch: _Batch) -> None:
        transition_task(descriptor, TaskStatus.RUNNING)
        await self._emit(batch.emit, BatchEvent(
            type=BatchEventType.TASK_START,
            index=index,
            task_id=descriptor.id,
        ))

        async def on_log(message: str) -> None:
            await self._emit(batch.emit, BatchEvent(
                type=BatchEventType.TASK_LOG,
                index=index,
                task_id=descriptor.id,
                message=message,
            ))

        max_attempts = self.retry_policy.max_attempts
        last_error: Optional[BaseException] = None

        for attempt in range(1, max_attempts + 1):
            descriptor.attempts = attempt
            try:
                output = await batch.execute_one(descriptor, on_log)
            except Exception as e:
                last_error = e
                logger.warning(
                    f"[BatchRunner] Task {index} attempt {attempt}/{max_attempts} failed: "
                    f"{_first_line(e)}"
                )
                if attempt < max_attempts:
                    await on_log(
                        f"Attempt {attempt}/{max_attempts} failed: {e}\n"
                        f"Retrying (attempt {attempt + 1}/{max_attempts})...\n"
                    )
                    if self.retry_policy.delay_seconds > 0:
                        await asyncio.sleep(self.retry_policy.delay_seconds)
                continue

            descriptor.output = output
            transition_task(descriptor, TaskStatus.SUCCESS)
            batch.aggregate.record_success()
            batch.settled.add(index)
            await self._emit(batch.emit, BatchEvent(
                type=BatchEventType.TASK_PROGRESS,
                index=index,
                task_id=descriptor.id,
                done=batch.aggregate.done,
                failed=batch.aggregate.failed,
                total=batch.aggregate.total,
                output=output,
            ))
            return

        descriptor.error = str(last_error)
        transition_task(descriptor, TaskStatus.FAILED)
        batch.aggregate.record_failure()
        batch.settled.add(index)
        await self._emit(batch.emit, BatchEvent(
            type=BatchEventType.TASK_FAILED,
            index=index,
            task_id=descriptor.id,
            done=batch.aggregate.done,
            failed=batch.aggregate.failed,
            total=batch.aggregate.total,
            error=str(last_error),
        ))

    async def _fail_unsettled(
        self,
        index: int,
        descriptor: TaskDescriptor,
        result: Any,
        batch: _Batch,
    ) -> None:
        if isinstance(result, BaseException):
            error = str(result) or type(result).__name__
        else:
            error = "Task did not settle"
        logger.warning(f"[BatchRunner] Task {index} did not run: {error}")

        descriptor.error = error
        transition_task(descriptor, TaskStatus.FAILED)
        batch.aggregate.record_failure()
        batch.settled.add(index)
        await self._emit(batch.emit, BatchEvent(
            type=BatchEventType.TASK_FAILED,
            index=index,
            task_id=descriptor.id,
            done=batch.aggregate.done,
            failed=batch.aggregate.failed,
            total=batch.aggregate.total,
            error=error,
        ))

    @staticmethod
    async def _emit(emit: EventSink, event: BatchEvent) -> None:
        # Event delivery never gates execution
        try:
            await emit.send(event)
        except Exception:
            logger.exception(f"[BatchRunner] Failed to deliver {event.type.value} event")


async def run_batch(
    descriptors: Sequence[TaskDescriptor],
    execute_one: ExecuteOne,
    emit: EventSink,
    queue: Optional[JobQueue] = None,
    retry_policy: Optional[RetryPolicy] = None,
) -> BatchAggregate:
    """Run a batch with a one-off BatchRunner."""
    runner = BatchRunner(queue=queue, retry_policy=retry_policy)
    return await runner.run_batch(descriptors, execute_one, emit)


def _first_line(error: BaseException) -> str:
    text = str(error)
    return text.splitlines()[0] if text else type(error).__name__
