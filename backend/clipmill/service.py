"""
Batch service: the per-process wiring of settings, engine, queue and executor.

One BatchService exists per process (created by the CLI command or the
HTTP app lifespan). It owns the JobQueue; every batch it runs shares
that queue, so the concurrency limit holds across batches.
"""

import asyncio
import logging
from typing import Any, Callable, Optional, Sequence

from .config import Settings
from .execution.base import ExecutionEngine
from .execution.events import EventChannel, EventSink
from .execution.executors import TaskExecutor
from .execution.ffmpeg import FFmpegEngine
from .execution.queue import JobQueue
from .execution.runner import BatchRunner, ExecuteOne
from .jobs.models import BatchAggregate, TaskDescriptor

logger = logging.getLogger(__name__)


class BatchService:
    """
    Runs batches of task descriptors against the shared queue.

    Usage:
        service = BatchService(Settings.from_env())
        aggregate = await service.run(descriptors, EventRecorder())
        await service.shutdown()
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        engine: Optional[ExecutionEngine] = None,
        execute_one: Optional[ExecuteOne] = None,
        concurrency: Optional[int] = None,
    ):
        """
        Args:
            settings: Runtime settings (defaults when omitted)
            engine: Engine override; FFmpegEngine from settings when omitted
            execute_one: Executor override; TaskExecutor(engine) when omitted
            concurrency: Operator-chosen limit that beats the task hints
        """
        self.settings = settings or Settings()
        self.engine = engine or FFmpegEngine(self.settings.ffmpeg_path)
        self.execute_one: ExecuteOne = execute_one or TaskExecutor(self.engine)
        self.concurrency = concurrency
        self.queue = JobQueue(concurrency or self.settings.default_concurrency)
        self.runner = BatchRunner(self.queue, self.settings.retry_policy())

    async def run(self, descriptors: Sequence[TaskDescriptor], sink: EventSink) -> BatchAggregate:
        """
        Run one batch, sending its events to ``sink``.

        The queue limit is set for every batch (see batch_concurrency).
        """
        self.queue.set_concurrency(self.batch_concurrency(descriptors))

        return await self.runner.run_batch(descriptors, self.execute_one, sink)

    def batch_concurrency(self, descriptors: Sequence[TaskDescriptor]) -> int:
        """
        Queue limit for a batch.

        An explicit service concurrency wins, then a positive hint on the
        first descriptor, then the configured default.
        """
        if self.concurrency:
            return self.concurrency
        if descriptors and descriptors[0].concurrency > 0:
            return descriptors[0].concurrency
        return self.settings.default_concurrency

    async def run_with_channel(
        self,
        descriptors: Sequence[TaskDescriptor],
        consumer: Callable[[Any], Any],
    ) -> BatchAggregate:
        """
        Run one batch through an EventChannel drained by ``consumer``.

        The consumer runs as its own task; the batch only waits for it when
        the channel buffer is full.
        """
        channel = EventChannel(maxsize=self.settings.event_buffer_size)
        drain_task = asyncio.ensure_future(channel.drain(consumer))
        try:
            aggregate = await self.run(descriptors, channel)
        finally:
            await channel.close()
            delivered = await drain_task
            logger.debug(f"[BatchService] Delivered {delivered} event(s)")
        return aggregate

    async def shutdown(self) -> None:
        await self.queue.shutdown()
