"""
Bounded-concurrency FIFO job queue.

Runs submitted job functions on the asyncio event loop, at most
``concurrency`` at a time.

Design rules:
- Strict FIFO dequeue order (completion order is NOT guaranteed)
- No limit on pending jobs; the limit applies to running jobs only
- Completions trigger the next dequeue; there is no polling
- A failing job only fails its own handle, never the queue or siblings
- stop() prevents new dequeues; running jobs are never cancelled
- Concurrency changes apply to future dequeues only

The queue is constructed and shut down by its owner (CLI command or
HTTP app lifespan). There is no module-level instance.

All state is mutated from the event loop thread only, so drain, push and
settle callbacks are atomic with respect to each other.
"""

import asyncio
import inspect
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Set

from .errors import QueueShutdownError

logger = logging.getLogger(__name__)

JobFn = Callable[[], Awaitable[Any]]


@dataclass
class _QueueItem:
    job_fn: JobFn
    future: "asyncio.Future[Any]"


class JobQueue:
    """
    FIFO scheduler with a runtime-adjustable concurrency limit.

    State machine: running ⇄ stopped (initially running).
    shutdown() is terminal: pending handles fail with QueueShutdownError.
    """

    def __init__(self, concurrency: int = 2):
        """
        Initialize the queue.

        Args:
            concurrency: Maximum concurrently running jobs (clamped to >= 1)
        """
        self._concurrency = max(1, concurrency)
        self._running_count = 0
        self._pending: deque[_QueueItem] = deque()
        self._stopped = False
        self._closed = False
        # Strong references keep running jobs alive until they settle
        self._active: Set["asyncio.Task[None]"] = set()

    @property
    def concurrency(self) -> int:
        """Current concurrency limit."""
        return self._concurrency

    @property
    def running_count(self) -> int:
        """Number of jobs currently executing."""
        return self._running_count

    @property
    def pending_count(self) -> int:
        """Number of jobs waiting to be dequeued."""
        return len(self._pending)

    @property
    def is_stopped(self) -> bool:
        return self._stopped

    @property
    def is_closed(self) -> bool:
        return self._closed

    def set_concurrency(self, n: int) -> None:
        """
        Change the concurrency limit and drain immediately.

        Raising the limit can start queued jobs right away. Lowering it only
        throttles future dequeues; jobs above the new limit finish normally.
        """
        self._concurrency = max(1, n)
        logger.info(f"[JobQueue] Concurrency set to {self._concurrency}")
        self._drain()

    def stop(self) -> None:
        """Stop dequeuing (running jobs continue to completion)."""
        self._stopped = True
        logger.info("[JobQueue] Stopped")

    def start(self) -> None:
        """Resume dequeuing and drain immediately."""
        if self._closed:
            logger.warning("[JobQueue] start() ignored: queue is shut down")
            return
        self._stopped = False
        logger.info("[JobQueue] Started")
        self._drain()

    def push(self, job_fn: JobFn) -> "asyncio.Future[Any]":
        """
        Enqueue a job.

        Must be called from within the running event loop.

        Args:
            job_fn: Zero-argument callable returning an awaitable (or a value)

        Returns:
            Future resolving with the job's result or raising its exception
        """
        loop = asyncio.get_running_loop()
        future: "asyncio.Future[Any]" = loop.create_future()

        if self._closed:
            future.set_exception(QueueShutdownError())
            return future

        self._pending.append(_QueueItem(job_fn=job_fn, future=future))
        self._drain()
        return future

    def snapshot(self) -> Dict[str, Any]:
        """Queue status for display."""
        return {
            "concurrency": self._concurrency,
            "running": self._running_count,
            "queued": len(self._pending),
            "stopped": self._stopped,
        }

    async def shutdown(self) -> None:
        """
        Stop the queue for good.

        Pending handles fail with QueueShutdownError; in-flight jobs are
        awaited, not cancelled.
        """
        self._stopped = True
        self._closed = True

        abandoned = 0
        while self._pending:
            item = self._pending.popleft()
            if not item.future.done():
                item.future.set_exception(QueueShutdownError())
                abandoned += 1

        if abandoned:
            logger.warning(f"[JobQueue] Shutdown abandoned {abandoned} pending job(s)")

        if self._active:
            await asyncio.gather(*list(self._active), return_exceptions=True)
        logger.info("[JobQueue] Shut down")

    def _drain(self) -> None:
        if self._stopped:
            return

        while self._running_count < self._concurrency and self._pending:
            item = self._pending.popleft()
            if item.future.cancelled():
                # Caller abandoned the handle before it started
                continue

            self._running_count += 1
            logger.debug(
                f"[JobQueue] Job started, running: {self._running_count}/{self._concurrency}"
            )
            task = asyncio.get_running_loop().create_task(self._run(item))
            self._active.add(task)
            task.add_done_callback(self._active.discard)

    async def _run(self, item: _QueueItem) -> None:
        try:
            result = item.job_fn()
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            if not item.future.done():
                item.future.set_exception(e)
        else:
            if not item.future.done():
                item.future.set_result(result)
        finally:
            if not item.future.done():
                # Cancelled mid-run: release whoever awaits the handle
                item.future.cancel()
            self._running_count -= 1
            logger.debug(
                f"[JobQueue] Job settled, running: {self._running_count}/{self._concurrency}"
            )
            self._drain()
