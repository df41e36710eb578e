"""
Tests for the bounded-concurrency FIFO job queue.

Jobs are plain coroutines coordinated with asyncio events; no FFmpeg.
"""

import asyncio

import pytest

from clipmill.execution.errors import QueueShutdownError
from clipmill.execution.queue import JobQueue


async def _settle():
    # Let created tasks start and finish their current step
    for _ in range(5):
        await asyncio.sleep(0)


class TestConcurrencyBound:

    def test_running_never_exceeds_limit(self):
        async def scenario():
            queue = JobQueue(concurrency=2)
            running = 0
            peak = 0

            async def job():
                nonlocal running, peak
                running += 1
                peak = max(peak, running)
                await asyncio.sleep(0.01)
                running -= 1

            await asyncio.gather(*(queue.push(job) for _ in range(8)))
            return peak, queue.running_count

        peak, running_after = asyncio.run(scenario())
        assert peak == 2
        assert running_after == 0

    def test_concurrency_clamped_to_one(self):
        assert JobQueue(concurrency=0).concurrency == 1
        assert JobQueue(concurrency=-5).concurrency == 1


class TestFifoOrder:

    def test_jobs_start_in_push_order(self):
        async def scenario():
            queue = JobQueue(concurrency=1)
            started = []

            def make(i):
                async def job():
                    started.append(i)
                    await asyncio.sleep(0)
                return job

            await asyncio.gather(*(queue.push(make(i)) for i in range(6)))
            return started

        assert asyncio.run(scenario()) == [0, 1, 2, 3, 4, 5]

    def test_handle_resolves_with_result(self):
        async def scenario():
            queue = JobQueue()

            async def job():
                return "done"

            return await queue.push(job)

        assert asyncio.run(scenario()) == "done"

    def test_sync_job_function(self):
        async def scenario():
            queue = JobQueue()
            return await queue.push(lambda: 42)

        assert asyncio.run(scenario()) == 42


class TestFailureIsolation:

    def test_failing_job_only_fails_its_handle(self):
        async def scenario():
            queue = JobQueue(concurrency=1)

            async def boom():
                raise RuntimeError("boom")

            async def ok():
                return "ok"

            return await asyncio.gather(
                queue.push(boom), queue.push(ok), return_exceptions=True
            ), queue.running_count

        (results, running) = asyncio.run(scenario())
        assert isinstance(results[0], RuntimeError)
        assert results[1] == "ok"
        assert running == 0

    def test_cancelled_job_settles_its_handle(self):
        async def scenario():
            queue = JobQueue(concurrency=1)

            async def cancelled():
                raise asyncio.CancelledError()

            async def ok():
                return "ok"

            results = await asyncio.wait_for(
                asyncio.gather(queue.push(cancelled), queue.push(ok), return_exceptions=True),
                timeout=5,
            )
            return results, queue.running_count

        (results, running) = asyncio.run(scenario())
        assert isinstance(results[0], asyncio.CancelledError)
        assert results[1] == "ok"
        assert running == 0


class TestStopStart:

    def test_stop_holds_pending_jobs(self):
        async def scenario():
            queue = JobQueue(concurrency=2)
            queue.stop()
            started = []

            async def job():
                started.append(1)

            handles = [queue.push(job) for _ in range(3)]
            await _settle()
            before = (len(started), queue.pending_count)

            queue.start()
            await asyncio.gather(*handles)
            return before, len(started)

        before, after = asyncio.run(scenario())
        assert before == (0, 3)
        assert after == 3

    def test_stop_does_not_cancel_running_jobs(self):
        async def scenario():
            queue = JobQueue(concurrency=1)
            release = asyncio.Event()

            async def job():
                await release.wait()
                return "finished"

            handle = queue.push(job)
            await _settle()
            queue.stop()
            release.set()
            return await handle

        assert asyncio.run(scenario()) == "finished"


class TestSetConcurrency:

    def test_raising_limit_starts_queued_jobs(self):
        async def scenario():
            queue = JobQueue(concurrency=1)
            release = asyncio.Event()

            async def job():
                await release.wait()

            handles = [queue.push(job) for _ in range(3)]
            await _settle()
            before = queue.running_count

            queue.set_concurrency(3)
            await _settle()
            after = queue.running_count

            release.set()
            await asyncio.gather(*handles)
            return before, after

        assert asyncio.run(scenario()) == (1, 3)

    def test_lowering_limit_lets_running_jobs_finish(self):
        async def scenario():
            queue = JobQueue(concurrency=3)
            release = asyncio.Event()

            async def job():
                await release.wait()

            handles = [queue.push(job) for _ in range(4)]
            await _settle()
            queue.set_concurrency(1)
            running_after_lower = queue.running_count

            release.set()
            await asyncio.gather(*handles)
            return running_after_lower, queue.snapshot()

        running_after_lower, snapshot = asyncio.run(scenario())
        assert running_after_lower == 3
        assert snapshot == {"concurrency": 1, "running": 0, "queued": 0, "stopped": False}


class TestShutdown:

    def test_pending_handles_fail(self):
        async def scenario():
            queue = JobQueue(concurrency=1)
            release = asyncio.Event()

            async def job():
                await release.wait()
                return "ran"

            first = queue.push(job)
            second = queue.push(job)
            await _settle()

            shutdown = asyncio.ensure_future(queue.shutdown())
            await _settle()
            release.set()
            await shutdown
            return await asyncio.gather(first, second, return_exceptions=True)

        first, second = asyncio.run(scenario())
        assert first == "ran"
        assert isinstance(second, QueueShutdownError)

    def test_push_after_shutdown_fails_immediately(self):
        async def scenario():
            queue = JobQueue()
            await queue.shutdown()
            queue.start()
            with pytest.raises(QueueShutdownError):
                await queue.push(lambda: None)
            return queue.is_closed

        assert asyncio.run(scenario()) is True
