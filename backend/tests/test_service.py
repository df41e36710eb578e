"""Tests for the batch service wiring."""

import asyncio

from clipmill.config import Settings
from clipmill.execution.events import BatchEventType, EventRecorder
from clipmill.jobs.models import TaskStatus
from clipmill.service import BatchService


async def _ok(descriptor, on_log):
    await on_log("working\n")
    return f"/out/{descriptor.id}.mp4"


class TestBatchService:

    def test_queue_built_from_settings(self):
        service = BatchService(Settings(default_concurrency=3), execute_one=_ok)
        assert service.queue.concurrency == 3
        assert service.runner.retry_policy.max_attempts == 2

    def test_first_descriptor_concurrency_applied(self, make_descriptor):
        tasks = [make_descriptor(0, concurrency=5), make_descriptor(1, concurrency=2)]

        async def scenario():
            service = BatchService(Settings(default_concurrency=1), execute_one=_ok)
            aggregate = await service.run(tasks, EventRecorder())
            await service.shutdown()
            return service.queue.concurrency, aggregate

        concurrency, aggregate = asyncio.run(scenario())
        assert concurrency == 5
        assert aggregate.done == 2

    def test_zero_concurrency_hint_keeps_queue_setting(self, make_descriptor):
        async def scenario():
            service = BatchService(Settings(default_concurrency=2), execute_one=_ok)
            await service.run([make_descriptor()], EventRecorder())
            return service.queue.concurrency

        assert asyncio.run(scenario()) == 2

    def test_run_with_channel_delivers_all_events(self, make_descriptor):
        tasks = [make_descriptor(i) for i in range(3)]
        received = []

        async def scenario():
            service = BatchService(Settings(default_concurrency=2, event_buffer_size=1), execute_one=_ok)
            aggregate = await service.run_with_channel(tasks, received.append)
            await service.shutdown()
            return aggregate

        aggregate = asyncio.run(scenario())

        assert aggregate.done == 3
        assert received[0].type == BatchEventType.BATCH_START
        assert received[-1].type == BatchEventType.BATCH_FINISH
        assert len([e for e in received if e.type == BatchEventType.TASK_PROGRESS]) == 3
        assert all(t.status == TaskStatus.SUCCESS for t in tasks)

    def test_retry_policy_from_settings(self, make_descriptor):
        calls = []

        async def always_fails(descriptor, on_log):
            calls.append(descriptor.id)
            raise RuntimeError("nope")

        async def scenario():
            service = BatchService(Settings(max_attempts=3), execute_one=always_fails)
            return await service.run([make_descriptor()], EventRecorder())

        aggregate = asyncio.run(scenario())
        assert len(calls) == 3
        assert aggregate.failed == 1


class TestBatchConcurrency:

    def test_zero_hint_restores_configured_default(self, make_descriptor):
        async def scenario():
            service = BatchService(Settings(default_concurrency=4), execute_one=_ok)
            await service.run([make_descriptor(0, concurrency=2)], EventRecorder())
            after_hinted = service.queue.concurrency
            await service.run([make_descriptor(1)], EventRecorder())
            return after_hinted, service.queue.concurrency

        assert asyncio.run(scenario()) == (2, 4)

    def test_explicit_concurrency_beats_hint(self, make_descriptor):
        async def scenario():
            service = BatchService(
                Settings(default_concurrency=1), execute_one=_ok, concurrency=4
            )
            await service.run([make_descriptor(concurrency=2)], EventRecorder())
            return service.queue.concurrency

        assert asyncio.run(scenario()) == 4

    def test_batch_concurrency_order(self, make_descriptor):
        service = BatchService(Settings(default_concurrency=3), execute_one=_ok)
        assert service.batch_concurrency([]) == 3
        assert service.batch_concurrency([make_descriptor(concurrency=6)]) == 6
        service.concurrency = 2
        assert service.batch_concurrency([make_descriptor(concurrency=6)]) == 2
