"""Unit tests for the bounded ingestion queue."""

import asyncio
import threading

import pytest

from src.pipeweaver.errors import QueueSaturated
from src.pipeweaver.events.metrics import PipeweaverMetrics
from src.pipeweaver.ingestion.queue import (
    DEFAULT_QUEUE_CAPACITY,
    EnqueueResult,
    IngestionQueue,
)
from src.pipeweaver.webhook.models import RepositoryRef, TriggerEvent


def run_async(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def make_event(n: int) -> TriggerEvent:
    return TriggerEvent(
        ref="refs/heads/main",
        repository=RepositoryRef(owner="acme", name="pipelines"),
        modified_files=(f"pipelines/p{n}.yaml",),
        after=f"sha{n}",
    )


async def wait_until(predicate, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


class TestCapacity:

    def test_default_capacity_is_100(self):
        assert DEFAULT_QUEUE_CAPACITY == 100

    def test_rejects_the_101st_pending_event(self):
        async def scenario():
            queue = IngestionQueue(handler=lambda event: asyncio.sleep(0))
            results = [queue.enqueue(make_event(i)) for i in range(101)]
            return queue, results

        queue, results = run_async(scenario())

        assert results[:100] == [EnqueueResult.ACCEPTED] * 100
        assert results[100] == EnqueueResult.REJECTED
        assert queue.pending == 100

    def test_submit_raises_when_full(self):
        async def scenario():
            queue = IngestionQueue(handler=lambda event: asyncio.sleep(0), capacity=1)
            queue.submit(make_event(0))
            with pytest.raises(QueueSaturated) as exc_info:
                queue.submit(make_event(1))
            return exc_info.value

        error = run_async(scenario())
        assert error.capacity == 1

    @pytest.mark.parametrize("capacity", [0, -5])
    def test_invalid_capacity(self, capacity):
        with pytest.raises(ValueError):
            IngestionQueue(handler=lambda event: asyncio.sleep(0), capacity=capacity)


class TestConsumer:

    def test_processes_events_in_order(self):
        async def scenario():
            seen = []

            async def handler(event):
                seen.append(event.after)

            queue = IngestionQueue(handler=handler)
            queue.start()
            for i in range(5):
                queue.enqueue(make_event(i))
            await wait_until(lambda: len(seen) == 5)
            await queue.stop(timeout=1)
            return seen

        assert run_async(scenario()) == ["sha0", "sha1", "sha2", "sha3", "sha4"]

    def test_handlers_never_overlap(self):
        async def scenario():
            active = 0
            peak = 0
            done = []

            async def handler(event):
                nonlocal active, peak
                active += 1
                peak = max(peak, active)
                await asyncio.sleep(0.01)
                active -= 1
                done.append(event)

            queue = IngestionQueue(handler=handler)
            queue.start()
            for i in range(4):
                queue.enqueue(make_event(i))
            await wait_until(lambda: len(done) == 4)
            await queue.stop(timeout=1)
            return peak

        assert run_async(scenario()) == 1

    def test_handler_failure_does_not_stop_consumer(self):
        async def scenario():
            seen = []

            async def handler(event):
                seen.append(event.after)
                if event.after == "sha0":
                    raise RuntimeError("boom")

            queue = IngestionQueue(handler=handler)
            queue.start()
            queue.enqueue(make_event(0))
            queue.enqueue(make_event(1))
            await wait_until(lambda: len(seen) == 2)
            running = queue.is_running
            await queue.stop(timeout=1)
            return seen, running

        seen, running = run_async(scenario())
        assert seen == ["sha0", "sha1"]
        assert running

    def test_start_twice_fails(self):
        async def scenario():
            queue = IngestionQueue(handler=lambda event: asyncio.sleep(0))
            queue.start()
            try:
                with pytest.raises(RuntimeError):
                    queue.start()
            finally:
                await queue.stop()

        run_async(scenario())


class TestStop:

    def test_idle_stop(self):
        async def scenario():
            queue = IngestionQueue(handler=lambda event: asyncio.sleep(0))
            queue.start()
            await asyncio.sleep(0)
            dropped = await queue.stop(timeout=1)
            return queue, dropped

        queue, dropped = run_async(scenario())
        assert dropped == 0
        assert not queue.is_running
        assert not queue.is_accepting

    def test_rejects_after_stop(self):
        async def scenario():
            queue = IngestionQueue(handler=lambda event: asyncio.sleep(0))
            queue.start()
            await queue.stop()
            return queue.enqueue(make_event(0))

        assert run_async(scenario()) == EnqueueResult.REJECTED

    def test_in_flight_event_finishes_and_queued_events_are_dropped(self):
        async def scenario():
            release = asyncio.Event()
            finished = []

            async def handler(event):
                await release.wait()
                finished.append(event.after)

            queue = IngestionQueue(handler=handler)
            queue.start()
            for i in range(3):
                queue.enqueue(make_event(i))
            await wait_until(lambda: queue.in_flight is not None)

            stop_task = asyncio.create_task(queue.stop(timeout=2))
            await asyncio.sleep(0.01)
            release.set()
            dropped = await stop_task
            return finished, dropped

        finished, dropped = run_async(scenario())
        assert finished == ["sha0"]
        assert dropped == 2

    def test_timeout_cancels_in_flight_event(self):
        async def scenario():
            cancelled = []

            async def handler(event):
                try:
                    await asyncio.sleep(10)
                except asyncio.CancelledError:
                    cancelled.append(event.after)
                    raise

            queue = IngestionQueue(handler=handler)
            queue.start()
            queue.enqueue(make_event(0))
            await wait_until(lambda: queue.in_flight is not None)
            dropped = await queue.stop(timeout=0.05)
            return queue, cancelled, dropped

        queue, cancelled, dropped = run_async(scenario())
        assert cancelled == ["sha0"]
        assert dropped == 0
        assert not queue.is_running
        assert queue.in_flight is None

    def test_start_after_stop_fails(self):
        async def scenario():
            queue = IngestionQueue(handler=lambda event: asyncio.sleep(0))
            queue.start()
            await queue.stop()
            with pytest.raises(RuntimeError):
                queue.start()

        run_async(scenario())


class TestThreadsafeEnqueue:

    def test_requires_start(self):
        queue = IngestionQueue(handler=lambda event: asyncio.sleep(0))
        with pytest.raises(RuntimeError):
            queue.enqueue_threadsafe(make_event(0))

    def test_enqueue_from_worker_thread(self):
        async def scenario():
            seen = []

            async def handler(event):
                seen.append(event.after)

            queue = IngestionQueue(handler=handler)
            queue.start()
            results = []
            thread = threading.Thread(
                target=lambda: results.append(queue.enqueue_threadsafe(make_event(7), timeout=2))
            )
            thread.start()
            await wait_until(lambda: seen == ["sha7"])
            await asyncio.get_running_loop().run_in_executor(None, thread.join)
            await queue.stop(timeout=1)
            return results

        assert run_async(scenario()) == [EnqueueResult.ACCEPTED]


class TestMetrics:

    def test_enqueue_results_and_depth_are_recorded(self):
        metrics = PipeweaverMetrics()

        async def scenario():
            queue = IngestionQueue(
                handler=lambda event: asyncio.sleep(0), capacity=2, metrics=metrics
            )
            for i in range(3):
                queue.enqueue(make_event(i))

        run_async(scenario())

        registry = metrics.registry
        assert registry.get_sample_value("pipeweaver_enqueue_total", {"result": "accepted"}) == 2
        assert registry.get_sample_value("pipeweaver_enqueue_total", {"result": "rejected"}) == 1
        assert registry.get_sample_value("pipeweaver_queue_depth") == 2
