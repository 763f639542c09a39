"""Property-based tests for the bounded ingestion queue."""

import asyncio

from hypothesis import given, settings, strategies as st

from src.pipeweaver.ingestion.queue import EnqueueResult, IngestionQueue
from src.pipeweaver.webhook.models import RepositoryRef, TriggerEvent


def run_async(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


def make_event(n: int) -> TriggerEvent:
    return TriggerEvent(
        ref="refs/heads/main",
        repository=RepositoryRef(owner="acme", name="pipelines"),
        after=f"sha{n}",
    )


@settings(max_examples=40, deadline=None)
@given(capacity=st.integers(min_value=1, max_value=20), offered=st.integers(min_value=0, max_value=40))
def test_accepts_exactly_up_to_capacity(capacity, offered):
    async def scenario():
        queue = IngestionQueue(handler=lambda event: asyncio.sleep(0), capacity=capacity)
        return [queue.enqueue(make_event(i)) for i in range(offered)], queue.pending

    results, pending = run_async(scenario())

    accepted = results.count(EnqueueResult.ACCEPTED)
    assert accepted == min(capacity, offered)
    assert pending == accepted
    # Once full, every further offer is rejected.
    assert results == [EnqueueResult.ACCEPTED] * accepted + [EnqueueResult.REJECTED] * (offered - accepted)


@settings(max_examples=25, deadline=None)
@given(count=st.integers(min_value=0, max_value=15))
def test_every_accepted_event_is_handled_once_in_order(count):
    async def scenario():
        seen = []

        async def handler(event):
            seen.append(event.after)
            await asyncio.sleep(0)

        queue = IngestionQueue(handler=handler, capacity=count + 1)
        queue.start()
        for i in range(count):
            queue.enqueue(make_event(i))
        while len(seen) < count:
            await asyncio.sleep(0.001)
        dropped = await queue.stop(timeout=1)
        return seen, dropped

    seen, dropped = run_async(scenario())
    assert seen == [f"sha{i}" for i in range(count)]
    assert dropped == 0
