"""Bounded ingestion queue with a single consumer task.

Decouples webhook delivery from workflow processing:

- Producers call enqueue() (or submit()) from request handlers. It never
  blocks: when capacity events are already pending the event is rejected
  and the producer is told so; an accepted event is never dropped
  silently.
- Exactly one consumer task dequeues events in order and awaits the
  handler for each before taking the next. That task is the only writer
  of the working tree, so workflows never overlap.
- stop() lets the in-flight event finish (or cancels it once the timeout
  elapses) and drops whatever is still queued, logging the count.

Queued events live in memory only and are lost on restart.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from src.pipeweaver.errors import QueueSaturated
from src.pipeweaver.events.metrics import PipeweaverMetrics
from src.pipeweaver.webhook.models import TriggerEvent

DEFAULT_QUEUE_CAPACITY = 100

EventHandler = Callable[[TriggerEvent], Awaitable[Any]]


class EnqueueResult(str, Enum):
    """Result of offering an event to the queue."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"


class IngestionQueue:
    """FIFO queue of trigger events drained by one consumer task.

    Attributes:
        capacity: Maximum number of pending (not yet dequeued) events.

    Example:
        >>> queue = IngestionQueue(orchestrator.process)
        >>> queue.start()
        >>> queue.enqueue(event)
        <EnqueueResult.ACCEPTED: 'accepted'>
        >>> await queue.stop(timeout=30)
    """

    def __init__(
        self,
        handler: EventHandler,
        capacity: int = DEFAULT_QUEUE_CAPACITY,
        logger: Optional[logging.Logger] = None,
        metrics: Optional[PipeweaverMetrics] = None,
    ):
        if capacity < 1:
            raise ValueError(f"Queue capacity must be positive, got {capacity}")

        self.capacity = capacity
        self._handler = handler
        self._queue: "asyncio.Queue[TriggerEvent]" = asyncio.Queue(maxsize=capacity)
        self._logger = logger or logging.getLogger(__name__)
        self._metrics = metrics
        self._consumer: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._in_flight: Optional[TriggerEvent] = None
        self._stopping = False

    @property
    def pending(self) -> int:
        """Number of accepted events not yet dequeued."""
        return self._queue.qsize()

    @property
    def in_flight(self) -> Optional[TriggerEvent]:
        return self._in_flight

    @property
    def is_running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    @property
    def is_accepting(self) -> bool:
        return not self._stopping

    def enqueue(self, event: TriggerEvent) -> EnqueueResult:
        """Offer an event without blocking.

        Must be called from the event loop thread; see enqueue_threadsafe().

        Returns:
            ACCEPTED if the event was queued, REJECTED if the queue is full
            or has been stopped.
        """
        if self._stopping:
            self._logger.warning(
                "Rejecting event, queue is stopped",
                extra={"event_id": event.event_id},
            )
            self._record(EnqueueResult.REJECTED)
            return EnqueueResult.REJECTED

        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self._logger.warning(
                "Rejecting event, queue is full",
                extra={"event_id": event.event_id, "capacity": self.capacity},
            )
            self._record(EnqueueResult.REJECTED)
            return EnqueueResult.REJECTED

        self._logger.info(
            "Event enqueued",
            extra={"event_id": event.event_id, "pending": self.pending},
        )
        self._record(EnqueueResult.ACCEPTED)
        return EnqueueResult.ACCEPTED

    def submit(self, event: TriggerEvent) -> None:
        """Enqueue an event, raising when it is rejected.

        Raises:
            QueueSaturated: If the queue is full or stopped.
        """
        if self.enqueue(event) is EnqueueResult.REJECTED:
            raise QueueSaturated(self.capacity)

    def enqueue_threadsafe(
        self,
        event: TriggerEvent,
        timeout: Optional[float] = None,
    ) -> EnqueueResult:
        """Enqueue from a thread other than the event loop thread.

        Blocks the calling thread until the loop has processed the offer.
        Calling this from the loop thread itself would deadlock.

        Raises:
            RuntimeError: If the queue has not been started.
        """
        if self._loop is None:
            raise RuntimeError("IngestionQueue has not been started")

        async def _offer() -> EnqueueResult:
            return self.enqueue(event)

        future = asyncio.run_coroutine_threadsafe(_offer(), self._loop)
        return future.result(timeout)

    def start(self) -> None:
        """Spawn the consumer task on the running event loop.

        Raises:
            RuntimeError: If the consumer is already running or the queue
                has been stopped.
        """
        if self.is_running:
            raise RuntimeError("IngestionQueue consumer is already running")
        if self._stopping:
            raise RuntimeError("IngestionQueue has been stopped")

        self._loop = asyncio.get_running_loop()
        self._consumer = asyncio.create_task(self.run(), name="pipeweaver-ingestion-consumer")
        self._logger.info("Ingestion consumer started", extra={"capacity": self.capacity})

    async def run(self) -> None:
        """Consume events until stopped.

        Handler exceptions are logged and never end the loop.
        """
        while not self._stopping:
            event = await self._queue.get()
            self._in_flight = event
            self._set_depth()

            try:
                await self._handler(event)
            except Exception:
                self._logger.exception(
                    "Event handler failed",
                    extra={"event_id": event.event_id},
                )
            finally:
                self._in_flight = None
                self._queue.task_done()

    async def stop(self, timeout: Optional[float] = None) -> int:
        """Stop the consumer and reject further events.

        Args:
            timeout: Seconds to wait for the in-flight event before
                cancelling it. None waits indefinitely.

        Returns:
            Number of queued events that were dropped.
        """
        self._stopping = True
        consumer = self._consumer

        if consumer is not None and not consumer.done():
            if self._in_flight is None:
                # Idle in queue.get(); any event it was about to receive
                # stays in the queue and is counted as dropped below.
                consumer.cancel()

            done, _ = await asyncio.wait({consumer}, timeout=timeout)
            if not done:
                self._logger.warning(
                    "Abandoning in-flight event after timeout",
                    extra={
                        "event_id": self._in_flight.event_id if self._in_flight else None,
                        "timeout": timeout,
                    },
                )
                consumer.cancel()
                await asyncio.wait({consumer})

        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._queue.task_done()
            dropped += 1

        self._set_depth()
        if dropped:
            self._logger.warning("Dropped queued events on shutdown", extra={"dropped": dropped})
        self._logger.info("Ingestion consumer stopped")
        return dropped

    def _record(self, result: EnqueueResult) -> None:
        if self._metrics is not None:
            self._metrics.record_enqueue(result.value)
        self._set_depth()

    def _set_depth(self) -> None:
        if self._metrics is not None:
            self._metrics.set_queue_depth(self.pending)
