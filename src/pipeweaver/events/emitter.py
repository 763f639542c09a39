"""Event emitter implementations for workflow observability.

- EventEmitter: abstract sink interface
- LoggingEventEmitter: writes events as structured log entries
- CompositeEventEmitter: fans out to several sinks
- NullEventEmitter: discards events

MetricsEventEmitter lives in metrics.py next to the metrics it updates.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from src.pipeweaver.events.models import EventType, WorkflowEvent


class EventEmitter(ABC):
    """Abstract base class for workflow event emitters.

    emit() is awaited from the consumer task, so implementations must not
    block and should not raise; the orchestrator logs and discards any
    exception that escapes.
    """

    @abstractmethod
    async def emit(self, event: WorkflowEvent) -> None:
        """Publish an event to the sink."""
        pass

    async def close(self) -> None:
        """Release sink resources. The default implementation does nothing."""
        pass


class LoggingEventEmitter(EventEmitter):
    """Event emitter that logs events with their fields as extra context.

    Log levels by event type:
    - STATE_TRANSITION, COMPLETION: INFO
    - FILE_FAILED: WARNING
    - ERROR: ERROR
    """

    _LOG_LEVELS = {
        EventType.STATE_TRANSITION: logging.INFO,
        EventType.COMPLETION: logging.INFO,
        EventType.FILE_FAILED: logging.WARNING,
        EventType.ERROR: logging.ERROR,
    }

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger(__name__)

    async def emit(self, event: WorkflowEvent) -> None:
        self._logger.log(
            self._LOG_LEVELS.get(event.event_type, logging.INFO),
            "Workflow event: %s for %s",
            event.event_type.value,
            event.event_id,
            extra=event.to_log_dict(),
        )


class CompositeEventEmitter(EventEmitter):
    """Fans each event out to a list of child emitters.

    A failing child does not prevent delivery to the others.

    Attributes:
        emitters: Child emitters, called in order.
    """

    def __init__(
        self,
        emitters: Optional[List[EventEmitter]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._emitters: List[EventEmitter] = list(emitters or [])
        self._logger = logger or logging.getLogger(__name__)

    def add_emitter(self, emitter: EventEmitter) -> None:
        self._emitters.append(emitter)

    @property
    def emitters(self) -> List[EventEmitter]:
        return list(self._emitters)

    async def emit(self, event: WorkflowEvent) -> None:
        for emitter in self._emitters:
            try:
                await emitter.emit(event)
            except Exception as e:
                self._logger.error(
                    "Emitter %s dropped event: %s",
                    type(emitter).__name__,
                    str(e),
                    extra={
                        "emitter_type": type(emitter).__name__,
                        "event_type": event.event_type.value,
                        "event_id": event.event_id,
                    },
                )

    async def close(self) -> None:
        for emitter in self._emitters:
            try:
                await emitter.close()
            except Exception as e:
                self._logger.error(
                    "Emitter %s raised on close: %s",
                    type(emitter).__name__,
                    str(e),
                )


class NullEventEmitter(EventEmitter):
    """Event emitter that discards all events."""

    async def emit(self, event: WorkflowEvent) -> None:
        pass
