"""Bounded ingestion queue and its single consumer."""

from src.pipeweaver.ingestion.queue import (
    DEFAULT_QUEUE_CAPACITY,
    EnqueueResult,
    IngestionQueue,
)

__all__ = [
    "DEFAULT_QUEUE_CAPACITY",
    "EnqueueResult",
    "IngestionQueue",
]
