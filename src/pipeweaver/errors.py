"""Error taxonomy for the Pipeweaver service.

Every exception raised by Pipeweaver components derives from
PipeweaverError so the orchestrator can tell expected workflow failures
apart from programming errors:

- CollaboratorFailure: the Versioned Tree or the Pull-Request Issuer failed
- ParseFailure: a pipeline definition could not be parsed or validated
- TemplateFailure: a template is missing, malformed or failed to render
- QueueSaturated: the ingestion queue rejected an event

An intentionally skipped event is not an error; it is reported as the
SKIPPED workflow outcome instead.
"""

from typing import Optional


class PipeweaverError(Exception):
    """Base class for all Pipeweaver errors."""

    pass


class CollaboratorFailure(PipeweaverError):
    """Raised when an external collaborator call fails.

    Attributes:
        operation: Name of the collaborator operation that failed.
    """

    def __init__(self, message: str, operation: Optional[str] = None):
        self.operation = operation
        super().__init__(message)


class ParseFailure(PipeweaverError):
    """Raised when a pipeline definition is malformed.

    Attributes:
        source_path: Repository path of the offending definition, if known.
    """

    def __init__(self, message: str, source_path: Optional[str] = None):
        self.source_path = source_path
        super().__init__(message)


class TemplateFailure(PipeweaverError):
    """Raised when template lookup or rendering fails."""

    pass


class QueueSaturated(PipeweaverError):
    """Raised when the ingestion queue is full and rejects an event.

    Attributes:
        capacity: The fixed capacity of the queue.
    """

    def __init__(self, capacity: int):
        self.capacity = capacity
        super().__init__(
            f"Ingestion queue is full ({capacity} pending events); retry later"
        )
