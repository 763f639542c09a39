"""Workflow event models for observability.

Events are emitted by the orchestrator for every stage transition, every
definition file that fails to generate, workflow completion and
unexpected errors. They are consumed by the emitters in emitter.py and
metrics.py.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Types of events emitted by the workflow orchestrator.

    Attributes:
        STATE_TRANSITION: Workflow moved from one stage to another.
        FILE_FAILED: A definition file was skipped because it failed to
            parse, render or be written.
        COMPLETION: Workflow reached a terminal outcome (any outcome).
        ERROR: A collaborator or unexpected failure aborted the workflow.
    """

    STATE_TRANSITION = "state_transition"
    FILE_FAILED = "file_failed"
    COMPLETION = "completion"
    ERROR = "error"


class WorkflowEvent(BaseModel):
    """Structured event emitted while processing one trigger event.

    Attributes:
        event_type: The category of event.
        event_id: Identifier of the trigger event (head commit id).
        repository: Full repository path in format "{owner}/{repo}".
        branch: Working branch name, once one has been chosen.
        timestamp: When the event occurred (UTC timezone).
        details: Additional context specific to the event type.

    Details Field Conventions:
        STATE_TRANSITION: from_stage, to_stage
        FILE_FAILED: path, error_type, error_message
        COMPLETION: outcome, duration_seconds, artifacts, failed_files
        ERROR: stage, error_type, error_message
    """

    event_type: EventType
    event_id: str = Field(..., min_length=1)
    repository: str = ""
    branch: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    details: Dict[str, Any] = Field(default_factory=dict)

    def to_log_dict(self) -> Dict[str, Any]:
        """Flatten the event for structured logging."""
        return {
            "event_type": self.event_type.value,
            "event_id": self.event_id,
            "repository": self.repository,
            "branch": self.branch,
            "timestamp": self.timestamp.isoformat(),
            **self.details,
        }
