"""Workflow state machine models.

This module defines the per-event state machine driven by the
orchestrator:
- WorkflowStage: Enum of all workflow stages
- WorkflowOutcome: Terminal result reported for an event
- StageTransition: Record of a stage transition with timestamp and details
- WorkflowState: Complete state of one event's workflow
- VALID_TRANSITIONS: Map defining allowed stage transitions

A WorkflowState lives for one trigger event only and is never persisted.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from src.pipeweaver.github.models import PullRequestHandle
from src.pipeweaver.webhook.models import TriggerEvent


class WorkflowStage(str, Enum):
    """Stages a trigger event progresses through.

    Stage Flow:
        start → branch_created → files_written → committed
        → pr_requested → cleaned_up

    start can also end in skipped when the event is filtered out. Every
    stage after start can jump straight to cleaned_up when the workflow
    fails or produces nothing to commit.

    Attributes:
        START: Event dequeued, nothing done yet.
        BRANCH_CREATED: Working branch exists in the checkout.
        FILES_WRITTEN: At least one generated artifact was written and staged.
        COMMITTED: Artifacts committed and pushed.
        PR_REQUESTED: Pull request opened.
        CLEANED_UP: Back on the default branch with the working branch deleted.
        SKIPPED: Event did not concern the default branch or any definition.
    """

    START = "start"
    BRANCH_CREATED = "branch_created"
    FILES_WRITTEN = "files_written"
    COMMITTED = "committed"
    PR_REQUESTED = "pr_requested"
    CLEANED_UP = "cleaned_up"
    SKIPPED = "skipped"


class WorkflowOutcome(str, Enum):
    """Terminal result of processing one event.

    Attributes:
        SUCCEEDED: A pull request was opened.
        FAILED: A collaborator or unexpected failure aborted the workflow.
        SKIPPED: The event was filtered out.
        NO_CHANGES: No definition produced an artifact; nothing was committed.
    """

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"
    NO_CHANGES = "no_changes"


VALID_TRANSITIONS: Dict[WorkflowStage, List[WorkflowStage]] = {
    WorkflowStage.START: [
        WorkflowStage.BRANCH_CREATED,
        WorkflowStage.SKIPPED,
    ],
    # Going straight to cleanup covers both failures and the
    # no-artifacts case.
    WorkflowStage.BRANCH_CREATED: [
        WorkflowStage.FILES_WRITTEN,
        WorkflowStage.CLEANED_UP,
    ],
    WorkflowStage.FILES_WRITTEN: [
        WorkflowStage.COMMITTED,
        WorkflowStage.CLEANED_UP,
    ],
    WorkflowStage.COMMITTED: [
        WorkflowStage.PR_REQUESTED,
        WorkflowStage.CLEANED_UP,
    ],
    WorkflowStage.PR_REQUESTED: [
        WorkflowStage.CLEANED_UP,
    ],
    WorkflowStage.CLEANED_UP: [],
    WorkflowStage.SKIPPED: [],
}


def is_valid_transition(from_stage: WorkflowStage, to_stage: WorkflowStage) -> bool:
    """Check if a stage transition is allowed by VALID_TRANSITIONS.

    Example:
        >>> is_valid_transition(WorkflowStage.START, WorkflowStage.BRANCH_CREATED)
        True
        >>> is_valid_transition(WorkflowStage.START, WorkflowStage.COMMITTED)
        False
    """
    return to_stage in VALID_TRANSITIONS.get(from_stage, [])


def is_terminal_stage(stage: WorkflowStage) -> bool:
    """Check if a stage has no outgoing transitions."""
    return len(VALID_TRANSITIONS.get(stage, [])) == 0


class InvalidTransitionError(Exception):
    """Raised when a transition violates VALID_TRANSITIONS.

    Attributes:
        from_stage: The current stage.
        to_stage: The attempted target stage.
    """

    def __init__(self, from_stage: WorkflowStage, to_stage: WorkflowStage):
        self.from_stage = from_stage
        self.to_stage = to_stage
        super().__init__(
            f"Invalid transition from {from_stage.value} to {to_stage.value}"
        )


class StageTransition(BaseModel):
    """Record of a stage transition.

    Attributes:
        from_stage: The stage before the transition.
        to_stage: The stage after the transition.
        timestamp: When the transition occurred (UTC).
        details: Optional metadata about the transition.
    """

    from_stage: WorkflowStage
    to_stage: WorkflowStage
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    details: Dict[str, Any] = Field(default_factory=dict)


class WorkflowState(BaseModel):
    """Complete state of one trigger event's workflow.

    Attributes:
        event: The trigger event being processed.
        branch_name: Working branch, once chosen.
        stage: The current stage.
        history: Ordered list of all stage transitions.
        artifacts: Target paths of artifacts written to the working tree.
        failed_files: Definition paths that were skipped, mapped to the error.
        pull_request: Handle of the opened pull request, if any.
        outcome: Terminal outcome, set once the workflow finishes.
        error: Error message when the outcome is FAILED.
        started_at: When processing started (UTC).
        finished_at: When the outcome was set (UTC).
    """

    event: TriggerEvent
    branch_name: Optional[str] = None
    stage: WorkflowStage = WorkflowStage.START
    history: List[StageTransition] = Field(default_factory=list)
    artifacts: List[str] = Field(default_factory=list)
    failed_files: Dict[str, str] = Field(default_factory=dict)
    pull_request: Optional[PullRequestHandle] = None
    outcome: Optional[WorkflowOutcome] = None
    error: Optional[str] = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    def transition(self, to_stage: WorkflowStage, **details: Any) -> StageTransition:
        """Move to to_stage and record the transition.

        Raises:
            InvalidTransitionError: If the transition is not allowed.
        """
        if not is_valid_transition(self.stage, to_stage):
            raise InvalidTransitionError(self.stage, to_stage)

        record = StageTransition(from_stage=self.stage, to_stage=to_stage, details=details)
        self.history.append(record)
        self.stage = to_stage
        return record

    def finish(self, outcome: WorkflowOutcome, error: Optional[str] = None) -> None:
        self.outcome = outcome
        self.error = error
        self.finished_at = datetime.now(timezone.utc)

    @property
    def is_finished(self) -> bool:
        return self.outcome is not None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def branch_exists(self) -> bool:
        """True from branch creation until cleanup has run."""
        return self.stage not in (
            WorkflowStage.START,
            WorkflowStage.SKIPPED,
            WorkflowStage.CLEANED_UP,
        )
