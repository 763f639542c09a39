"""Property-based tests for the workflow state machine."""

import pytest
from hypothesis import given, strategies as st

from src.pipeweaver.webhook.models import RepositoryRef, TriggerEvent
from src.pipeweaver.workflow.state import (
    VALID_TRANSITIONS,
    InvalidTransitionError,
    WorkflowOutcome,
    WorkflowStage,
    WorkflowState,
    is_terminal_stage,
    is_valid_transition,
)

EVENT = TriggerEvent(
    ref="refs/heads/main",
    repository=RepositoryRef(owner="acme", name="pipelines"),
)

stages = st.sampled_from(list(WorkflowStage))


@st.composite
def valid_paths(draw):
    """A walk through VALID_TRANSITIONS starting at START."""
    path = []
    current = WorkflowStage.START
    for _ in range(draw(st.integers(min_value=0, max_value=8))):
        options = VALID_TRANSITIONS[current]
        if not options:
            break
        current = draw(st.sampled_from(options))
        path.append(current)
    return path


@given(from_stage=stages, to_stage=stages)
def test_transition_accepts_exactly_the_table(from_stage, to_stage):
    state = WorkflowState(event=EVENT, stage=from_stage)

    if is_valid_transition(from_stage, to_stage):
        record = state.transition(to_stage)
        assert state.stage == to_stage
        assert record.from_stage == from_stage
    else:
        with pytest.raises(InvalidTransitionError):
            state.transition(to_stage)
        assert state.stage == from_stage
        assert state.history == []


@given(path=valid_paths())
def test_history_records_every_step(path):
    state = WorkflowState(event=EVENT)
    for stage in path:
        state.transition(stage)

    assert [record.to_stage for record in state.history] == path
    assert [record.from_stage for record in state.history] == ([WorkflowStage.START] + path)[:-1]


@given(path=valid_paths())
def test_cleanup_is_reached_at_most_once(path):
    assert path.count(WorkflowStage.CLEANED_UP) <= 1


@given(path=valid_paths())
def test_branch_exists_only_between_creation_and_cleanup(path):
    state = WorkflowState(event=EVENT)
    for stage in path:
        state.transition(stage)

    created = WorkflowStage.BRANCH_CREATED in path
    cleaned = WorkflowStage.CLEANED_UP in path
    assert state.branch_exists == (created and not cleaned)


def test_terminal_stages():
    assert is_terminal_stage(WorkflowStage.CLEANED_UP)
    assert is_terminal_stage(WorkflowStage.SKIPPED)
    assert not is_terminal_stage(WorkflowStage.START)


def test_files_written_requires_branch():
    assert not is_valid_transition(WorkflowStage.START, WorkflowStage.FILES_WRITTEN)
    assert not is_valid_transition(WorkflowStage.BRANCH_CREATED, WorkflowStage.COMMITTED)


def test_finish_sets_outcome_and_duration():
    state = WorkflowState(event=EVENT)
    assert not state.is_finished
    assert state.duration_seconds is None

    state.finish(WorkflowOutcome.FAILED, error="create_branch: boom")

    assert state.is_finished
    assert state.error == "create_branch: boom"
    assert state.duration_seconds >= 0
