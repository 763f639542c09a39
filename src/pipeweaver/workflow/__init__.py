"""Workflow orchestration: one push in, at most one pull request out.

This module provides:
- WorkflowOrchestrator: drives the branch lifecycle for one event
- WorkflowState and its stage/outcome enums
- Branch naming and definition/artifact path mapping
"""

from src.pipeweaver.workflow.branches import BRANCH_PREFIX, generate_branch_name
from src.pipeweaver.workflow.orchestrator import (
    COMMIT_MESSAGE,
    WorkflowConfig,
    WorkflowOrchestrator,
)
from src.pipeweaver.workflow.paths import artifact_path_for, definition_paths, is_definition_path
from src.pipeweaver.workflow.state import (
    VALID_TRANSITIONS,
    InvalidTransitionError,
    StageTransition,
    WorkflowOutcome,
    WorkflowStage,
    WorkflowState,
    is_terminal_stage,
    is_valid_transition,
)

__all__ = [
    "BRANCH_PREFIX",
    "COMMIT_MESSAGE",
    "InvalidTransitionError",
    "StageTransition",
    "VALID_TRANSITIONS",
    "WorkflowConfig",
    "WorkflowOrchestrator",
    "WorkflowOutcome",
    "WorkflowStage",
    "WorkflowState",
    "artifact_path_for",
    "definition_paths",
    "generate_branch_name",
    "is_definition_path",
    "is_terminal_stage",
    "is_valid_transition",
]
