"""Workflow orchestrator turning one push into one pull request.

Drives a TriggerEvent through the branch lifecycle:
filter → create branch → generate artifacts → commit/push → open PR
→ cleanup.

Each stage is a separate method. Collaborator failures while creating
the branch, committing or opening the pull request abort the workflow;
failures for a single definition file only skip that file. Once the
working branch exists, cleanup (switch back to the default branch, then
delete the working branch) runs exactly once whatever happens.

process() never raises for workflow failures: the terminal
WorkflowState is returned and every step is reported through the
injected EventEmitter.
"""

import logging
from typing import Any, Callable, List, Optional

from pydantic import BaseModel

from src.pipeweaver.definitions.parser import parse_definition
from src.pipeweaver.errors import CollaboratorFailure, ParseFailure, TemplateFailure
from src.pipeweaver.events.emitter import EventEmitter, NullEventEmitter
from src.pipeweaver.events.models import EventType, WorkflowEvent
from src.pipeweaver.generator.generator import ArtifactGenerator
from src.pipeweaver.github.base import PullRequestIssuer
from src.pipeweaver.github.models import DEFAULT_PR_BODY, DEFAULT_PR_TITLE
from src.pipeweaver.repository.base import VersionedTree, VersionedTreeError
from src.pipeweaver.webhook.models import BRANCH_REF_PREFIX, TriggerEvent
from src.pipeweaver.workflow.branches import BRANCH_PREFIX, generate_branch_name
from src.pipeweaver.workflow.paths import (
    DEFAULT_DEFINITIONS_ROOT,
    DEFAULT_OUTPUT_ROOT,
    artifact_path_for,
    definition_paths,
)
from src.pipeweaver.workflow.state import WorkflowOutcome, WorkflowStage, WorkflowState

COMMIT_MESSAGE = "Automated DAG Generation"


class WorkflowConfig(BaseModel):
    """Static settings for the workflow.

    Attributes:
        default_branch: Branch whose pushes trigger generation and that
            pull requests target.
        definitions_root: Repository prefix of pipeline definitions.
        output_root: Repository prefix generated DAGs are written under.
        branch_prefix: Prefix of working branch names.
        commit_message: Message of the generated commit.
        pr_title: Title of the generated pull request.
        pr_body: Body of the generated pull request.
        github_token: Token handed to the pull-request issuer.
        repository: "owner/name" of the repository the checkout tracks;
            pushes to any other repository are skipped. Empty disables
            the check.
    """

    default_branch: str = "main"
    definitions_root: str = DEFAULT_DEFINITIONS_ROOT
    output_root: str = DEFAULT_OUTPUT_ROOT
    branch_prefix: str = BRANCH_PREFIX
    commit_message: str = COMMIT_MESSAGE
    pr_title: str = DEFAULT_PR_TITLE
    pr_body: str = DEFAULT_PR_BODY
    github_token: str = ""
    repository: str = ""

    @property
    def default_ref(self) -> str:
        return f"{BRANCH_REF_PREFIX}{self.default_branch}"


class WorkflowOrchestrator:
    """Processes trigger events one at a time against a single working tree.

    The orchestrator holds no per-event state between calls; everything
    about one event lives in the WorkflowState returned by process().
    It must only be driven by one task at a time, which the ingestion
    queue's single consumer guarantees.

    Attributes:
        tree: The working checkout mutated by the workflow.
        generator: Renders definitions into DAG source.
        pr_issuer: Opens the pull request.
        config: Static workflow settings.
        event_emitter: Receives a WorkflowEvent for every step.
    """

    def __init__(
        self,
        tree: VersionedTree,
        generator: ArtifactGenerator,
        pr_issuer: PullRequestIssuer,
        config: Optional[WorkflowConfig] = None,
        event_emitter: Optional[EventEmitter] = None,
        branch_namer: Optional[Callable[[], str]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.tree = tree
        self.generator = generator
        self.pr_issuer = pr_issuer
        self.config = config or WorkflowConfig()
        self.event_emitter = event_emitter or NullEventEmitter()
        self._branch_namer = branch_namer or (
            lambda: generate_branch_name(prefix=self.config.branch_prefix)
        )
        self._logger = logger or logging.getLogger(__name__)

    async def process(self, event: TriggerEvent) -> WorkflowState:
        """Run the full workflow for one trigger event.

        Args:
            event: The dequeued trigger event.

        Returns:
            The terminal WorkflowState; its outcome is always set.
        """
        state = WorkflowState(event=event)

        self._logger.info(
            "Starting workflow",
            extra={
                "event_id": event.event_id,
                "ref": event.ref,
                "repository": event.full_repository,
            },
        )

        try:
            await self._run(state)
        except Exception as exc:
            self._logger.exception(
                "Unexpected error in workflow",
                extra={"event_id": event.event_id, "stage": state.stage.value},
            )
            if not state.is_finished:
                await self._abort(state, "unexpected", exc)

        return state

    async def _run(self, state: WorkflowState) -> None:
        paths = self._select_definition_paths(state.event)
        if not paths:
            await self._transition(state, WorkflowStage.SKIPPED)
            await self._finish(state, WorkflowOutcome.SKIPPED)
            return

        if not await self._create_branch(state):
            return

        for path in paths:
            await self._generate_artifact(state, path)

        if not state.artifacts:
            self._logger.info(
                "No artifacts generated, nothing to commit",
                extra={
                    "event_id": state.event.event_id,
                    "failed_files": len(state.failed_files),
                },
            )
            await self._cleanup(state)
            await self._finish(state, WorkflowOutcome.NO_CHANGES)
            return

        await self._transition(
            state, WorkflowStage.FILES_WRITTEN, artifacts=len(state.artifacts)
        )

        if not await self._commit_and_push(state):
            return

        if not await self._open_pull_request(state):
            return

        await self._cleanup(state)
        await self._finish(state, WorkflowOutcome.SUCCEEDED)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _select_definition_paths(self, event: TriggerEvent) -> List[str]:
        """Definition paths to process, or [] when the event is filtered out."""
        expected = self.config.repository
        if expected and event.full_repository.lower() != expected.lower():
            self._logger.warning(
                "Skipping push to a repository other than the configured one",
                extra={
                    "event_id": event.event_id,
                    "repository": event.full_repository,
                    "expected_repository": expected,
                },
            )
            return []

        if event.ref != self.config.default_ref:
            self._logger.info(
                "Skipping push to non-default ref",
                extra={"event_id": event.event_id, "ref": event.ref},
            )
            return []

        paths = definition_paths(event.modified_files, self.config.definitions_root)
        if not paths:
            self._logger.info(
                "Skipping push without definition changes",
                extra={
                    "event_id": event.event_id,
                    "modified_files": len(event.modified_files),
                },
            )
        return paths

    async def _create_branch(self, state: WorkflowState) -> bool:
        """Create and check out the working branch.

        Returns:
            True if the workflow should continue.
        """
        branch = self._branch_namer()
        state.branch_name = branch

        try:
            await self.tree.create_branch(branch)
        except CollaboratorFailure as exc:
            # Nothing was created, so there is nothing to clean up.
            await self._fail(state, "create_branch", exc)
            return False

        await self._transition(state, WorkflowStage.BRANCH_CREATED, branch=branch)

        try:
            await self.tree.switch_branch(branch)
        except CollaboratorFailure as exc:
            await self._abort(state, "switch_branch", exc)
            return False

        self._logger.info(
            "Working branch ready",
            extra={"event_id": state.event.event_id, "branch": branch},
        )
        return True

    async def _generate_artifact(self, state: WorkflowState, path: str) -> None:
        """Read, parse, render and write one definition.

        Failures are recorded in state.failed_files and the file is skipped.
        """
        target_path = artifact_path_for(
            path, self.config.definitions_root, self.config.output_root
        )

        try:
            content = await self.tree.read_file(path)
            definition = parse_definition(content, source_path=path)
            artifact = self.generator.generate(definition, target_path, source_path=path)
            await self.tree.write_file(artifact.target_path, artifact.content)
        except (ParseFailure, TemplateFailure, VersionedTreeError) as exc:
            state.failed_files[path] = str(exc)
            self._logger.warning(
                "Skipping definition that failed to generate",
                extra={
                    "event_id": state.event.event_id,
                    "path": path,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
            await self._emit(
                state,
                EventType.FILE_FAILED,
                path=path,
                error_type=type(exc).__name__,
                error_message=str(exc),
            )
            return

        state.artifacts.append(artifact.target_path)
        self._logger.info(
            "Artifact written",
            extra={
                "event_id": state.event.event_id,
                "path": path,
                "target_path": artifact.target_path,
            },
        )

    async def _commit_and_push(self, state: WorkflowState) -> bool:
        try:
            await self.tree.commit_and_push(self.config.commit_message)
        except CollaboratorFailure as exc:
            await self._abort(state, "commit_and_push", exc)
            return False

        await self._transition(state, WorkflowStage.COMMITTED)
        return True

    async def _open_pull_request(self, state: WorkflowState) -> bool:
        repository = state.event.repository
        try:
            handle = await self.pr_issuer.create_pull_request(
                owner=repository.owner,
                repo=repository.name,
                title=self.config.pr_title,
                head_branch=state.branch_name,
                base_branch=self.config.default_branch,
                body=self.config.pr_body,
                token=self.config.github_token,
            )
        except CollaboratorFailure as exc:
            await self._abort(state, "create_pull_request", exc)
            return False

        state.pull_request = handle
        await self._transition(
            state,
            WorkflowStage.PR_REQUESTED,
            pr_number=handle.number,
            pr_url=handle.html_url,
        )
        return True

    async def _cleanup(self, state: WorkflowState) -> None:
        """Return to the default branch and delete the working branch.

        Both steps are best-effort; failures are logged and never change
        the outcome being reported.
        """
        if not state.branch_exists:
            return

        extra = {"event_id": state.event.event_id, "branch": state.branch_name}
        try:
            await self.tree.switch_to_default()
        except Exception:
            self._logger.exception("Failed to switch back to default branch", extra=extra)

        try:
            await self.tree.delete_branch(state.branch_name)
        except Exception:
            self._logger.exception("Failed to delete working branch", extra=extra)

        await self._transition(state, WorkflowStage.CLEANED_UP)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _abort(self, state: WorkflowState, operation: str, exc: Exception) -> None:
        """Clean up, then finish as FAILED."""
        await self._cleanup(state)
        await self._fail(state, operation, exc)

    async def _fail(self, state: WorkflowState, operation: str, exc: Exception) -> None:
        error_message = f"{operation}: {exc}"
        self._logger.error(
            "Workflow failed",
            extra={
                "event_id": state.event.event_id,
                "operation": operation,
                "error_type": type(exc).__name__,
                "error": str(exc),
            },
        )
        await self._emit(
            state,
            EventType.ERROR,
            stage=state.stage.value,
            operation=operation,
            error_type=type(exc).__name__,
            error_message=str(exc),
        )
        await self._finish(state, WorkflowOutcome.FAILED, error=error_message)

    async def _finish(
        self,
        state: WorkflowState,
        outcome: WorkflowOutcome,
        error: Optional[str] = None,
    ) -> None:
        state.finish(outcome, error=error)
        self._logger.info(
            "Workflow finished",
            extra={
                "event_id": state.event.event_id,
                "outcome": outcome.value,
                "artifacts": len(state.artifacts),
                "failed_files": len(state.failed_files),
            },
        )
        await self._emit(
            state,
            EventType.COMPLETION,
            outcome=outcome.value,
            duration_seconds=state.duration_seconds,
            artifacts=len(state.artifacts),
            failed_files=len(state.failed_files),
            pr_number=state.pull_request.number if state.pull_request else None,
        )

    async def _transition(
        self,
        state: WorkflowState,
        to_stage: WorkflowStage,
        **details: Any,
    ) -> None:
        """Transition state and emit a state-transition event."""
        record = state.transition(to_stage, **details)
        await self._emit(
            state,
            EventType.STATE_TRANSITION,
            from_stage=record.from_stage.value,
            to_stage=record.to_stage.value,
            **details,
        )

    async def _emit(self, state: WorkflowState, event_type: EventType, **details: Any) -> None:
        await self._safe_emit(
            WorkflowEvent(
                event_type=event_type,
                event_id=state.event.event_id,
                repository=state.event.full_repository,
                branch=state.branch_name,
                details=details,
            )
        )

    async def _safe_emit(self, event: WorkflowEvent) -> None:
        """Emit an event, swallowing exceptions to avoid disrupting the workflow."""
        try:
            await self.event_emitter.emit(event)
        except Exception:
            self._logger.exception(
                "Failed to emit workflow event",
                extra={
                    "event_type": event.event_type.value,
                    "event_id": event.event_id,
                },
            )
