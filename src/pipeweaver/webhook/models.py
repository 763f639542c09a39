"""Trigger event models decoded from Git push webhooks.

A TriggerEvent is immutable: it is created by the webhook boundary,
handed to the ingestion queue, and consumed exactly once by the
workflow orchestrator.
"""

from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

BRANCH_REF_PREFIX = "refs/heads/"


class RepositoryRef(BaseModel):
    """Repository the push was made to.

    Attributes:
        owner: Repository owner (user or organization).
        name: Repository name without owner prefix.
        clone_url: HTTPS clone URL, if the payload carried one.
    """

    model_config = ConfigDict(frozen=True)

    owner: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    clone_url: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class CommitInfo(BaseModel):
    """Head commit of a push."""

    model_config = ConfigDict(frozen=True)

    id: str = ""
    message: str = ""


class TriggerEvent(BaseModel):
    """A push to a branch of the definitions repository.

    Attributes:
        ref: Full Git ref that was pushed, e.g. "refs/heads/main".
        repository: Repository the push was made to.
        modified_files: Added or modified paths, ordered and de-duplicated.
        head_commit: The head commit of the push, if any.
        before: Commit SHA the ref pointed at before the push.
        after: Commit SHA the ref points at after the push.
    """

    model_config = ConfigDict(frozen=True)

    ref: str = Field(..., min_length=1)
    repository: RepositoryRef
    modified_files: Tuple[str, ...] = ()
    head_commit: Optional[CommitInfo] = None
    before: str = ""
    after: str = ""

    @property
    def event_id(self) -> str:
        """Identifier used to correlate logs and events for this push."""
        if self.head_commit is not None and self.head_commit.id:
            return self.head_commit.id
        return self.after or self.ref

    @property
    def full_repository(self) -> str:
        return self.repository.full_name

    @property
    def branch(self) -> Optional[str]:
        """Branch name for branch refs, None for tags and other refs."""
        if self.ref.startswith(BRANCH_REF_PREFIX):
            return self.ref[len(BRANCH_REF_PREFIX):]
        return None
