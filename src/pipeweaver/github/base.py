"""Pull-Request Issuer capability."""

from typing import Protocol, runtime_checkable

from src.pipeweaver.github.models import PullRequestHandle


@runtime_checkable
class PullRequestIssuer(Protocol):
    """Protocol for opening pull requests on a hosting service.

    Implementations raise a CollaboratorFailure when the pull request
    cannot be opened.
    """

    async def create_pull_request(
        self,
        owner: str,
        repo: str,
        title: str,
        head_branch: str,
        base_branch: str,
        body: str,
        token: str,
    ) -> PullRequestHandle:
        ...
