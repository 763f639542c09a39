"""Pull request request/response models."""

from typing import Any, Dict

from pydantic import BaseModel, Field

DEFAULT_PR_TITLE = "Automated DAG Generation"
DEFAULT_PR_BODY = (
    "This pull request was automatically generated to add DAGs based on "
    "pipeline definitions."
)


class PRCreateRequest(BaseModel):
    """Pull request to open against a repository.

    Attributes:
        title: Pull request title.
        body: Pull request description in markdown.
        head_branch: Branch holding the changes.
        base_branch: Branch the changes are merged into.
    """

    title: str = Field(..., min_length=1)
    body: str = ""
    head_branch: str = Field(..., min_length=1)
    base_branch: str = Field(..., min_length=1)

    def to_payload(self) -> Dict[str, str]:
        return {
            "title": self.title,
            "body": self.body,
            "head": self.head_branch,
            "base": self.base_branch,
        }


class PullRequestHandle(BaseModel):
    """Identifies an opened pull request.

    Attributes:
        number: Pull request number within the repository.
        url: API URL of the pull request.
        html_url: Browser URL of the pull request.
    """

    number: int
    url: str = ""
    html_url: str = ""

    @classmethod
    def from_github_response(cls, data: Dict[str, Any]) -> "PullRequestHandle":
        return cls(
            number=data["number"],
            url=data.get("url", ""),
            html_url=data.get("html_url", ""),
        )
