"""Pull-Request Issuer capability and its GitHub implementation.

Includes rate limiting and retry logic for API resilience.
"""

from src.pipeweaver.github.base import PullRequestIssuer
from src.pipeweaver.github.client import (
    GitHubAPIError,
    GitHubClient,
    RateLimitError,
)
from src.pipeweaver.github.models import (
    DEFAULT_PR_BODY,
    DEFAULT_PR_TITLE,
    PRCreateRequest,
    PullRequestHandle,
)

__all__ = [
    "DEFAULT_PR_BODY",
    "DEFAULT_PR_TITLE",
    "GitHubAPIError",
    "GitHubClient",
    "PRCreateRequest",
    "PullRequestHandle",
    "PullRequestIssuer",
    "RateLimitError",
]
