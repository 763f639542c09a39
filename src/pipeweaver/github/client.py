"""GitHub REST client for opening pull requests.

Only the pulls endpoint is used. Transient failures (408, 5xx and
transport errors) are retried with capped exponential backoff and full
jitter; rate limiting is surfaced immediately as RateLimitError so the
caller can decide when to come back. Works against github.com and
GitHub Enterprise Server (``https://<host>/api/v3``).
"""

import asyncio
import logging
import random
import time
from typing import Any, Dict, Optional, Tuple

import httpx

from src.pipeweaver.errors import CollaboratorFailure
from src.pipeweaver.github.models import PRCreateRequest, PullRequestHandle

API_VERSION = "2022-11-28"
_LOGGED_BODY_LIMIT = 500


class GitHubAPIError(CollaboratorFailure):
    """A pull request call that GitHub rejected or that never got an answer.

    ``status_code`` and ``response_body`` are None when no response was
    received at all.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
        request_url: Optional[str] = None,
        operation: Optional[str] = "create_pull_request",
    ):
        super().__init__(message, operation=operation)
        self.message = message
        self.status_code = status_code
        self.response_body = response_body
        self.request_url = request_url


class RateLimitError(GitHubAPIError):
    """GitHub refused the call because the token's quota is spent.

    ``reset_at`` is the epoch second from X-RateLimit-Reset;
    ``retry_after`` prefers an explicit Retry-After over the reset time.
    """

    def __init__(
        self,
        message: str,
        reset_at: Optional[int] = None,
        retry_after: Optional[int] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.reset_at = reset_at
        self.retry_after = retry_after


def _int_header(headers: httpx.Headers, name: str) -> Optional[int]:
    raw = headers.get(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


class GitHubClient:
    """Opens pull requests through the GitHub REST API.

    The underlying httpx.AsyncClient is created lazily and can be released
    with ``close()`` or by using the client as an async context manager.
    A token passed per call wins over the one given at construction.

    Example:
        >>> async with GitHubClient(token="ghp_xxx") as github:
        ...     await github.create_pull_request(
        ...         "acme", "pipelines", "Automated DAG Generation",
        ...         "pipeline-update-Ab3dE", "main", "", token="ghp_xxx",
        ...     )
    """

    RETRYABLE_STATUS_CODES = frozenset({408, 500, 502, 503, 504})

    def __init__(
        self,
        token: str = "",
        base_url: str = "https://api.github.com",
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.timeout = timeout
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None
        self._logger = logger or logging.getLogger(__name__)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Accept": "application/vnd.github+json",
                    "X-GitHub-Api-Version": API_VERSION,
                    "User-Agent": "Pipeweaver/1.0",
                },
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._http

    async def close(self) -> None:
        if self._http is None or self._http.is_closed:
            return
        await self._http.aclose()
        self._http = None

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _calculate_backoff(self, attempt: int) -> float:
        """Seconds to sleep before retry number ``attempt + 1``."""
        ceiling = min(self.max_delay, self.base_delay * 2 ** attempt)
        return random.uniform(0, ceiling)

    def _rate_limit_error(self, response: httpx.Response) -> Optional[RateLimitError]:
        """Build a RateLimitError if the response signals an exhausted quota."""
        headers = response.headers
        if response.status_code == 403:
            if _int_header(headers, "x-ratelimit-remaining") != 0:
                return None
        elif response.status_code != 429:
            return None

        reset_at = _int_header(headers, "x-ratelimit-reset")
        retry_after = _int_header(headers, "retry-after")
        if retry_after is None and reset_at is not None:
            retry_after = max(0, reset_at - int(time.time()))

        self._logger.warning(
            "Rate limited by GitHub",
            extra={
                "reset_at": reset_at,
                "retry_after": retry_after,
                "limit": _int_header(headers, "x-ratelimit-limit"),
            },
        )
        return RateLimitError(
            message="GitHub API rate limit exceeded",
            status_code=response.status_code,
            reset_at=reset_at,
            retry_after=retry_after,
            request_url=str(response.request.url),
        )

    async def _send(
        self, method: str, path: str, payload: Dict[str, Any], token: str
    ) -> Tuple[Optional[httpx.Response], Optional[httpx.TransportError]]:
        headers = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            response = await self.client.request(method, path, json=payload, headers=headers)
        except httpx.TransportError as exc:
            return None, exc
        return response, None

    async def _request(
        self,
        method: str,
        path: str,
        payload: Dict[str, Any],
        token: Optional[str] = None,
    ) -> httpx.Response:
        """Send a request, retrying transient failures.

        Raises:
            RateLimitError: GitHub reported the quota as exhausted.
            GitHubAPIError: Any other 4xx/5xx, or no response after the
                last retry.
        """
        effective_token = token or self.token
        transport_error: Optional[httpx.TransportError] = None

        for attempt in range(self.max_retries + 1):
            response, transport_error = await self._send(method, path, payload, effective_token)
            retries_left = attempt < self.max_retries

            if response is not None:
                limited = self._rate_limit_error(response)
                if limited is not None:
                    raise limited
                status = response.status_code
                if status < 400:
                    return response
                if status not in self.RETRYABLE_STATUS_CODES or not retries_left:
                    body = response.text
                    self._logger.error(
                        "GitHub rejected %s %s with %d",
                        method,
                        path,
                        status,
                        extra={"status_code": status, "response_body": body[:_LOGGED_BODY_LIMIT]},
                    )
                    raise GitHubAPIError(
                        message=f"GitHub API error: {status}",
                        status_code=status,
                        response_body=body,
                        request_url=str(response.request.url),
                    )
                reason = f"HTTP {status}"
            else:
                if not retries_left:
                    break
                reason = repr(transport_error)

            delay = self._calculate_backoff(attempt)
            self._logger.warning(
                "Transient GitHub failure (%s), retry %d/%d in %.2fs",
                reason,
                attempt + 1,
                self.max_retries,
                delay,
                extra={"path": path},
            )
            await asyncio.sleep(delay)

        self._logger.error(
            "No response from GitHub for %s %s",
            method,
            path,
            extra={"last_error": str(transport_error)},
        )
        raise GitHubAPIError(
            message=f"Request failed after {self.max_retries} retries: {transport_error}",
            request_url=f"{self.base_url}{path}",
        )

    async def create_pr(
        self,
        owner: str,
        repo: str,
        request: PRCreateRequest,
        token: Optional[str] = None,
    ) -> PullRequestHandle:
        """POST ``request`` to ``/repos/{owner}/{repo}/pulls``.

        Raises:
            GitHubAPIError: The call failed or the reply lacked the
                number/url fields.
        """
        self._logger.info(
            "Opening pull request %s -> %s on %s/%s",
            request.head_branch,
            request.base_branch,
            owner,
            repo,
        )
        response = await self._request(
            "POST", f"/repos/{owner}/{repo}/pulls", request.to_payload(), token=token
        )

        try:
            handle = PullRequestHandle.from_github_response(response.json())
        except (ValueError, KeyError, TypeError) as exc:
            raise GitHubAPIError(
                message=f"Unexpected pull request response: {exc}",
                status_code=response.status_code,
                response_body=response.text,
                request_url=str(response.request.url),
            ) from exc

        self._logger.info(
            "Opened pull request #%d",
            handle.number,
            extra={"pr_url": handle.html_url, "owner": owner, "repo": repo},
        )
        return handle

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
        request = PRCreateRequest(
            title=title,
            body=body,
            head_branch=head_branch,
            base_branch=base_branch,
        )
        return await self.create_pr(owner, repo, request, token=token)
