"""Unit tests for the GitHub pull request client.

Requests are served by httpx.MockTransport; no network access is made.
"""

import asyncio
import json

import httpx
import pytest

from src.pipeweaver.errors import CollaboratorFailure
from src.pipeweaver.github.base import PullRequestIssuer
from src.pipeweaver.github.client import GitHubAPIError, GitHubClient, RateLimitError
from src.pipeweaver.github.models import PRCreateRequest, PullRequestHandle

PR_RESPONSE = {
    "number": 42,
    "url": "https://api.github.com/repos/acme/pipelines/pulls/42",
    "html_url": "https://github.com/acme/pipelines/pull/42",
}


def run_async(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


class RecordingHandler:
    """MockTransport handler replaying canned responses in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_client(handler, **kwargs):
    kwargs.setdefault("base_delay", 0.0)
    return GitHubClient(transport=httpx.MockTransport(handler), **kwargs)


async def open_pr(client, token="per-call-token"):
    async with client:
        return await client.create_pull_request(
            owner="acme",
            repo="pipelines",
            title="Automated DAG Generation",
            head_branch="pipeline-update-Ab3dE",
            base_branch="main",
            body="generated",
            token=token,
        )


class TestModels:

    def test_payload_uses_github_field_names(self):
        request = PRCreateRequest(title="t", body="b", head_branch="h", base_branch="main")
        assert request.to_payload() == {"title": "t", "body": "b", "head": "h", "base": "main"}

    def test_handle_from_response(self):
        handle = PullRequestHandle.from_github_response(PR_RESPONSE)
        assert handle.number == 42
        assert handle.html_url.endswith("/pull/42")


class TestCreatePullRequest:

    def test_satisfies_issuer_protocol(self):
        assert isinstance(GitHubClient(), PullRequestIssuer)

    def test_success(self):
        handler = RecordingHandler(httpx.Response(201, json=PR_RESPONSE))
        handle = run_async(open_pr(make_client(handler)))

        assert handle.number == 42
        request = handler.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/repos/acme/pipelines/pulls"
        assert request.headers["Authorization"] == "Bearer per-call-token"
        assert json.loads(request.content) == {
            "title": "Automated DAG Generation",
            "body": "generated",
            "head": "pipeline-update-Ab3dE",
            "base": "main",
        }

    def test_falls_back_to_client_token(self):
        handler = RecordingHandler(httpx.Response(201, json=PR_RESPONSE))
        run_async(open_pr(make_client(handler, token="default-token"), token=""))

        assert handler.requests[0].headers["Authorization"] == "Bearer default-token"

    def test_enterprise_base_url(self):
        handler = RecordingHandler(httpx.Response(201, json=PR_RESPONSE))
        run_async(open_pr(make_client(handler, base_url="https://ghe.example.com/api/v3/")))

        assert str(handler.requests[0].url) == "https://ghe.example.com/api/v3/repos/acme/pipelines/pulls"

    def test_retries_server_errors(self):
        handler = RecordingHandler(
            httpx.Response(502),
            httpx.Response(503),
            httpx.Response(201, json=PR_RESPONSE),
        )
        handle = run_async(open_pr(make_client(handler)))

        assert handle.number == 42
        assert len(handler.requests) == 3

    def test_retries_transport_errors(self):
        handler = RecordingHandler(
            httpx.ConnectError("connection refused"),
            httpx.Response(201, json=PR_RESPONSE),
        )
        assert run_async(open_pr(make_client(handler))).number == 42

    def test_gives_up_after_max_retries(self):
        handler = RecordingHandler(*[httpx.Response(500) for _ in range(3)])

        with pytest.raises(GitHubAPIError) as exc_info:
            run_async(open_pr(make_client(handler, max_retries=2)))

        assert exc_info.value.status_code == 500
        assert len(handler.requests) == 3

    def test_transport_errors_exhaust_retries(self):
        handler = RecordingHandler(*[httpx.ConnectError("down") for _ in range(2)])

        with pytest.raises(GitHubAPIError, match="after 1 retries"):
            run_async(open_pr(make_client(handler, max_retries=1)))

    def test_client_errors_are_not_retried(self):
        handler = RecordingHandler(
            httpx.Response(422, json={"message": "A pull request already exists"})
        )

        with pytest.raises(GitHubAPIError) as exc_info:
            run_async(open_pr(make_client(handler)))

        assert exc_info.value.status_code == 422
        assert "already exists" in exc_info.value.response_body
        assert len(handler.requests) == 1

    def test_rate_limit(self):
        handler = RecordingHandler(
            httpx.Response(
                403,
                headers={"x-ratelimit-remaining": "0", "retry-after": "17"},
                json={"message": "API rate limit exceeded"},
            )
        )

        with pytest.raises(RateLimitError) as exc_info:
            run_async(open_pr(make_client(handler)))

        assert exc_info.value.retry_after == 17
        assert exc_info.value.status_code == 403

    def test_forbidden_without_rate_limit_is_plain_error(self):
        handler = RecordingHandler(
            httpx.Response(403, headers={"x-ratelimit-remaining": "10"}, json={})
        )

        with pytest.raises(GitHubAPIError) as exc_info:
            run_async(open_pr(make_client(handler)))

        assert not isinstance(exc_info.value, RateLimitError)

    def test_malformed_response(self):
        handler = RecordingHandler(httpx.Response(201, json={"unexpected": True}))

        with pytest.raises(GitHubAPIError, match="Unexpected pull request response"):
            run_async(open_pr(make_client(handler)))

    def test_errors_are_collaborator_failures(self):
        handler = RecordingHandler(httpx.Response(404, json={}))

        with pytest.raises(CollaboratorFailure) as exc_info:
            run_async(open_pr(make_client(handler)))

        assert exc_info.value.operation == "create_pull_request"


class TestBackoff:

    def test_backoff_is_capped(self):
        client = GitHubClient(base_delay=1.0, max_delay=4.0)
        for attempt in range(10):
            assert 0 <= client._calculate_backoff(attempt) <= 4.0
