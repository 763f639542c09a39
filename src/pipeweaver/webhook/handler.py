"""GitHub push webhook handler.

Decodes push payloads into TriggerEvents and verifies the optional
X-Hub-Signature-256 HMAC. The HTTP route in main.py maps the results onto
status codes; this module never touches the queue.

GitHub Webhook Payload Structure (push event, abridged):
{
  "ref": "refs/heads/main",
  "before": "9c1f...",
  "after": "4b2e...",
  "repository": {
    "name": "pipelines",
    "owner": {"login": "acme"},
    "clone_url": "https://github.com/acme/pipelines.git"
  },
  "commits": [
    {"id": "4b2e...", "added": [...], "modified": [...], "removed": [...]}
  ],
  "head_commit": {"id": "4b2e...", "message": "...", "added": [...], "modified": [...]}
}
"""

import hashlib
import hmac
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from src.pipeweaver.webhook.models import CommitInfo, RepositoryRef, TriggerEvent

SIGNATURE_PREFIX = "sha256="


class WebhookHandler:
    """Parses GitHub push webhooks into TriggerEvents.

    Attributes:
        secret: Shared webhook secret. When unset, signatures are not checked.
    """

    def __init__(
        self,
        secret: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.secret = secret
        self._logger = logger or logging.getLogger(__name__)

    def verify_signature(self, body: bytes, signature_header: Optional[str]) -> bool:
        """Check the X-Hub-Signature-256 header against the raw body.

        Args:
            body: The raw request body.
            signature_header: Header value in the form "sha256=<hex digest>".

        Returns:
            True if no secret is configured or the signature matches.
        """
        if not self.secret:
            return True

        if not signature_header or not signature_header.startswith(SIGNATURE_PREFIX):
            self._logger.warning("Missing or malformed webhook signature header")
            return False

        expected = hmac.new(
            self.secret.encode("utf-8"),
            body,
            hashlib.sha256,
        ).hexdigest()
        received = signature_header[len(SIGNATURE_PREFIX):]
        return hmac.compare_digest(expected, received)

    def parse_push_event(self, payload: Dict[str, Any]) -> Optional[TriggerEvent]:
        """Parse a push event from a webhook payload.

        Args:
            payload: The decoded JSON payload.

        Returns:
            TriggerEvent if the payload is a well-formed push, None otherwise.
            Returns None for:
            - Payloads that are not JSON objects
            - A missing or empty ref
            - A missing repository name or owner login
        """
        if not isinstance(payload, dict):
            self._logger.warning("Invalid payload: expected dict, got %s", type(payload))
            return None

        ref = payload.get("ref")
        if not isinstance(ref, str) or not ref:
            self._logger.warning("Missing 'ref' field in payload")
            return None

        repository = self._extract_repository(payload.get("repository"))
        if repository is None:
            return None

        head_commit_data = payload.get("head_commit")
        commits = payload.get("commits")
        commit_list = commits if isinstance(commits, list) else []

        try:
            event = TriggerEvent(
                ref=ref,
                repository=repository,
                modified_files=tuple(
                    self._collect_modified_files(commit_list, head_commit_data)
                ),
                head_commit=self._extract_head_commit(head_commit_data),
                before=self._str_field(payload, "before"),
                after=self._str_field(payload, "after"),
            )
        except ValidationError as e:
            self._logger.warning("Push payload failed validation: %s", e)
            return None

        self._logger.info(
            "Parsed push event",
            extra={
                "ref": event.ref,
                "repository": event.full_repository,
                "event_id": event.event_id,
                "modified_files": len(event.modified_files),
            },
        )
        return event

    def _extract_repository(self, repo_data: Any) -> Optional[RepositoryRef]:
        if not isinstance(repo_data, dict):
            self._logger.warning(
                "Missing or invalid 'repository' field in payload: %s",
                type(repo_data),
            )
            return None

        name = repo_data.get("name")
        owner_data = repo_data.get("owner")
        # Push payloads carry owner.login; some senders only set owner.name.
        owner = None
        if isinstance(owner_data, dict):
            owner = owner_data.get("login") or owner_data.get("name")

        if not isinstance(name, str) or not name.strip():
            self._logger.warning("Invalid or empty repository name: %s", name)
            return None
        if not isinstance(owner, str) or not owner.strip():
            self._logger.warning("Invalid or empty repository owner: %s", owner)
            return None

        clone_url = repo_data.get("clone_url")
        return RepositoryRef(
            owner=owner.strip(),
            name=name.strip(),
            clone_url=clone_url if isinstance(clone_url, str) else "",
        )

    def _extract_head_commit(self, head_commit_data: Any) -> Optional[CommitInfo]:
        if not isinstance(head_commit_data, dict):
            return None
        return CommitInfo(
            id=self._str_field(head_commit_data, "id"),
            message=self._str_field(head_commit_data, "message"),
        )

    def _collect_modified_files(
        self,
        commits: List[Any],
        head_commit_data: Any,
    ) -> List[str]:
        """Union of added and modified paths, first occurrence order."""
        seen = set()
        ordered: List[str] = []

        for commit in [*commits, head_commit_data]:
            if not isinstance(commit, dict):
                continue
            for path in self._paths(commit.get("added")) + self._paths(commit.get("modified")):
                if path not in seen:
                    seen.add(path)
                    ordered.append(path)

        return ordered

    @staticmethod
    def _paths(value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, str) and item]

    @staticmethod
    def _str_field(data: Dict[str, Any], key: str) -> str:
        value = data.get(key)
        return value if isinstance(value, str) else ""


def is_push_event(event_header: Optional[str]) -> bool:
    """True when the X-GitHub-Event header is absent or names a push."""
    return event_header is None or event_header == "push"
