"""Unit tests for push webhook parsing and signature verification."""

import hashlib
import hmac

import pytest

from src.pipeweaver.webhook.handler import WebhookHandler, is_push_event
from src.pipeweaver.webhook.models import RepositoryRef, TriggerEvent


def push_payload(**overrides):
    payload = {
        "ref": "refs/heads/main",
        "before": "aaa111",
        "after": "bbb222",
        "repository": {
            "name": "pipelines",
            "owner": {"login": "acme"},
            "clone_url": "https://github.com/acme/pipelines.git",
        },
        "commits": [
            {"id": "c1", "added": ["pipelines/a.yaml"], "modified": ["README.md"]},
            {"id": "c2", "added": [], "modified": ["pipelines/b.yaml", "pipelines/a.yaml"]},
        ],
        "head_commit": {
            "id": "c2",
            "message": "update pipelines",
            "added": [],
            "modified": ["pipelines/b.yaml", "pipelines/c.yaml"],
        },
    }
    payload.update(overrides)
    return payload


def sign(secret: str, body: bytes) -> str:
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


class TestParsePushEvent:

    def test_parses_complete_payload(self):
        event = WebhookHandler().parse_push_event(push_payload())

        assert isinstance(event, TriggerEvent)
        assert event.ref == "refs/heads/main"
        assert event.branch == "main"
        assert event.full_repository == "acme/pipelines"
        assert event.repository.clone_url == "https://github.com/acme/pipelines.git"
        assert event.event_id == "c2"
        assert event.head_commit.message == "update pipelines"
        assert event.before == "aaa111"
        assert event.after == "bbb222"

    def test_modified_files_are_ordered_union(self):
        event = WebhookHandler().parse_push_event(push_payload())
        assert event.modified_files == (
            "pipelines/a.yaml",
            "README.md",
            "pipelines/b.yaml",
            "pipelines/c.yaml",
        )

    def test_removed_files_are_ignored(self):
        payload = push_payload(
            commits=[{"id": "c1", "removed": ["pipelines/gone.yaml"]}],
            head_commit=None,
        )
        event = WebhookHandler().parse_push_event(payload)
        assert event.modified_files == ()

    def test_event_id_falls_back_to_after(self):
        event = WebhookHandler().parse_push_event(push_payload(head_commit=None))
        assert event.head_commit is None
        assert event.event_id == "bbb222"

    def test_owner_name_fallback(self):
        payload = push_payload(repository={"name": "pipelines", "owner": {"name": "acme"}})
        event = WebhookHandler().parse_push_event(payload)
        assert event.repository.owner == "acme"

    def test_tag_ref_has_no_branch(self):
        event = WebhookHandler().parse_push_event(push_payload(ref="refs/tags/v1"))
        assert event.branch is None

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            "push",
            {},
            push_payload(ref=""),
            push_payload(ref=None),
            push_payload(repository=None),
            push_payload(repository={"name": "pipelines"}),
            push_payload(repository={"name": "  ", "owner": {"login": "acme"}}),
            push_payload(repository={"name": "pipelines", "owner": "acme"}),
        ],
    )
    def test_malformed_payloads_return_none(self, payload):
        assert WebhookHandler().parse_push_event(payload) is None

    def test_non_list_commits_are_tolerated(self):
        event = WebhookHandler().parse_push_event(push_payload(commits="oops", head_commit=None))
        assert event.modified_files == ()

    def test_event_is_immutable(self):
        event = WebhookHandler().parse_push_event(push_payload())
        with pytest.raises(Exception):
            event.ref = "refs/heads/other"


class TestSignature:

    def test_no_secret_accepts_everything(self):
        assert WebhookHandler().verify_signature(b"{}", None)

    def test_valid_signature(self):
        handler = WebhookHandler(secret="topsecret")
        assert handler.verify_signature(b'{"a":1}', sign("topsecret", b'{"a":1}'))

    def test_wrong_signature(self):
        handler = WebhookHandler(secret="topsecret")
        assert not handler.verify_signature(b'{"a":1}', sign("other", b'{"a":1}'))

    @pytest.mark.parametrize("header", [None, "", "sha1=abc", "deadbeef"])
    def test_missing_or_malformed_header(self, header):
        assert not WebhookHandler(secret="topsecret").verify_signature(b"{}", header)


class TestIsPushEvent:

    @pytest.mark.parametrize("header,expected", [(None, True), ("push", True), ("ping", False), ("issues", False)])
    def test_header(self, header, expected):
        assert is_push_event(header) is expected


class TestRepositoryRef:

    def test_full_name(self):
        assert RepositoryRef(owner="acme", name="pipelines").full_name == "acme/pipelines"
