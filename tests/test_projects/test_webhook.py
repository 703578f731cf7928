"""Tests for folio.projects.webhook module."""

import json

import pytest

from folio.core.errors import SignatureError
from folio.projects.webhook import WebhookHandler, compute_signature, verify_signature

SECRET = "webhook-secret"


def _body(action="created", name="alpha", private=False, owner="octocat", sender="octocat"):
    return json.dumps({
        "action": action,
        "repository": {"name": name, "private": private, "owner": {"login": owner}},
        "sender": {"login": sender},
    }).encode("utf-8")


@pytest.fixture
def handler(cache):
    return WebhookHandler(cache, SECRET, "octocat")


@pytest.fixture
def filled_cache(cache):
    for key in (
        "projects:all",
        "projects:featured",
        "github:repos:octocat",
        "github:languages:octocat/alpha",
        "github:languages:octocat/beta",
        "github:commits:octocat/alpha",
        "github:stats:octocat",
    ):
        cache.set(key, key)
    return cache


class TestSignature:
    """Tests for compute/verify_signature."""

    def test_known_vector(self):
        # Example from GitHub's webhook documentation
        signature = compute_signature(b"Hello, World!", "It's a Secret to Everybody")
        assert signature == "sha256=757107ea0eb2509fc211221cce984b8a37570b6d7586c22c46f4379c8b043e17"

    def test_valid(self):
        body = b'{"a": 1}'
        verify_signature(body, compute_signature(body, SECRET), SECRET)

    def test_wrong_secret(self):
        body = b'{"a": 1}'
        with pytest.raises(SignatureError):
            verify_signature(body, compute_signature(body, "other"), SECRET)

    def test_tampered_body(self):
        signature = compute_signature(b'{"a": 1}', SECRET)
        with pytest.raises(SignatureError):
            verify_signature(b'{"a": 2}', signature, SECRET)

    def test_missing_signature(self):
        with pytest.raises(SignatureError, match="Missing"):
            verify_signature(b"{}", None, SECRET)

    def test_bad_prefix(self):
        digest = compute_signature(b"{}", SECRET).removeprefix("sha256=")
        with pytest.raises(SignatureError):
            verify_signature(b"{}", f"sha1={digest}", SECRET)

    def test_unconfigured_secret(self):
        with pytest.raises(SignatureError, match="not configured"):
            verify_signature(b"{}", "sha256=abc", None)


class TestHandle:
    """Tests for WebhookHandler.handle."""

    def test_wrong_secret_no_invalidation(self, handler, filled_cache):
        body = _body()
        before = filled_cache.get_stats()["keys"]
        with pytest.raises(SignatureError):
            handler.handle(body, compute_signature(body, "wrong"), "repository")
        assert filled_cache.get_stats()["keys"] == before

    def test_created_invalidates_projects(self, handler, filled_cache):
        body = _body("created")
        outcome = handler.handle(body, compute_signature(body, SECRET), "repository")

        assert outcome.processed
        assert outcome.to_dict() == {
            "message": "Webhook processed successfully",
            "repository": "alpha",
            "action": "created",
        }
        keys = filled_cache.get_stats()["keys"]
        assert "projects:all" not in keys
        assert "projects:featured" not in keys
        assert "github:repos:octocat" not in keys
        assert "github:languages:octocat/alpha" in keys

    @pytest.mark.parametrize("action", ["edited", "pushed"])
    def test_content_actions_drop_repo_keys(self, handler, filled_cache, action):
        body = _body(action)
        handler.handle(body, compute_signature(body, SECRET), "repository")

        keys = filled_cache.get_stats()["keys"]
        assert "github:languages:octocat/alpha" not in keys
        assert "github:commits:octocat/alpha" not in keys
        assert "github:stats:octocat" not in keys
        assert "github:languages:octocat/beta" in keys

    def test_push_event_without_action(self, handler, filled_cache):
        body = json.dumps({
            "ref": "refs/heads/main",
            "repository": {"name": "alpha", "private": False, "owner": {"name": "octocat", "login": "octocat"}},
            "sender": {"login": "octocat"},
        }).encode()
        outcome = handler.handle(body, compute_signature(body, SECRET), "push")

        assert outcome.action == "push"
        assert outcome.processed
        assert "github:languages:octocat/alpha" not in filled_cache.get_stats()["keys"]

    def test_private_repo_ignored(self, handler, filled_cache):
        body = _body(private=True)
        outcome = handler.handle(body, compute_signature(body, SECRET), "repository")
        assert not outcome.processed
        assert outcome.message == "Ignoring private repository"
        assert "projects:all" in filled_cache.get_stats()["keys"]

    def test_other_account_ignored(self, handler, filled_cache):
        body = _body(owner="someone", sender="someone")
        outcome = handler.handle(body, compute_signature(body, SECRET), "repository")
        assert not outcome.processed
        assert "projects:all" in filled_cache.get_stats()["keys"]

    def test_account_match_is_case_insensitive(self, handler, filled_cache):
        body = _body(owner="OctoCat", sender="OctoCat")
        assert handler.handle(body, compute_signature(body, SECRET), "repository").processed

    def test_unhandled_action_acknowledged(self, handler, filled_cache):
        body = _body("transferred")
        outcome = handler.handle(body, compute_signature(body, SECRET), "repository")
        assert outcome.message == "Event ignored"
        assert "projects:all" in filled_cache.get_stats()["keys"]

    def test_ping(self, handler):
        body = b'{"zen": "Keep it logically awesome."}'
        assert handler.handle(body, compute_signature(body, SECRET), "ping").message == "Pong"

    def test_invalid_json_after_valid_signature(self, handler):
        body = b"not json"
        with pytest.raises(ValueError):
            handler.handle(body, compute_signature(body, SECRET), "push")

    def test_configured(self, cache):
        assert WebhookHandler(cache, SECRET, "octocat").configured
        assert not WebhookHandler(cache, None, "octocat").configured
