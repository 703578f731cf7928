"""
GitHub webhook verification and cache invalidation.

Signatures are HMAC-SHA256 over the raw request body, sent as
``x-hub-signature-256: sha256=<hex>``.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from folio.cache.store import CacheKeys, CacheStore
from folio.core.errors import SignatureError

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="

PROCESSED_ACTIONS = frozenset({"push", "pushed", "created", "deleted", "publicized", "privatized", "edited"})

# Actions that change a repository's contents as well as its listing
CONTENT_ACTIONS = frozenset({"push", "pushed", "edited"})


def compute_signature(body: bytes, secret: str) -> str:
    """Return the ``sha256=<hex>`` signature GitHub would send for body."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(body: bytes, signature: str | None, secret: str | None) -> None:
    """Check a webhook signature in constant time.

    Raises:
        SignatureError: If the secret is unset, the header is missing or
            malformed, or the digest does not match
    """
    if not secret:
        raise SignatureError("Webhook secret not configured")
    if not signature:
        raise SignatureError("Missing signature")
    if not signature.startswith(SIGNATURE_PREFIX):
        raise SignatureError("Invalid signature")

    expected = compute_signature(body, secret)
    if not hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8")):
        raise SignatureError("Invalid signature")


@dataclass
class WebhookOutcome:
    """What a webhook delivery did."""

    message: str
    repository: str | None = None
    action: str | None = None
    processed: bool = False
    invalidated_keys: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "repository": self.repository, "action": self.action}


class WebhookHandler:
    """Turns verified repository events into cache invalidations."""

    def __init__(self, cache: CacheStore, secret: str | None, account: str | None):
        """Initialize handler.

        Args:
            cache: Cache to invalidate
            secret: Shared webhook secret (deliveries are rejected without one)
            account: Only repositories owned by, or events sent by, this
                account are processed
        """
        self.cache = cache
        self.secret = secret
        self.account = account

    @property
    def configured(self) -> bool:
        return bool(self.secret)

    def handle(self, body: bytes, signature: str | None, event: str | None = None) -> WebhookOutcome:
        """Verify and process one delivery.

        Args:
            body: Raw request body, exactly as received
            signature: Value of the x-hub-signature-256 header
            event: Value of the x-github-event header

        Raises:
            SignatureError: Before any processing if verification fails
            ValueError: If the verified body is not a JSON object
        """
        verify_signature(body, signature, self.secret)

        try:
            payload = json.loads(body or b"{}")
        except ValueError as e:
            raise ValueError(f"Invalid webhook payload: {e}") from e
        if not isinstance(payload, dict):
            raise ValueError("Invalid webhook payload: expected an object")

        repository = payload.get("repository") or {}
        if not isinstance(repository, dict):
            repository = {}
        repo_name = repository.get("name")
        action = payload.get("action") or event
        logger.info("Webhook received: event=%s action=%s repository=%s", event, action, repo_name)

        if event == "ping":
            return WebhookOutcome(message="Pong", repository=repo_name, action=action)

        if not repo_name:
            return WebhookOutcome(message="Event ignored: no repository", action=action)

        if repository.get("private"):
            return WebhookOutcome(message="Ignoring private repository", repository=repo_name, action=action)

        if not self._from_account(payload, repository):
            return WebhookOutcome(message="Event ignored: unknown account", repository=repo_name, action=action)

        if action not in PROCESSED_ACTIONS:
            return WebhookOutcome(message="Event ignored", repository=repo_name, action=action)

        invalidated = self._invalidate(repo_name, action)
        logger.info("Webhook invalidated cache for %s (%s)", repo_name, action)
        return WebhookOutcome(
            message="Webhook processed successfully",
            repository=repo_name,
            action=action,
            processed=True,
            invalidated_keys=invalidated,
        )

    def _from_account(self, payload: dict[str, Any], repository: dict[str, Any]) -> bool:
        if not self.account:
            return False
        account = self.account.lower()
        owner = repository.get("owner") or {}
        sender = payload.get("sender") or {}
        logins = [
            owner.get("login") if isinstance(owner, dict) else None,
            sender.get("login") if isinstance(sender, dict) else None,
        ]
        return any(login and login.lower() == account for login in logins)

    def _invalidate(self, repo_name: str, action: str) -> list[str]:
        self.cache.invalidate_projects()
        invalidated = ["projects:", "github:repos:"]

        if action in CONTENT_ACTIONS and self.account:
            for key in (
                CacheKeys.github_languages(self.account, repo_name),
                CacheKeys.github_commits(self.account, repo_name),
                CacheKeys.github_stats(self.account),
            ):
                self.cache.invalidate(key)
                invalidated.append(key)
        return invalidated
