"""
Application wiring and request dependencies.

The container is built once at startup and hung on ``app.state``; route
handlers reach it through ``get_container`` so tests can swap in their own.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass

from fastapi import Depends, Request

from folio.cache.store import CacheStore
from folio.core.config import Settings
from folio.core.database import AuditLog, ProjectsDatabase, sanitize_user_agent
from folio.core.errors import AuthorizationError
from folio.projects.admin import ProjectAdmin
from folio.projects.github import GitHubClient
from folio.projects.scheduler import SyncScheduler
from folio.projects.service import ProjectService
from folio.projects.sync import GitHubSyncService
from folio.projects.webhook import WebhookHandler

logger = logging.getLogger(__name__)

# Checked in order; the first present header wins
CLIENT_IP_HEADERS = (
    "x-forwarded-for",
    "x-real-ip",
    "cf-connecting-ip",
    "x-client-ip",
    "true-client-ip",
)


@dataclass
class Container:
    """Process-wide services shared by every request."""

    settings: Settings
    cache: CacheStore
    db: ProjectsDatabase
    sync_log: AuditLog
    activity_log: AuditLog
    github: GitHubClient
    sync_service: GitHubSyncService
    projects: ProjectService
    webhooks: WebhookHandler
    admin: ProjectAdmin
    scheduler: SyncScheduler | None = None


def build_container(settings: Settings, cache: CacheStore | None = None) -> Container:
    """Construct every service from settings."""
    cache = cache if cache is not None else CacheStore(default_ttl=settings.project_cache_ttl)
    paths = settings.paths

    db = ProjectsDatabase(paths.projects_db, paths.projects_backups, settings.backup_policy)
    sync_log = AuditLog(paths.sync_log)
    activity_log = AuditLog(paths.activity_log)

    github = GitHubClient(
        settings.github_username or "",
        token=settings.github_token,
        cache=cache,
        cache_ttl=settings.github_cache_ttl,
        timeout=settings.request_timeout,
        commit_repo_limit=settings.commit_repo_limit,
    )
    sync_service = GitHubSyncService(
        github,
        db,
        cache,
        sync_log,
        include_repos=settings.include_repos,
        exclude_repos=settings.exclude_repos,
    )

    scheduler = None
    if settings.sync_interval_minutes > 0:
        scheduler = SyncScheduler(sync_service, settings.sync_interval_minutes * 60, sweep=cache.sweep)

    return Container(
        settings=settings,
        cache=cache,
        db=db,
        sync_log=sync_log,
        activity_log=activity_log,
        github=github,
        sync_service=sync_service,
        projects=ProjectService(db, cache, ttl=settings.project_cache_ttl,
                                featured_limit=settings.featured_limit),
        webhooks=WebhookHandler(cache, settings.webhook_secret, settings.github_username),
        admin=ProjectAdmin(db, cache, activity_log),
        scheduler=scheduler,
    )


def get_container(request: Request) -> Container:
    return request.app.state.container


def require_admin(request: Request, container: Container = Depends(get_container)) -> None:
    """Reject the request unless it carries the admin bearer token.

    Raises:
        AuthorizationError: Token missing, wrong, or no admin token configured
    """
    expected = container.settings.admin_token
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")

    if not expected or scheme.lower() != "bearer" or not token:
        raise AuthorizationError("Unauthorized")
    if not hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Rejected admin token from %s", get_client_ip(request))
        raise AuthorizationError("Unauthorized")


def get_client_ip(request: Request) -> str:
    """Best guess at the caller's address behind proxies."""
    for name in CLIENT_IP_HEADERS:
        value = request.headers.get(name)
        if value:
            return value.split(",")[0].strip()
    return "127.0.0.1"


def get_user_agent(request: Request) -> str | None:
    return sanitize_user_agent(request.headers.get("user-agent"))
