"""
GitHub to database reconciliation.

GitHubSyncService is the only writer of GITHUB-sourced project rows.
Precedence rules:
  - a repository with no local row creates a GITHUB project
  - a GITHUB row gets its canonical fields rewritten; overrides,
    ``featured`` and ``display_order`` are left alone
  - a MANUAL row with the same name is never touched
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Any

from folio.cache.store import CacheStore
from folio.core.database import AuditLog, ProjectsDatabase
from folio.core.errors import PerRepositoryError, UpstreamError
from folio.projects.github import GitHubClient
from folio.projects.models import (
    Project,
    ProjectSource,
    ProjectStatus,
    RemoteRepository,
    SyncResult,
    Technology,
    format_title,
    infer_category,
    utcnow,
)

logger = logging.getLogger(__name__)

SYNC_EVENT_TYPE = "manual_sync"
SYNC_ACTION = "sync_all"


def should_include_repo(
    repo_name: str,
    include_repos: tuple[str, ...] | list[str] = (),
    exclude_repos: tuple[str, ...] | list[str] = (),
) -> bool:
    """Apply the include/exclude lists. A non-empty include list wins."""
    if include_repos:
        return repo_name in include_repos
    return repo_name not in exclude_repos


def build_technologies(repo: RemoteRepository, languages: dict[str, float]) -> list[Technology]:
    """Technologies from the language breakdown, or primary language + topics."""
    if languages:
        ranked = sorted(languages.items(), key=lambda item: item[1], reverse=True)
        return [Technology(name=lang, percentage=round(pct, 2)) for lang, pct in ranked]

    names: list[str] = []
    if repo.primary_language:
        names.append(repo.primary_language)
    for topic in repo.topics:
        if topic not in names:
            names.append(topic)
    return [Technology(name=n) for n in names]


def canonical_fields(repo: RemoteRepository, technologies: list[Technology]) -> dict[str, Any]:
    """Fields of a GITHUB project that the remote repository owns."""
    return {
        "github_id": repo.id,
        "title": format_title(repo.name),
        "description": repo.description or "No description available",
        "image_url": repo.image_url,
        "github_url": repo.html_url,
        "live_url": repo.homepage,
        "stars_count": repo.stars,
        "forks_count": repo.forks,
        "primary_language": repo.primary_language,
        "repo_size": repo.size,
        "is_private": repo.private,
        "pushed_at": repo.pushed_at,
        "status": ProjectStatus.ARCHIVED if repo.archived else ProjectStatus.ACTIVE,
        "technologies": technologies,
        "last_github_sync": utcnow(),
    }


class GitHubSyncService:
    """Merges the remote repository list into the project table."""

    def __init__(
        self,
        client: GitHubClient,
        db: ProjectsDatabase,
        cache: CacheStore,
        sync_log: AuditLog,
        include_repos: tuple[str, ...] = (),
        exclude_repos: tuple[str, ...] = (),
        fetch_languages: bool = True,
    ):
        self.client = client
        self.db = db
        self.cache = cache
        self.sync_log = sync_log
        self.include_repos = include_repos
        self.exclude_repos = exclude_repos
        self.fetch_languages = fetch_languages
        self._state_lock = threading.Lock()
        self._inflight: Future[SyncResult] | None = None

    @property
    def in_progress(self) -> bool:
        with self._state_lock:
            return self._inflight is not None

    def sync_all_projects(
        self,
        triggered_by: str = "system",
        client_ip: str | None = None,
        user_agent: str | None = None,
    ) -> SyncResult:
        """Reconcile every remote repository with the local projects.

        Single-flight: a call made while another run is in progress waits
        for that run and returns its result instead of starting a second one.

        Args:
            triggered_by: Who started the run (admin, webhook, scheduler, cli)
            client_ip: Caller address for the sync log
            user_agent: Caller user agent for the sync log

        Returns:
            SyncResult summary
        """
        with self._state_lock:
            inflight = self._inflight
            if inflight is None:
                future: Future[SyncResult] = Future()
                self._inflight = future

        if inflight is not None:
            logger.info("Sync already running; joining in-flight run (requested by %s)", triggered_by)
            return inflight.result()

        try:
            result = self._run(triggered_by, client_ip, user_agent)
        except BaseException as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(result)
            return result
        finally:
            with self._state_lock:
                self._inflight = None

    def _run(self, triggered_by: str, client_ip: str | None, user_agent: str | None) -> SyncResult:
        result = SyncResult()
        logger.info("Starting GitHub sync (triggered by %s)", triggered_by)

        try:
            try:
                payloads = self.client.list_repository_payloads(fresh=True)
            except UpstreamError as e:
                message = f"GitHub sync failed: {e}"
                logger.error(message)
                result.errors.append(message)
                self._record(result, triggered_by, client_ip, user_agent)
                return result

            logger.info("Fetched %d repositories from GitHub", len(payloads))
            if payloads:
                self.db.backup()

            for payload in payloads:
                name = payload.get("name") if isinstance(payload, dict) else None
                if name and not should_include_repo(name, self.include_repos, self.exclude_repos):
                    continue
                try:
                    self._reconcile(payload, result)
                except Exception as e:
                    error = PerRepositoryError(str(name or "<unknown>"), str(e))
                    logger.error(error.message)
                    result.errors.append(error.message)

            result.success = not result.errors
            self._record(result, triggered_by, client_ip, user_agent)
            logger.info(
                "GitHub sync completed: %d created, %d updated, %d errors",
                result.created, result.updated, len(result.errors),
            )
            return result
        finally:
            self.cache.invalidate_projects()

    def _reconcile(self, payload: dict[str, Any], result: SyncResult) -> None:
        """Create or update the local row for one repository payload."""
        repo = RemoteRepository.from_api(payload)

        existing = self.db.find_unique(repo.name)
        if existing is not None and existing.source is ProjectSource.MANUAL:
            logger.debug("Skipping %s: a manual project owns this name", repo.name)
            result.skipped.append(repo.name)
            return

        languages = self.client.get_repo_languages(repo.name) if self.fetch_languages else {}
        fields = canonical_fields(repo, build_technologies(repo, languages))

        with self.db.transaction():
            existing = self.db.find_unique(repo.name)
            if existing is None:
                self.db.create(Project(
                    name=repo.name,
                    source=ProjectSource.GITHUB,
                    category=infer_category(repo.name, repo.description, repo.topics),
                    featured=False,
                    display_order=None,
                    **fields,
                ))
                result.created += 1
                logger.debug("Created project: %s", repo.name)
            elif existing.source is ProjectSource.MANUAL:
                result.skipped.append(repo.name)
                return
            else:
                if not existing.category:
                    fields["category"] = infer_category(repo.name, repo.description, repo.topics)
                self.db.update(repo.name, **fields)
                result.updated += 1
                logger.debug("Updated project: %s", repo.name)

        result.synced_projects.append(repo.name)

    def _record(
        self,
        result: SyncResult,
        triggered_by: str,
        client_ip: str | None,
        user_agent: str | None,
    ) -> None:
        """Write the run to the sync log. Logging failures never fail the sync."""
        try:
            self.sync_log.append(
                event_type=SYNC_EVENT_TYPE,
                action=SYNC_ACTION,
                success=result.success,
                created=result.created,
                updated=result.updated,
                changes_count=result.total,
                errors=list(result.errors),
                error_message="; ".join(result.errors) or None,
                triggered_by=triggered_by,
                ip_address=client_ip,
                user_agent=user_agent,
            )
        except Exception:
            logger.exception("Failed to record sync run")
