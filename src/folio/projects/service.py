"""
Public project read path.

Read-through cache over the project database. GitHub is never called
from here; remote data only reaches the database through an explicit sync.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from folio.cache.store import CacheKeys, CacheStore
from folio.core.config import DEFAULT_FEATURED_LIMIT, PROJECT_CACHE_TTL
from folio.core.database import ProjectsDatabase
from folio.core.errors import DatabaseError
from folio.projects.models import Project, ProjectStatus, ProjectView

logger = logging.getLogger(__name__)


def _display_order_key(project: Project) -> tuple[int, int]:
    # Projects without an explicit order go last
    if project.display_order is None:
        return (1, 0)
    return (0, project.display_order)


def sort_projects(projects: list[Project]) -> list[Project]:
    """Order by display order, then featured, stars and newest first."""
    ordered = sorted(projects, key=lambda p: p.created_at or "", reverse=True)
    ordered.sort(key=lambda p: p.stars_count, reverse=True)
    ordered.sort(key=lambda p: p.featured, reverse=True)
    ordered.sort(key=_display_order_key)
    return ordered


def sort_featured(projects: list[Project]) -> list[Project]:
    """Order by display order, then most recent activity."""
    ordered = sorted(projects, key=lambda p: p.pushed_at or p.created_at or "", reverse=True)
    ordered.sort(key=_display_order_key)
    return ordered


class ProjectService:
    """Cached access to the public project listings."""

    def __init__(
        self,
        db: ProjectsDatabase,
        cache: CacheStore,
        ttl: float = PROJECT_CACHE_TTL,
        featured_limit: int = DEFAULT_FEATURED_LIMIT,
    ):
        self.db = db
        self.cache = cache
        self.ttl = ttl
        self.featured_limit = featured_limit

    def get_all_projects(self) -> list[ProjectView]:
        """All ACTIVE projects with overrides applied."""
        return self._read_through(CacheKeys.PROJECTS_ALL, self._load_all)

    def get_featured_projects(self) -> list[ProjectView]:
        """Featured ACTIVE projects, capped at ``featured_limit``."""
        return self._read_through(CacheKeys.PROJECTS_FEATURED, self._load_featured)

    def _load_all(self) -> tuple[ProjectView, ...]:
        projects = self.db.find_many(status=ProjectStatus.ACTIVE)
        return tuple(p.to_view() for p in sort_projects(projects))

    def _load_featured(self) -> tuple[ProjectView, ...]:
        projects = self.db.find_many(status=ProjectStatus.ACTIVE, featured=True)
        ordered = sort_featured(projects)
        if self.featured_limit > 0:
            ordered = ordered[: self.featured_limit]
        return tuple(p.to_view() for p in ordered)

    def _read_through(
        self,
        key: str,
        loader: Callable[[], tuple[ProjectView, ...]],
    ) -> list[ProjectView]:
        """Serve from cache, loading from the database on a miss.

        If the database cannot be read the last stored value is served even
        when expired, and an empty list when nothing was ever cached.
        """
        cached = self.cache.get(key)
        if cached is not None:
            return list(cached)

        try:
            views = loader()
        except (DatabaseError, OSError) as e:
            stale = self.cache.get_stale(key)
            if stale is not None:
                logger.warning("Database unavailable, serving stale %s: %s", key, e)
                return list(stale)
            logger.error("Database unavailable and no cached %s: %s", key, e)
            return []

        self.cache.set(key, views, self.ttl)
        return list(views)
