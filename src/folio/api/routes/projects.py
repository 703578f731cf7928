"""
Public project routes.

- GET /projects - All active projects
- GET /projects/featured - Featured subset

Failures never reach the caller as errors: they get an empty list with a
short cache lifetime.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from folio.api.deps import Container, get_container
from folio.projects.models import ProjectView

logger = logging.getLogger(__name__)

router = APIRouter()


def cache_control(ttl: int) -> str:
    return f"public, s-maxage={ttl}, stale-while-revalidate={ttl // 2}"


def _listing(container: Container, views: list[ProjectView]) -> JSONResponse:
    return JSONResponse(
        [v.to_dict() for v in views],
        headers={"Cache-Control": cache_control(container.settings.project_cache_ttl)},
    )


def _failure(container: Container) -> JSONResponse:
    return JSONResponse(
        [],
        status_code=500,
        headers={"Cache-Control": f"s-maxage={container.settings.error_cache_ttl}"},
    )


@router.get("/projects")
def list_projects(container: Container = Depends(get_container)) -> JSONResponse:
    """All active projects, overrides applied."""
    try:
        views = container.projects.get_all_projects()
    except Exception:
        logger.exception("Failed to load projects")
        return _failure(container)
    return _listing(container, views)


@router.get("/projects/featured")
def list_featured(container: Container = Depends(get_container)) -> JSONResponse:
    """Featured projects, ordered by display order then recency."""
    try:
        views = container.projects.get_featured_projects()
    except Exception:
        logger.exception("Failed to load featured projects")
        return _failure(container)
    return _listing(container, views)
