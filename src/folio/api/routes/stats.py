"""
GitHub statistics.

- GET /github-stats - Aggregate stars, forks, commits and activity
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from folio.api.deps import Container, get_container
from folio.core.errors import UpstreamError
from folio.projects.github import GitHubStats

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/github-stats")
def github_stats(container: Container = Depends(get_container)) -> JSONResponse:
    """Account-wide statistics, zeroed on upstream failure."""
    settings = container.settings
    try:
        stats = container.github.get_stats()
    except UpstreamError as e:
        logger.error("Error fetching GitHub stats: %s", e)
        return JSONResponse(
            GitHubStats().to_dict(),
            status_code=500,
            headers={"Cache-Control": f"s-maxage={settings.error_cache_ttl}"},
        )

    ttl = settings.github_cache_ttl
    return JSONResponse(
        stats.to_dict(),
        headers={"Cache-Control": f"public, s-maxage={ttl}, stale-while-revalidate={ttl // 2}"},
    )
