"""
Admin cache control.

- GET /cache/invalidate - Cache statistics
- POST /cache/invalidate - Invalidate by type (projects, all, pattern)
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request

from folio.api.deps import Container, get_client_ip, get_container, require_admin
from folio.api.schemas import InvalidateRequest
from folio.core.errors import InvalidRequestError

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/cache/invalidate")
def cache_status(container: Container = Depends(get_container)) -> dict[str, Any]:
    return {
        "cache": container.cache.get_stats(),
        "endpoints": {
            "projects": "/projects",
            "featured": "/projects/featured",
            "github_stats": "/github-stats",
        },
    }


@router.post("/cache/invalidate")
def invalidate_cache(
    body: InvalidateRequest,
    request: Request,
    container: Container = Depends(get_container),
) -> dict[str, Any]:
    """Invalidate part or all of the cache and return the new stats.

    ``pattern`` removes every key containing the pattern as a substring.
    """
    cache = container.cache
    if body.type == "projects":
        removed = cache.invalidate_projects()
    elif body.type == "all":
        removed = cache.invalidate()
    elif body.type == "pattern":
        if not body.pattern:
            raise InvalidRequestError("Pattern required for pattern invalidation")
        removed = cache.invalidate(body.pattern)
    else:
        raise InvalidRequestError("Invalid invalidation type")

    logger.info(
        "Cache invalidation type=%s pattern=%r removed=%d by %s",
        body.type, body.pattern, removed, get_client_ip(request),
    )
    return {
        "success": True,
        "message": "Cache cleared" if body.type == "all" else "Cache invalidated",
        "stats": cache.get_stats(),
    }
