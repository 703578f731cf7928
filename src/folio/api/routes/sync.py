"""
Admin GitHub sync.

- POST /github-sync - Run a full sync (200 success, 207 partial, 500 fatal)
- GET /github-sync - Recent runs, project counts, last successful run
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from folio.api.deps import Container, get_client_ip, get_container, get_user_agent, require_admin
from folio.projects.sync import SYNC_EVENT_TYPE

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])

RECENT_SYNC_LIMIT = 10

# Sync log fields exposed in the history listing
HISTORY_FIELDS = (
    "id", "event_type", "action", "success", "changes_count",
    "error_message", "timestamp", "triggered_by",
)


def _activity(container: Container, action: str, ip: str, user_agent: str | None, **fields: Any) -> None:
    try:
        container.activity_log.append(
            action=action,
            resource="projects",
            ip_address=ip,
            user_agent=user_agent,
            **fields,
        )
    except Exception:
        logger.exception("Failed to record admin activity %s", action)


@router.post("/github-sync")
def run_sync(request: Request, container: Container = Depends(get_container)) -> JSONResponse:
    """Run a full reconciliation and report what changed."""
    ip = get_client_ip(request)
    user_agent = get_user_agent(request)
    logger.info("Starting GitHub sync from admin API")
    _activity(container, "github_sync_start", ip, user_agent)

    try:
        result = container.sync_service.sync_all_projects("admin", ip, user_agent)
    except Exception as e:
        logger.exception("GitHub sync failed")
        _activity(container, "github_sync_error", ip, user_agent,
                  details={"error": str(e)}, success=False)
        return JSONResponse(
            {"success": False, "error": "GitHub sync failed", "message": str(e) or "Unknown error occurred"},
            status_code=500,
        )

    _activity(
        container, "github_sync_complete", ip, user_agent,
        details={
            "created": result.created,
            "updated": result.updated,
            "errors": len(result.errors),
            "syncedProjects": list(result.synced_projects),
        },
        success=result.success,
    )

    data: dict[str, Any] = {
        "created": result.created,
        "updated": result.updated,
        "total": result.total,
        "syncedProjects": list(result.synced_projects),
    }
    if result.success:
        return JSONResponse({"success": True, "message": "Sync completed successfully", "data": data})

    data["errors"] = list(result.errors)
    return JSONResponse(
        {"success": False, "message": "Sync completed with errors", "data": data},
        status_code=207,
    )


@router.get("/github-sync")
def sync_status(container: Container = Depends(get_container)) -> dict[str, Any]:
    """Sync history and per-status project counts."""
    recent = [
        {key: entry.get(key) for key in HISTORY_FIELDS}
        for entry in container.sync_log.recent(limit=RECENT_SYNC_LIMIT)
    ]
    last_ok = container.sync_log.last(success=True, event_type=SYNC_EVENT_TYPE)

    return {
        "success": True,
        "data": {
            "recentSyncs": recent,
            "projectStats": [
                {"status": status, "count": count}
                for status, count in sorted(container.db.count_by_status().items())
            ],
            "lastSuccessfulSync": {
                "timestamp": last_ok.get("timestamp"),
                "changes_count": last_ok.get("changes_count"),
                "triggered_by": last_ok.get("triggered_by"),
            } if last_ok else None,
        },
    }
