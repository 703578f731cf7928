"""
GitHub webhook endpoint.

- POST /webhooks/github - Signed repository event
- GET /webhooks/github - Health check
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from folio.api.deps import Container, get_container

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhooks/github")
async def github_webhook(request: Request, container: Container = Depends(get_container)) -> JSONResponse:
    """Verify the delivery against the raw body, then invalidate caches.

    Signature failures propagate as SignatureError (401) before any
    processing happens.
    """
    body = await request.body()
    try:
        outcome = container.webhooks.handle(
            body,
            request.headers.get("x-hub-signature-256"),
            request.headers.get("x-github-event"),
        )
    except ValueError as e:
        logger.warning("Rejected webhook payload: %s", e)
        return JSONResponse({"error": "Invalid payload"}, status_code=400)
    return JSONResponse(outcome.to_dict())


@router.get("/webhooks/github")
def webhook_health(container: Container = Depends(get_container)) -> dict[str, Any]:
    return {
        "status": "GitHub webhook endpoint is active",
        "configured": container.webhooks.configured,
    }
