"""
FastAPI application setup for folio.

Creates the app, wires the service container and registers routes and
exception handlers.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from folio import __version__
from folio.api.deps import Container, build_container
from folio.api.routes import admin, cache, projects, stats, sync, webhooks
from folio.core.config import Settings, load_settings
from folio.core.errors import FolioError

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, container: Container | None = None) -> FastAPI:
    """Build the API application.

    Args:
        settings: Runtime settings (loaded from the site root if omitted)
        container: Pre-built services, mainly for tests

    Returns:
        Configured FastAPI app
    """
    if container is None:
        container = build_container(settings or load_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        scheduler = app.state.container.scheduler
        if scheduler is not None:
            scheduler.start()
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.stop()

    app = FastAPI(
        title="folio",
        description="Portfolio projects API with GitHub sync and caching",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.container = container

    app.include_router(projects.router, tags=["projects"])
    app.include_router(stats.router, tags=["stats"])
    app.include_router(webhooks.router, tags=["webhooks"])
    app.include_router(cache.router, tags=["cache"])
    app.include_router(sync.router, tags=["sync"])
    app.include_router(admin.router, tags=["admin"])

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "healthy"}

    register_exception_handlers(app)
    return app


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(FolioError)
    async def folio_error_handler(request: Request, exc: FolioError) -> JSONResponse:
        """Map domain errors to ``{"error": message}`` with their status."""
        if exc.status_code >= 500:
            logger.error("HTTP %d on %s %s: %s", exc.status_code, request.method, request.url.path, exc.message)
        else:
            logger.info("HTTP %d on %s %s: %s", exc.status_code, request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("Validation error on %s %s: %s", request.method, request.url.path, exc.errors())

        first_error = exc.errors()[0] if exc.errors() else {}
        field = " -> ".join(str(loc) for loc in first_error.get("loc", []))
        error_msg = first_error.get("msg", "Invalid input")
        return JSONResponse(
            status_code=422,
            content={"error": f"{field}: {error_msg}" if field else error_msg},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Log the real error server-side, return a generic 500."""
        logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )
