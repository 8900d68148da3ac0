"""
FastAPI Application Factory & Configuration.

This module initializes the RichReply HTTP application. It is responsible for:
1.  **Middleware Setup**: CORS for browser clients.
2.  **Exception Handling**: Global handlers so every error comes back as JSON.
3.  **Routing**: Mounting the enrichment, share and media routers.
4.  **Lifecycle**: Logging startup/shutdown and preparing the media cache dir.

Design Pattern
--------------
We use an **Application Factory** pattern (`create_app`) so tests can spin up
isolated instances after adjusting settings.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from richreply import __version__
from richreply.api.routers import enrich, media, share
from richreply.core.settings import get_logger, load_settings

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    ASGI Lifespan context manager.

    - **Startup**: make sure the media cache directory exists.
    - **Shutdown**: nothing to release; HTTP clients are per request.
    """
    config = load_settings()
    logger.info("RichReply API starting (env=%s)", config.environment)
    try:
        Path(config.media_cache_dir).mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.warning("Media cache dir unavailable (%s): %s", config.media_cache_dir, exc)

    yield

    logger.info("RichReply API shutting down")


def create_app() -> FastAPI:
    """
    Construct and configure the RichReply FastAPI application.

    Returns
    -------
    FastAPI
        The configured ASGI application ready to be served by Uvicorn.
    """
    app = FastAPI(
        title="RichReply API",
        description="Assistant reply enrichment and share-link resolution",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # -----------------------------------------------------------------------
    # Middleware
    # -----------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, restrict this to specific domains.
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -----------------------------------------------------------------------
    # Global Exception Handlers
    # -----------------------------------------------------------------------
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all handler so unhandled exceptions return structured JSON."""
        logger.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal Server Error",
                "detail": str(exc),
                "path": request.url.path,
            },
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        """Map Python ValueErrors to HTTP 400 Bad Request."""
        return JSONResponse(
            status_code=400,
            content={
                "error": "Bad Request",
                "detail": str(exc),
            },
        )

    # -----------------------------------------------------------------------
    # Routes
    # -----------------------------------------------------------------------
    app.include_router(enrich.router)
    app.include_router(share.router)
    app.include_router(media.router)

    @app.get("/health", tags=["System"])
    async def health_check() -> dict[str, str]:
        """Simple liveness probe."""
        return {
            "status": "ok",
            "environment": load_settings().environment,
            "version": __version__,
        }

    return app


__all__ = ["create_app"]
