"""Main FastAPI application for the prnudge notification engine."""

from contextlib import asynccontextmanager
from typing import Any, Dict

import structlog
from fastapi import FastAPI

from prnudge import __version__
from prnudge.core import db_manager
from prnudge.core.config import get_global_settings
from prnudge.core.logging import setup_logging
from prnudge.features.jobs import shutdown_scheduler, start_scheduler
from prnudge.features.notifications import notifications_router
from prnudge.features.tokens import tokens_router

settings = get_global_settings()
setup_logging(settings.log_level)
logger = structlog.get_logger(__name__)


async def _start_scheduler_safely() -> None:
    """Start job scheduler with error handling."""
    try:
        scheduler = await start_scheduler()
        if scheduler:
            logger.info("Job scheduler started")
    except Exception as e:
        logger.error(
            "Failed to start job scheduler",
            error=str(e),
            error_type=type(e).__name__,
        )
        # Internal endpoints keep working without the in-process scheduler


async def _shutdown_scheduler_safely() -> None:
    """Shutdown job scheduler with error handling."""
    try:
        await shutdown_scheduler()
        logger.info("Job scheduler shut down")
    except Exception as e:
        logger.error(
            "Error during scheduler shutdown",
            error=str(e),
            error_type=type(e).__name__,
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting up prnudge application")
    await _start_scheduler_safely()
    yield
    logger.info("Shutting down prnudge application")
    await _shutdown_scheduler_safely()
    await db_manager.close()


tags_metadata = [
    {
        "name": "internal",
        "description": "Trigger endpoints for the notification tick and token refresh sweep.",
    },
    {
        "name": "health",
        "description": "Health check endpoint.",
    },
]

app = FastAPI(
    title="prnudge - Scheduled PR Notifications",
    description="""
    Scheduled pull request digests and escalations for chat channels.

    The internal endpoints are meant to be called once per minute (tick) and
    every few minutes (token sweep) by an external cron, or by the in-process
    scheduler when `SCHEDULER_ENABLED` is set.
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
    debug=settings.debug,
)

app.include_router(notifications_router)
app.include_router(tokens_router)


@app.get("/health", tags=["health"])
async def health_check() -> Dict[str, Any]:
    """Return the health status of the application."""
    return {
        "status": "healthy",
        "message": "Application is running",
        "version": __version__,
        "debug": settings.debug,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "prnudge.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
