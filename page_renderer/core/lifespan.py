"""Application lifespan management."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from page_renderer import __version__
from page_renderer.logging_config import get_logger, log_with_context

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Log startup and shutdown.

    Templates are loaded by ``create_app`` before the app exists, so a broken
    template set fails startup instead of the first request.
    """
    log_with_context(
        logger,
        "info",
        "Starting Page Renderer application",
        version=__version__,
        templates=type(app.state.templates).__name__,
        event_type="app_startup",
    )

    try:
        yield
    except Exception as e:
        log_with_context(
            logger,
            "error",
            "Application error during lifespan",
            error=str(e),
            error_type=type(e).__name__,
            event_type="app_error",
        )
        raise
    finally:
        log_with_context(
            logger,
            "info",
            "Shutting down Page Renderer application",
            event_type="app_shutdown",
        )
