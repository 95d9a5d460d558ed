"""Health endpoints."""

from fastapi import APIRouter, Request

from page_renderer import __version__
from page_renderer.models import HealthResponse
from page_renderer.views.template_manager import FileSystemTemplateManager

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Basic health check endpoint.

    Returns simple status for Docker healthcheck and basic monitoring,
    plus whether templates are served from the cached set or re-read live.
    """
    templates = request.app.state.templates
    mode = "live" if isinstance(templates, FileSystemTemplateManager) else "embedded"
    return HealthResponse(status="ok", version=__version__, template_mode=mode)
