"""Application factory for creating and configuring the FastAPI app."""

from collections.abc import Callable, Mapping
from typing import Any

from fastapi import FastAPI

from page_renderer import __version__
from page_renderer.config import Settings, get_settings
from page_renderer.core.lifespan import lifespan
from page_renderer.middleware.error_handlers import register_error_handlers
from page_renderer.middleware.template_middleware import TemplateMiddleware
from page_renderer.protocols import TemplateHandler, TemplateManager
from page_renderer.routers import health_router
from page_renderer.views.template_manager import create_template_manager

PageHandler = TemplateHandler | Callable[..., Any]


def add_page(app: FastAPI, path: str, handler: PageHandler, methods: list[str] | None = None) -> TemplateMiddleware:
    """Serve ``handler`` at ``path`` through the template middleware.

    Args:
        app: Application created by ``create_app``
        path: Route path, e.g. ``"/"`` or ``"/users/{user_id}"``
        handler: Page handler returning (descriptor, data)
        methods: Allowed HTTP methods; all methods when None

    Returns:
        The middleware instance mounted at ``path``
    """
    settings: Settings = app.state.settings
    page = TemplateMiddleware(app.state.templates, handler, timeout=settings.request_timeout)
    app.add_route(path, page, methods=methods)
    return page


def create_app(
    settings: Settings | None = None,
    pages: Mapping[str, PageHandler] | None = None,
    templates: TemplateManager | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The template manager is built here, before any request is served. A
    template set that cannot be read or parsed makes this call fail.

    Args:
        settings: Application settings; the cached singleton when None
        pages: Page handlers keyed by route path
        templates: Template manager to use instead of the one settings select

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()
    templates = templates or create_template_manager(settings)

    app = FastAPI(
        title="Page Renderer",
        description="Server-side HTML pages rendered from Jinja2 templates",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.templates = templates

    # Register exception handlers
    register_error_handlers(app)

    # Health endpoint
    app.include_router(health_router.router, tags=["health"])

    # Page routes
    for path, handler in (pages or {}).items():
        add_page(app, path, handler)

    return app
