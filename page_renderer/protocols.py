"""Protocol definitions for dependency injection."""

from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any, Protocol

from jinja2 import Template
from starlette.requests import Request

if TYPE_CHECKING:
    from page_renderer.middleware.response_writer import ResponseCapture
    from page_renderer.views.descriptor import TemplateDescriptor


class TemplateManager(Protocol):
    """Finds, caches and hands out compiled templates by name.

    Implementations raise ``TemplateNotFoundError`` for unknown names and
    ``TemplateDirectoryError`` / ``TemplateParseError`` when the template set
    cannot be loaded. They never return ``None``.
    """

    def lookup_template(self, name: str) -> Template:
        """Resolve ``name`` to a compiled template.

        Args:
            name: Template file name, e.g. ``"home.html"``

        Returns:
            Compiled Jinja2 template
        """
        ...


HandlerResult = tuple["TemplateDescriptor | None", Any]


class TemplateHandler(Protocol):
    """Page handler served through ``TemplateMiddleware``.

    ``serve`` returns which template to render and the data to render it
    with, or writes its own response through ``writer``. Errors are raised.
    It may be a plain or a coroutine function.
    """

    def serve(self, writer: "ResponseCapture", request: Request) -> HandlerResult | Awaitable[HandlerResult]:
        """Handle one request.

        Args:
            writer: Response sink for handlers that answer directly
            request: Incoming request carrying the request deadline

        Returns:
            Tuple of (template descriptor, template data)
        """
        ...
