"""Template middleware: runs a page handler and renders the template it picks."""

import asyncio
import inspect
import time
from collections.abc import Callable, Mapping
from typing import Any

from jinja2 import Template
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.types import Receive, Scope, Send

from page_renderer.exceptions import MissingTemplateError, RequestTimeoutError, TemplateRenderError
from page_renderer.logging_config import get_logger, log_with_context
from page_renderer.middleware.error_handlers import ErrorPageRenderer
from page_renderer.middleware.response_writer import HTML_CONTENT_TYPE, ResponseCapture, ResponseWriter
from page_renderer.protocols import HandlerResult, TemplateHandler, TemplateManager
from page_renderer.views.descriptor import TemplateDescriptor

logger = get_logger(__name__)

DEFAULT_REQUEST_TIMEOUT = 10.0


class TemplateHandlerFunc:
    """Adapts a plain (or async) function to the TemplateHandler protocol."""

    def __init__(self, func: Callable[[ResponseCapture, Request], Any]):
        self.func = func
        self.__name__ = getattr(func, "__name__", type(self).__name__)

    def serve(self, writer: ResponseCapture, request: Request) -> Any:
        return self.func(writer, request)


def time_remaining(request: Request) -> float | None:
    """Seconds left before the request deadline, or None outside the middleware."""
    deadline = getattr(request.state, "deadline", None)
    if deadline is None:
        return None
    return max(0.0, deadline - time.monotonic())


def template_context(data: Any, request: Request) -> dict[str, Any]:
    """Build the Jinja2 context for handler data.

    Mappings become the context itself; any other value is exposed as ``data``.
    ``request`` is always available.
    """
    if isinstance(data, Mapping):
        context = dict(data)
    else:
        context = {"data": data}
    context.setdefault("request", request)
    return context


def render_template(template: Template, name: str, context: Mapping[str, Any]) -> str:
    """Render ``template``, wrapping any failure in TemplateRenderError."""
    try:
        return template.render(context)
    except Exception as e:
        raise TemplateRenderError(
            f"error rendering template {name}: {e}",
            details={"template": name},
        ) from e


class TemplateMiddleware:
    """ASGI endpoint that renders a page handler's template.

    Per request the handler runs under a deadline with a capturing writer.
    If it raises, an error page is rendered. If it wrote a status itself, its
    response is sent untouched. Otherwise the template it named is looked up,
    rendered with its data, and sent. Every request gets exactly one response.
    """

    def __init__(
        self,
        templates: TemplateManager,
        handler: TemplateHandler | Callable[[ResponseCapture, Request], Any],
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        self.templates = templates
        self.handler = handler if hasattr(handler, "serve") else TemplateHandlerFunc(handler)
        self.timeout = timeout
        self.errors = ErrorPageRenderer(templates)
        self.__name__ = getattr(self.handler, "__name__", type(self.handler).__name__)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        writer = await self.dispatch(request)
        response = writer.to_response()
        await response(scope, receive, send)

    async def dispatch(self, request: Request) -> ResponseWriter:
        """Run the handler for ``request`` and return the filled-in writer."""
        writer = ResponseWriter()
        capture = ResponseCapture(writer)

        try:
            descriptor, data = await self._serve(capture, request)
        except Exception as e:
            self.errors.handle_error(writer, e, request=request)
            return writer

        if capture.captured:
            # handler took over the response
            return writer

        if descriptor is None:
            self.errors.handle_error(writer, MissingTemplateError(), request=request)
            return writer

        try:
            template = self.resolve(descriptor)
        except Exception as e:
            self.errors.handle_error(writer, e, request=request)
            return writer

        try:
            body = render_template(template, descriptor.name, template_context(data, request))
        except TemplateRenderError as e:
            self.errors.handle_error(writer, e, request=request)
            return writer

        writer.set_default_content_type(HTML_CONTENT_TYPE)
        writer.write(body)
        log_with_context(
            logger,
            "debug",
            "Rendered page",
            template=descriptor.name,
            status_code=writer.status_code,
            url=str(request.url),
            event_type="page_rendered",
        )
        return writer

    def resolve(self, descriptor: TemplateDescriptor) -> Template:
        """Return the descriptor's direct template or look its name up."""
        if descriptor.direct is not None:
            return descriptor.direct
        return self.templates.lookup_template(descriptor.named)

    async def _serve(self, writer: ResponseCapture, request: Request) -> HandlerResult:
        """Call the handler under the request deadline.

        The deadline is cooperative: coroutine handlers are cancelled at their
        next await, sync handlers keep running in their worker thread.
        """
        # monotonic clock, readable from worker threads with no running loop
        request.state.deadline = time.monotonic() + self.timeout
        deadline = asyncio.timeout_at(asyncio.get_running_loop().time() + self.timeout)
        try:
            async with deadline:
                if inspect.iscoroutinefunction(self.handler.serve) or inspect.iscoroutinefunction(
                    getattr(self.handler, "func", None)
                ):
                    result = await self.handler.serve(writer, request)
                else:
                    result = await run_in_threadpool(self.handler.serve, writer, request)
                    if inspect.isawaitable(result):
                        result = await result
        except TimeoutError as e:
            if not deadline.expired():
                raise
            raise RequestTimeoutError(self.timeout) from e
        if deadline.expired():
            # a worker thread finished after the deadline without seeing the cancellation
            raise RequestTimeoutError(self.timeout)

        if result is None:
            return None, None
        descriptor, data = result
        return descriptor, data
