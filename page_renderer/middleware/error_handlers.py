"""Error pages for page handlers and exception handlers for the application."""

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from page_renderer.exceptions import INTERNAL_ERROR_MESSAGE, PageRendererException, find_error_response
from page_renderer.logging_config import get_logger, log_with_context
from page_renderer.middleware.response_writer import (
    HTML_CONTENT_TYPE,
    TEXT_CONTENT_TYPE,
    ResponseCapture,
    ResponseWriter,
)
from page_renderer.protocols import TemplateManager

logger = get_logger(__name__)


def error_status(exc: BaseException) -> tuple[int, str]:
    """Pick the HTTP status and user-facing message for ``exc``.

    Errors implementing ErrorResponse (directly or as the cause of ``exc``)
    bring their own; everything else is a 500 with a generic message.
    """
    er = find_error_response(exc)
    if er is None:
        return 500, INTERNAL_ERROR_MESSAGE
    return er.status_code, er.message


def write_basic_error_response(writer: ResponseWriter | ResponseCapture, message: str, *context: str) -> None:
    """Write context lines and the error message as plain text.

    This is the last fallback for an error page, so it never raises: write
    failures are logged and dropped.
    """
    lines = [*context, message]
    body = "".join(f"{line}\n" for line in lines)
    try:
        writer.set_default_content_type(TEXT_CONTENT_TYPE)
        writer.write(body)
    except Exception as e:
        log_with_context(
            logger,
            "error",
            "Failed to write basic error response",
            error=str(e),
            error_type=type(e).__name__,
            event_type="error_response_write_failed",
        )


class ErrorPageRenderer:
    """Turns an exception into a status-coded error page.

    Tries the ``<status>.html`` template first and falls back to a plain-text
    body when that template is missing or fails to render.
    """

    def __init__(self, templates: TemplateManager):
        self.templates = templates

    def handle_error(
        self,
        writer: ResponseWriter | ResponseCapture,
        exc: BaseException | None,
        *context: str,
        request: Request | None = None,
    ) -> bool:
        """Render an error page for ``exc``.

        Args:
            writer: Response sink for the error page
            exc: Error to report, or None
            *context: Extra lines printed above the message in the plain-text fallback
            request: Current request, made available to the error template

        Returns:
            True if there was an error and the caller must stop
        """
        if exc is None:
            return False

        status_code, message = error_status(exc)
        # Status is fixed before the body is chosen; the error template cannot change it.
        writer.write_header(status_code)

        log_with_context(
            logger,
            "info" if status_code < 400 else "warning",
            str(exc) or type(exc).__name__,
            status_code=status_code,
            error_type=type(exc).__name__,
            method=request.method if request is not None else None,
            url=str(request.url) if request is not None else None,
            event_type="page_error",
        )
        if status_code >= 500 and find_error_response(exc) is None:
            logger.error("Exception traceback:", exc_info=(type(exc), exc, exc.__traceback__))

        template_file = f"{status_code}.html"
        try:
            templated = self.templates.lookup_template(template_file)
        except Exception as e:
            log_with_context(
                logger,
                "warning",
                f"Did not find template {template_file}",
                template=template_file,
                error=str(e),
                event_type="error_template_missing",
            )
            write_basic_error_response(writer, message, *context)
            return True

        context_data: dict[str, Any] = {
            "data": exc,
            "error": exc,
            "status_code": status_code,
            "message": message,
            "request": request,
        }
        try:
            body = templated.render(context_data)
        except Exception as e:
            log_with_context(
                logger,
                "warning",
                f"Failed to render error template {template_file}",
                template=template_file,
                error=str(e),
                error_type=type(e).__name__,
                event_type="error_template_render_failed",
            )
            write_basic_error_response(writer, message, *context)
            return True

        writer.set_default_content_type(HTML_CONTENT_TYPE)
        writer.write(body)
        return True


async def page_renderer_exception_handler(request: Request, exc: PageRendererException) -> JSONResponse:
    """Handle page renderer exceptions raised outside of template pages.

    Returns structured JSON error responses with status code, error code,
    message, and optional details for client-side error handling.
    """
    log_with_context(
        logger,
        "warning",
        "Page renderer error",
        error_code=exc.code.value,
        error_message=exc.message,
        status_code=exc.status_code,
        method=request.method,
        url=str(request.url),
        event_type="page_renderer_error",
    )

    error_content: dict[str, Any] = {"code": exc.code.value, "message": exc.message, "details": exc.details}

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": error_content},
    )


def register_error_handlers(app) -> None:
    """Register exception handlers for non-template routes.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(PageRendererException, page_renderer_exception_handler)
