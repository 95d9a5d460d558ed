"""Custom exceptions for Page Renderer with HTTP status code support."""

from enum import Enum
from typing import Any, Protocol, runtime_checkable

INTERNAL_ERROR_MESSAGE = "Internal Server Error"


class ErrorCode(str, Enum):
    """Error codes for structured error responses."""

    # Generic errors
    PAGE_RENDERER_ERROR = "PAGE_RENDERER_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # Template errors
    TEMPLATE_DIRECTORY_ERROR = "TEMPLATE_DIRECTORY_ERROR"
    TEMPLATE_PARSE_ERROR = "TEMPLATE_PARSE_ERROR"
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    TEMPLATE_RENDER_ERROR = "TEMPLATE_RENDER_ERROR"
    MISSING_TEMPLATE = "MISSING_TEMPLATE"

    # Request errors
    HANDLER_ERROR = "HANDLER_ERROR"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    BAD_REQUEST = "BAD_REQUEST"
    REQUEST_TIMEOUT = "REQUEST_TIMEOUT"


@runtime_checkable
class ErrorResponse(Protocol):
    """An error that knows which HTTP status and message it should be shown with."""

    status_code: int
    message: str


class PageRendererException(Exception):
    """Base exception for page renderer errors with HTTP status code support.

    All custom exceptions inherit from this class so they satisfy the
    ErrorResponse protocol and are rendered with their own status code.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.PAGE_RENDERER_ERROR,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        """Initialize page renderer exception.

        Args:
            message: Human-readable error message
            code: Error code from ErrorCode enum
            status_code: HTTP status code (default 500)
            details: Additional error context/details
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class TemplateDirectoryError(PageRendererException):
    """Template source directory could not be listed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, code=ErrorCode.TEMPLATE_DIRECTORY_ERROR, details=details)


class TemplateParseError(PageRendererException):
    """One or more template source files failed to compile."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, code=ErrorCode.TEMPLATE_PARSE_ERROR, details=details)


class TemplateNotFoundError(PageRendererException):
    """Requested template is not part of the parsed template set."""

    def __init__(self, name: str, details: dict[str, Any] | None = None):
        self.name = name
        super().__init__(f"cannot find template {name}", code=ErrorCode.TEMPLATE_NOT_FOUND, details=details)


class TemplateRenderError(PageRendererException):
    """Executing a resolved template against its data failed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, code=ErrorCode.TEMPLATE_RENDER_ERROR, details=details)


class MissingTemplateError(PageRendererException):
    """Handler neither wrote a response nor named a template."""

    def __init__(self, message: str = "handler did not return a template", details: dict[str, Any] | None = None):
        super().__init__(message, code=ErrorCode.MISSING_TEMPLATE, details=details)


class HandlerError(PageRendererException):
    """Error raised by a page handler; carries the status the page should get."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: ErrorCode = ErrorCode.HANDLER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code=code, status_code=status_code, details=details)


class BadRequestError(HandlerError):
    """Request could not be understood by the handler."""

    def __init__(self, message: str = "Bad request", details: dict[str, Any] | None = None):
        super().__init__(message, status_code=400, code=ErrorCode.BAD_REQUEST, details=details)


class ForbiddenError(HandlerError):
    """Caller is not allowed to see the page."""

    def __init__(self, message: str = "Forbidden", details: dict[str, Any] | None = None):
        super().__init__(message, status_code=403, code=ErrorCode.FORBIDDEN, details=details)


class NotFoundError(HandlerError):
    """Requested resource does not exist."""

    def __init__(self, message: str = "Not found", details: dict[str, Any] | None = None):
        super().__init__(message, status_code=404, code=ErrorCode.NOT_FOUND, details=details)


class RequestTimeoutError(PageRendererException):
    """Page handler did not finish before the request deadline."""

    def __init__(self, timeout: float, details: dict[str, Any] | None = None):
        self.timeout = timeout
        super().__init__(
            f"request did not complete within {timeout:g} seconds",
            code=ErrorCode.REQUEST_TIMEOUT,
            status_code=504,
            details=details,
        )


def find_error_response(exc: BaseException | None) -> ErrorResponse | None:
    """Return the first ErrorResponse in ``exc`` or its ``raise ... from`` chain."""
    seen: set[int] = set()
    while exc is not None and id(exc) not in seen:
        if isinstance(exc, ErrorResponse):
            return exc
        seen.add(id(exc))
        exc = exc.__cause__
    return None
