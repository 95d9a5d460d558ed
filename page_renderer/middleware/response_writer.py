"""Buffered response sink handed to page handlers.

ASGI sends the status line once, so the writer collects status, headers and
body for the whole request and turns them into a single Starlette
``Response`` at the end. The first ``write_header`` wins; later calls are
logged and ignored.
"""

from starlette.datastructures import MutableHeaders
from starlette.responses import Response

from page_renderer.logging_config import get_logger, log_with_context

logger = get_logger(__name__)

HTML_CONTENT_TYPE = "text/html; charset=utf-8"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


class ResponseAlreadySentError(RuntimeError):
    """Write attempted after the response was handed to the server."""


class ResponseWriter:
    """Collects one HTTP response: status, headers and body."""

    def __init__(self):
        self.headers = MutableHeaders()
        self.status_code: int | None = None
        self._body = bytearray()
        self._closed = False

    @property
    def body(self) -> bytes:
        return bytes(self._body)

    @property
    def closed(self) -> bool:
        return self._closed

    def write_header(self, status_code: int) -> None:
        """Set the response status. Only the first call has any effect."""
        self._check_open()
        if self.status_code is not None:
            log_with_context(
                logger,
                "debug",
                "Superfluous write_header call ignored",
                status_code=self.status_code,
                ignored_status_code=status_code,
                event_type="superfluous_write_header",
            )
            return
        self.status_code = status_code

    def write(self, data: bytes | str) -> int:
        """Append ``data`` to the body, implying status 200 if none was set.

        Returns:
            Number of bytes written
        """
        self._check_open()
        if self.status_code is None:
            self.status_code = 200
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._body.extend(data)
        return len(data)

    def set_default_content_type(self, content_type: str) -> None:
        """Set Content-Type unless the handler already chose one."""
        if "content-type" not in self.headers:
            self.headers["content-type"] = content_type

    def to_response(self) -> Response:
        """Freeze the writer into the Starlette response sent to the client."""
        self._closed = True
        return Response(
            content=bytes(self._body),
            status_code=self.status_code or 200,
            headers=self.headers,
        )

    def _check_open(self) -> None:
        if self._closed:
            raise ResponseAlreadySentError("response has already been sent")


class ResponseCapture:
    """Wraps a ResponseWriter and remembers whether a status was written.

    Writes go straight through to the wrapped writer. Only explicit
    ``write_header`` calls are recorded: a handler that writes a status has
    taken over the response.
    """

    def __init__(self, writer: ResponseWriter):
        self.writer = writer
        self.status_code: int | None = None

    @property
    def headers(self) -> MutableHeaders:
        return self.writer.headers

    @property
    def captured(self) -> bool:
        return self.status_code is not None

    def write_header(self, status_code: int) -> None:
        if self.status_code is None:
            self.status_code = status_code
        self.writer.write_header(status_code)

    def write(self, data: bytes | str) -> int:
        return self.writer.write(data)

    def set_default_content_type(self, content_type: str) -> None:
        self.writer.set_default_content_type(content_type)
