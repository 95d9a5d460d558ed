"""Tests for the template middleware request pipeline."""

import asyncio
import time
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from jinja2 import Environment

from page_renderer.core.app_factory import create_app
from page_renderer.exceptions import ForbiddenError, NotFoundError
from page_renderer.middleware.response_writer import ResponseCapture
from page_renderer.middleware.template_middleware import (
    TemplateHandlerFunc,
    TemplateMiddleware,
    template_context,
    time_remaining,
)
from page_renderer.views.descriptor import direct_template, named_template
from page_renderer.views.template_manager import EmbeddedTemplateManager


class TestRendering:
    """Tests for the successful render path."""

    def test_named_template_rendered(self, page_client):
        """Test a named template renders with status 200."""

        async def handler(writer, request):
            return named_template("home.html"), {"user": "alice"}

        response = page_client(handler).get("/page")

        assert response.status_code == 200
        assert response.text == "<p>Hello, alice!</p>"
        assert response.headers["content-type"] == "text/html; charset=utf-8"

    def test_sync_handler(self, page_client):
        """Test plain functions work as handlers."""

        def handler(writer, request):
            return named_template("home.html"), {"user": request.query_params["user"]}

        response = page_client(handler).get("/page?user=carol")

        assert response.status_code == 200
        assert response.text == "<p>Hello, carol!</p>"

    def test_handler_object_with_serve(self, page_client):
        """Test objects implementing serve() work as handlers."""

        class ProfilePage:
            async def serve(self, writer, request):
                return named_template("profile.html"), {"name": "Dana"}

        response = page_client(ProfilePage()).get("/page")

        assert response.text == "<html><h1>Dana</h1></html>"

    @pytest.mark.asyncio
    async def test_direct_template_bypasses_manager(self, make_request):
        """Test a direct template is rendered without a lookup."""
        templates = MagicMock()
        direct = Environment().from_string("direct {{ data }}")

        async def handler(writer, request):
            return direct_template(direct), 42

        writer = await TemplateMiddleware(templates, handler).dispatch(make_request())

        templates.lookup_template.assert_not_called()
        assert writer.status_code == 200
        assert writer.body == b"direct 42"

    def test_handler_content_type_kept(self, page_client):
        """Test a content type set by the handler is not overwritten."""

        async def handler(writer, request):
            writer.headers["content-type"] = "application/xhtml+xml"
            return named_template("home.html"), {"user": "eve"}

        response = page_client(handler).get("/page")

        assert response.headers["content-type"] == "application/xhtml+xml"


class TestHandlerOwnedResponses:
    """Tests for handlers that write their own response."""

    def test_redirect_not_rendered(self, page_client):
        """Test a handler that wrote a status gets no extra output."""

        async def handler(writer, request):
            writer.headers["location"] = "/login"
            writer.write_header(302)
            return None, None

        response = page_client(handler).get("/page")

        assert response.status_code == 302
        assert response.headers["location"] == "/login"
        assert response.content == b""

    @pytest.mark.asyncio
    async def test_no_lookup_after_handler_wrote(self, make_request):
        """Test the template manager is never consulted once the handler answered."""
        templates = MagicMock()

        async def handler(writer, request):
            writer.write_header(201)
            writer.write(b'{"ok": true}')
            return named_template("home.html"), {"user": "ignored"}

        writer = await TemplateMiddleware(templates, handler).dispatch(make_request())

        templates.lookup_template.assert_not_called()
        assert writer.status_code == 201
        assert writer.body == b'{"ok": true}'


class TestErrors:
    """Tests for errors routed to error pages."""

    def test_not_found_uses_404_template(self, page_client):
        """Test status 404 errors render 404.html."""

        async def handler(writer, request):
            raise NotFoundError("no such user")

        response = page_client(handler).get("/page")

        assert response.status_code == 404
        assert response.text == "<h1>Not found: no such user</h1>"

    def test_not_found_without_template_is_plain_text(self, test_settings, tmp_path):
        """Test status 404 without 404.html falls back to the message."""
        src = tmp_path / "bare"
        src.mkdir()
        (src / "home.html").write_text("home")
        manager = EmbeddedTemplateManager(tmp_path, "bare")

        async def handler(writer, request):
            raise NotFoundError("no such user")

        with TestClient(create_app(test_settings, pages={"/page": handler}, templates=manager)) as client:
            response = client.get("/page")

        assert response.status_code == 404
        assert "no such user" in response.text
        assert response.headers["content-type"] == "text/plain; charset=utf-8"

    def test_forbidden_without_template_is_exact_message(self, page_client):
        """Test status 403 without 403.html returns exactly the message line."""

        async def handler(writer, request):
            raise ForbiddenError("Access denied")

        response = page_client(handler).get("/page")

        assert response.status_code == 403
        assert response.text == "Access denied\n"

    def test_uncategorized_error_is_500(self, page_client):
        """Test unexpected exceptions become a 500 page without details."""

        async def handler(writer, request):
            raise KeyError("internal detail")

        response = page_client(handler).get("/page")

        assert response.status_code == 500
        assert response.text == "<h1>500: Internal Server Error</h1>"
        assert "internal detail" not in response.text

    def test_missing_template_is_500(self, page_client):
        """Test naming an unknown template renders the 500 page."""

        async def handler(writer, request):
            return named_template("nope.html"), {}

        response = page_client(handler).get("/page")

        assert response.status_code == 500
        assert response.text == "<h1>500: cannot find template nope.html</h1>"

    def test_render_error_is_500(self, page_client):
        """Test data that does not fit the template renders the 500 page."""

        async def handler(writer, request):
            return named_template("profile.html"), {}

        response = page_client(handler).get("/page")

        assert response.status_code == 500
        assert response.text.startswith("<h1>500: error rendering template profile.html")

    def test_no_descriptor_is_500(self, page_client):
        """Test returning no template without writing a response is an error."""

        async def handler(writer, request):
            return None, {"user": "x"}

        response = page_client(handler).get("/page")

        assert response.status_code == 500
        assert response.text == "<h1>500: handler did not return a template</h1>"


class TestDeadline:
    """Tests for the per-request deadline."""

    def test_slow_handler_times_out(self, page_client):
        """Test an async handler past the deadline gets a 504."""

        async def handler(writer, request):
            await asyncio.sleep(5)
            return named_template("home.html"), {"user": "late"}

        response = page_client(handler, request_timeout=0.05).get("/page")

        assert response.status_code == 504
        assert response.text == "request did not complete within 0.05 seconds\n"

    def test_sync_handler_is_not_interrupted(self, page_client):
        """Test the deadline is cooperative for sync handlers."""
        finished = []

        def handler(writer, request):
            time.sleep(0.2)
            finished.append(True)
            return named_template("home.html"), {"user": "slow"}

        response = page_client(handler, request_timeout=0.05).get("/page")

        assert response.status_code == 504
        give_up = time.monotonic() + 2.0
        while not finished and time.monotonic() < give_up:
            time.sleep(0.01)
        assert finished == [True]

    def test_deadline_visible_to_handler(self, page_client):
        """Test handlers can see how much time they have left."""
        seen = []

        async def handler(writer, request):
            seen.append(time_remaining(request))
            return named_template("home.html"), {"user": "x"}

        page_client(handler, request_timeout=3.0).get("/page")

        assert 0 < seen[0] <= 3.0

    def test_deadline_visible_to_sync_handler(self, page_client):
        """Test sync handlers running in a worker thread can read their deadline."""
        seen = []

        def handler(writer, request):
            seen.append(time_remaining(request))
            return named_template("home.html"), {"user": "x"}

        response = page_client(handler, request_timeout=3.0).get("/page")

        assert response.status_code == 200
        assert response.text == "<p>Hello, x!</p>"
        assert 0 < seen[0] <= 3.0

    def test_late_sync_handler_keeps_its_status(self, page_client):
        """Test a handler that wrote a status and then overran still gets the timeout text."""

        def handler(writer, request):
            writer.headers["location"] = "/elsewhere"
            writer.write_header(302)
            time.sleep(0.2)

        response = page_client(handler, request_timeout=0.05).get("/page")

        assert response.status_code == 302
        assert response.headers["location"] == "/elsewhere"
        assert response.text == "request did not complete within 0.05 seconds\n"

    def test_handler_timeout_error_is_not_deadline(self, page_client):
        """Test a TimeoutError raised by the handler itself is a plain 500."""

        async def handler(writer, request):
            raise TimeoutError("upstream slow")

        response = page_client(handler).get("/page")

        assert response.status_code == 500

    def test_time_remaining_outside_middleware(self, make_request):
        """Test requests that did not pass through the middleware have no deadline."""
        assert time_remaining(make_request()) is None


class TestHelpers:
    """Tests for small middleware helpers."""

    def test_template_context_from_mapping(self, make_request):
        """Test mappings become the template context."""
        request = make_request()

        context = template_context({"user": "alice"}, request)

        assert context == {"user": "alice", "request": request}

    def test_template_context_from_object(self, make_request):
        """Test other values are exposed as data."""
        request = make_request()

        assert template_context([1, 2], request) == {"data": [1, 2], "request": request}

    def test_template_handler_func(self, make_request):
        """Test the function adapter forwards arguments."""
        calls = []

        def page(writer, request):
            calls.append((writer, request))
            return named_template("home.html"), {}

        handler = TemplateHandlerFunc(page)
        capture = MagicMock(spec=ResponseCapture)
        request = make_request()

        handler.serve(capture, request)

        assert calls == [(capture, request)]
        assert handler.__name__ == "page"
