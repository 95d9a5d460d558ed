"""Pytest configuration and shared fixtures."""

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from starlette.requests import Request

from page_renderer.config import Settings
from page_renderer.core.app_factory import create_app
from page_renderer.views.template_manager import EmbeddedTemplateManager

TEMPLATE_FILES = {
    "base.html": "<html>{% block content %}{% endblock %}</html>",
    "home.html": "<p>Hello, {{ user }}!</p>",
    "profile.html": '{% extends "base.html" %}{% block content %}<h1>{{ name }}</h1>{% endblock %}',
    "404.html": "<h1>Not found: {{ message }}</h1>",
    "500.html": "<h1>{{ status_code }}: {{ message }}</h1>",
    "418.html": "{{ error.missing_attr.deeper }}",
    # Editor leftovers with broken syntax; must never be parsed
    "#home.html#": "{% if %}",
    "home.html~": "{% for %}",
}


def write_templates(directory: Path, templates: dict[str, str]) -> Path:
    """Write ``templates`` into ``directory`` and return it."""
    directory.mkdir(parents=True, exist_ok=True)
    for name, source in templates.items():
        (directory / name).write_text(source, encoding="utf-8")
    return directory


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """Directory with a small template set plus editor backup files."""
    return write_templates(tmp_path / "templates", TEMPLATE_FILES)


@pytest.fixture
def embedded_manager(template_dir: Path) -> EmbeddedTemplateManager:
    """Template manager over the fixture template set."""
    return EmbeddedTemplateManager(template_dir.parent, template_dir.name)


@pytest.fixture
def test_settings(template_dir: Path) -> Settings:
    """Settings pointing at the fixture templates, ignoring any .env file."""
    return Settings(templates_dir=template_dir, request_timeout=2.0, _env_file=None)


@pytest.fixture
def page_client(
    test_settings: Settings, embedded_manager: EmbeddedTemplateManager
) -> Iterator[Callable[..., TestClient]]:
    """Factory for a test client serving one page handler at ``/page``."""
    clients: list[TestClient] = []

    def make(handler, **settings_overrides) -> TestClient:
        settings = test_settings.model_copy(update=settings_overrides)
        app = create_app(settings, pages={"/page": handler}, templates=embedded_manager)
        client = TestClient(app, follow_redirects=False)
        clients.append(client)
        return client

    yield make

    for client in clients:
        client.close()


@pytest.fixture
def make_request() -> Callable[..., Request]:
    """Factory for bare Starlette requests, for calling the middleware directly."""

    def make(path: str = "/page", query_string: bytes = b"") -> Request:
        scope = {
            "type": "http",
            "method": "GET",
            "scheme": "http",
            "server": ("testserver", 80),
            "path": path,
            "raw_path": path.encode(),
            "root_path": "",
            "query_string": query_string,
            "headers": [],
        }
        return Request(scope)

    return make
