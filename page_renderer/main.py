"""Main application entry point with a demo home page."""

from pathlib import Path

from dotenv import load_dotenv
from starlette.requests import Request

from page_renderer.config import get_settings
from page_renderer.core.app_factory import create_app
from page_renderer.exceptions import NotFoundError
from page_renderer.logging_config import setup_logging
from page_renderer.middleware.response_writer import ResponseCapture
from page_renderer.views.descriptor import named_template

# Load environment variables from .env file
load_dotenv(Path(__file__).parent.parent / ".env")

settings = get_settings()

# Configure structured logging (console + optional JSON file)
setup_logging(settings.log_level, settings.log_dir)


async def home(writer: ResponseCapture, request: Request):
    """Greet the user named in the query string."""
    return named_template("home.html"), {"user": request.query_params.get("user", "world")}


async def missing(writer: ResponseCapture, request: Request):
    """Every unknown page ends up here."""
    raise NotFoundError(f"no page at {request.url.path}")


app = create_app(settings, pages={"/": home, "/missing": missing})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "page_renderer.main:app",
        host=settings.api_host,
        port=settings.api_port,
    )
