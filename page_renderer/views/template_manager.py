"""Template managers: discovering, parsing and caching Jinja2 templates.

Two strategies are provided:

- ``EmbeddedTemplateManager`` parses a read-only resource tree once at
  construction and serves lookups from that immutable set.
- ``FileSystemTemplateManager`` re-reads and re-parses a directory on every
  lookup so edits show up without a restart.
"""

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from importlib.resources import files
from importlib.resources.abc import Traversable
from pathlib import Path
from types import MappingProxyType
from typing import Any

from jinja2 import DictLoader, Environment, StrictUndefined, Template, TemplateError, select_autoescape

from page_renderer.config import Settings
from page_renderer.exceptions import TemplateDirectoryError, TemplateNotFoundError, TemplateParseError
from page_renderer.logging_config import get_logger, log_with_context
from page_renderer.protocols import TemplateManager

logger = get_logger(__name__)

# Editor backup and swap files (e.g. "#home.html#", "home.html~")
IGNORED_NAME_CHARS = frozenset("#~")

BUNDLED_TEMPLATES_PACKAGE = "page_renderer"
BUNDLED_TEMPLATES_DIR = "templates"


def default_if_none(value: Any, default: Any = "") -> Any:
    """Return ``default`` when ``value`` is None."""
    return default if value is None else value


def base_environment(sources: Mapping[str, str]) -> Environment:
    """Create the Jinja2 environment every template set is parsed into.

    Args:
        sources: Template source text keyed by template name

    Returns:
        Environment whose loader serves exactly ``sources``
    """
    env = Environment(
        loader=DictLoader(dict(sources)),
        autoescape=select_autoescape(["html", "htm", "xml"]),
        undefined=StrictUndefined,
    )
    env.globals["now"] = lambda: datetime.now(UTC)
    env.filters["default_if_none"] = default_if_none
    return env


def filter_template_files(entries: Iterable[Traversable]) -> list[Traversable]:
    """Keep regular files whose names do not contain ``#`` or ``~``."""
    kept = [e for e in entries if e.is_file() and not IGNORED_NAME_CHARS.intersection(e.name)]
    return sorted(kept, key=lambda e: e.name)


def read_template_sources(src_dir: Traversable) -> dict[str, str]:
    """List ``src_dir`` and read every template file in it.

    Raises:
        TemplateDirectoryError: If the directory cannot be listed
        TemplateParseError: If a template file cannot be read
    """
    try:
        entries = list(src_dir.iterdir())
    except OSError as e:
        raise TemplateDirectoryError(
            f"cannot read template directory {src_dir}: {e}",
            details={"directory": str(src_dir)},
        ) from e

    sources: dict[str, str] = {}
    for entry in filter_template_files(entries):
        try:
            sources[entry.name] = entry.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise TemplateParseError(
                f"cannot read template {entry.name}: {e}",
                details={"directory": str(src_dir), "template": entry.name},
            ) from e
    return sources


def parse_template_set(sources: Mapping[str, str], origin: str) -> dict[str, Template]:
    """Compile every source into one template set.

    All templates share one environment so they can extend and include each
    other by name. A failure in any file fails the whole set.

    Args:
        sources: Template source text keyed by template name
        origin: Where the sources came from, for error messages

    Returns:
        Compiled templates keyed by name

    Raises:
        TemplateParseError: If there are no sources or any of them fails to compile
    """
    if not sources:
        raise TemplateParseError(f"no template files found in {origin}", details={"directory": origin})

    env = base_environment(sources)
    templates: dict[str, Template] = {}
    for name in sources:
        try:
            templates[name] = env.get_template(name)
        except TemplateError as e:
            raise TemplateParseError(
                f"error parsing template {name} from {origin}: {e}",
                details={"directory": origin, "template": name},
            ) from e
    return templates


def lookup_template(templates: Mapping[str, Template], name: str) -> Template:
    """Find ``name`` in a parsed template set.

    Raises:
        TemplateNotFoundError: If the set has no template called ``name``
    """
    template = templates.get(name)
    if template is None:
        raise TemplateNotFoundError(name)
    return template


class EmbeddedTemplateManager:
    """Template set parsed once from a read-only resource tree.

    ``source`` is anything ``importlib.resources`` can traverse: the result of
    ``importlib.resources.files(package)`` or a plain ``pathlib.Path``.
    Construction fails with ``TemplateDirectoryError`` or ``TemplateParseError``;
    afterwards the set never changes and is safe to share between requests.
    """

    def __init__(self, source: Traversable, src_dir: str):
        directory = source.joinpath(src_dir)
        sources = read_template_sources(directory)
        self._templates: Mapping[str, Template] = MappingProxyType(parse_template_set(sources, str(directory)))

        log_with_context(
            logger,
            "info",
            "Template set loaded",
            directory=str(directory),
            template_count=len(self._templates),
            event_type="templates_loaded",
        )

    @property
    def template_names(self) -> list[str]:
        """Names of all templates in the cached set."""
        return sorted(self._templates)

    def lookup_template(self, name: str) -> Template:
        return lookup_template(self._templates, name)


class FileSystemTemplateManager:
    """Template set re-read from disk on every lookup.

    Nothing is cached, so template edits are visible on the next request.
    Every lookup pays for listing the directory and parsing all templates.
    """

    def __init__(self, src_dir: str | Path):
        self.src_dir = Path(src_dir)

    def lookup_template(self, name: str) -> Template:
        sources = read_template_sources(self.src_dir)
        templates = parse_template_set(sources, str(self.src_dir))
        return lookup_template(templates, name)


def create_template_manager(settings: Settings) -> TemplateManager:
    """Build the template manager selected by settings.

    Args:
        settings: Application settings

    Returns:
        Live filesystem manager when ``templates_reload`` is set, otherwise an
        embedded manager over ``templates_dir`` or the bundled templates

    Raises:
        TemplateDirectoryError: If the embedded template directory cannot be listed
        TemplateParseError: If the embedded template set fails to parse
    """
    if settings.templates_reload and settings.templates_dir is not None:
        log_with_context(
            logger,
            "info",
            "Serving templates from disk with live reload",
            directory=str(settings.templates_dir),
            event_type="templates_mode",
        )
        return FileSystemTemplateManager(settings.templates_dir)

    if settings.templates_dir is not None:
        return EmbeddedTemplateManager(settings.templates_dir.parent, settings.templates_dir.name)

    return EmbeddedTemplateManager(files(BUNDLED_TEMPLATES_PACKAGE), BUNDLED_TEMPLATES_DIR)
