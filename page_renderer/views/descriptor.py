"""Template descriptors returned by page handlers."""

from dataclasses import dataclass

from jinja2 import Template


@dataclass(frozen=True)
class TemplateDescriptor:
    """Which template a page handler wants rendered.

    Exactly one of ``named`` (looked up through the template manager) or
    ``direct`` (an already compiled template) is set. Use ``named_template``
    and ``direct_template`` to build one.
    """

    named: str | None = None
    direct: Template | None = None

    def __post_init__(self) -> None:
        if (self.named is None) == (self.direct is None):
            raise ValueError("TemplateDescriptor needs exactly one of 'named' or 'direct'")
        if self.named is not None and not self.named:
            raise ValueError("template name must not be empty")

    @property
    def name(self) -> str:
        """Template name for logging: the looked-up name or the direct template's own name."""
        if self.direct is not None:
            return self.direct.name or "<direct>"
        return self.named or ""


def named_template(called: str) -> TemplateDescriptor:
    """Render the template called ``called`` from the template manager."""
    return TemplateDescriptor(named=called)


def direct_template(template: Template) -> TemplateDescriptor:
    """Render ``template`` as-is, bypassing the template manager."""
    return TemplateDescriptor(direct=template)
