"""Tests for template descriptors."""

import pytest
from jinja2 import DictLoader, Environment

from page_renderer.views.descriptor import TemplateDescriptor, direct_template, named_template


class TestTemplateDescriptor:
    """Tests for TemplateDescriptor construction."""

    def test_named_template(self):
        """Test named descriptors carry only the name."""
        descriptor = named_template("home.html")

        assert descriptor.named == "home.html"
        assert descriptor.direct is None
        assert descriptor.name == "home.html"

    def test_direct_template(self):
        """Test direct descriptors carry only the template."""
        template = Environment().from_string("hi")

        descriptor = direct_template(template)

        assert descriptor.direct is template
        assert descriptor.named is None
        assert descriptor.name == "<direct>"

    def test_direct_template_uses_template_name(self):
        """Test direct templates loaded by name report that name."""
        template = Environment(loader=DictLoader({"inline.html": "hi"})).get_template("inline.html")

        assert direct_template(template).name == "inline.html"

    def test_requires_exactly_one_variant(self):
        """Test empty and double-populated descriptors are rejected."""
        template = Environment().from_string("hi")

        with pytest.raises(ValueError):
            TemplateDescriptor()
        with pytest.raises(ValueError):
            TemplateDescriptor(named="home.html", direct=template)

    def test_empty_name_rejected(self):
        """Test a blank template name is rejected."""
        with pytest.raises(ValueError):
            named_template("")

    def test_descriptor_is_immutable(self):
        """Test descriptors cannot be changed after creation."""
        descriptor = named_template("home.html")

        with pytest.raises(AttributeError):
            descriptor.named = "other.html"
