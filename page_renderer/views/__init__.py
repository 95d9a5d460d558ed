"""View rendering module for HTML templates.

This module finds and caches Jinja2 templates and defines the descriptors
page handlers use to say which template should be rendered.
"""
