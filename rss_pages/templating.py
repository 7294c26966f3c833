"""Jinja2 environment for rss_pages templates."""

from __future__ import annotations

from datetime import datetime
from importlib import resources

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .models import INVALID_DATE

_ENV: Environment | None = None


def _short_date(value: datetime | None) -> str:
    """Format a date as M/D/YYYY, the way the site has always shown it."""
    if value is None or value == INVALID_DATE:
        return "Invalid Date"
    return f"{value.month}/{value.day}/{value.year}"


def get_environment() -> Environment:
    """Return a cached Jinja environment configured for package templates."""
    global _ENV
    if _ENV is None:
        template_dir = resources.files(__package__) / "templates"
        loader = FileSystemLoader(str(template_dir))
        _ENV = Environment(
            loader=loader,
            autoescape=select_autoescape(["html", "xml", "j2"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        _ENV.filters["short_date"] = _short_date
    return _ENV
