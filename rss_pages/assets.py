"""Stylesheet bootstrapping."""

from __future__ import annotations

import logging
from importlib import resources
from pathlib import Path

logger = logging.getLogger(__name__)


def default_stylesheet() -> str:
    return (resources.files(__package__) / "static" / "index.css").read_text(
        encoding="utf-8"
    )


def load_stylesheet(path) -> str:
    """Read the stylesheet at ``path``, writing the packaged default if absent."""
    location = Path(path)
    if location.exists():
        return location.read_text(encoding="utf-8")

    css = default_stylesheet()
    try:
        location.write_text(css, encoding="utf-8")
        logger.info("Wrote default stylesheet to %s", location)
    except OSError as exc:
        logger.warning("Could not write default stylesheet to %s: %s", location, exc)
    return css
