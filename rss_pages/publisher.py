"""Immutable page snapshots and the holder the HTTP layer reads from."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from .aggregator import AggregateResult
from .renderers import compress, paginate, render_page, render_site_page

logger = logging.getLogger(__name__)

HTML = "text/html"
CSS = "text/css"


@dataclass(frozen=True)
class Page:
    """A gzip-compressed document ready to be served."""

    body: bytes
    content_type: str


@dataclass(frozen=True)
class PageSnapshot:
    """Complete set of servable pages, keyed by request path."""

    version: int
    pages: Mapping[str, Page] = field(default_factory=lambda: MappingProxyType({}))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def get(self, path: str) -> Optional[Page]:
        return self.pages.get(path)

    def __contains__(self, path: str) -> bool:
        return path in self.pages

    def __len__(self) -> int:
        return len(self.pages)


def build_snapshot(
    result: AggregateResult,
    title: str,
    description: str,
    posts_per_page: int,
    stylesheet: str,
    version: int,
) -> PageSnapshot:
    """Render every page for ``result`` into a new snapshot."""
    pages: Dict[str, Page] = {"/css": Page(compress(stylesheet), CSS)}

    for site, posts in result.by_site.items():
        pages[f"/{site}"] = Page(
            compress(render_site_page(posts, title, description)), HTML
        )

    chunks, boundary = paginate(result.posts, posts_per_page)
    for index, chunk in enumerate(chunks):
        pages[f"/{index}"] = Page(
            compress(render_page(chunk, index, boundary, title, description)), HTML
        )

    first = chunks[0] if chunks else []
    pages["/"] = Page(compress(render_page(first, 0, boundary, title, description)), HTML)

    logger.info(
        "Built snapshot v%d: %d pages (%d index, %d sites)",
        version,
        len(pages),
        len(chunks),
        len(result.by_site),
    )
    return PageSnapshot(version=version, pages=MappingProxyType(pages))


class SnapshotHolder:
    """Single swappable reference to the snapshot currently being served."""

    def __init__(self, snapshot: Optional[PageSnapshot] = None):
        self._lock = threading.Lock()
        self._snapshot = snapshot or PageSnapshot(version=0)

    def current(self) -> PageSnapshot:
        return self._snapshot

    def next_version(self) -> int:
        with self._lock:
            return self._snapshot.version + 1

    def publish(self, snapshot: PageSnapshot) -> PageSnapshot:
        """Install ``snapshot`` and return the one it replaced."""
        with self._lock:
            previous = self._snapshot
            self._snapshot = snapshot
        logger.info(
            "Published snapshot v%d (replaced v%d)", snapshot.version, previous.version
        )
        return previous
