"""Shared data models for rss_pages."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

# Stand-in for dates that could not be parsed; sorts after every real date.
INVALID_DATE = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class Post:
    """Single syndication entry, already escaped for embedding in HTML."""

    title: str
    link: str
    date: datetime
    site: str

    @property
    def has_valid_date(self) -> bool:
        return self.date != INVALID_DATE
