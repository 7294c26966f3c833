"""Durable, deduplicated history of every post seen so far."""

from __future__ import annotations

import gzip
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional

from dateutil import parser as date_parser

from .models import INVALID_DATE, Post

logger = logging.getLogger(__name__)


class HistoryError(RuntimeError):
    """Raised when the stored history snapshot cannot be read."""


def merge_posts(existing: Iterable[Post], incoming: Iterable[Post]) -> List[Post]:
    """Append incoming posts whose link has not been seen; first seen wins."""
    merged = list(existing)
    seen_links = {post.link for post in merged}
    for post in incoming:
        if post.link in seen_links:
            continue
        merged.append(post)
        seen_links.add(post.link)
    return merged


def _post_to_dict(post: Post) -> dict:
    return {
        "title": post.title,
        "link": post.link,
        "date": post.date.isoformat() if post.has_valid_date else None,
        "site": post.site,
    }


def _parse_stored_date(value) -> datetime:
    if not value:
        return INVALID_DATE
    try:
        parsed = date_parser.isoparse(value)
    except (TypeError, ValueError, OverflowError):
        return INVALID_DATE
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _post_from_dict(item: dict) -> Post:
    return Post(
        title=item["title"],
        link=item["link"],
        date=_parse_stored_date(item.get("date")),
        site=item["site"],
    )


class HistoryStore:
    """In-memory post collection backed by a gzip-compressed JSON file."""

    def __init__(
        self,
        posts: Optional[List[Post]] = None,
        last_update: Optional[datetime] = None,
        path: Optional[Path] = None,
    ):
        self.posts: List[Post] = list(posts or [])
        self.last_update = last_update or datetime.now(timezone.utc)
        self.path = Path(path) if path else None

    def __len__(self) -> int:
        return len(self.posts)

    @classmethod
    def load(cls, path) -> "HistoryStore":
        """Load the snapshot at ``path``; an absent file gives an empty store."""
        location = Path(path)
        if not location.exists():
            logger.info("No history snapshot at %s; starting empty", location)
            return cls(path=location)

        try:
            with gzip.open(location, "rt", encoding="utf-8") as handle:
                payload = json.load(handle)
            posts = [_post_from_dict(item) for item in payload.get("posts", [])]
        except (OSError, EOFError, json.JSONDecodeError) as exc:
            raise HistoryError(f"History snapshot is unreadable: {location}") from exc
        except (AttributeError, KeyError, TypeError) as exc:
            raise HistoryError(f"History snapshot has an unexpected layout: {location}") from exc

        last_update = _parse_stored_date(payload.get("last_update"))
        logger.info("Loaded %d posts from %s", len(posts), location)
        return cls(posts=posts, last_update=last_update, path=location)

    def merge(self, incoming: Iterable[Post]) -> int:
        """Merge a batch into the store and return how many posts were added."""
        before = len(self.posts)
        self.posts = merge_posts(self.posts, incoming)
        self.last_update = datetime.now(timezone.utc)
        added = len(self.posts) - before
        logger.debug("Merged batch: %d new, %d total", added, len(self.posts))
        return added

    def to_dict(self) -> dict:
        return {
            "posts": [_post_to_dict(post) for post in self.posts],
            "last_update": self.last_update.isoformat(),
        }

    def save(self) -> bool:
        """Persist the store; failures are logged and reported as False."""
        if self.path is None:
            return False

        data = gzip.compress(
            json.dumps(self.to_dict(), ensure_ascii=False).encode("utf-8")
        )
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            if self.path.parent and not self.path.parent.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(data)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            logger.error("Failed to write history snapshot %s: %s", self.path, exc)
            return False

        logger.info("Saved %d posts to %s", len(self.posts), self.path)
        return True
