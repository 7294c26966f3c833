"""Feed fetching and lightweight pattern-based parsing.

Feeds are not parsed as XML. Atom tags are rewritten to their RSS
equivalents and items are cut out with non-greedy patterns, so nested or
escaped markup inside an item is not handled.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import List, Optional

import requests
from dateutil import parser as date_parser

from .models import INVALID_DATE, Post

logger = logging.getLogger(__name__)

_ATOM_REPLACEMENTS = (
    ("<entry>", "<item>"),
    ("</entry>", "</item>"),
    ("<id>", "<link>"),
    ("</id>", "</link>"),
    ("<updated>", "<pubDate>"),
    ("</updated>", "</pubDate>"),
)

_ENTITY_MAP = {
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#39;",
    "/": "&#x2F;",
    "`": "&#x60;",
    "=": "&#x3D;",
}

_ENTITY_PATTERN = re.compile(r"[<>\"'`=/]")
_SITE_PATTERN = re.compile(r"https://(.*?)/", re.DOTALL)
_ITEM_PATTERN = re.compile(r"<item>(.*?)</item>", re.DOTALL)


def _field_pattern(tag: str) -> re.Pattern:
    return re.compile(rf"<{tag}>(.*?)</{tag}>", re.DOTALL)


_TITLE_PATTERN = _field_pattern("title")
_LINK_PATTERN = _field_pattern("link")
_DATE_PATTERN = _field_pattern("pubDate")


def escape_html(value: str) -> str:
    """Escape the characters that matter when embedding text in markup."""
    return _ENTITY_PATTERN.sub(lambda match: _ENTITY_MAP[match.group(0)], value)


def extract_site(url: str) -> Optional[str]:
    """Return the lowercase host of an https URL, or None if it has none."""
    match = _SITE_PATTERN.search(url)
    if not match or not match.group(1):
        return None
    return match.group(1).lower()


def parse_date(value: str) -> datetime:
    """Best-effort calendar parsing; returns INVALID_DATE on failure."""
    try:
        parsed = date_parser.parse(value.strip())
    except (ValueError, OverflowError, TypeError) as exc:
        logger.debug("Unparseable date '%s': %s", value, exc)
        return INVALID_DATE
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_atom(text: str) -> str:
    """Rewrite Atom entry tags into the RSS item vocabulary."""
    for old, new in _ATOM_REPLACEMENTS:
        text = text.replace(old, new)
    return text


def _first(pattern: re.Pattern, block: str) -> Optional[str]:
    match = pattern.search(block)
    return match.group(1) if match else None


def parse_feed(text: str, url: str) -> List[Post]:
    """Extract posts from a raw RSS or Atom document fetched from ``url``."""
    site = extract_site(url)
    if not site:
        logger.warning("No host found in feed URL %s; skipping source", url)
        return []

    posts: List[Post] = []
    for block in _ITEM_PATTERN.findall(normalize_atom(text)):
        title = _first(_TITLE_PATTERN, block)
        if title and "CDATA" in title:
            title = title.replace("<![CDATA[", "", 1).replace("]]>", "", 1)
        link = _first(_LINK_PATTERN, block)
        date = _first(_DATE_PATTERN, block)

        if not title or not link or not date:
            logger.info("Dropping malformed item in %s (missing title, link or date)", url)
            continue

        posts.append(
            Post(
                title=escape_html(title),
                link=escape_html(link),
                date=parse_date(date),
                site=site,
            )
        )

    logger.debug("Parsed %d posts from %s", len(posts), url)
    return posts


def fetch_feed_document(url: str, timeout: float = 10.0) -> Optional[str]:
    """Download a feed document; returns None on any request failure."""
    logger.info("Fetching feed %s", url)
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        logger.warning("Failed to fetch feed %s: %s", url, exc)
        return None
    return response.text


def fetch_feed_posts(url: str, timeout: float = 10.0) -> List[Post]:
    """Fetch and parse one source; failures yield an empty list."""
    if not extract_site(url):
        logger.warning("No posts found for %s: URL has no https host", url)
        return []

    text = fetch_feed_document(url, timeout=timeout)
    if text is None:
        return []

    posts = parse_feed(text, url)
    logger.info("Collected %d posts from feed %s", len(posts), url)
    return posts
