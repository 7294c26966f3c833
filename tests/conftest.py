import logging
from datetime import datetime, timedelta, timezone

import pytest

from rss_pages.models import Post

BASE_DATE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_post(index: int, site: str = "example.com", days: int = None) -> Post:
    """Build a post whose date increases with ``index`` unless ``days`` is given."""
    offset = index if days is None else days
    return Post(
        title=f"Post {index}",
        link=f"https:&#x2F;&#x2F;{site}&#x2F;{index}",
        date=BASE_DATE + timedelta(days=offset),
        site=site,
    )


def rss_document(items) -> str:
    """Render ``(title, link, date)`` tuples as a minimal RSS 2.0 document."""
    body = "".join(
        f"<item><title>{title}</title><link>{link}</link><pubDate>{date}</pubDate></item>"
        for title, link, date in items
    )
    return (
        '<?xml version="1.0"?><rss version="2.0"><channel>'
        f"<title>Feed</title>{body}</channel></rss>"
    )


def atom_document(items) -> str:
    """Render ``(title, link, date)`` tuples as a minimal Atom document."""
    body = "".join(
        f"<entry><title>{title}</title><id>{link}</id><updated>{date}</updated></entry>"
        for title, link, date in items
    )
    return f'<?xml version="1.0"?><feed xmlns="http://www.w3.org/2005/Atom">{body}</feed>'


@pytest.fixture
def restore_root_logger():
    """Keep tests that reconfigure logging from leaking handlers."""
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    try:
        yield root
    finally:
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()
        for handler in original_handlers:
            root.addHandler(handler)
        root.setLevel(original_level)
