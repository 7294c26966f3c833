import types
from datetime import datetime, timezone

import requests

from conftest import atom_document, rss_document
from rss_pages import feeds
from rss_pages.models import INVALID_DATE

FEED_URL = "https://Blog.Example.com/feed.xml"

ITEMS = [
    ("First", "https://blog.example.com/1", "Mon, 01 Jan 2024 10:00:00 GMT"),
    ("Second", "https://blog.example.com/2", "Tue, 02 Jan 2024 10:00:00 GMT"),
    ("Third", "https://blog.example.com/3", "Wed, 03 Jan 2024 10:00:00 GMT"),
]


def test_escape_html_covers_markup_characters():
    assert feeds.escape_html("<script>") == "&lt;script&gt;"
    assert feeds.escape_html("a=b") == "a&#x3D;b"
    assert feeds.escape_html("\"'`/") == "&quot;&#39;&#x60;&#x2F;"
    assert feeds.escape_html("plain & text") == "plain & text"


def test_extract_site_returns_lowercase_host():
    assert feeds.extract_site(FEED_URL) == "blog.example.com"
    assert feeds.extract_site("http://insecure.example.com/feed") is None
    assert feeds.extract_site("https://no-trailing-slash.example.com") is None


def test_parse_feed_extracts_rss_items():
    posts = feeds.parse_feed(rss_document(ITEMS), FEED_URL)

    assert [post.title for post in posts] == ["First", "Second", "Third"]
    assert posts[0].link == "https:&#x2F;&#x2F;blog.example.com&#x2F;1"
    assert posts[0].date == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)
    assert {post.site for post in posts} == {"blog.example.com"}


def test_parse_feed_atom_matches_rss():
    atom_items = [
        (title, link, date.replace("GMT", "+0000")) for title, link, date in ITEMS
    ]
    rss_posts = feeds.parse_feed(rss_document(ITEMS), FEED_URL)
    atom_posts = feeds.parse_feed(atom_document(atom_items), FEED_URL)

    assert atom_posts == rss_posts


def test_parse_feed_atom_iso_dates():
    document = atom_document([("Atom", "urn:uuid:1", "2024-03-05T08:30:00Z")])

    posts = feeds.parse_feed(document, FEED_URL)

    assert posts[0].link == "urn:uuid:1"
    assert posts[0].date == datetime(2024, 3, 5, 8, 30, tzinfo=timezone.utc)


def test_parse_feed_drops_item_missing_link():
    document = rss_document(ITEMS) + (
        "<item><title>Broken</title><pubDate>Thu, 04 Jan 2024 10:00:00 GMT</pubDate></item>"
    )

    posts = feeds.parse_feed(document, FEED_URL)

    assert len(posts) == 3
    assert "Broken" not in [post.title for post in posts]


def test_parse_feed_strips_cdata_and_escapes_title():
    document = rss_document(
        [("<![CDATA[<script>alert(1)</script>]]>", "https://x.example.com/a", "2024-01-01")]
    )

    posts = feeds.parse_feed(document, FEED_URL)

    assert posts[0].title == "&lt;script&gt;alert(1)&lt;&#x2F;script&gt;"


def test_parse_feed_keeps_item_with_unparseable_date():
    document = rss_document([("Odd", "https://x.example.com/a", "not a date")])

    posts = feeds.parse_feed(document, FEED_URL)

    assert len(posts) == 1
    assert posts[0].date == INVALID_DATE
    assert not posts[0].has_valid_date


def test_parse_feed_skips_source_without_host():
    assert feeds.parse_feed(rss_document(ITEMS), "ftp://example.com/feed") == []


def test_parse_feed_tolerates_garbage():
    assert feeds.parse_feed("<item><title>unterminated", FEED_URL) == []
    assert feeds.parse_feed("", FEED_URL) == []


def test_fetch_feed_posts_parses_response(monkeypatch):
    calls = []

    def fake_get(url, timeout=None):
        calls.append((url, timeout))
        return types.SimpleNamespace(
            text=rss_document(ITEMS[:1]), raise_for_status=lambda: None
        )

    monkeypatch.setattr(feeds.requests, "get", fake_get)

    posts = feeds.fetch_feed_posts(FEED_URL, timeout=3.0)

    assert calls == [(FEED_URL, 3.0)]
    assert [post.title for post in posts] == ["First"]


def test_fetch_feed_posts_handles_request_exception(monkeypatch):
    def failing_get(url, timeout=None):
        raise requests.ConnectionError("DNS failure")

    monkeypatch.setattr(feeds.requests, "get", failing_get)

    assert feeds.fetch_feed_posts(FEED_URL) == []


def test_fetch_feed_posts_handles_http_error(monkeypatch):
    def raise_for_status():
        raise requests.HTTPError("503 Server Error")

    monkeypatch.setattr(
        feeds.requests,
        "get",
        lambda url, timeout=None: types.SimpleNamespace(
            text="", raise_for_status=raise_for_status
        ),
    )

    assert feeds.fetch_feed_posts(FEED_URL) == []


def test_fetch_feed_posts_skips_bad_url_without_request(monkeypatch):
    def unexpected_get(*args, **kwargs):
        raise AssertionError("no request expected")

    monkeypatch.setattr(feeds.requests, "get", unexpected_get)

    assert feeds.fetch_feed_posts("https://missing-path.example.com") == []
