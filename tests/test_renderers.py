import gzip

import pytest

from conftest import make_post
from rss_pages import renderers
from rss_pages.feeds import escape_html
from rss_pages.models import INVALID_DATE, Post


def test_render_page_lists_posts_and_site_links():
    post = make_post(1, site="blog.example.com")

    html = renderers.render_page([post], 0, 0, "My Feeds", "All of them")

    assert "<title>My Feeds</title>" in html
    assert "<h3>All of them</h3>" in html
    assert f'<a href="{post.link}">Post 1</a>' in html
    assert '<a href="https://blog.example.com">blog.example.com</a>' in html
    assert '<a href="/blog.example.com">' in html
    assert "1/2/2024" in html


def test_render_page_keeps_escaped_title_verbatim():
    post = Post(
        title=escape_html("<script>a=b"),
        link="l",
        date=INVALID_DATE,
        site="s",
    )

    html = renderers.render_page([post], 0, 0, "T", "D")

    assert "&lt;script&gt;a&#x3D;b" in html
    assert "<script>" not in html
    assert "Invalid Date" in html


def test_render_page_escapes_site_title():
    html = renderers.render_page([], 0, 0, "<b>Title</b>", "D")

    assert "&lt;b&gt;Title&lt;/b&gt;" in html


def test_render_page_pagination_controls():
    middle = renderers.render_page([], 2, 4, "T", "D")
    first = renderers.render_page([], 0, 4, "T", "D")
    last = renderers.render_page([], 4, 4, "T", "D")

    assert 'href="/1"' in middle and 'href="/3"' in middle
    assert "2/4" in middle
    assert 'class="prev"' not in first
    assert 'href="/1"' in first
    assert 'class="next"' not in last
    assert 'href="/3"' in last


def test_render_site_page_has_no_pagination_links():
    html = renderers.render_site_page([make_post(1)], "T", "D")

    assert "0/0" in html
    assert 'class="prev"' not in html
    assert 'class="next"' not in html


def test_paginate_47_posts_by_10():
    posts = [make_post(i) for i in range(47)]

    pages, boundary = renderers.paginate(posts, 10)

    assert len(pages) == 5
    assert boundary == 4
    assert [len(page) for page in pages] == [10, 10, 10, 10, 7]


def test_paginate_exact_multiple_keeps_boundary_quirk():
    pages, boundary = renderers.paginate([make_post(i) for i in range(40)], 10)

    assert len(pages) == 4
    assert boundary == 4


def test_paginate_empty_and_invalid_page_size():
    assert renderers.paginate([], 10) == ([], 0)
    with pytest.raises(ValueError):
        renderers.paginate([], 0)


def test_compress_produces_gzip():
    assert gzip.decompress(renderers.compress("héllo")).decode("utf-8") == "héllo"
