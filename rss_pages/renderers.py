"""Rendering helpers for site pages."""

from __future__ import annotations

import gzip
import math
from typing import List, Sequence, Tuple

from .models import Post
from .templating import get_environment


def render_page(
    posts: Sequence[Post],
    page: int,
    total_pages: int,
    title: str,
    description: str,
) -> str:
    """Render one HTML page listing ``posts`` with pagination controls."""
    env = get_environment()
    template = env.get_template("page.html.j2")
    return template.render(
        posts=posts,
        page=page,
        total_pages=total_pages,
        title=title,
        description=description,
    )


def render_site_page(posts: Sequence[Post], title: str, description: str) -> str:
    """Render the single, unpaginated page for one source."""
    return render_page(posts, 0, 0, title, description)


def paginate(
    posts: Sequence[Post], posts_per_page: int
) -> Tuple[List[List[Post]], int]:
    """Slice posts into pages.

    Returns the pages (``ceil(n / posts_per_page)`` of them) and the
    boundary used for the "next" control, ``floor(n / posts_per_page)``.
    When ``n`` is an exact multiple of ``posts_per_page`` the boundary
    equals the page count, so the last page links to a page that does not
    exist. Existing sites rely on this, so it is kept as is.
    """
    if posts_per_page <= 0:
        raise ValueError("posts_per_page must be positive.")
    count = math.ceil(len(posts) / posts_per_page)
    pages = [
        list(posts[index * posts_per_page : (index + 1) * posts_per_page])
        for index in range(count)
    ]
    return pages, len(posts) // posts_per_page


def compress(text: str) -> bytes:
    return gzip.compress(text.encode("utf-8"))
