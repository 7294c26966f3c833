"""High-level orchestration of one refresh cycle."""

from __future__ import annotations

import logging
import time

from .aggregator import Aggregator, FetchFunc
from .assets import load_stylesheet
from .config import AppConfig
from .feeds import fetch_feed_posts
from .history import HistoryStore
from .publisher import PageSnapshot, SnapshotHolder, build_snapshot

logger = logging.getLogger(__name__)


def refresh(
    config: AppConfig,
    store: HistoryStore,
    holder: SnapshotHolder,
    fetch: FetchFunc = fetch_feed_posts,
) -> PageSnapshot:
    """Fetch all feeds, merge them into ``store`` and publish new pages."""
    started = time.monotonic()
    logger.info("Refreshing %d feeds", len(config.feeds))

    aggregator = Aggregator(
        config.feeds,
        store,
        fetch=fetch,
        timeout=config.fetch_timeout,
        concurrency=config.concurrency,
    )
    result = aggregator.run()
    if result.failed_sources:
        logger.warning(
            "%d of %d feeds returned no posts", len(result.failed_sources), len(config.feeds)
        )

    snapshot = build_snapshot(
        result,
        title=config.title,
        description=config.description,
        posts_per_page=config.posts_per_page,
        stylesheet=load_stylesheet(config.stylesheet_path),
        version=holder.next_version(),
    )
    holder.publish(snapshot)

    logger.info(
        "Refresh finished in %.2fs: %d posts total",
        time.monotonic() - started,
        len(result.posts),
    )
    return snapshot
