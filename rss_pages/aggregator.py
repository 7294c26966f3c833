"""Fan-out fetching and ordered merging of all configured sources."""

from __future__ import annotations

import concurrent.futures
import logging
import math
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from .feeds import fetch_feed_posts
from .history import HistoryStore, merge_posts
from .models import Post

logger = logging.getLogger(__name__)

FetchFunc = Callable[[str, float], List[Post]]


def sort_posts(posts: Sequence[Post]) -> List[Post]:
    """Newest first; ties keep their input order."""
    return sorted(posts, key=lambda post: post.date, reverse=True)


@dataclass
class AggregateResult:
    """Posts produced by one aggregation pass."""

    posts: List[Post]
    by_site: Dict[str, List[Post]] = field(default_factory=dict)
    failed_sources: List[str] = field(default_factory=list)


class Aggregator:
    """Fetches every source concurrently and merges results in source order."""

    def __init__(
        self,
        sources: Sequence[str],
        store: HistoryStore,
        fetch: FetchFunc = fetch_feed_posts,
        timeout: float = 10.0,
        concurrency: int = 10,
        deadline: Optional[float] = None,
    ):
        self.sources = list(sources)
        self.store = store
        self.fetch = fetch
        self.timeout = timeout
        self.concurrency = max(1, concurrency)
        self.deadline = deadline if deadline is not None else timeout * 2
        self._started: Dict[int, float] = {}

    def _fetch_one(self, index: int) -> List[Post]:
        url = self.sources[index]
        self._started[index] = time.monotonic()
        try:
            return self.fetch(url, self.timeout)
        except Exception:
            logger.exception("Failed to process feed %s", url)
            return []

    def fetch_all(self) -> List[List[Post]]:
        """Return one post list per source, in configured order.

        Each source gets ``deadline`` seconds from the moment its own fetch
        starts. Sources still queued behind busy workers are given up once
        every wave of workers could have used its full deadline.
        """
        results: List[List[Post]] = [[] for _ in self.sources]
        if not self.sources:
            return results

        workers = min(self.concurrency, len(self.sources))
        cutoff = time.monotonic() + math.ceil(len(self.sources) / workers) * self.deadline
        self._started = {}
        executor = concurrent.futures.ThreadPoolExecutor(max_workers=workers)
        try:
            future_to_index = {
                executor.submit(self._fetch_one, index): index
                for index in range(len(self.sources))
            }
            pending = set(future_to_index)
            while pending:
                now = time.monotonic()
                for future in list(pending):
                    index = future_to_index[future]
                    started = self._started.get(index)
                    if future.done():
                        continue
                    if (started is not None and now - started >= self.deadline) or (
                        started is None and now >= cutoff
                    ):
                        logger.warning(
                            "Feed %s did not finish within %.1fs; skipping this cycle",
                            self.sources[index],
                            self.deadline,
                        )
                        pending.discard(future)
                if not pending:
                    break

                expiries = [
                    self._started[future_to_index[future]] + self.deadline
                    for future in pending
                    if future_to_index[future] in self._started
                ]
                if len(expiries) < len(pending):
                    expiries.append(cutoff)
                done, _ = concurrent.futures.wait(
                    pending,
                    timeout=max(0.0, min(expiries) - now),
                    return_when=concurrent.futures.FIRST_COMPLETED,
                )
                for future in done:
                    results[future_to_index[future]] = future.result()
                    pending.discard(future)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
        return results

    def run(self) -> AggregateResult:
        """Fetch, merge into the history store, and return the sorted set."""
        batches = self.fetch_all()
        by_site: Dict[str, List[Post]] = {}
        failed: List[str] = []

        for url, batch in zip(self.sources, batches):
            if not batch:
                logger.info("No posts retrieved for feed %s", url)
                failed.append(url)
                continue

            site = batch[0].site
            by_site[site] = sort_posts(merge_posts(by_site.get(site, []), batch))

            added = self.store.merge(batch)
            self.store.save()
            logger.info(
                "Merged %d new posts from %s (total posts: %d)",
                added,
                url,
                len(self.store),
            )

        return AggregateResult(
            posts=sort_posts(self.store.posts),
            by_site=by_site,
            failed_sources=failed,
        )
