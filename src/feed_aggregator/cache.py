"""Per-source article cache with an age-based freshness window."""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable

from feed_aggregator.errors import AggregationFailure, SourceUnavailable
from feed_aggregator.models import Article, CacheEntry

logger = logging.getLogger(__name__)


class AggregationCache:
    """Holds the latest refresh outcome for each source.

    Each source is Stale (never stored, or older than `ttl_seconds`) or Fresh.
    Entries are replaced whole, so a reader sees either the previous snapshot
    or the new one. A failed refresh is stored as an empty entry carrying the
    error, and reads inside its window fail the same way without refetching.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._refreshing: dict[str, asyncio.Task] = {}

    def get(self, name: str) -> CacheEntry | None:
        return self._entries.get(name)

    def set(self, name: str, articles: Iterable[Article]) -> CacheEntry:
        articles = tuple(articles)
        for article in articles:
            if not article.url or not article.source.name:
                raise AggregationFailure(f"Refusing to cache article without url/source for {name}")

        return self._store(name, articles)

    def set_failed(self, name: str, error: str) -> CacheEntry:
        """Record a failed refresh for `name`, dropping its previous articles."""
        return self._store(name, (), error=error)

    def _store(
        self, name: str, articles: tuple[Article, ...], error: str | None = None
    ) -> CacheEntry:
        entry = CacheEntry(
            articles=articles,
            fetched_at=datetime.now(timezone.utc),
            stored_at=self._clock(),
            error=error,
        )
        self._entries[name] = entry
        return entry

    def is_fresh(self, name: str) -> bool:
        entry = self._entries.get(name)
        if entry is None:
            return False
        return self._clock() - entry.stored_at < self.ttl_seconds

    def clear(self) -> None:
        self._entries.clear()

    async def fetch(
        self, name: str, refresh: Callable[[], Awaitable[list[Article]]]
    ) -> list[Article]:
        """Articles for `name`, refreshing first when the entry is stale.

        While a refresh is running, other callers get the previous entry if
        there is one; otherwise they wait for the same refresh.
        """
        entry = self._entries.get(name)
        if entry is not None and self.is_fresh(name):
            if entry.error is not None:
                logger.debug("%s failed at %s, not retrying yet", name, entry.fetched_at.isoformat())
                raise SourceUnavailable(name, entry.error)
            return list(entry.articles)

        task = self._refreshing.get(name)
        if task is not None:
            if entry is not None:
                logger.debug("Refresh of %s in progress, serving previous entry", name)
                return list(entry.articles)
        else:
            task = asyncio.ensure_future(self._refresh(name, refresh))
            self._refreshing[name] = task
            task.add_done_callback(lambda t: self._finish_refresh(name, t))

        # Cancelling one caller must not cancel the shared refresh
        articles = await asyncio.shield(task)
        return list(articles)

    async def _refresh(
        self, name: str, refresh: Callable[[], Awaitable[list[Article]]]
    ) -> tuple[Article, ...]:
        try:
            articles = await refresh()
        except AggregationFailure:
            raise
        except Exception as e:
            reason = e.reason if isinstance(e, SourceUnavailable) else str(e)
            entry = self.set_failed(name, reason)
            logger.warning(
                "Refresh of %s failed at %s, next attempt after %.0fs: %s",
                name, entry.fetched_at.isoformat(), self.ttl_seconds, reason,
            )
            raise

        entry = self.set(name, articles)
        logger.info(
            "Cached %d articles for %s at %s",
            len(entry.articles), name, entry.fetched_at.isoformat(),
        )
        return entry.articles

    def _finish_refresh(self, name: str, task: asyncio.Task) -> None:
        if self._refreshing.get(name) is task:
            del self._refreshing[name]
        # Mark the outcome as retrieved; failures are reported by the awaiting caller
        if not task.cancelled():
            task.exception()
