"""Concurrent aggregation of all configured feeds."""

import asyncio
import contextlib
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable

from feed_aggregator.cache import AggregationCache
from feed_aggregator.clean import clean_text, parse_published_at
from feed_aggregator.config import Config
from feed_aggregator.errors import AggregationFailure
from feed_aggregator.fetch_feed import FeedFetcher
from feed_aggregator.models import Article, ArticleSource, RawFeedItem, SourceDescriptor
from feed_aggregator.resolve_image import ImageResolver

logger = logging.getLogger(__name__)


class Aggregator:
    """Fetches every source concurrently and merges the results."""

    def __init__(
        self,
        config: Config,
        fetcher: FeedFetcher | None = None,
        resolver: ImageResolver | None = None,
    ):
        self.config = config
        self.fetcher = fetcher or FeedFetcher(config.feed)
        self.resolver = resolver or ImageResolver(config.image, config.feed.user_agent)
        self._semaphores: dict[asyncio.AbstractEventLoop, asyncio.Semaphore] = {}

    async def aggregate(
        self,
        sources: list[SourceDescriptor],
        cache: AggregationCache | None = None,
    ) -> list[Article]:
        """Build articles for all sources, newest first.

        A failing source contributes nothing. Sources still pending when
        `request_deadline` expires count as failed for this cycle.
        """
        if not sources:
            logger.warning("No sources configured")
            return []

        start_time = time.monotonic()
        tasks = [asyncio.ensure_future(self._source_articles(s, cache)) for s in sources]

        _, pending = await asyncio.wait(tasks, timeout=self.config.request_deadline)
        for source, task in zip(sources, tasks):
            if task in pending:
                logger.error("Deadline reached before %s finished", source.name)
                task.cancel()
        if pending:
            await asyncio.wait(pending)

        merged = []
        failed = []
        for source, task in zip(sources, tasks):
            if task.cancelled():
                failed.append(source.name)
                continue
            error = task.exception()
            if isinstance(error, AggregationFailure):
                raise error
            if error is not None:
                logger.error("Failed to fetch %s: %s", source.name, error)
                failed.append(source.name)
                continue
            merged.extend(task.result())

        articles = sort_articles(dedupe_articles(merged))
        elapsed = time.monotonic() - start_time
        logger.info(
            "Aggregated %d articles from %d sources in %.2fs",
            len(articles), len(sources) - len(failed), elapsed,
        )
        if failed:
            logger.warning("Failed sources: %s", failed)
        return articles

    async def _source_articles(
        self, source: SourceDescriptor, cache: AggregationCache | None
    ) -> list[Article]:
        if cache is None:
            return await self.build_articles(source)
        return await cache.fetch(source.name, lambda: self.build_articles(source))

    async def build_articles(self, source: SourceDescriptor) -> list[Article]:
        """Fetch one source and turn its items into articles.

        Raises:
            SourceUnavailable: the feed could not be fetched.
        """
        items = await self._run_io(self.fetcher.fetch, source)
        fetched_at = datetime.now(timezone.utc)
        built = await asyncio.gather(
            *(self._build_article(source, item, fetched_at) for item in items),
            return_exceptions=True,
        )

        articles = []
        for item, result in zip(items, built):
            if isinstance(result, Exception):
                logger.warning("Skipping item %s from %s: %s", item.link, source.name, result)
                continue
            articles.append(result)
        return articles

    async def _build_article(
        self, source: SourceDescriptor, item: RawFeedItem, fetched_at: datetime
    ) -> Article:
        image = self.resolver.resolve_embedded(item, item.link)
        if not image and self.config.image.scrape:
            image = await self._run_io(self.resolver.scrape, item.link, item.content)

        return Article(
            source=ArticleSource(name=source.name, logo=source.logo),
            category=resolve_category(item, source, self.config.fallback_category),
            title=clean_text(item.title),
            description=clean_text(item.content_snippet or item.content),
            content=clean_text(item.content),
            url=item.link,
            image_url=image or self.resolver.placeholder,
            published_at=parse_published_at(item.published, fetched_at),
            author=clean_text(item.author) or None,
        )

    async def _run_io(self, func: Callable, *args: Any) -> Any:
        """Run a blocking network call in a worker thread, within the concurrency limit."""
        async with self._limiter():
            return await asyncio.to_thread(func, *args)

    def _limiter(self):
        if self.config.max_concurrency <= 0:
            return contextlib.nullcontext()
        # asyncio primitives are bound to the loop they first wait on
        loop = asyncio.get_running_loop()
        if loop not in self._semaphores:
            self._semaphores = {loop: asyncio.Semaphore(self.config.max_concurrency)}
        return self._semaphores[loop]


def resolve_category(item: RawFeedItem, source: SourceDescriptor, fallback: str) -> str:
    """Item's first category, else the source override, else `fallback`."""
    for category in item.categories:
        category = clean_text(category)
        if category:
            return category
    return source.category or fallback


def dedupe_articles(articles: list[Article]) -> list[Article]:
    """Drop repeated URLs, keeping the first occurrence."""
    seen = set()
    unique = []
    for article in articles:
        if article.url in seen:
            continue
        seen.add(article.url)
        unique.append(article)
    return unique


def sort_articles(articles: list[Article]) -> list[Article]:
    """Newest first; ties keep merge order."""
    return sorted(articles, key=lambda a: a.published_at, reverse=True)
