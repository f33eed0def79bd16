"""News query handling on top of the aggregator and cache."""

import logging
from dataclasses import dataclass

from feed_aggregator.aggregate import Aggregator
from feed_aggregator.cache import AggregationCache
from feed_aggregator.config import Config
from feed_aggregator.models import Article

logger = logging.getLogger(__name__)

ALL_CATEGORIES = {"general", "all"}


@dataclass
class NewsResult:
    total_results: int
    articles: list[Article]
    cached: bool = False


def parse_categories(value: str | None) -> set[str] | None:
    '''Parse a category filter into a set of labels; None means every category.'''

    # Absent filter, or the "general"/"all" sentinel, selects everything
    if not value:
        return None
    parsed = {c.strip() for c in value.split(",") if c.strip()}
    if not parsed or {c.lower() for c in parsed} & ALL_CATEGORIES:
        return None
    return parsed


class NewsService:
    """Serves the merged article list, refreshing stale sources on demand."""

    def __init__(
        self,
        config: Config,
        aggregator: Aggregator | None = None,
        cache: AggregationCache | None = None,
    ):
        self.config = config
        self.aggregator = aggregator or Aggregator(config)
        self.cache = cache or AggregationCache(config.cache.ttl_seconds)

    async def get_news(self, category: str | None = None) -> NewsResult:
        """List articles, optionally restricted to a comma-separated category set.

        Args:
            category: Category labels, "general"/"all", or None

        Returns:
            NewsResult with the total count, the articles newest first, and
            whether every source was answered from the cache
        """
        sources = self.config.sources
        cached = bool(sources) and all(self.cache.is_fresh(s.name) for s in sources)
        articles = await self.aggregator.aggregate(sources, cache=self.cache)

        categories = parse_categories(category)
        if categories is not None:
            articles = [a for a in articles if a.category in categories]
            logger.debug("Category filter %s kept %d articles", sorted(categories), len(articles))

        return NewsResult(total_results=len(articles), articles=articles, cached=cached)
