"""Article image resolution logic."""

import logging
from typing import Optional

from feed_aggregator.config import ImageConfig
from feed_aggregator.models import RawFeedItem
from feed_aggregator.resolve_image.extractors import (
    absolute_image_url,
    extract_embedded_image,
    extract_page_image,
    fetch_page,
)

logger = logging.getLogger(__name__)


class ImageResolver:
    """Best-effort image URL for a feed item."""

    def __init__(self, config: ImageConfig, user_agent: str = "feed-aggregator/1.0"):
        self.config = config
        self.user_agent = user_agent

    def resolve(self, item: RawFeedItem, article_url: Optional[str]) -> str:
        """Resolve an image URL for `item`.

        Try in order:
        1. enclosure URL
        2. media:content / media:thumbnail URL
        3. first <img> in the embedded content
        4. live scrape of the article page (when enabled)
        5. configured placeholder

        Returns:
            Absolute http(s) URL, or the placeholder ("" by default)
        """
        image = self.resolve_embedded(item, article_url)
        if not image and article_url and self.config.scrape:
            image = self.scrape(article_url, item.content)
        return image or self.placeholder

    @property
    def placeholder(self) -> str:
        return absolute_image_url(self.config.placeholder, None)

    def resolve_embedded(self, item: RawFeedItem, article_url: Optional[str]) -> str:
        """Steps 1-3: everything that needs no network access."""
        candidates = (
            item.enclosure_url,
            item.media_url,
            _safe_embedded_image(item.content),
        )
        for candidate in candidates:
            image = absolute_image_url(candidate, article_url)
            if image:
                return image
        return ""

    def scrape(self, article_url: str, content: Optional[str] = None) -> str:
        """Step 4: fetch the article page and pick an image from it.

        Never raises; any failure means "no image".
        """
        try:
            soup, page_url = fetch_page(article_url, self.config.scrape_timeout, self.user_agent)
            image = absolute_image_url(extract_page_image(soup), page_url)
            if image:
                return image
            return absolute_image_url(extract_embedded_image(content), page_url)
        except Exception as e:
            logger.debug("Image scrape failed for %s: %s", article_url, e)
            return ""


def _safe_embedded_image(content: Optional[str]) -> str:
    try:
        return extract_embedded_image(content)
    except Exception as e:
        logger.debug("Could not parse embedded content: %s", e)
        return ""
