"""RSS/Atom feed fetching."""

import logging
import time
from typing import Any

import feedparser
import requests

from feed_aggregator.config import FeedConfig
from feed_aggregator.errors import SourceUnavailable
from feed_aggregator.models import RawFeedItem, SourceDescriptor

logger = logging.getLogger(__name__)


def _get_value(raw: Any, key: str) -> Any:
    if isinstance(raw, dict):
        return raw.get(key)
    return getattr(raw, key, None)


class FeedFetcher:
    """Fetches one source's feed with bounded, immediate retry."""

    def __init__(self, config: FeedConfig):
        self.config = config

    def fetch(self, source: SourceDescriptor) -> list[RawFeedItem]:
        """Fetch and parse a source, keeping at most `max_items` entries.

        Raises:
            SourceUnavailable: every attempt failed.
        """
        attempts = max(1, self.config.max_retries)
        last_error = "no attempts made"

        for attempt in range(attempts):
            start_time = time.monotonic()
            try:
                entries = self._fetch_entries(source.url)
            except Exception as e:
                last_error = str(e) or type(e).__name__
                logger.warning(
                    "Fetch attempt %d/%d failed for %s: %s",
                    attempt + 1, attempts, source.name, last_error,
                )
                continue

            items = _parse_entries(entries[: self.config.max_items], source.name)
            elapsed = time.monotonic() - start_time
            logger.info("Fetched %d items from %s in %.2fs", len(items), source.name, elapsed)
            return items

        raise SourceUnavailable(source.name, last_error)

    def _fetch_entries(self, url: str) -> list:
        response = requests.get(
            url,
            timeout=self.config.timeout,
            headers={"User-Agent": self.config.user_agent},
        )
        response.raise_for_status()

        feed = feedparser.parse(response.content)
        if feed.bozo and not feed.entries:
            raise ValueError(f"Malformed feed: {feed.get('bozo_exception')}")
        return list(feed.entries)


def _parse_entries(entries: list, source_name: str) -> list[RawFeedItem]:
    items = []
    seen_links = set()
    for entry in entries:
        try:
            item = _parse_entry(entry)
        except Exception as e:
            logger.warning("Failed to parse entry from %s: %s", source_name, e)
            continue
        if item is None:
            logger.debug("Dropping entry without link from %s", source_name)
            continue
        if item.link in seen_links:
            continue
        seen_links.add(item.link)
        items.append(item)
    return items


def _parse_entry(entry) -> RawFeedItem | None:
    """Map a feedparser entry onto a RawFeedItem. Entries without a link are dropped."""
    link = (_get_value(entry, "link") or "").strip()
    if not link:
        return None

    return RawFeedItem(
        title=_get_value(entry, "title") or "",
        link=link,
        published=_get_value(entry, "published") or _get_value(entry, "updated") or "",
        content=_entry_content(entry),
        content_snippet=_get_value(entry, "summary") or "",
        enclosure_url=_enclosure_url(entry),
        media_url=_media_url(entry),
        categories=_entry_categories(entry),
        author=_get_value(entry, "author") or None,
    )


def _entry_content(entry) -> str:
    # feedparser maps content:encoded onto `content`
    for block in _get_value(entry, "content") or []:
        value = _get_value(block, "value")
        if value:
            return value
    return ""


def _enclosure_url(entry) -> str:
    for enclosure in _get_value(entry, "enclosures") or []:
        url = _get_value(enclosure, "href") or _get_value(enclosure, "url")
        if url:
            return url.strip()
    for link in _get_value(entry, "links") or []:
        if _get_value(link, "rel") == "enclosure" and _get_value(link, "href"):
            return _get_value(link, "href").strip()
    return ""


def _media_url(entry) -> str:
    for key in ("media_content", "media_thumbnail"):
        for media in _get_value(entry, key) or []:
            url = _get_value(media, "url")
            if url:
                return url.strip()
    return ""


def _entry_categories(entry) -> list[str]:
    categories = []
    for tag in _get_value(entry, "tags") or []:
        term = (_get_value(tag, "term") or "").strip()
        if term:
            categories.append(term)
    return categories
