"""Data models for the feed aggregation pipeline."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class SourceDescriptor:
    """A configured feed provider."""
    name: str
    url: str
    logo: Optional[str] = None
    category: Optional[str] = None


@dataclass
class RawFeedItem:
    """One feed entry as handed over by the feed parser, before cleaning."""
    title: str = ""
    link: str = ""
    published: str = ""
    content: str = ""
    content_snippet: str = ""
    enclosure_url: str = ""
    media_url: str = ""
    categories: list[str] = field(default_factory=list)
    author: Optional[str] = None


@dataclass(frozen=True)
class ArticleSource:
    name: str
    logo: Optional[str] = None


@dataclass
class Article:
    """Normalized article served by the API."""
    source: ArticleSource
    category: str
    title: str
    description: str
    content: str
    url: str
    image_url: str
    published_at: datetime
    author: Optional[str] = None


@dataclass(frozen=True)
class CacheEntry:
    """Articles stored for one source, stamped at refresh completion.

    A failed refresh is stored too, with no articles and `error` set, so the
    source is not fetched again until the entry expires.
    """
    articles: tuple[Article, ...]
    fetched_at: datetime
    stored_at: float
    error: Optional[str] = None
