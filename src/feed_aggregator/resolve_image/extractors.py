"""Image URL extraction backends."""

import logging
from typing import Optional
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

# (selector, attribute) pairs tried in order on a scraped article page
PAGE_IMAGE_SELECTORS = [
    ('meta[property="og:image"]', "content"),
    ('meta[name="twitter:image"]', "content"),
    ("article img", "src"),
    ("img", "src"),
]


def absolute_image_url(candidate: Optional[str], base_url: Optional[str]) -> str:
    """Return `candidate` as an absolute http(s) URL, or "" if that is impossible.

    Root- and path-relative URLs resolve against `base_url`; scheme-relative
    URLs take the base scheme (https without a base).
    """
    candidate = (candidate or "").strip()
    if not candidate:
        return ""

    try:
        if candidate.startswith("//"):
            scheme = urlparse(base_url).scheme if base_url else ""
            candidate = f"{scheme or 'https'}:{candidate}"
        elif base_url:
            candidate = urljoin(base_url, candidate)
        parsed = urlparse(candidate)
    except ValueError as e:
        logger.debug("Malformed image URL %r: %s", candidate, e)
        return ""

    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return ""
    return candidate


def first_selector_value(soup: BeautifulSoup, selector: str, attribute: str) -> str:
    """Attribute of the first element matching `selector` that carries it."""
    for element in soup.select(selector):
        value = element.get(attribute)
        if value and value.strip():
            return value.strip()
    return ""


def extract_embedded_image(content: Optional[str]) -> str:
    """First <img> src inside an item's embedded HTML content."""
    if not content or "<img" not in content.lower():
        return ""
    soup = BeautifulSoup(content, "html.parser")
    return first_selector_value(soup, "img", "src")


def fetch_page(url: str, timeout: float, user_agent: str) -> tuple[BeautifulSoup, str]:
    """Fetch an article page; returns the parsed document and its final URL."""
    response = requests.get(
        url,
        timeout=timeout,
        headers={"User-Agent": user_agent},
    )
    response.raise_for_status()
    return BeautifulSoup(response.content, "html.parser"), response.url or url


def extract_page_image(soup: BeautifulSoup) -> str:
    """Best image candidate on a scraped page, in PAGE_IMAGE_SELECTORS order."""
    for selector, attribute in PAGE_IMAGE_SELECTORS:
        value = first_selector_value(soup, selector, attribute)
        if value:
            return value
    return ""
