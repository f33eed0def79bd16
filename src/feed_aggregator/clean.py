"""Text and timestamp normalization for feed items."""

import html
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from dateutil.parser import parse as parse_date

logger = logging.getLogger(__name__)

# Timezone abbreviations for date parsing
TZINFOS = {
    "EST": timezone(timedelta(hours=-5)),
    "EDT": timezone(timedelta(hours=-4)),
    "CST": timezone(timedelta(hours=-6)),
    "CDT": timezone(timedelta(hours=-5)),
    "MST": timezone(timedelta(hours=-7)),
    "MDT": timezone(timedelta(hours=-6)),
    "PST": timezone(timedelta(hours=-8)),
    "PDT": timezone(timedelta(hours=-7)),
    "GMT": timezone.utc,
    "UTC": timezone.utc,
    "BST": timezone(timedelta(hours=1)),
    "IST": timezone(timedelta(hours=5, minutes=30)),
    "NPT": timezone(timedelta(hours=5, minutes=45)),
}

_TAG_RE = re.compile(r"<[^>]*>")
_ANGLE_RE = re.compile(r"[<>]")
_WS_RE = re.compile(r"\s+")
_DATE_BREAKS_RE = re.compile(r"[\n\r\t]")


def clean_text(text: Optional[str]) -> str:
    """Strip HTML, decode entities, and collapse whitespace. Never fails."""
    if not text:
        return ""
    text = html.unescape(str(text))
    text = _TAG_RE.sub(" ", text)
    # Unclosed tags and decoded &lt; / &gt; leave bare brackets behind
    text = _ANGLE_RE.sub(" ", text)
    return _WS_RE.sub(" ", text).strip()


def clean_pub_date(value: Optional[str]) -> str:
    """Flatten a raw feed date string onto one line."""
    if not value:
        return ""
    return clean_text(_DATE_BREAKS_RE.sub(" ", str(value)))


def parse_published_at(value: Optional[str], fallback: datetime) -> datetime:
    """Parse a feed date into an aware UTC datetime, or return `fallback`."""
    cleaned = clean_pub_date(value)
    if not cleaned:
        return fallback

    try:
        dt = parse_date(cleaned, tzinfos=TZINFOS)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        # Near-limit dates can overflow when shifted to UTC
        return dt.astimezone(timezone.utc)
    except (ValueError, OverflowError) as e:
        logger.debug("Unparseable publish date %r: %s", cleaned, e)
        return fallback
