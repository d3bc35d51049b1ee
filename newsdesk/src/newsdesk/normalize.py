"""
Article normalization helpers shared by the RSS and Atom parsers.

Provides:
- HTML tag and entity stripping for titles and descriptions
- Deterministic article IDs derived from title + link
- Permissive date parsing with a "now" fallback
"""

import hashlib
import re
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Callable, Optional

from dateutil.parser import isoparse

from .logging_conf import get_logger

logger = get_logger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")
_BARE_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# &amp; is decoded last so "&amp;lt;" becomes "&lt;" rather than "<"
_ENTITIES = (
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&apos;", "'"),
    ("&amp;", "&"),
)


def strip_html(text: Optional[str]) -> str:
    """
    Remove HTML tags and decode the five standard XML entities.

    Runs of whitespace collapse to a single space and the ends are trimmed.

    Args:
        text: Text that may contain markup

    Returns:
        Plain text
    """
    if not text:
        return ""

    plain = _TAG_RE.sub("", text)
    for entity, char in _ENTITIES:
        plain = plain.replace(entity, char)

    return _WHITESPACE_RE.sub(" ", plain).strip()


def generate_article_id(title: str, link: str) -> str:
    """Derive a stable article identity from title + link."""
    return hashlib.sha256(f"{title}{link}".encode("utf-8")).hexdigest()[:16]


def _to_epoch(dt: datetime) -> int:
    # Naive datetimes from feeds are taken as UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def _parse_rfc822(date_str: str) -> Optional[int]:
    """RFC 822 / 2822 style: "Wed, 18 Oct 2023 14:30:00 GMT"."""
    try:
        return _to_epoch(parsedate_to_datetime(date_str))
    except (TypeError, ValueError, IndexError, OverflowError):
        return None


def _parse_iso8601(date_str: str) -> Optional[int]:
    """ISO 8601 timestamp: "2023-10-18T14:30:00Z"."""
    if "T" not in date_str:
        return None
    try:
        return _to_epoch(isoparse(date_str))
    except (ValueError, OverflowError):
        return None


def _parse_bare_date(date_str: str) -> Optional[int]:
    """Calendar date only: "2023-10-18" (midnight UTC)."""
    if not _BARE_DATE_RE.match(date_str):
        return None
    try:
        return _to_epoch(datetime.strptime(date_str, "%Y-%m-%d"))
    except (ValueError, OverflowError):
        return None


_DATE_PARSERS = (
    _parse_rfc822,
    _parse_iso8601,
    _parse_bare_date,
)


def parse_date(
    date_str: Optional[str],
    clock: Callable[[], float] = time.time,
) -> int:
    """
    Parse a feed date into Unix seconds.

    Formats are tried in order: RFC 822, ISO 8601, bare date. The first
    match wins. If none match (including empty input) the current time is
    returned, so articles never carry a zero timestamp.

    Args:
        date_str: Raw date text from pubDate/updated/published
        clock: Source of "now" for the fallback

    Returns:
        Unix timestamp in seconds
    """
    value = (date_str or "").strip()

    if value:
        for parser in _DATE_PARSERS:
            parsed = parser(value)
            if parsed is not None:
                return parsed
        logger.debug("date_unparsable", value=value[:60])

    return int(clock())
