"""
Core data model shared by the fetcher, parsers, cache and aggregator.

Timestamps are integer Unix seconds throughout.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


class FeedType(str, Enum):
    """Feed dialect detected from raw XML."""
    RSS_2_0 = "rss_2_0"
    RSS_1_0 = "rss_1_0"
    ATOM_1_0 = "atom_1_0"
    UNKNOWN = "unknown"


class FeedStatus(str, Enum):
    """Outcome of one feed within an aggregation pass."""
    OK = "ok"                            # Fetched and parsed, articles found
    CACHED = "cached"                    # Served from a live cache entry
    EMPTY = "empty"                      # Valid document, zero accepted articles
    HTTP_ERROR = "http_error"            # Non-200 status
    TRANSPORT_ERROR = "transport_error"  # DNS/timeout/TLS failure
    PARSE_ERROR = "parse_error"          # Malformed XML or unknown dialect


@dataclass(frozen=True)
class Article:
    """
    One normalized news item.

    Articles are immutable once parsed; ``id`` is derived from title + link
    so the same story syndicated by two feeds has the same identity.
    """
    id: str
    title: str
    link: str
    description: str = ""
    source: str = ""
    author: str = ""
    category: str = ""
    published_date: int = 0
    cached_at: int = 0

    def to_dict(self) -> dict:
        """Convert to the external article format."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "link": self.link,
            "source": self.source,
            "author": self.author,
            "category": self.category,
            "published_date": self.published_date,
            "cached_at": self.cached_at,
        }

    def __str__(self) -> str:
        return f"[{self.source}] {self.title[:60]}"


@dataclass
class Feed:
    """A configured feed URL plus its health metadata."""
    url: str
    title: str = ""
    description: str = ""
    last_error: str = ""
    last_updated: int = 0
    last_fetch_attempt: int = 0
    is_active: bool = True

    def to_dict(self) -> dict:
        """Convert to the external feed format."""
        return {
            "url": self.url,
            "title": self.title,
            "description": self.description,
            "last_updated": self.last_updated,
            "last_error": self.last_error,
            "is_active": self.is_active,
        }

    def __str__(self) -> str:
        status = "✓" if self.is_active else "✗"
        return f"[{status}] {self.title or self.url}"


@dataclass
class CacheEntry:
    """Parsed articles for one feed with their expiry."""
    articles: list[Article]
    cached_at: int
    expires_at: int

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


@dataclass
class HttpResponse:
    """
    Result of a single GET.

    ``success`` reports transport success only; a 404 is a successful
    transport with ``status_code == 404``. On transport failure
    ``status_code`` is 0 and ``body`` holds the error message.

    ``content`` carries the document bytes for the XML parser; ``body`` is
    the same document decoded to text.
    """
    body: str = ""
    status_code: int = 0
    success: bool = False
    content: bytes = b""

    @property
    def document(self) -> Union[str, bytes]:
        """Bytes when available, otherwise the decoded text."""
        return self.content or self.body


@dataclass
class FeedResult:
    """Typed outcome of fetching (or reading from cache) a single feed."""
    url: str
    status: FeedStatus
    articles: list[Article] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in (FeedStatus.OK, FeedStatus.CACHED)
