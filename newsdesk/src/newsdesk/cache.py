"""
Per-feed response cache with time-based expiry.

Entries are evicted lazily when a lookup finds them expired; there is no
background sweeper. The TTL is fixed per entry at store time.
"""

import hashlib
import threading
import time
from typing import Callable, Optional

from .config import DEFAULT_CACHE_TTL_SECONDS
from .logging_conf import get_logger
from .models import Article, CacheEntry

logger = get_logger(__name__)


def cache_key_for(feed_url: str) -> str:
    """Cache key for a feed URL."""
    return hashlib.sha256(f"feed:{feed_url}".encode("utf-8")).hexdigest()


class ResponseCache:
    """
    Thread-safe cache of parsed article lists.

    The lock covers only dictionary access; callers receive copies of the
    stored lists.
    """

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize the cache.

        Args:
            ttl_seconds: TTL applied to entries stored from now on
            clock: Time source (injectable for testing)
        """
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.time
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[list[Article]]:
        """
        Look up a live entry.

        Returns:
            A copy of the cached articles, or None on miss or expiry
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not entry.is_expired(now):
                return list(entry.articles)
            del self._entries[key]

        logger.debug("cache_entry_expired", key=key[:12])
        return None

    def put(self, key: str, articles: list[Article]) -> None:
        """Store articles with ``expires_at = now + ttl``."""
        now = int(self._clock())
        entry = CacheEntry(
            articles=list(articles),
            cached_at=now,
            expires_at=now + self.ttl_seconds,
        )
        with self._lock:
            self._entries[key] = entry

    def invalidate(self, key: str) -> bool:
        """Drop one entry. Returns True if it existed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        """Number of stored entries (expired ones included until looked up)."""
        with self._lock:
            return len(self._entries)
