"""
Feed registry: the configured feeds and their health metadata.

Feeds are kept in insertion order, which is also the order aggregation
visits them (and therefore decides which duplicate survives dedup).
The registry lock guards only in-memory reads and writes; callers never
hold it across a network request.
"""

import threading
from dataclasses import replace
from typing import Optional

from ..logging_conf import get_logger
from ..models import Feed

logger = get_logger(__name__)


class FeedRegistry:
    """
    Thread-safe URL -> Feed map.

    All accessors hand out copies so callers can never mutate registry
    state without going through ``update``.
    """

    def __init__(self):
        """Initialize an empty registry."""
        self._feeds: dict[str, Feed] = {}
        self._lock = threading.Lock()

    def add(self, feed: Feed) -> bool:
        """
        Register a feed.

        Args:
            feed: Feed to register (copied)

        Returns:
            False if the URL is already registered
        """
        with self._lock:
            if feed.url in self._feeds:
                return False
            self._feeds[feed.url] = replace(feed)

        logger.info("feed_registered", url=feed.url)
        return True

    def remove(self, url: str) -> bool:
        """Unregister a feed. Returns False if it was not registered."""
        with self._lock:
            removed = self._feeds.pop(url, None)

        if removed is None:
            return False

        logger.info("feed_unregistered", url=url)
        return True

    def contains(self, url: str) -> bool:
        with self._lock:
            return url in self._feeds

    def get(self, url: str) -> Optional[Feed]:
        with self._lock:
            feed = self._feeds.get(url)
            return replace(feed) if feed else None

    def update(self, url: str, **changes) -> bool:
        """
        Apply field changes to a registered feed.

        A feed removed while its fetch was in flight is silently skipped.

        Returns:
            False if the feed is no longer registered
        """
        with self._lock:
            feed = self._feeds.get(url)
            if feed is None:
                return False
            for name, value in changes.items():
                setattr(feed, name, value)
        return True

    def snapshot(self, active_only: bool = False) -> list[Feed]:
        """Copies of the registered feeds in insertion order."""
        with self._lock:
            return [
                replace(feed)
                for feed in self._feeds.values()
                if feed.is_active or not active_only
            ]

    def clear(self) -> None:
        with self._lock:
            self._feeds.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._feeds)

    def get_stats(self) -> dict:
        """Counts for status reporting."""
        with self._lock:
            total = len(self._feeds)
            active = sum(1 for feed in self._feeds.values() if feed.is_active)
        return {"total_feeds": total, "active_feeds": active}
