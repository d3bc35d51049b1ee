"""
News aggregation service.

Orchestrates one aggregation pass:
1. Snapshot the active feeds from the registry
2. For each feed: serve from cache, or fetch -> detect -> parse -> cache
3. Merge, deduplicate, sort newest-first, truncate to the global cap
4. Serialize to the external JSON article format

One feed failing never aborts the pass; the failure is recorded on the
feed as ``last_error`` and the remaining feeds are still aggregated.
"""

import json
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Union

from pydantic import ValidationError

from .cache import ResponseCache, cache_key_for
from .config import (
    MAX_NEWS_ITEMS,
    ConfigUpdate,
    Settings,
    clamp_cache_ttl,
    clamp_max_articles,
    get_settings,
)
from .dedupe import dedupe_articles
from .feeds import FeedRegistry, detect_feed_type, parse_feed, read_feed_info
from .feeds.base import parse_xml
from .http_fetcher import Fetcher, HttpFetcher
from .logging_conf import get_logger
from .models import Article, Feed, FeedResult, FeedStatus, FeedType

logger = get_logger(__name__)

HTTP_OK = 200

PARSE_FAILED_ERROR = "Failed to parse feed content"
NO_ARTICLES_ERROR = "Feed returned no articles"


class NewsService:
    """
    Multi-feed RSS/Atom aggregator with a per-feed response cache.

    Instances are independent: each owns its registry, cache and fetcher,
    so tests (or a host with several dashboards) can run many side by side.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        fetcher: Optional[Fetcher] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize the service.

        Args:
            settings: Settings to use (defaults to the cached env settings)
            fetcher: HTTP fetcher; an ``HttpFetcher`` is created if omitted
            clock: Time source (injectable for testing)
        """
        self.settings = settings or get_settings()
        self._clock = clock or time.time

        self._owns_fetcher = fetcher is None
        self.fetcher: Fetcher = fetcher or HttpFetcher(
            timeout=self.settings.http_timeout,
            user_agent=self.settings.user_agent,
        )

        self.registry = FeedRegistry()
        self.cache = ResponseCache(
            ttl_seconds=clamp_cache_ttl(self.settings.cache_ttl_seconds),
            clock=self._clock,
        )
        self.max_articles_per_feed = clamp_max_articles(self.settings.max_articles_per_feed)
        self.max_workers = self.settings.max_concurrent_fetches

        self._initialized = False
        self._init_lock = threading.Lock()

    # === Lifecycle ===

    def initialize(
        self,
        cache_ttl_seconds: Optional[int] = None,
        max_articles_per_feed: Optional[int] = None,
        load_defaults: bool = True,
    ) -> bool:
        """
        Apply the cache knobs and seed the default feeds.

        Default feeds are registered without a network round-trip so that
        startup never depends on feed reachability. Calling this again is
        a no-op.

        Args:
            cache_ttl_seconds: Cache TTL (floored to 300); settings value if None
            max_articles_per_feed: Per-feed cap (clamped to 1-200); settings value if None
            load_defaults: Register ``settings.default_feeds``

        Returns:
            True once the service is initialized
        """
        with self._init_lock:
            if self._initialized:
                return True

            if cache_ttl_seconds is not None:
                self.set_cache_ttl(cache_ttl_seconds)
            if max_articles_per_feed is not None:
                self.set_max_articles_per_feed(max_articles_per_feed)

            if load_defaults:
                for url in self.settings.default_feeds:
                    self.registry.add(Feed(url=url))

            self._initialized = True

        logger.info(
            "news_service_initialized",
            cache_ttl_seconds=self.cache_ttl_seconds,
            max_articles_per_feed=self.max_articles_per_feed,
            feeds=len(self.registry),
        )
        return True

    @property
    def initialized(self) -> bool:
        return self._initialized

    def close(self) -> None:
        """Release the fetcher if this service created it."""
        if self._owns_fetcher and isinstance(self.fetcher, HttpFetcher):
            self.fetcher.close()

    # === Feed management ===

    def add_feed(self, url: str) -> bool:
        """
        Register a feed after validating it live.

        Fails for a duplicate URL, a transport or HTTP error, or a document
        whose dialect cannot be detected. Nothing is registered on failure.

        Args:
            url: Feed URL

        Returns:
            True if the feed was added
        """
        url = (url or "").strip()
        if not url:
            return False

        if self.registry.contains(url):
            logger.info("feed_add_rejected", url=url, reason="duplicate")
            return False

        response = self.fetcher.fetch(url)
        if not response.success:
            logger.warning("feed_add_rejected", url=url, reason="unreachable", error=response.body[:200])
            return False
        if response.status_code != HTTP_OK:
            logger.warning("feed_add_rejected", url=url, reason="http_status", status=response.status_code)
            return False

        feed_type = detect_feed_type(response.document)
        if feed_type == FeedType.UNKNOWN:
            logger.warning("feed_add_rejected", url=url, reason="unknown_feed_type")
            return False

        title, description = read_feed_info(response.document, feed_type)
        feed = Feed(
            url=url,
            title=title,
            description=description,
            last_fetch_attempt=int(self._clock()),
        )

        # Another caller may have added the same URL while we were fetching
        return self.registry.add(feed)

    def remove_feed(self, url: str) -> bool:
        """
        Unregister a feed and purge its cache entry.

        Returns:
            False if the feed was not registered
        """
        if not self.registry.remove(url):
            return False

        self.cache.invalidate(cache_key_for(url))
        return True

    def set_feed_active(self, url: str, active: bool) -> bool:
        """Enable or disable a feed without unregistering it."""
        changed = self.registry.update(url, is_active=bool(active))
        if changed:
            logger.info("feed_active_changed", url=url, active=bool(active))
        return changed

    def list_feeds(self) -> list[Feed]:
        return self.registry.snapshot()

    def get_feeds(self) -> str:
        """All feeds as a JSON array."""
        return json.dumps([feed.to_dict() for feed in self.list_feeds()])

    # === Aggregation ===

    def fetch_feed(self, feed: Feed) -> FeedResult:
        """
        Fetch and parse one feed, bypassing cache and registry.

        Returns:
            FeedResult with an explicit status; never raises for
            transport, HTTP or parse failures
        """
        response = self.fetcher.fetch(feed.url)

        if not response.success:
            return FeedResult(feed.url, FeedStatus.TRANSPORT_ERROR, error=response.body or "Transport error")

        if response.status_code != HTTP_OK:
            return FeedResult(feed.url, FeedStatus.HTTP_ERROR, error=f"HTTP error: {response.status_code}")

        articles = parse_feed(
            response.document,
            feed,
            max_articles=self.max_articles_per_feed,
            clock=self._clock,
        )

        if articles is None:
            return FeedResult(feed.url, FeedStatus.PARSE_ERROR, error=PARSE_FAILED_ERROR)

        if not articles:
            # Zero articles: distinguish a broken document from an empty feed
            if parse_xml(response.document) is None:
                return FeedResult(feed.url, FeedStatus.PARSE_ERROR, error=PARSE_FAILED_ERROR)
            return FeedResult(feed.url, FeedStatus.EMPTY, error=NO_ARTICLES_ERROR)

        return FeedResult(feed.url, FeedStatus.OK, articles=articles)

    def _process_feed(self, feed: Feed, force_refresh: bool) -> FeedResult:
        """Cache lookup, then fetch + record + cache store for one feed."""
        key = cache_key_for(feed.url)

        if not force_refresh:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("cache_hit", url=feed.url)
                return FeedResult(feed.url, FeedStatus.CACHED, articles=cached)

        try:
            result = self.fetch_feed(feed)
        except Exception as e:
            logger.exception("feed_processing_error", url=feed.url, error=str(e))
            result = FeedResult(feed.url, FeedStatus.PARSE_ERROR, error=f"Unexpected error: {e}")

        still_registered = self._record_result(result)

        if result.status == FeedStatus.OK:
            # A feed removed while its fetch was in flight must not repopulate the cache
            if still_registered:
                self.cache.put(key, result.articles)
            logger.info("feed_fetched", url=feed.url, articles=len(result.articles), cached=still_registered)
        else:
            # Any previous cache entry is left untouched
            logger.warning(
                "feed_fetch_failed",
                url=feed.url,
                status=result.status.value,
                error=result.error,
            )

        return result

    def _record_result(self, result: FeedResult) -> bool:
        """
        Write fetch outcome back to the registry under a fresh lock.

        Returns:
            False if the feed was removed while it was being fetched
        """
        now = int(self._clock())
        changes = {"last_fetch_attempt": now}

        if result.status == FeedStatus.OK:
            changes["last_updated"] = now
            changes["last_error"] = ""
        else:
            changes["last_error"] = result.error or PARSE_FAILED_ERROR

        return self.registry.update(result.url, **changes)

    def collect(self, force_refresh: bool = False) -> list[FeedResult]:
        """
        Run every active feed through cache-or-fetch.

        Feeds are fanned out to a thread pool when ``max_workers > 1``;
        results keep registry order either way.

        Returns:
            One FeedResult per active feed, in registry order
        """
        feeds = self.registry.snapshot(active_only=True)
        if not feeds:
            return []

        workers = min(self.max_workers, len(feeds))

        if workers <= 1:
            results = [self._process_feed(feed, force_refresh) for feed in feeds]
        else:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="feed") as pool:
                results = list(pool.map(lambda f: self._process_feed(f, force_refresh), feeds))

        logger.info(
            "aggregation_complete",
            feeds=len(results),
            ok=sum(1 for r in results if r.status == FeedStatus.OK),
            cached=sum(1 for r in results if r.status == FeedStatus.CACHED),
            failed=sum(1 for r in results if not r.ok),
            force_refresh=force_refresh,
        )
        return results

    def latest_articles(self, force_refresh: bool = False) -> list[Article]:
        """
        Merged, deduplicated, newest-first articles across active feeds.

        Returns:
            At most ``MAX_NEWS_ITEMS`` articles
        """
        results = self.collect(force_refresh=force_refresh)

        merged = [article for result in results for article in result.articles]
        unique = dedupe_articles(merged)

        # sorted() is stable, so equal timestamps keep feed order
        ordered = sorted(unique, key=lambda a: a.published_date, reverse=True)
        return ordered[:MAX_NEWS_ITEMS]

    def get_latest_news(self, force_refresh: bool = False) -> str:
        """Latest articles as a JSON array."""
        return json.dumps([article.to_dict() for article in self.latest_articles(force_refresh)])

    def refresh_all_feeds(self) -> int:
        """
        Force-refresh every active feed.

        Returns:
            Number of feeds that produced articles
        """
        results = self.collect(force_refresh=True)
        return sum(1 for r in results if r.status == FeedStatus.OK)

    # === Cache and configuration ===

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("cache_cleared")

    @property
    def cache_ttl_seconds(self) -> int:
        return self.cache.ttl_seconds

    def set_cache_ttl(self, ttl_seconds: int) -> None:
        """Set the TTL for entries stored from now on (min 300 seconds)."""
        self.cache.ttl_seconds = clamp_cache_ttl(ttl_seconds)
        logger.info("cache_ttl_changed", ttl_seconds=self.cache.ttl_seconds)

    def set_max_articles_per_feed(self, count: int) -> None:
        """Set the per-feed cap for subsequent fetches (1-200)."""
        self.max_articles_per_feed = clamp_max_articles(count)
        logger.info("max_articles_changed", max_articles_per_feed=self.max_articles_per_feed)

    def apply_config(self, blob: Union[str, bytes, dict]) -> bool:
        """
        Apply a host configuration blob.

        Recognized keys: ``feeds`` (URLs to add), ``cache_ttl`` and
        ``max_articles_per_feed``. Feeds that fail validation are logged
        and skipped.

        Args:
            blob: JSON text or an already-decoded mapping

        Returns:
            False if the blob is malformed (nothing is changed)
        """
        try:
            if isinstance(blob, (str, bytes)):
                update = ConfigUpdate.model_validate_json(blob)
            else:
                update = ConfigUpdate.model_validate(blob)
        except ValidationError as e:
            logger.warning("config_rejected", errors=e.error_count())
            return False

        if update.cache_ttl is not None:
            self.set_cache_ttl(update.cache_ttl)
        if update.max_articles_per_feed is not None:
            self.set_max_articles_per_feed(update.max_articles_per_feed)

        for url in update.feeds:
            if self.registry.contains(url.strip()):
                continue
            if not self.add_feed(url):
                logger.warning("config_feed_skipped", url=url)

        return True

    # === Status ===

    def status(self) -> dict:
        """Service status as a dictionary."""
        stats = self.registry.get_stats()
        return {
            "service": "NewsService",
            "initialized": self._initialized,
            "cache_ttl_seconds": self.cache_ttl_seconds,
            "max_articles_per_feed": self.max_articles_per_feed,
            "total_feeds": stats["total_feeds"],
            "active_feeds": stats["active_feeds"],
            "cache_entries": self.cache.size(),
        }

    def get_status(self) -> str:
        """Service status as a JSON object."""
        return json.dumps(self.status())
