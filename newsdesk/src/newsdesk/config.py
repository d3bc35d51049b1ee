"""
Configuration management using Pydantic Settings.

All configuration is loaded from environment variables with sensible defaults.
The host-supplied configuration blob is validated by ``ConfigUpdate``.
"""

from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Cache TTL floor (seconds)
MIN_CACHE_TTL_SECONDS = 300

# Per-feed article cap bounds
MIN_ARTICLES_PER_FEED = 1
MAX_ARTICLES_PER_FEED = 200

# Global cap applied after merge and sort
MAX_NEWS_ITEMS = 100

DEFAULT_CACHE_TTL_SECONDS = 1800
DEFAULT_MAX_ARTICLES_PER_FEED = 50

DEFAULT_FEEDS = [
    "https://feeds.reuters.com/reuters/topNews",
    "https://rss.cnn.com/rss/edition.rss",
]

USER_AGENT = "ModernDashboard/1.0"


def clamp_cache_ttl(seconds: int) -> int:
    """Apply the cache TTL floor."""
    return max(MIN_CACHE_TTL_SECONDS, int(seconds))


def clamp_max_articles(count: int) -> int:
    """Clamp a per-feed article cap into its allowed range."""
    return max(MIN_ARTICLES_PER_FEED, min(MAX_ARTICLES_PER_FEED, int(count)))


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Aggregation
    cache_ttl_seconds: int = Field(DEFAULT_CACHE_TTL_SECONDS, description="Per-feed cache TTL (min 300)")
    max_articles_per_feed: int = Field(DEFAULT_MAX_ARTICLES_PER_FEED, description="Articles kept per feed (1-200)")
    default_feeds: list[str] = Field(default_factory=lambda: list(DEFAULT_FEEDS), description="Feeds seeded at startup")

    # HTTP
    http_timeout: float = Field(30.0, description="Feed request timeout (seconds)")
    user_agent: str = Field(USER_AGENT, description="User-Agent sent with every feed request")
    max_concurrent_fetches: int = Field(5, description="Feeds fetched in parallel per pass (1 = sequential)")

    # Server
    port: int = Field(8000, description="HTTP server port")

    # Scheduler
    enable_scheduler: bool = Field(False, description="Run the periodic refresher alongside the server")
    refresh_interval_seconds: int = Field(300, description="Seconds between scheduled refreshes")

    # Logging
    log_level: str = Field("INFO", description="Log level")
    log_json: bool = Field(False, description="Output logs as JSON")

    @field_validator("cache_ttl_seconds")
    @classmethod
    def floor_cache_ttl(cls, v: int) -> int:
        return clamp_cache_ttl(v)

    @field_validator("max_articles_per_feed")
    @classmethod
    def clamp_articles(cls, v: int) -> int:
        return clamp_max_articles(v)

    @field_validator("max_concurrent_fetches", "refresh_interval_seconds")
    @classmethod
    def at_least_one(cls, v: int) -> int:
        """Validate positive integer settings."""
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("default_feeds")
    @classmethod
    def drop_blank_feeds(cls, v: list[str]) -> list[str]:
        return [url.strip() for url in v if url and url.strip()]


class ConfigUpdate(BaseModel):
    """
    Configuration blob accepted from the host application.

    Recognized keys:
    - feeds: feed URLs to add (each validated like ``add_feed``)
    - cache_ttl: cache TTL in seconds (floored to 300)
    - max_articles_per_feed: per-feed cap (clamped to 1-200)
    """

    feeds: list[str] = Field(default_factory=list)
    cache_ttl: Optional[int] = None
    max_articles_per_feed: Optional[int] = None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def clear_settings_cache():
    """Clear the settings cache (tests and env changes)."""
    get_settings.cache_clear()
