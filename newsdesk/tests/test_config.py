"""
Tests for settings and configuration bounds.
"""

import pytest
from pydantic import ValidationError

from newsdesk.config import (
    DEFAULT_FEEDS,
    ConfigUpdate,
    Settings,
    clamp_cache_ttl,
    clamp_max_articles,
    clear_settings_cache,
    get_settings,
)


class TestClamps:
    """Tests for the bound helpers."""

    @pytest.mark.parametrize("value,expected", [(10, 300), (300, 300), (301, 301), (3600, 3600)])
    def test_cache_ttl_floor(self, value, expected):
        assert clamp_cache_ttl(value) == expected

    @pytest.mark.parametrize("value,expected", [(-5, 1), (0, 1), (1, 1), (75, 75), (200, 200), (1000, 200)])
    def test_max_articles_range(self, value, expected):
        assert clamp_max_articles(value) == expected


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self):
        """Defaults should match the documented values."""
        settings = Settings()

        assert settings.cache_ttl_seconds == 1800
        assert settings.max_articles_per_feed == 50
        assert settings.default_feeds == DEFAULT_FEEDS
        assert settings.user_agent == "ModernDashboard/1.0"
        assert settings.http_timeout == 30.0

    def test_values_clamped(self):
        settings = Settings(cache_ttl_seconds=5, max_articles_per_feed=999)

        assert settings.cache_ttl_seconds == 300
        assert settings.max_articles_per_feed == 200

    def test_blank_feeds_dropped(self):
        settings = Settings(default_feeds=["  ", "https://a.test/rss ", ""])

        assert settings.default_feeds == ["https://a.test/rss"]

    def test_rejects_zero_workers(self):
        with pytest.raises(ValidationError):
            Settings(max_concurrent_fetches=0)

    def test_reads_environment(self, monkeypatch):
        """Environment variables should override defaults."""
        monkeypatch.setenv("CACHE_TTL_SECONDS", "900")
        clear_settings_cache()
        try:
            assert get_settings().cache_ttl_seconds == 900
        finally:
            clear_settings_cache()


class TestConfigUpdate:
    """Tests for the host configuration blob."""

    def test_parses_json(self):
        update = ConfigUpdate.model_validate_json('{"feeds": ["https://a.test/rss"], "cache_ttl": 600}')

        assert update.feeds == ["https://a.test/rss"]
        assert update.cache_ttl == 600
        assert update.max_articles_per_feed is None

    def test_unknown_keys_ignored(self):
        update = ConfigUpdate.model_validate({"theme": "dark"})

        assert update.feeds == []

    def test_rejects_wrong_types(self):
        with pytest.raises(ValidationError):
            ConfigUpdate.model_validate({"feeds": "https://a.test/rss"})
