"""
Tests for the HTTP API.

The app is built around an injected service backed by the in-memory
fetcher, so endpoints run without network access.
"""

import json

import pytest
from fastapi.testclient import TestClient

from newsdesk.models import Feed
from newsdesk.server import create_app

from conftest import rss_doc, rss_item

FEED_A = "https://a.test/rss"


@pytest.fixture
def client(service, fetcher):
    fetcher.serve(FEED_A, rss_doc([
        rss_item("Hello", "https://a.test/1", pub_date="Mon, 01 Jan 2024 00:00:00 GMT"),
    ], title="Feed A"))
    app = create_app(service=service, with_scheduler=False)
    with TestClient(app) as test_client:
        yield test_client


class TestEndpoints:
    """Tests for the API surface."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_news(self, client, service):
        service.registry.add(Feed(url=FEED_A))

        response = client.get("/news")

        assert response.status_code == 200
        data = response.json()
        assert [a["title"] for a in data] == ["Hello"]
        assert data[0]["source"] == "Feed A"

    def test_news_force_refresh(self, client, service, fetcher):
        service.registry.add(Feed(url=FEED_A))

        client.get("/news")
        client.get("/news", params={"force_refresh": "true"})

        assert fetcher.calls[FEED_A] == 2

    def test_add_and_list_feeds(self, client):
        response = client.post("/feeds", json={"url": FEED_A})
        assert response.status_code == 200
        assert response.json()["success"] is True

        feeds = client.get("/feeds").json()
        assert [f["url"] for f in feeds] == [FEED_A]
        assert feeds[0]["title"] == "Feed A"

    def test_add_invalid_feed(self, client):
        response = client.post("/feeds", json={"url": "https://unreachable.test/rss"})

        assert response.status_code == 400

    def test_remove_feed(self, client, service):
        service.registry.add(Feed(url=FEED_A))

        assert client.delete("/feeds", params={"url": FEED_A}).status_code == 200
        assert client.delete("/feeds", params={"url": FEED_A}).status_code == 404

    def test_set_feed_active(self, client, service):
        service.registry.add(Feed(url=FEED_A))

        response = client.patch("/feeds/active", json={"url": FEED_A, "active": False})

        assert response.status_code == 200
        assert service.registry.get(FEED_A).is_active is False

    def test_refresh(self, client, service):
        service.registry.add(Feed(url=FEED_A))

        response = client.post("/refresh")

        assert response.json() == {"feeds_refreshed": 1}

    def test_status(self, client):
        data = client.get("/status").json()

        assert data["service"] == "NewsService"
        assert data["initialized"] is True

    def test_cache_endpoints(self, client, service):
        service.registry.add(Feed(url=FEED_A))
        client.get("/news")

        assert client.post("/cache/clear").status_code == 200
        assert service.cache.size() == 0

        client.put("/cache/ttl", json={"seconds": 60})
        assert service.cache_ttl_seconds == 300

    def test_config(self, client, service):
        response = client.post("/config", content=json.dumps({"feeds": [FEED_A], "cache_ttl": 600}))

        assert response.status_code == 200
        assert service.registry.contains(FEED_A)
        assert service.cache_ttl_seconds == 600

    def test_config_malformed(self, client):
        response = client.post("/config", content="{broken")

        assert response.status_code == 400
