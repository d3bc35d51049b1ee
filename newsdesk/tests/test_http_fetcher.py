"""
Tests for the HTTP fetcher.

Uses httpx.MockTransport so no request leaves the process.
"""

import httpx

from newsdesk.config import USER_AGENT
from newsdesk.feeds import parse_feed
from newsdesk.http_fetcher import HttpFetcher
from newsdesk.models import Feed


def make_fetcher(handler) -> HttpFetcher:
    return HttpFetcher(timeout=5.0, transport=httpx.MockTransport(handler))


class TestHttpFetcher:
    """Tests for HttpFetcher.fetch."""

    def test_success(self):
        """A 200 response should come back as body + status."""
        fetcher = make_fetcher(lambda request: httpx.Response(200, text="<rss/>"))

        response = fetcher.fetch("https://feed.test/rss")

        assert response.success is True
        assert response.status_code == 200
        assert response.body == "<rss/>"

    def test_http_error_is_transport_success(self):
        """A 404 is a successful transport with a non-200 status."""
        fetcher = make_fetcher(lambda request: httpx.Response(404, text="Not Found"))

        response = fetcher.fetch("https://feed.test/missing")

        assert response.success is True
        assert response.status_code == 404

    def test_sends_user_agent(self):
        """Every request should carry the configured User-Agent."""
        seen = {}

        def handler(request):
            seen["ua"] = request.headers.get("User-Agent")
            return httpx.Response(200, text="ok")

        make_fetcher(handler).fetch("https://feed.test/rss")

        assert seen["ua"] == USER_AGENT

    def test_follows_redirects(self):
        """Redirects should be followed to the final document."""

        def handler(request):
            if request.url.path == "/old":
                return httpx.Response(301, headers={"Location": "https://feed.test/new"})
            return httpx.Response(200, text="moved here")

        response = make_fetcher(handler).fetch("https://feed.test/old")

        assert response.status_code == 200
        assert response.body == "moved here"

    def test_transport_error(self):
        """Connection failures should not raise."""

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        response = make_fetcher(handler).fetch("https://feed.test/rss")

        assert response.success is False
        assert response.status_code == 0
        assert "connection refused" in response.body

    def test_timeout(self):
        """Timeouts should be reported as failures."""

        def handler(request):
            raise httpx.ReadTimeout("too slow", request=request)

        response = make_fetcher(handler).fetch("https://feed.test/rss")

        assert response.success is False
        assert response.body.startswith("Request timed out")

    def test_empty_url(self):
        """An empty URL fails without a request."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200)

        response = make_fetcher(handler).fetch("")

        assert response.success is False
        assert response.status_code == 0
        assert calls == []

    def test_context_manager_closes_client(self):
        with make_fetcher(lambda request: httpx.Response(200)) as fetcher:
            assert fetcher.fetch("https://feed.test/rss").success

        assert fetcher._client.is_closed


LATIN1_FEED = (
    '<?xml version="1.0" encoding="ISO-8859-1"?>'
    '<rss version="2.0"><channel><title>Café News</title>'
    "<item><title>Café crème</title><link>https://feed.test/1</link></item>"
    "</channel></rss>"
)


class TestDocumentEncoding:
    """The parser should see the document in its declared encoding."""

    def test_declared_latin1_survives(self):
        """A Latin-1 feed without a header charset keeps its accents."""
        fetcher = make_fetcher(lambda request: httpx.Response(
            200,
            content=LATIN1_FEED.encode("latin-1"),
            headers={"Content-Type": "application/rss+xml"},
        ))

        response = fetcher.fetch("https://feed.test/rss")
        articles = parse_feed(response.document, Feed(url="https://feed.test/rss"))

        assert response.content == LATIN1_FEED.encode("latin-1")
        assert [a.title for a in articles] == ["Café crème"]
        assert articles[0].source == "Café News"

    def test_header_charset_without_declaration(self):
        """With no declaration the Content-Type charset decides."""
        doc = LATIN1_FEED.split("?>", 1)[1]
        fetcher = make_fetcher(lambda request: httpx.Response(
            200,
            content=doc.encode("windows-1252"),
            headers={"Content-Type": "application/xml; charset=windows-1252"},
        ))

        response = fetcher.fetch("https://feed.test/rss")
        articles = parse_feed(response.document, Feed(url="https://feed.test/rss"))

        assert [a.title for a in articles] == ["Café crème"]

    def test_transport_failure_has_no_content(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        response = make_fetcher(handler).fetch("https://feed.test/rss")

        assert response.content == b""
