"""
Shared fixtures for the newsdesk tests.

Provides an in-memory fetcher, a controllable clock and small RSS/Atom
document builders so no test touches the network.
"""

import threading
from typing import Optional

import pytest

from newsdesk.config import Settings
from newsdesk.models import HttpResponse
from newsdesk.service import NewsService


BASE_TIME = 1_700_000_000


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = BASE_TIME):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFetcher:
    """Serves canned responses by URL and counts requests."""

    def __init__(self, responses: Optional[dict] = None):
        self.responses: dict[str, HttpResponse] = dict(responses or {})
        self.calls: dict[str, int] = {}
        self._lock = threading.Lock()

    def fetch(self, url: str) -> HttpResponse:
        with self._lock:
            self.calls[url] = self.calls.get(url, 0) + 1
        if url not in self.responses:
            return HttpResponse(body="Transport error: unreachable", status_code=0, success=False)
        return self.responses[url]

    def serve(self, url: str, body: str, status_code: int = 200, content: Optional[bytes] = None) -> None:
        if content is None:
            content = body.encode("utf-8")
        self.responses[url] = HttpResponse(body=body, status_code=status_code, success=True, content=content)

    def total_calls(self) -> int:
        return sum(self.calls.values())


def rss_item(title: str, link: str, pub_date: str = "", description: str = "", extra: str = "") -> str:
    parts = [f"<title>{title}</title>", f"<link>{link}</link>"]
    if description:
        parts.append(f"<description>{description}</description>")
    if pub_date:
        parts.append(f"<pubDate>{pub_date}</pubDate>")
    if extra:
        parts.append(extra)
    return "<item>" + "".join(parts) + "</item>"


def rss_doc(items: list[str], title: str = "Test Channel", version: str = "2.0", namespaces: str = "") -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<rss version="{version}"{namespaces}><channel>'
        f"<title>{title}</title><description>Channel description</description>"
        + "".join(items)
        + "</channel></rss>"
    )


def atom_entry(title: str, link: str, updated: str = "", extra: str = "") -> str:
    parts = [f"<title>{title}</title>", f'<link href="{link}"/>']
    if updated:
        parts.append(f"<updated>{updated}</updated>")
    if extra:
        parts.append(extra)
    return "<entry>" + "".join(parts) + "</entry>"


def atom_doc(entries: list[str], title: str = "Test Atom") -> str:
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        '<feed xmlns="http://www.w3.org/2005/Atom">'
        f"<title>{title}</title><subtitle>Atom subtitle</subtitle>"
        + "".join(entries)
        + "</feed>"
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def settings():
    return Settings(default_feeds=[], max_concurrent_fetches=1)


@pytest.fixture
def service(settings, fetcher, clock):
    svc = NewsService(settings=settings, fetcher=fetcher, clock=clock)
    svc.initialize()
    return svc
