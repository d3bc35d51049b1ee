"""
Feed handling.

Provides:
- Dialect detection (RSS 2.0 / RSS 1.0 / Atom 1.0)
- Stateless format parsers, dispatched by detected type
- The feed registry
"""

import time
from typing import Callable, Optional

from ..models import Article, Feed, FeedType
from .atom import parse_atom
from .base import ATOM_NS, Document, ParseFunc, child_text, parse_xml
from .detect import detect_feed_type
from .registry import FeedRegistry
from .rss import parse_rss

# UNKNOWN has no parser
PARSERS: dict[FeedType, ParseFunc] = {
    FeedType.RSS_2_0: parse_rss,
    FeedType.RSS_1_0: parse_rss,
    FeedType.ATOM_1_0: parse_atom,
}


def parse_feed(
    document: Document,
    feed: Feed,
    feed_type: Optional[FeedType] = None,
    max_articles: int = 50,
    clock: Callable[[], float] = time.time,
) -> Optional[list[Article]]:
    """
    Detect (unless given) the dialect and run the matching parser.

    Returns:
        Parsed articles, or None when no parser handles the dialect
    """
    if feed_type is None:
        feed_type = detect_feed_type(document)

    parser = PARSERS.get(feed_type)
    if parser is None:
        return None

    return parser(document, feed, max_articles=max_articles, clock=clock)


def read_feed_info(document: Document, feed_type: FeedType) -> tuple[str, str]:
    """
    Extract the channel/feed title and description.

    Returns:
        (title, description), empty strings where absent or unparsable
    """
    root = parse_xml(document)
    if root is None:
        return "", ""

    if feed_type == FeedType.ATOM_1_0:
        ns = {"atom": ATOM_NS}
        return child_text(root, "atom:title", ns), child_text(root, "atom:subtitle", ns)

    channel = root.find("channel")
    if channel is None:
        return "", ""
    return child_text(channel, "title"), child_text(channel, "description")


__all__ = [
    "PARSERS",
    "FeedRegistry",
    "detect_feed_type",
    "parse_atom",
    "parse_feed",
    "parse_rss",
    "read_feed_info",
]
