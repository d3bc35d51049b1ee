"""
RSS parser (2.0 and the older dialects sharing the channel/item layout).
"""

import time
from typing import Callable

from ..logging_conf import get_logger
from ..models import Article, Feed
from .base import DC_NS, Document, build_article, child_text, parse_xml, source_name

logger = get_logger(__name__)


def parse_rss(
    document: Document,
    feed: Feed,
    max_articles: int = 50,
    clock: Callable[[], float] = time.time,
) -> list[Article]:
    """
    Parse ``channel/item`` elements in document order.

    Field mapping:
    - title, description: tag-stripped
    - link, author (falling back to dc:creator), category: first element
    - pubDate: via the date normalizer
    - source: channel title, falling back to the feed URL

    Args:
        document: Raw RSS document (bytes or text)
        feed: Feed the document was fetched for
        max_articles: Maximum number of accepted articles
        clock: Source of "now" for cached_at and date fallback

    Returns:
        Accepted articles; empty if the document cannot be parsed
    """
    root = parse_xml(document)
    if root is None:
        return []

    channel = root.find("channel")
    if channel is None:
        logger.debug("rss_missing_channel", url=feed.url)
        return []

    source = source_name(child_text(channel, "title"), feed)
    articles: list[Article] = []

    for item in channel.iterfind("item"):
        if len(articles) >= max_articles:
            break

        author = child_text(item, "author") or child_text(item, "dc:creator", {"dc": DC_NS})

        article = build_article(
            title=child_text(item, "title"),
            link=child_text(item, "link"),
            description=child_text(item, "description"),
            source=source,
            author=author,
            category=child_text(item, "category"),
            date_str=child_text(item, "pubDate"),
            clock=clock,
        )
        if article is not None:
            articles.append(article)

    return articles
