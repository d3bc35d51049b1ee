"""
Atom 1.0 parser.
"""

import time
from typing import Callable

from ..logging_conf import get_logger
from ..models import Article, Feed
from .base import ATOM_NS, Document, build_article, child_text, parse_xml, source_name

logger = get_logger(__name__)

NS = {"atom": ATOM_NS}


def parse_atom(
    document: Document,
    feed: Feed,
    max_articles: int = 50,
    clock: Callable[[], float] = time.time,
) -> list[Article]:
    """
    Parse ``feed/entry`` elements in document order.

    Field mapping:
    - description: summary, falling back to content
    - link: href of the first link element
    - author: nested author/name
    - category: term attribute of the first category
    - date: updated, falling back to published
    - source: feed title, falling back to the feed URL

    Args:
        document: Raw Atom document (bytes or text)
        feed: Feed the document was fetched for
        max_articles: Maximum number of accepted articles
        clock: Source of "now" for cached_at and date fallback

    Returns:
        Accepted articles; empty if the document cannot be parsed
    """
    root = parse_xml(document)
    if root is None:
        return []

    source = source_name(child_text(root, "atom:title", NS), feed)
    articles: list[Article] = []

    for entry in root.iterfind("atom:entry", namespaces=NS):
        if len(articles) >= max_articles:
            break

        link_el = entry.find("atom:link", namespaces=NS)
        category_el = entry.find("atom:category", namespaces=NS)

        article = build_article(
            title=child_text(entry, "atom:title", NS),
            link=link_el.get("href", "") if link_el is not None else "",
            description=child_text(entry, "atom:summary", NS) or child_text(entry, "atom:content", NS),
            source=source,
            author=child_text(entry, "atom:author/atom:name", NS),
            category=category_el.get("term", "") if category_el is not None else "",
            date_str=child_text(entry, "atom:updated", NS) or child_text(entry, "atom:published", NS),
            clock=clock,
        )
        if article is not None:
            articles.append(article)

    return articles
