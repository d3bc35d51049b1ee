"""
Cross-feed deduplication.

Articles are keyed by their derived ``id`` (title + link). The first
occurrence wins, so the outcome follows feed iteration order.
"""

from .logging_conf import get_logger
from .models import Article

logger = get_logger(__name__)


def dedupe_articles(articles: list[Article]) -> list[Article]:
    """
    Remove repeated articles, preserving first-seen order.

    Args:
        articles: Articles merged from all feeds

    Returns:
        Unique articles
    """
    seen_ids: set[str] = set()
    unique: list[Article] = []

    for article in articles:
        if article.id in seen_ids:
            continue
        seen_ids.add(article.id)
        unique.append(article)

    removed = len(articles) - len(unique)
    if removed > 0:
        logger.debug("dedup_complete", original=len(articles), unique=len(unique))

    return unique
