"""
Feed dialect detection.

A substring heuristic, not a validating parser: unusual documents may be
misclassified, and the parsers then simply produce zero articles.
"""

import re

from ..models import FeedType
from .base import ATOM_NS, Document

_RSS_TAG_RE = re.compile(r"<rss\b[^>]*>", re.IGNORECASE)
_FEED_TAG_RE = re.compile(r"<feed\b[^>]*>", re.IGNORECASE)
_VERSION_2_RE = re.compile(r"""version\s*=\s*["']2\.0["']""")


def detect_feed_type(document: Document) -> FeedType:
    """
    Classify a document as RSS 2.0, RSS 1.0, Atom 1.0 or unknown.

    Args:
        document: Raw document bytes or text

    Returns:
        FeedType
    """
    if not document:
        return FeedType.UNKNOWN

    # Tag names are ASCII, so a lossless single-byte decode is enough to sniff
    xml_text = document.decode("latin-1") if isinstance(document, bytes) else document

    rss_tag = _RSS_TAG_RE.search(xml_text)
    if rss_tag:
        if _VERSION_2_RE.search(rss_tag.group(0)):
            return FeedType.RSS_2_0
        return FeedType.RSS_1_0

    feed_tag = _FEED_TAG_RE.search(xml_text)
    if feed_tag and ATOM_NS in feed_tag.group(0):
        return FeedType.ATOM_1_0

    return FeedType.UNKNOWN
