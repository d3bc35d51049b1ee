"""
Shared XML helpers for the feed parsers.

Documents are handed to lxml as bytes so the encoding named in the XML
declaration (or the BOM) decides how they are decoded.
"""

import re
import time
from html.entities import name2codepoint
from typing import Callable, Optional, Union

from lxml import etree

from ..logging_conf import get_logger
from ..models import Article, Feed
from ..normalize import generate_article_id, parse_date, strip_html

logger = get_logger(__name__)

ATOM_NS = "http://www.w3.org/2005/Atom"
DC_NS = "http://purl.org/dc/elements/1.1/"

# Raw response bytes, or text already decoded by the caller
Document = Union[str, bytes]

# Signature shared by every format parser
ParseFunc = Callable[..., list[Article]]

_XML_DECL_ENCODING_RE = re.compile(r"""^(\s*<\?xml[^>]*?encoding\s*=\s*["'])[^"']*(["'])""", re.IGNORECASE)
_ENTITY_REF_RE = re.compile(rb"&([A-Za-z][A-Za-z0-9]*);")
_CDATA_RE = re.compile(rb"(<!\[CDATA\[.*?\]\]>)", re.DOTALL)
_XML_ENTITIES = frozenset((b"amp", b"lt", b"gt", b"quot", b"apos"))


def _make_parser() -> etree.XMLParser:
    # Strict (no recover) so malformed documents are rejected, and no
    # entity expansion or network access while parsing untrusted feeds
    return etree.XMLParser(
        recover=False,
        resolve_entities=False,
        no_network=True,
        remove_blank_text=True,
    )


def _to_xml_bytes(document: Document) -> bytes:
    """Bytes for lxml; text is re-encoded as UTF-8 and its declaration updated to match."""
    if isinstance(document, str):
        text = _XML_DECL_ENCODING_RE.sub(r"\1utf-8\2", document.lstrip("\ufeff"), count=1)
        document = text.encode("utf-8")
    return document.lstrip()


def _replace_entity(match: "re.Match[bytes]") -> bytes:
    name = match.group(1)
    if name in _XML_ENTITIES:
        return match.group(0)

    codepoint = name2codepoint.get(name.decode("ascii"))
    if codepoint is None:
        # Unknown names are kept as literal text
        return b"&amp;" + name + b";"
    return b"&#%d;" % codepoint


def escape_html_entities(data: bytes) -> bytes:
    """
    Rewrite HTML named entities (``&nbsp;``, ``&mdash;``...) as numeric references.

    XML only predefines five entities, and feeds routinely use HTML ones in
    titles and descriptions. CDATA sections are left untouched, as are
    documents that declare their own entities.
    """
    if b"&" not in data or b"<!ENTITY" in data:
        return data

    parts = _CDATA_RE.split(data)
    # split() with a capture group puts CDATA sections at odd indices
    return b"".join(
        part if i % 2 else _ENTITY_REF_RE.sub(_replace_entity, part)
        for i, part in enumerate(parts)
    )


def parse_xml(document: Document) -> Optional[etree._Element]:
    """
    Parse a feed document.

    Args:
        document: Raw response bytes, or decoded text

    Returns:
        Root element, or None if the document is not well-formed XML
    """
    if not document or not document.strip():
        return None

    data = escape_html_entities(_to_xml_bytes(document))

    try:
        return etree.fromstring(data, parser=_make_parser())
    except (etree.XMLSyntaxError, ValueError) as e:
        logger.debug("xml_parse_failed", error=str(e))
        return None


def element_text(el: Optional[etree._Element]) -> str:
    """All text under an element (CDATA included), or "" when absent."""
    if el is None:
        return ""
    return "".join(el.itertext()).strip()


def child_text(parent: etree._Element, tag: str, namespaces: Optional[dict] = None) -> str:
    return element_text(parent.find(tag, namespaces=namespaces))


def build_article(
    *,
    title: str,
    link: str,
    description: str,
    source: str,
    author: str,
    category: str,
    date_str: str,
    clock: Callable[[], float] = time.time,
) -> Optional[Article]:
    """
    Normalize raw field values into an Article.

    Titles and descriptions are tag-stripped. Returns None unless both
    title and link are non-empty after normalization.
    """
    clean_title = strip_html(title)
    clean_link = (link or "").strip()

    if not clean_title or not clean_link:
        return None

    return Article(
        id=generate_article_id(clean_title, clean_link),
        title=clean_title,
        link=clean_link,
        description=strip_html(description),
        source=source,
        author=(author or "").strip(),
        category=(category or "").strip(),
        published_date=parse_date(date_str, clock=clock),
        cached_at=int(clock()),
    )


def source_name(feed_title: str, feed: Feed) -> str:
    """Channel/feed title, falling back to the feed URL."""
    return strip_html(feed_title) or feed.url
