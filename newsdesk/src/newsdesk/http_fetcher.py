"""
HTTP fetcher for feed documents.

Issues a single GET per call and never raises: every outcome, including
transport failures, is reported through ``HttpResponse``. Retries are not
attempted here; a stale cache entry or a partial result is the accepted
degradation.
"""

import re
from typing import Optional, Protocol

import httpx

from .config import USER_AGENT
from .logging_conf import get_logger
from .models import HttpResponse

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0

_BOMS = (b"\xef\xbb\xbf", b"\xff\xfe", b"\xfe\xff")
_DECLARED_ENCODING_RE = re.compile(rb"^\s*<\?xml[^>]*encoding", re.IGNORECASE)


def document_bytes(response: httpx.Response) -> bytes:
    """
    Bytes to hand to the XML parser.

    Documents that name their own encoding (declaration or BOM), or that
    arrive without a header charset, pass through untouched. When only the
    Content-Type header names the charset, the text decoded with it is
    re-encoded as UTF-8, which XML assumes in the absence of a declaration.
    """
    content = response.content
    if response.charset_encoding is None:
        return content
    if content.startswith(_BOMS) or _DECLARED_ENCODING_RE.match(content[:512]):
        return content
    return response.text.encode("utf-8")


class Fetcher(Protocol):
    """Anything that can perform a GET and return an ``HttpResponse``."""

    def fetch(self, url: str) -> HttpResponse:
        ...


class HttpFetcher:
    """
    Synchronous feed fetcher backed by a shared ``httpx.Client``.

    The client follows redirects, verifies TLS certificates and host names,
    and sends a fixed User-Agent. It is safe to call from worker threads.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = USER_AGENT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            timeout: Overall request timeout in seconds
            user_agent: User-Agent header value
            transport: Optional httpx transport (tests inject MockTransport)
        """
        self.timeout = timeout
        self.user_agent = user_agent
        self._client = httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            verify=True,
            headers={"User-Agent": user_agent},
            transport=transport,
        )

    def fetch(self, url: str) -> HttpResponse:
        """
        Perform a GET request.

        Args:
            url: Absolute URL to request

        Returns:
            HttpResponse; ``success`` is False only on transport failure
        """
        if not url or not url.strip():
            return HttpResponse(body="URL must not be empty", status_code=0, success=False)

        try:
            response = self._client.get(url)
        except httpx.TimeoutException as e:
            logger.warning("http_timeout", url=url[:120], timeout=self.timeout)
            return HttpResponse(body=f"Request timed out: {e}", status_code=0, success=False)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("http_transport_error", url=url[:120], error=str(e))
            return HttpResponse(body=f"Transport error: {e}", status_code=0, success=False)

        logger.debug("http_fetched", url=url[:120], status=response.status_code, bytes=len(response.content))

        return HttpResponse(
            body=response.text,
            status_code=response.status_code,
            success=True,
            content=document_bytes(response),
        )

    def close(self) -> None:
        """Release pooled connections."""
        self._client.close()

    def __enter__(self) -> "HttpFetcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
