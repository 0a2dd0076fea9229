"""Web extractor — URL fetch with readability-style main-content extraction.

Pipeline:
- Scheme check (http/https only) and SSRF guard: the hostname is resolved
  and private/loopback/link-local/reserved addresses are refused before any
  connection is made.
- Fetch with a distinct User-Agent, timeout, redirect limit and size cap.
- Main-content extraction with trafilatura (article body, navigation and
  boilerplate stripped); when that yields nothing, crude tag stripping via
  BeautifulSoup + html2text.

Any fetch failure (refused URL, non-2xx, network error, oversized body)
degrades to '' and is logged; callers must tolerate empty content.
"""

from __future__ import annotations

import ipaddress
import socket
import urllib.error
import urllib.parse
import urllib.request
import http.client
from http.client import HTTPResponse

import html2text
import structlog
import trafilatura
from bs4 import BeautifulSoup

from secondbrain.ingest.base import Artifact, BaseExtractor

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_USER_AGENT = "SecondBrainBot/0.1"
_MAX_BYTES = 5 * 1024 * 1024  # 5 MB
_TIMEOUT = 30.0  # seconds
_MAX_REDIRECTS = 3
_ALLOWED_SCHEMES = {"https", "http"}
_TEXT_CONTENT_TYPES = {"text/plain"}

# html2text converter
_h2t = html2text.HTML2Text()
_h2t.ignore_links = True
_h2t.ignore_images = True
_h2t.body_width = 0


class SsrfError(ValueError):
    """Raised when a URL resolves to a private or reserved address."""


class FetchError(RuntimeError):
    """Raised when a URL cannot be fetched."""


class WebExtractor(BaseExtractor):
    """Fetch a URL and return its main readable text.

    Args:
        user_agent: User-Agent header sent with every request.
        timeout: Connect + read timeout in seconds.
        max_bytes: Response bodies larger than this are refused.
    """

    def __init__(
        self,
        user_agent: str = _DEFAULT_USER_AGENT,
        timeout: float = _TIMEOUT,
        max_bytes: int = _MAX_BYTES,
    ) -> None:
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_bytes = max_bytes

    def extract(self, artifact: Artifact) -> str:
        """*artifact.text* holds the URL. Returns '' on any fetch failure."""
        url = artifact.text.strip()
        if not url:
            return ""
        try:
            self._validate_scheme(url)
            self._check_ssrf(url)
            body, content_type = self._fetch(url)
        except (ValueError, FetchError) as exc:
            logger.warning("url_fetch_failed", url=url, error=str(exc))
            return ""
        return self._to_plain_text(body, content_type, url)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_scheme(url: str) -> None:
        parsed = urllib.parse.urlparse(url)
        if parsed.scheme not in _ALLOWED_SCHEMES:
            raise ValueError(
                f"Unsupported URL scheme '{parsed.scheme}'. Only https:// and http:// are allowed."
            )

    @staticmethod
    def _check_ssrf(url: str) -> None:
        """Resolve the hostname and block private/reserved IP ranges.

        Raises SsrfError if any resolved address is private, loopback,
        link-local, or otherwise reserved.
        """
        parsed = urllib.parse.urlparse(url)
        hostname = parsed.hostname
        if not hostname:
            raise ValueError(f"URL has no hostname: {url}")

        try:
            addrinfos = socket.getaddrinfo(hostname, None)
        except socket.gaierror as exc:
            raise FetchError(f"DNS resolution failed for '{hostname}': {exc}") from exc

        for addrinfo in addrinfos:
            addr_str = addrinfo[4][0]
            try:
                ip = ipaddress.ip_address(addr_str)
            except ValueError:
                continue
            if (
                ip.is_private
                or ip.is_loopback
                or ip.is_link_local
                or ip.is_reserved
                or ip.is_multicast
                or ip.is_unspecified
            ):
                raise SsrfError(
                    f"URL resolves to private address ({ip}). "
                    "Access to internal network addresses is not allowed."
                )

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    def _fetch(self, url: str) -> tuple[bytes, str]:
        """Fetch *url* with timeout, redirect limit and size cap.

        Returns (body_bytes, content_type_without_params). Non-2xx responses
        raise FetchError (urllib reports them as HTTPError).
        """
        request = urllib.request.Request(url, headers={"User-Agent": self.user_agent})
        opener = urllib.request.build_opener(_LimitedRedirectHandler(_MAX_REDIRECTS))

        try:
            response: HTTPResponse = opener.open(request, timeout=self.timeout)
        except (urllib.error.URLError, http.client.HTTPException, OSError) as exc:
            raise FetchError(f"Failed to fetch URL '{url}': {exc}") from exc

        with response:
            raw_ct = response.headers.get("Content-Type", "text/html")
            ct = raw_ct.split(";")[0].strip().lower()
            try:
                body = response.read(self.max_bytes + 1)
            except (http.client.HTTPException, OSError) as exc:
                raise FetchError(f"Failed to read URL '{url}': {exc}") from exc

        if len(body) > self.max_bytes:
            raise FetchError(
                f"Response body exceeds {self.max_bytes // (1024 * 1024)} MB limit for URL '{url}'."
            )
        return body, ct

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    @staticmethod
    def _to_plain_text(body: bytes, content_type: str, url: str | None = None) -> str:
        """Convert *body* to plain text based on *content_type*."""
        text = body.decode("utf-8", errors="replace")
        if content_type in _TEXT_CONTENT_TYPES:
            return text.strip()

        article = WebExtractor._extract_article(text, url)
        if article:
            return article
        return WebExtractor._strip_tags(text)

    @staticmethod
    def _extract_article(html: str, url: str | None) -> str:
        """Main-content extraction; '' when trafilatura finds no article."""
        try:
            document = trafilatura.bare_extraction(
                html,
                url=url,
                include_comments=False,
                include_tables=True,
                with_metadata=True,
            )
        except Exception as exc:
            logger.warning("readability_extraction_failed", url=url, error=str(exc))
            return ""
        if document is None:
            return ""

        if isinstance(document, dict):
            title, body = document.get("title"), document.get("text")
        else:
            title, body = getattr(document, "title", None), getattr(document, "text", None)
        parts = [(title or "").strip(), (body or "").strip()]
        if not parts[1]:
            return ""
        return "\n\n".join(p for p in parts if p)

    @staticmethod
    def _strip_tags(html: str) -> str:
        """Crude fallback: drop non-content tags, then html2text."""
        soup = BeautifulSoup(html, "html.parser")
        for tag in soup.find_all(["script", "style", "nav", "footer", "head"]):
            tag.decompose()
        return _h2t.handle(str(soup)).strip()


class _LimitedRedirectHandler(urllib.request.HTTPRedirectHandler):
    """Raise an error after more than *max_redirects* redirects."""

    def __init__(self, max_redirects: int) -> None:
        self._max_redirects = max_redirects
        self._count = 0

    def redirect_request(self, req, fp, code, msg, headers, newurl):
        self._count += 1
        if self._count > self._max_redirects:
            raise FetchError(
                f"Too many redirects (>{self._max_redirects}) for URL '{req.full_url}'."
            )
        return super().redirect_request(req, fp, code, msg, headers, newurl)
