"""Tests for WebExtractor — SSRF guard, scheme validation, fetch and conversion."""

from __future__ import annotations

import http.client
from unittest.mock import MagicMock, patch

import pytest

from secondbrain.ingest.base import Artifact
from secondbrain.ingest.web import FetchError, SsrfError, WebExtractor, _LimitedRedirectHandler


# ------------------------------------------------------------------
# Scheme validation
# ------------------------------------------------------------------


def test_scheme_https_ok():
    WebExtractor._validate_scheme("https://example.com/page")


def test_scheme_http_ok():
    WebExtractor._validate_scheme("http://example.com/page")


@pytest.mark.parametrize("url", ["ftp://example.com", "file:///etc/passwd", "javascript:alert(1)"])
def test_scheme_other_raises(url):
    with pytest.raises(ValueError, match="scheme"):
        WebExtractor._validate_scheme(url)


def test_check_ssrf_no_hostname_raises():
    with pytest.raises(ValueError, match="hostname"):
        WebExtractor._check_ssrf("https://")


# ------------------------------------------------------------------
# SSRF guard
# ------------------------------------------------------------------


def _patch_getaddrinfo(ip: str):
    """Return a context manager that makes getaddrinfo resolve to *ip*."""
    addr_info = [(None, None, None, None, (ip, 0))]
    return patch("secondbrain.ingest.web.socket.getaddrinfo", return_value=addr_info)


def test_ssrf_public_ip_ok():
    with _patch_getaddrinfo("93.184.216.34"):
        WebExtractor._check_ssrf("https://example.com")


@pytest.mark.parametrize(
    "ip",
    ["127.0.0.1", "10.0.0.1", "172.16.0.1", "192.168.1.1", "169.254.169.254", "::1", "0.0.0.0"],
)
def test_ssrf_private_addresses_blocked(ip):
    with _patch_getaddrinfo(ip):
        with pytest.raises(SsrfError, match="private address"):
            WebExtractor._check_ssrf("http://internal.example/")


def test_dns_failure_is_fetch_error():
    import socket

    with patch("secondbrain.ingest.web.socket.getaddrinfo", side_effect=socket.gaierror("nope")):
        with pytest.raises(FetchError, match="DNS"):
            WebExtractor._check_ssrf("https://no-such-host.example")


def test_too_many_redirects_raise():
    handler = _LimitedRedirectHandler(max_redirects=1)
    req = MagicMock(full_url="https://example.com")
    with patch("urllib.request.HTTPRedirectHandler.redirect_request", return_value=req):
        handler.redirect_request(req, None, 302, "Found", {}, "https://example.com/a")
        with pytest.raises(FetchError, match="redirects"):
            handler.redirect_request(req, None, 302, "Found", {}, "https://example.com/b")


# ------------------------------------------------------------------
# Conversion
# ------------------------------------------------------------------


def test_plain_text_passthrough():
    assert WebExtractor._to_plain_text(b"  Hello world.  ", "text/plain") == "Hello world."


def test_article_extraction_preferred():
    with patch.object(WebExtractor, "_extract_article", return_value="Main article.") as mock_article:
        result = WebExtractor._to_plain_text(b"<html></html>", "text/html", "https://example.com")
    assert result == "Main article."
    mock_article.assert_called_once_with("<html></html>", "https://example.com")


def test_tag_stripping_fallback_when_no_article():
    html = b"<html><body><script>alert('x')</script><nav>Menu</nav><p>DMX512 protocol.</p></body></html>"
    with patch.object(WebExtractor, "_extract_article", return_value=""):
        result = WebExtractor._to_plain_text(html, "text/html")
    assert "DMX512" in result
    assert "alert" not in result
    assert "Menu" not in result
    assert "<" not in result


def test_extract_article_joins_title_and_text():
    document = {"title": "Sky facts", "text": "The sky is blue."}
    with patch("secondbrain.ingest.web.trafilatura.bare_extraction", return_value=document):
        assert WebExtractor._extract_article("<html/>", None) == "Sky facts\n\nThe sky is blue."


def test_extract_article_accepts_document_objects():
    document = MagicMock(title=None, text="Body only.")
    with patch("secondbrain.ingest.web.trafilatura.bare_extraction", return_value=document):
        assert WebExtractor._extract_article("<html/>", None) == "Body only."


@pytest.mark.parametrize("document", [None, {"title": "Only a title", "text": ""}])
def test_extract_article_nothing_found(document):
    with patch("secondbrain.ingest.web.trafilatura.bare_extraction", return_value=document):
        assert WebExtractor._extract_article("<html/>", None) == ""


def test_extract_article_error_is_empty():
    with patch("secondbrain.ingest.web.trafilatura.bare_extraction", side_effect=RuntimeError("boom")):
        assert WebExtractor._extract_article("<html/>", None) == ""


# ------------------------------------------------------------------
# extract(): full pipeline (mocked network)
# ------------------------------------------------------------------


def _mock_response(body: bytes, content_type: str = "text/html; charset=utf-8"):
    response = MagicMock()
    response.headers = {"Content-Type": content_type}
    response.read.return_value = body
    response.__enter__.return_value = response
    return response


def test_extract_fetches_and_converts():
    opener = MagicMock()
    opener.open.return_value = _mock_response(b"The sky is blue.", "text/plain")
    with _patch_getaddrinfo("93.184.216.34"), patch(
        "secondbrain.ingest.web.urllib.request.build_opener", return_value=opener
    ):
        text = WebExtractor(user_agent="TestBot/1.0").extract(Artifact.from_url("https://example.com"))

    assert text == "The sky is blue."
    request = opener.open.call_args.args[0]
    assert request.get_header("User-agent") == "TestBot/1.0"


def test_extract_oversized_body_is_empty():
    opener = MagicMock()
    opener.open.return_value = _mock_response(b"x" * 11, "text/plain")
    with _patch_getaddrinfo("93.184.216.34"), patch(
        "secondbrain.ingest.web.urllib.request.build_opener", return_value=opener
    ):
        assert WebExtractor(max_bytes=10).extract(Artifact.from_url("https://example.com")) == ""


def test_extract_network_error_is_empty():
    opener = MagicMock()
    opener.open.side_effect = OSError("connection reset")
    with _patch_getaddrinfo("93.184.216.34"), patch(
        "secondbrain.ingest.web.urllib.request.build_opener", return_value=opener
    ):
        assert WebExtractor().extract(Artifact.from_url("https://example.com")) == ""


def test_extract_malformed_status_line_is_empty():
    opener = MagicMock()
    opener.open.side_effect = http.client.BadStatusLine("garbage")
    with _patch_getaddrinfo("93.184.216.34"), patch(
        "secondbrain.ingest.web.urllib.request.build_opener", return_value=opener
    ):
        assert WebExtractor().extract(Artifact.from_url("https://example.com")) == ""


def test_extract_truncated_body_is_empty():
    response = _mock_response(b"")
    response.read.side_effect = http.client.IncompleteRead(b"")
    opener = MagicMock()
    opener.open.return_value = response
    with _patch_getaddrinfo("93.184.216.34"), patch(
        "secondbrain.ingest.web.urllib.request.build_opener", return_value=opener
    ):
        assert WebExtractor().extract(Artifact.from_url("https://example.com")) == ""


def test_extract_private_url_is_empty_without_fetching():
    with _patch_getaddrinfo("127.0.0.1"), patch(
        "secondbrain.ingest.web.urllib.request.build_opener"
    ) as mock_opener:
        assert WebExtractor().extract(Artifact.from_url("http://localhost/admin")) == ""
    mock_opener.assert_not_called()


@pytest.mark.parametrize("url", ["", "   ", "ftp://example.com/file"])
def test_extract_unusable_url_is_empty(url):
    assert WebExtractor().extract(Artifact.from_url(url)) == ""
