"""Tests for app.services.fetcher and URL validation in app.services.scraper.

The network is replaced by ``httpx.MockTransport`` and DNS resolution by a
patched ``socket.getaddrinfo`` so these tests run offline.
"""

import asyncio
import socket
import threading
from unittest.mock import patch

import httpx
import pytest

from app.services.extractor import parse_html
from app.services.fetcher import HostNotFoundError, _validate_url, fetch_url
from app.services.scraper import validate_target_url

_PUBLIC_ADDR = [(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("93.184.216.34", 0))]
_PRIVATE_ADDR = [(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("10.0.0.5", 0))]

_RealAsyncClient = httpx.AsyncClient


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _fetch(url: str, handler):
    """Run fetch_url against *handler* with DNS resolving to a public address."""
    transport = httpx.MockTransport(handler)
    with (
        patch("app.services.fetcher.socket.getaddrinfo", return_value=_PUBLIC_ADDR),
        patch(
            "app.services.fetcher.httpx.AsyncClient",
            side_effect=lambda **kwargs: _RealAsyncClient(transport=transport, **kwargs),
        ),
    ):
        return asyncio.run(fetch_url(url))


# ---------------------------------------------------------------------------
# Format validation (no DNS)
# ---------------------------------------------------------------------------

class TestValidateTargetUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "",
            "   ",
            "not-a-url",
            "example.com",
            "ftp://example.com/file",
            "http://",
            "https://[::1",
            "http://example.com:99999/",
        ],
    )
    def test_rejects_invalid(self, url):
        with pytest.raises(ValueError):
            validate_target_url(url)

    def test_out_of_range_port_reports_invalid_format(self):
        with pytest.raises(ValueError, match="Invalid URL format"):
            validate_target_url("http://example.com:99999/")

    @pytest.mark.parametrize(
        "url", ["http://x", "http://x/", "https://example.com/a?b=c#d", "http://example.com:8080/"]
    )
    def test_accepts_http_urls(self, url):
        validate_target_url(url)


# ---------------------------------------------------------------------------
# SSRF validation
# ---------------------------------------------------------------------------

class TestValidateUrl:
    def test_private_address_blocked(self):
        with patch("app.services.fetcher.socket.getaddrinfo", return_value=_PRIVATE_ADDR):
            with pytest.raises(ValueError, match="private"):
                asyncio.run(_validate_url("http://intranet.example.com"))

    def test_public_address_allowed(self):
        with patch("app.services.fetcher.socket.getaddrinfo", return_value=_PUBLIC_ADDR):
            asyncio.run(_validate_url("https://example.com"))

    def test_unresolvable_host(self):
        with patch(
            "app.services.fetcher.socket.getaddrinfo",
            side_effect=socket.gaierror("Name or service not known"),
        ):
            with pytest.raises(HostNotFoundError):
                asyncio.run(_validate_url("https://no-such-host.invalid"))

    def test_disallowed_scheme(self):
        with pytest.raises(ValueError, match="Scheme"):
            asyncio.run(_validate_url("file:///etc/passwd"))

    def test_out_of_range_port_rejected(self):
        with patch("app.services.fetcher.socket.getaddrinfo", return_value=_PUBLIC_ADDR):
            with pytest.raises(ValueError):
                asyncio.run(_validate_url("http://example.com:99999/"))

    def test_dns_lookup_runs_off_the_event_loop_thread(self):
        threads = []

        def fake_getaddrinfo(*args, **kwargs):
            threads.append(threading.current_thread())
            return _PUBLIC_ADDR

        with patch("app.services.fetcher.socket.getaddrinfo", side_effect=fake_getaddrinfo):
            asyncio.run(_validate_url("https://example.com"))

        assert threads and threads[0] is not threading.main_thread()


# ---------------------------------------------------------------------------
# fetch_url
# ---------------------------------------------------------------------------

class TestFetchUrl:
    def test_returns_body_and_metadata(self):
        def handler(request):
            assert "Mozilla" in request.headers["user-agent"]
            return httpx.Response(
                200,
                content=b"<html><title>Hi</title></html>",
                headers={"content-type": "text/html; charset=utf-8"},
            )

        result = _fetch("https://example.com/page", handler)
        assert result.html == "<html><title>Hi</title></html>"
        assert result.status_code == 200
        assert result.final_url == "https://example.com/page"
        assert result.content_type == "text/html; charset=utf-8"

    def test_missing_content_type_is_none(self):
        result = _fetch("https://example.com", lambda request: httpx.Response(200, content=b"ok"))
        assert result.content_type is None

    def test_body_without_header_charset_left_as_bytes(self):
        page = (
            '<html><head><meta charset="windows-1252">'
            "<title>Café Crème</title></head><body></body></html>"
        ).encode("cp1252")

        def handler(request):
            return httpx.Response(200, content=page, headers={"content-type": "text/html"})

        result = _fetch("https://example.com/menu", handler)
        assert result.html == page
        assert parse_html(result.html).title.get_text() == "Café Crème"

    def test_follows_redirects_and_reports_final_url(self):
        def handler(request):
            if request.url.path == "/old":
                return httpx.Response(301, headers={"location": "/new"})
            return httpx.Response(
                200, content=b"moved", headers={"content-type": "text/html; charset=utf-8"}
            )

        result = _fetch("https://example.com/old", handler)
        assert result.final_url == "https://example.com/new"
        assert result.html == "moved"

    def test_redirect_to_invalid_port_rejected(self):
        def handler(request):
            return httpx.Response(302, headers={"location": "http://example.com:99999/"})

        with pytest.raises(ValueError):
            _fetch("https://example.com/start", handler)

    def test_too_many_redirects(self):
        def handler(request):
            return httpx.Response(302, headers={"location": "/loop"})

        with pytest.raises(RuntimeError, match="redirects"):
            _fetch("https://example.com/loop", handler)

    def test_non_2xx_raises_status_error(self):
        with pytest.raises(httpx.HTTPStatusError):
            _fetch("https://example.com/missing", lambda request: httpx.Response(404))

    def test_oversized_body_rejected(self):
        def handler(request):
            return httpx.Response(200, headers={"content-length": str(50 * 1024 * 1024)})

        with pytest.raises(RuntimeError, match="maximum allowed size"):
            _fetch("https://example.com/huge", handler)
