import asyncio
import ipaddress
import socket
from typing import NamedTuple, Optional, Union
from urllib.parse import urljoin, urlparse

import httpx

from app.config import get_settings

ALLOWED_SCHEMES = {"http", "https"}


class HostNotFoundError(RuntimeError):
    """Raised when the target hostname does not resolve to any address."""


class FetchResult(NamedTuple):
    # Raw bytes when the response headers declare no charset, so the HTML
    # parser can detect the encoding from <meta charset>.
    html: Union[str, bytes]
    final_url: str  # URL of the last response after following redirects
    status_code: int
    content_type: Optional[str]  # None when the server sent no Content-Type


async def _resolve_host(hostname: str) -> list:
    """Return the getaddrinfo entries for *hostname*, resolved off the event loop.

    Raises:
        HostNotFoundError: if the name does not resolve.
    """
    try:
        return await asyncio.to_thread(socket.getaddrinfo, hostname, None)
    except socket.gaierror as exc:
        raise HostNotFoundError(f"Could not resolve host '{hostname}'.") from exc


async def _is_private_address(hostname: str) -> bool:
    """Return True if *hostname* resolves to a private, loopback, or link-local address."""
    for info in await _resolve_host(hostname):
        raw_ip = info[4][0]
        # Strip IPv6 zone IDs (e.g. "::1%eth0" → "::1")
        raw_ip = raw_ip.split("%")[0]
        try:
            addr = ipaddress.ip_address(raw_ip)
        except ValueError:
            continue
        if addr.is_private or addr.is_loopback or addr.is_link_local or addr.is_reserved:
            return True
    return False


async def _validate_url(url: str) -> None:
    """Raise ValueError if *url* fails SSRF / scheme validation."""
    parsed = urlparse(url)

    if parsed.scheme not in ALLOWED_SCHEMES:
        raise ValueError(f"Scheme '{parsed.scheme}' is not allowed. Use http or https.")

    hostname = parsed.hostname
    if not hostname:
        raise ValueError("URL must have a valid hostname.")

    # Raises ValueError for ports outside 0-65535
    parsed.port

    if await _is_private_address(hostname):
        raise ValueError("Requests to private/internal addresses are not allowed.")


def _decode_body(body: bytes, charset: Optional[str]) -> Union[str, bytes]:
    """Decode *body* with the header *charset*; leave it as bytes when there is none."""
    if not charset:
        return body
    try:
        return body.decode(charset, errors="replace")
    except LookupError:
        return body


async def fetch_url(url: str) -> FetchResult:
    """Fetch *url* and return its body together with transport metadata.

    Redirects are followed manually so that every redirect destination is
    validated against the SSRF rules before the next request is made.

    Raises:
        ValueError: if the URL fails SSRF / scheme validation.
        HostNotFoundError: if a hostname does not resolve.
        httpx.HTTPStatusError: if the final response is not 2xx.
        httpx.HTTPError: on other network errors (timeouts, refused connections).
        RuntimeError: if the body exceeds the size limit or there are too many redirects.
    """
    settings = get_settings()
    await _validate_url(url)

    current_url = url
    headers = {"User-Agent": settings.user_agent}
    async with httpx.AsyncClient(
        follow_redirects=False, timeout=settings.fetch_timeout, headers=headers
    ) as client:
        for _ in range(settings.max_redirects + 1):
            async with client.stream("GET", current_url) as response:
                if response.is_redirect:
                    location = response.headers.get("location", "")
                    next_url = urljoin(current_url, location)
                    await _validate_url(next_url)
                    current_url = next_url
                    continue

                response.raise_for_status()

                content_length = response.headers.get("content-length")
                if (
                    content_length
                    and content_length.isdigit()
                    and int(content_length) > settings.max_content_size
                ):
                    raise RuntimeError("Response body exceeds the maximum allowed size.")

                chunks = []
                total = 0
                async for chunk in response.aiter_bytes():
                    total += len(chunk)
                    if total > settings.max_content_size:
                        raise RuntimeError("Response body exceeds the maximum allowed size.")
                    chunks.append(chunk)

                return FetchResult(
                    html=_decode_body(b"".join(chunks), response.charset_encoding),
                    final_url=str(response.url),
                    status_code=response.status_code,
                    content_type=response.headers.get("content-type"),
                )

    raise RuntimeError("Too many redirects.")
