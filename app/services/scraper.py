"""Single-page scrape: fetch a URL, parse it, and extract its content record."""

import logging
from urllib.parse import urlparse

from app.models.record import ContentRecord
from app.services.extractor import extract, parse_html
from app.services.fetcher import ALLOWED_SCHEMES, fetch_url

logger = logging.getLogger(__name__)


def validate_target_url(url: str) -> None:
    """Raise ValueError unless *url* is an absolute http(s) URL with a host.

    Only the format is checked here; DNS and private-address checks happen
    in the fetcher right before the request is made.
    """
    if not url or not url.strip():
        raise ValueError("URL is required.")
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
        # Raises for ports outside 0-65535
        parsed.port
    except ValueError as exc:
        raise ValueError(f"Invalid URL format: {exc}") from exc
    if parsed.scheme not in ALLOWED_SCHEMES or not hostname:
        raise ValueError("Invalid URL format. Use an absolute http or https URL.")


async def scrape_page(url: str) -> ContentRecord:
    """Fetch *url* and return its extracted :class:`ContentRecord`.

    Relative references resolve against the final URL after redirects, while
    the record keeps *url* exactly as requested.

    Raises whatever :func:`~app.services.fetcher.fetch_url` raises.
    """
    logger.info("Scraping URL: %s", url)
    result = await fetch_url(url)

    record = extract(
        parse_html(result.html),
        result.final_url,
        result.status_code,
        result.content_type,
        source_url=url,
    )

    logger.info(
        "Scraped %s: title=%r domain=%s images=%d links=%d headings=%d",
        url,
        record.title,
        record.domain,
        len(record.images),
        len(record.links),
        len(record.headings),
    )
    return record
