import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import get_settings
from app.dependencies import get_result_cache
from app.models.record import ContentRecord
from app.models.request import ScrapeRequest
from app.services.cache import ResultCache
from app.services.fetcher import HostNotFoundError
from app.services.scraper import scrape_page, validate_target_url

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter()


@router.post("/scrape", response_model=ContentRecord, summary="Scrape details of a web page")
@limiter.limit(lambda: get_settings().scrape_rate_limit)
async def scrape(
    request: Request,
    body: ScrapeRequest,
    cache: ResultCache = Depends(get_result_cache),
) -> ContentRecord:
    """Fetch *url* and return its title, meta tags, images, links, headings and text.

    Results are cached under the URL exactly as submitted; a repeat request
    for the same string is answered from the cache without refetching.
    """
    url = body.url
    logger.info("Scrape request received", extra={"url": url})

    try:
        validate_target_url(url)
    except ValueError as exc:
        logger.warning("Invalid URL submitted: %r – %s", url, exc)
        raise HTTPException(status_code=400, detail=str(exc))

    cached = cache.get(url)
    if cached is not None:
        logger.info("Returning cached result for %s", url)
        return cached

    record = await _scrape(url)
    cache.put(url, record)
    return record


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

async def _scrape(url: str) -> ContentRecord:
    """Scrape *url* and propagate fetch errors as HTTP exceptions."""
    try:
        return await scrape_page(url)
    except ValueError as exc:
        logger.warning("Invalid or blocked URL: %s – %s", url, exc)
        raise HTTPException(status_code=400, detail=str(exc))
    except HostNotFoundError as exc:
        logger.error("Host not found for URL %s: %s", url, exc)
        raise HTTPException(status_code=502, detail="Website not found. Please check the URL.")
    except httpx.TimeoutException:
        logger.error("Timeout fetching URL: %s", url)
        raise HTTPException(
            status_code=504,
            detail="Request timed out. The website is taking too long to respond.",
        )
    except httpx.ConnectError as exc:
        logger.error("Connection error fetching URL %s: %s", url, exc)
        raise HTTPException(status_code=502, detail="Connection refused. The website may be down.")
    except httpx.HTTPStatusError as exc:
        logger.error("HTTP error fetching URL %s: %s", url, exc)
        raise HTTPException(
            status_code=502,
            detail=f"HTTP {exc.response.status_code}: {exc.response.reason_phrase}",
        )
    except (httpx.RequestError, RuntimeError) as exc:
        logger.error("Error fetching URL %s: %s", url, exc)
        raise HTTPException(status_code=502, detail=f"Failed to scrape webpage: {exc}")
