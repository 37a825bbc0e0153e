"""Cached scrape history: list, clear, and export as a document report."""

import logging
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from app.dependencies import get_result_cache
from app.models.record import ContentRecord
from app.models.response import MessageResponse
from app.services.cache import ResultCache
from app.services.report import build_archive, render_report

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/results", tags=["Results"])


@router.get("", response_model=List[ContentRecord], summary="List cached scrape results")
async def list_results(cache: ResultCache = Depends(get_result_cache)) -> List[ContentRecord]:
    """Return every cached record, oldest first."""
    return cache.values()


@router.delete("", response_model=MessageResponse, summary="Clear cached scrape results")
async def clear_results(cache: ResultCache = Depends(get_result_cache)) -> MessageResponse:
    count = len(cache)
    cache.clear()
    logger.info("Cleared %d cached result(s)", count)
    return MessageResponse(message="Results cleared")


@router.get(
    "/export",
    summary="Export cached results as a document report",
    description=(
        "Renders cached results as a Markdown report.  Pass `?url=` to export "
        "a single cached page, and `?format=zip` to download an archive with "
        "one Markdown file per page plus a JSON index."
    ),
)
async def export_results(
    url: Optional[str] = Query(default=None, description="Export only this cached URL."),
    format: Literal["markdown", "zip"] = Query(default="markdown", description="Output format."),
    cache: ResultCache = Depends(get_result_cache),
) -> Response:
    if url is not None:
        record = cache.get(url)
        if record is None:
            raise HTTPException(status_code=404, detail="No cached result for this URL.")
        records = [record]
    else:
        records = cache.values()
        if not records:
            raise HTTPException(status_code=404, detail="No cached results to export.")

    logger.info("Exporting %d cached result(s) as %s", len(records), format)

    if format == "zip":
        return Response(
            content=build_archive(records),
            media_type="application/zip",
            headers={"Content-Disposition": 'attachment; filename="scrape-report.zip"'},
        )

    return Response(
        content=render_report(records),
        media_type="text/markdown; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="scrape-report.md"'},
    )
