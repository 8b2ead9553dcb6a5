"""
Analysis API Routes

No business logic lives here.
Routes validate input, call the analysis service, return its JSON.
"""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from geoscore.engines.base import ErrorReport
from geoscore.services.analyzer import AnalysisService

logger = structlog.get_logger(__name__)
router = APIRouter()

ERROR_STATUS = {
    "URL_REQUIRED": status.HTTP_400_BAD_REQUEST,
    "INVALID_URL": status.HTTP_400_BAD_REQUEST,
    "FETCH_FAILED": status.HTTP_502_BAD_GATEWAY,
    "SITEMAP_REQUIRED": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "RESOLVER_FAILED": status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def get_analysis_service() -> AnalysisService:
    return AnalysisService()


Analyzer = Annotated[AnalysisService, Depends(get_analysis_service)]


def error_response(report: ErrorReport) -> JSONResponse:
    return JSONResponse(
        status_code=ERROR_STATUS.get(report.code, status.HTTP_400_BAD_REQUEST),
        content=report.model_dump(mode="json"),
    )


def url_required() -> JSONResponse:
    return error_response(ErrorReport(code="URL_REQUIRED", message="URL is required"))


# ─────────────────────────────────────────────
# Endpoints
# ─────────────────────────────────────────────

@router.get("/analyze", summary="Score a single page")
async def analyze(
    service: Analyzer,
    url: str | None = Query(None, description="Page URL; https:// is assumed when no scheme is given"),
) -> JSONResponse:
    """Free single-page GEO analysis."""
    if not url or not url.strip():
        return url_required()

    result = await service.analyze_url(url)
    if isinstance(result, ErrorReport):
        return error_response(result)
    return JSONResponse(content=result.model_dump(mode="json"))


@router.get("/report", summary="Score up to 20 pages of a site")
async def report(
    service: Analyzer,
    url: str | None = Query(None, description="Any URL on the site; the root is analyzed"),
    require_sitemap: bool = Query(False, description="Fail instead of crawling when no sitemap is found"),
) -> JSONResponse:
    """Multi-page report with site summary and action plan."""
    if not url or not url.strip():
        return url_required()

    result = await service.analyze_site(url, fallback_crawl=False if require_sitemap else None)
    if isinstance(result, ErrorReport):
        return error_response(result)

    logger.info(
        "Report served",
        url=result.url,
        pages=result.pages_analyzed,
        average_score=result.summary.average_score,
    )
    return JSONResponse(content=result.model_dump(mode="json"))
