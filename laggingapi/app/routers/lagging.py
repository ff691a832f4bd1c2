"""
Lagging Indicators Router
Per-year accident statistics and injury rates (LTIR, TRIR, severity rate) for dashboards and charts.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..models.schemas import (
    CacheStatsResponse,
    DashboardSummary,
    InvestigationBatchRequest,
    LaggingSummary,
    MessageResponse,
    PlotlyFigureResponse,
)
from ..services import plots as plot_service
from ..services.errors import InvalidParameter, LaggingError, SourceTimeout, SourceUnavailable
from ..services.json_utils import to_native_json
from ..services.lagging import LaggingSummaryService


router = APIRouter(prefix="/lagging", tags=["lagging"])


def get_lagging_service(request: Request) -> LaggingSummaryService:
    return request.app.state.lagging_service


def _http_error(exc: LaggingError) -> HTTPException:
    if isinstance(exc, InvalidParameter):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, SourceTimeout):
        return HTTPException(status_code=504, detail=f"Data source timed out: {exc}")
    if isinstance(exc, SourceUnavailable):
        return HTTPException(status_code=503, detail=f"Data source unavailable: {exc}")
    return HTTPException(status_code=500, detail=str(exc))


def _require_bounds(start_year: Optional[str], end_year: Optional[str]):
    if not start_year or not end_year:
        raise HTTPException(status_code=400, detail="startYear and endYear are required")
    return start_year, end_year


@router.get("/summary/{year}", response_model=LaggingSummary)
async def get_summary(year: str, service: LaggingSummaryService = Depends(get_lagging_service)):
    """
    All lagging indicators for one year.

    Example:
        GET /lagging/summary/2025
    """
    try:
        return await service.get_summary(year)
    except LaggingError as e:
        raise _http_error(e)


@router.get("/chart-data", response_model=List[LaggingSummary])
async def get_chart_data(
    start_year: Optional[str] = Query(None, alias="startYear"),
    end_year: Optional[str] = Query(None, alias="endYear"),
    service: LaggingSummaryService = Depends(get_lagging_service),
):
    """
    Per-year summaries for an inclusive year range, oldest first.

    Example:
        GET /lagging/chart-data?startYear=2021&endYear=2025
    """
    start_year, end_year = _require_bounds(start_year, end_year)
    try:
        return await service.get_summaries(start_year, end_year)
    except LaggingError as e:
        raise _http_error(e)


@router.get("/dashboard/{year}", response_model=DashboardSummary)
async def get_dashboard(year: str, service: LaggingSummaryService = Depends(get_lagging_service)):
    """Headline indicators only (counts, damage, LTIR, TRIR, severity rate, lost days)."""
    try:
        return await service.get_dashboard(year)
    except LaggingError as e:
        raise _http_error(e)


@router.post("/investigation-batch", response_model=Dict[str, bool])
async def get_investigation_batch(request: Request, service: LaggingSummaryService = Depends(get_lagging_service)):
    """
    Whether each accident has a completed follow-up investigation.

    Body:
        {"accidentIds": ["AC-20250604-001", ...]}
    """
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body must be JSON")
    if not isinstance(payload, dict) or not isinstance(payload.get("accidentIds"), list):
        raise HTTPException(status_code=400, detail="accidentIds array is required")
    try:
        body = InvestigationBatchRequest.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"accidentIds must contain only strings: {e.errors()[0]['msg']}")
    try:
        return await service.get_investigation_status(body.accident_ids)
    except LaggingError as e:
        raise _http_error(e)


@router.post("/clear-cache", response_model=MessageResponse)
async def clear_cache(service: LaggingSummaryService = Depends(get_lagging_service)):
    service.clear_cache()
    return MessageResponse(message="Cache cleared successfully")


@router.get("/cache-stats", response_model=CacheStatsResponse)
async def cache_stats(service: LaggingSummaryService = Depends(get_lagging_service)):
    return service.cache_stats()


@router.get("/charts/accident-trend", response_model=PlotlyFigureResponse)
async def accident_trend_chart(
    start_year: Optional[str] = Query(None, alias="startYear"),
    end_year: Optional[str] = Query(None, alias="endYear"),
    service: LaggingSummaryService = Depends(get_lagging_service),
):
    start_year, end_year = _require_bounds(start_year, end_year)
    try:
        summaries = await service.get_summaries(start_year, end_year)
    except LaggingError as e:
        raise _http_error(e)
    fig = plot_service.create_accident_trend_chart(summaries)
    return JSONResponse(content={"figure": to_native_json(fig.to_plotly_json())})


@router.get("/charts/safety-index", response_model=PlotlyFigureResponse)
async def safety_index_chart(
    start_year: Optional[str] = Query(None, alias="startYear"),
    end_year: Optional[str] = Query(None, alias="endYear"),
    service: LaggingSummaryService = Depends(get_lagging_service),
):
    start_year, end_year = _require_bounds(start_year, end_year)
    try:
        summaries = await service.get_summaries(start_year, end_year)
    except LaggingError as e:
        raise _http_error(e)
    fig = plot_service.create_safety_index_chart(summaries)
    return JSONResponse(content={"figure": to_native_json(fig.to_plotly_json())})
