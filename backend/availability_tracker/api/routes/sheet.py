"""Live (non-historical) sheet endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from availability_tracker.api.dependencies import get_live_data, get_sheet_source
from availability_tracker.core.errors import UpstreamFetchError
from availability_tracker.providers.sheets import SheetSource
from availability_tracker.schemas import SheetDataResponse, SheetDebugResponse
from availability_tracker.services import LiveDataService

router = APIRouter()


@router.get("/sheet", response_model=SheetDataResponse)
async def get_sheet_data(
    refresh: bool = Query(default=False, description="Bypass the short-lived cache"),
    live_data: LiveDataService = Depends(get_live_data),
):
    response = await live_data.get(refresh=refresh)
    if not response.success:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=response.model_dump(mode="json", by_alias=True),
        )
    return response


@router.get("/debug", response_model=SheetDebugResponse)
async def debug_sheet(source: SheetSource = Depends(get_sheet_source)) -> SheetDebugResponse:
    """First rows exactly as fetched, for checking column names against the classifier."""

    result = await source.fetch_current_data()
    if not result.success:
        raise UpstreamFetchError(result.error or "Unknown error", result.troubleshooting)
    return SheetDebugResponse(
        headers=result.headers,
        sample_rows=result.rows[:3],
        total_rows=len(result.rows),
        column_names=result.headers,
    )


__all__ = ["router"]
