"""Scheduled snapshot capture endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from availability_tracker.api.dependencies import get_sheet_source, get_writer, require_capture_secret
from availability_tracker.providers.sheets import SheetSource
from availability_tracker.schemas import CaptureResponse
from availability_tracker.services import SnapshotWriter

router = APIRouter()


@router.get("/snapshot", response_model=CaptureResponse, dependencies=[Depends(require_capture_secret)])
async def capture_snapshot(
    writer: SnapshotWriter = Depends(get_writer),
    source: SheetSource = Depends(get_sheet_source),
) -> CaptureResponse:
    """Capture today's snapshot from the live sheet.

    Called daily by the scheduler; safe to call again on the same day, which
    overwrites that day's snapshot.
    """

    snapshot = await writer.capture_from_source(source)
    return CaptureResponse(date=snapshot.date, row_count=snapshot.row_count, summary=snapshot.summary)


__all__ = ["router"]
