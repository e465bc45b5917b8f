"""Historical snapshot endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query

from availability_tracker.api.dependencies import get_reader, get_resolver
from availability_tracker.schemas import (
    AlertsResponse,
    ComparisonPeriod,
    ComparisonResponse,
    HistoryDatesResponse,
    HistoryRangeResponse,
    NoHistoryResponse,
    RangePeriod,
    Snapshot,
)
from availability_tracker.services import ComparisonResolver, SnapshotReader, detect_anomalies

router = APIRouter()


@router.get("", response_model=Snapshot | HistoryDatesResponse | HistoryRangeResponse)
async def get_history(
    snapshot_date: date | None = Query(default=None, alias="date"),
    range_: RangePeriod = Query(default=RangePeriod.WEEK, alias="range"),
    reader: SnapshotReader = Depends(get_reader),
) -> Snapshot | HistoryDatesResponse | HistoryRangeResponse:
    """Return one full snapshot (``date``) or summaries for a trailing ``range``."""

    if snapshot_date is not None:
        return await reader.get_by_date(snapshot_date)

    result = await reader.get_range(range_)
    if range_ is RangePeriod.ALL:
        return HistoryDatesResponse(dates=result.available_dates, latest=await reader.get_latest_date())
    return HistoryRangeResponse(
        range=result.period,
        available_dates=result.available_dates,
        summaries=result.summaries,
    )


@router.get("/compare", response_model=ComparisonResponse | NoHistoryResponse)
async def compare_history(
    period: ComparisonPeriod = Query(default=ComparisonPeriod.DAY),
    resolver: ComparisonResolver = Depends(get_resolver),
) -> ComparisonResponse | NoHistoryResponse:
    return await resolver.compare(period)


@router.get("/alerts", response_model=AlertsResponse)
async def history_alerts(
    period: ComparisonPeriod = Query(default=ComparisonPeriod.DAY),
    resolver: ComparisonResolver = Depends(get_resolver),
) -> AlertsResponse:
    """Row-level changes between the latest snapshot and its comparison snapshot."""

    resolved = await resolver.resolve(period)
    if resolved is None:
        return AlertsResponse(period=period, alerts=[])
    previous = resolved.previous
    return AlertsResponse(
        period=period,
        current_date=resolved.latest.date,
        previous_date=previous.date if previous else None,
        alerts=detect_anomalies(resolved.latest.records, previous.records if previous else []),
    )


__all__ = ["router"]
