"""Pydantic schemas for history, comparison and capture responses."""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Literal

from pydantic import Field

from .base import CamelModel
from .snapshots import Summary


class RangePeriod(str, Enum):
    WEEK = "week"
    MONTH = "month"
    ALL = "all"

    @property
    def days(self) -> int | None:
        return {"week": 7, "month": 30}.get(self.value)


class ComparisonPeriod(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"

    @property
    def days(self) -> int:
        return {"day": 1, "week": 7, "month": 30}[self.value]


class DateSummary(CamelModel):
    date: dt.date
    summary: Summary


class HistoryDatesResponse(CamelModel):
    dates: list[dt.date]
    latest: dt.date | None = Field(default=None, description="Date named by the latest-snapshot pointer")


class HistoryRangeResponse(CamelModel):
    range: RangePeriod
    available_dates: list[dt.date]
    summaries: list[DateSummary]


class SummaryChanges(CamelModel):
    total_rows: int
    total_rows_percent: float | None = None
    hrt_count: int
    trt_count: int
    provider_count: int
    error_count: int
    avg_days_out: float | None = None
    error_rate: float


class ComparisonResponse(CamelModel):
    has_history: Literal[True] = True
    period: ComparisonPeriod
    current: DateSummary
    previous: DateSummary | None = None
    changes: SummaryChanges | None = None
    available_dates: int = Field(..., ge=0, description="Number of indexed dates")
    oldest_date: dt.date
    newest_date: dt.date


class NoHistoryResponse(CamelModel):
    has_history: Literal[False] = False
    message: str = "No historical data available yet. Snapshots are taken daily."


class CaptureResponse(CamelModel):
    success: bool = True
    date: dt.date
    row_count: int
    summary: Summary


__all__ = [
    "CaptureResponse",
    "ComparisonPeriod",
    "ComparisonResponse",
    "DateSummary",
    "HistoryDatesResponse",
    "HistoryRangeResponse",
    "NoHistoryResponse",
    "RangePeriod",
    "SummaryChanges",
]
