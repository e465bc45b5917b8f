"""Pydantic schema exports."""

from .alerts import Alert, AlertSeverity, AlertType, AlertsResponse
from .history import (
    CaptureResponse,
    ComparisonPeriod,
    ComparisonResponse,
    DateSummary,
    HistoryDatesResponse,
    HistoryRangeResponse,
    NoHistoryResponse,
    RangePeriod,
    SummaryChanges,
)
from .records import CategoryType, ParsedRow, Record
from .sheet import SheetDataResponse, SheetDebugResponse
from .snapshots import Snapshot, Summary, decode_snapshot, encode_snapshot

__all__ = [
    "Alert",
    "AlertSeverity",
    "AlertType",
    "AlertsResponse",
    "CaptureResponse",
    "CategoryType",
    "ComparisonPeriod",
    "ComparisonResponse",
    "DateSummary",
    "HistoryDatesResponse",
    "HistoryRangeResponse",
    "NoHistoryResponse",
    "ParsedRow",
    "RangePeriod",
    "Record",
    "SheetDataResponse",
    "SheetDebugResponse",
    "Snapshot",
    "Summary",
    "SummaryChanges",
    "decode_snapshot",
    "encode_snapshot",
]
