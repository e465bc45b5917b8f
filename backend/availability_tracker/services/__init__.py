"""Snapshot, comparison and live-data services."""

from .alerts import detect_anomalies
from .classifier import classify_rows
from .comparison import ComparisonResolver, compute_changes, error_rate, resolve_previous_date
from .date_index import DateIndex, DateIndexManager
from .live_data import LiveDataCache, LiveDataService
from .snapshots import SnapshotReader, SnapshotWriter, summarize_records

__all__ = [
    "ComparisonResolver",
    "DateIndex",
    "DateIndexManager",
    "LiveDataCache",
    "LiveDataService",
    "SnapshotReader",
    "SnapshotWriter",
    "classify_rows",
    "compute_changes",
    "detect_anomalies",
    "error_rate",
    "resolve_previous_date",
    "summarize_records",
]
