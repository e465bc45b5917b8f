"""Period-over-period comparison of snapshot summaries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from availability_tracker.core.errors import CorruptDataError, DataInconsistencyError, NotFoundError
from availability_tracker.schemas import (
    ComparisonPeriod,
    ComparisonResponse,
    DateSummary,
    NoHistoryResponse,
    Snapshot,
    Summary,
    SummaryChanges,
)

from .date_index import DateIndex, DateIndexManager
from .snapshots import SnapshotReader, round_tenth

logger = logging.getLogger(__name__)


def error_rate(summary: Summary) -> float:
    """Percentage of rows with errors; 0 for an empty summary."""

    if summary.total_rows == 0:
        return 0.0
    return summary.error_count / summary.total_rows * 100


def compute_changes(current: Summary, previous: Summary) -> SummaryChanges:
    total_rows_percent = None
    if previous.total_rows > 0:
        total_rows_percent = round_tenth((current.total_rows - previous.total_rows) / previous.total_rows * 100)
    avg_days_out = None
    if current.avg_days_out is not None and previous.avg_days_out is not None:
        avg_days_out = round_tenth(current.avg_days_out - previous.avg_days_out)
    return SummaryChanges(
        total_rows=current.total_rows - previous.total_rows,
        total_rows_percent=total_rows_percent,
        hrt_count=current.hrt_count - previous.hrt_count,
        trt_count=current.trt_count - previous.trt_count,
        provider_count=current.provider_count - previous.provider_count,
        error_count=current.error_count - previous.error_count,
        avg_days_out=avg_days_out,
        error_rate=round_tenth(error_rate(current) - error_rate(previous)),
    )


def resolve_previous_date(index: DateIndex, latest: date, period: ComparisonPeriod) -> date | None:
    """Pick the comparison date for ``latest``.

    The ideal date ``period.days`` before ``latest`` is used when indexed;
    otherwise the most recent indexed date earlier than ``latest``, however far
    it is from the ideal date.
    """

    target = latest - timedelta(days=period.days)
    if index.exists(target):
        return target
    return index.nearest_before(latest)


@dataclass
class ResolvedComparison:
    period: ComparisonPeriod
    index: DateIndex
    latest: Snapshot
    previous: Snapshot | None


class ComparisonResolver:
    def __init__(self, index: DateIndexManager, reader: SnapshotReader) -> None:
        self._index = index
        self._reader = reader

    async def resolve(self, period: ComparisonPeriod) -> ResolvedComparison | None:
        """Load the latest snapshot and its comparison snapshot, or ``None`` without history.

        A latest date that is indexed but unreadable raises
        ``DataInconsistencyError``; a missing previous body just means there is
        nothing to compare against.
        """

        view = await self._index.load()
        latest_date = view.newest
        if latest_date is None:
            return None

        try:
            latest = await self._reader.get_by_date(latest_date)
        except NotFoundError as exc:
            raise DataInconsistencyError(
                f"Date index lists {latest_date.isoformat()} but its snapshot is missing"
            ) from exc

        previous: Snapshot | None = None
        previous_date = resolve_previous_date(view, latest_date, period)
        if previous_date is not None:
            try:
                previous = await self._reader.get_by_date(previous_date)
            except (NotFoundError, CorruptDataError) as exc:
                logger.warning("Comparison snapshot %s unavailable: %s", previous_date.isoformat(), exc)

        return ResolvedComparison(period=period, index=view, latest=latest, previous=previous)

    async def compare(self, period: ComparisonPeriod = ComparisonPeriod.DAY) -> ComparisonResponse | NoHistoryResponse:
        resolved = await self.resolve(period)
        if resolved is None:
            return NoHistoryResponse()

        latest, previous, view = resolved.latest, resolved.previous, resolved.index
        return ComparisonResponse(
            period=period,
            current=DateSummary(date=latest.date, summary=latest.summary),
            previous=DateSummary(date=previous.date, summary=previous.summary) if previous else None,
            changes=compute_changes(latest.summary, previous.summary) if previous else None,
            available_dates=len(view),
            oldest_date=view.oldest,
            newest_date=view.newest,
        )


__all__ = [
    "ComparisonResolver",
    "ResolvedComparison",
    "compute_changes",
    "error_rate",
    "resolve_previous_date",
]
