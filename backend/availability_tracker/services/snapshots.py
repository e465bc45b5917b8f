"""Daily snapshot capture and retrieval."""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Sequence

from availability_tracker.core.errors import CorruptDataError, NotFoundError, UpstreamFetchError
from availability_tracker.core.telemetry import get_meter, get_tracer
from availability_tracker.providers.sheets import SheetSource
from availability_tracker.schemas import (
    CategoryType,
    DateSummary,
    ParsedRow,
    RangePeriod,
    Record,
    Snapshot,
    Summary,
    decode_snapshot,
    encode_snapshot,
)
from availability_tracker.store import KeyValueStore

from .classifier import classify_rows
from .date_index import DateIndex, DateIndexManager

logger = logging.getLogger(__name__)
tracer = get_tracer()
_capture_rows = get_meter().create_histogram(
    "snapshot.capture.rows",
    unit="{row}",
    description="Rows stored per captured snapshot",
)

LATEST_KEY = "snapshot:latest"
DEFAULT_TTL_SECONDS = 60 * 60 * 24 * 90


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def snapshot_key(day: date) -> str:
    return f"snapshot:{day.isoformat()}"


def round_tenth(value: float) -> float:
    """Round to one decimal with halves going up, e.g. 2.25 -> 2.3 and -2.25 -> -2.2."""

    return math.floor(value * 10 + 0.5) / 10


def average_days_out(records: Sequence[Record]) -> float | None:
    values = [r.days_out for r in records if r.days_out is not None]
    if not values:
        return None
    return round_tenth(sum(values) / len(values))


def summarize_records(records: Sequence[Record]) -> Summary:
    """Aggregate counts per category, error count and mean days out."""

    return Summary(
        total_rows=len(records),
        hrt_count=sum(1 for r in records if r.category_type == CategoryType.HRT),
        trt_count=sum(1 for r in records if r.category_type == CategoryType.TRT),
        provider_count=sum(1 for r in records if r.category_type == CategoryType.PROVIDER),
        error_count=sum(1 for r in records if r.has_error),
        avg_days_out=average_days_out(records),
    )


class SnapshotWriter:
    """Persist one snapshot per UTC day and keep the date index and latest pointer current.

    The body write, index update and pointer write are separate store calls.
    Body and pointer writes are plain overwrites keyed by date, so repeating a
    capture is harmless; the index update goes through compare-and-set.
    """

    def __init__(
        self,
        store: KeyValueStore,
        index: DateIndexManager,
        *,
        clock: Callable[[], datetime] | None = None,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ) -> None:
        self._store = store
        self._index = index
        self._clock = clock or _utcnow
        self._ttl_seconds = ttl_seconds

    async def capture(self, records: Sequence[Record], headers: Sequence[str]) -> Snapshot:
        now = self._clock().astimezone(timezone.utc)
        day = now.date()
        stored = [r.to_record() if isinstance(r, ParsedRow) else r for r in records]
        snapshot = Snapshot(
            date=day,
            timestamp=now,
            headers=list(headers),
            row_count=len(stored),
            records=stored,
            summary=summarize_records(stored),
        )

        with tracer.start_as_current_span("snapshot.capture") as span:
            span.set_attribute("snapshot.date", day.isoformat())
            span.set_attribute("snapshot.row_count", snapshot.row_count)
            await self._store.set(snapshot_key(day), encode_snapshot(snapshot), ttl_seconds=self._ttl_seconds)
            await self._index.add(day, expires_at=now + timedelta(seconds=self._ttl_seconds))
            await self._store.set(LATEST_KEY, day.isoformat())

        _capture_rows.record(snapshot.row_count)
        logger.info("Captured snapshot for %s with %s rows", day.isoformat(), snapshot.row_count)
        return snapshot

    async def capture_from_source(self, source: SheetSource) -> Snapshot:
        """Fetch current rows, classify them and capture today's snapshot."""

        result = await source.fetch_current_data()
        if not result.success:
            raise UpstreamFetchError(result.error or "Unknown error", result.troubleshooting)
        return await self.capture(classify_rows(result.rows), result.headers)


@dataclass
class RangeResult:
    period: RangePeriod
    available_dates: list[date]
    summaries: list[DateSummary] = field(default_factory=list)


class SnapshotReader:
    """Point and trailing-range reads over stored snapshots."""

    def __init__(
        self,
        store: KeyValueStore,
        index: DateIndexManager,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._index = index
        self._clock = clock or _utcnow

    async def get_by_date(self, day: date) -> Snapshot:
        raw = await self._store.get(snapshot_key(day))
        if raw is None:
            raise NotFoundError(f"No snapshot stored for {day.isoformat()}")
        return decode_snapshot(raw, expected_date=day)

    async def get_latest_date(self) -> date | None:
        """Date named by the latest pointer, which may lag the index under concurrent captures."""

        raw = await self._store.get(LATEST_KEY)
        if not raw:
            return None
        try:
            return date.fromisoformat(raw.strip().strip('"'))
        except ValueError as exc:
            raise CorruptDataError(f"Latest snapshot pointer is not a date: {raw!r}") from exc

    async def _summary_for(self, day: date) -> DateSummary | None:
        try:
            snapshot = await self.get_by_date(day)
        except (NotFoundError, CorruptDataError) as exc:
            logger.warning("Skipping %s in range read: %s", day.isoformat(), exc)
            return None
        return DateSummary(date=day, summary=snapshot.summary)

    async def get_range(self, period: RangePeriod, *, index: DateIndex | None = None) -> RangeResult:
        """Summaries for the trailing ``period`` ending today, ascending by date.

        ``all`` returns the indexed dates only. Indexed dates whose body is
        missing or unreadable are skipped rather than failing the read.
        """

        view = index if index is not None else await self._index.load()
        available = view.ascending()
        if period.days is None:
            return RangeResult(period=period, available_dates=available)

        today = self._clock().astimezone(timezone.utc).date()
        candidates = [today - timedelta(days=offset) for offset in range(period.days)]
        present = [day for day in candidates if view.exists(day)]
        fetched = await asyncio.gather(*(self._summary_for(day) for day in present))
        summaries = sorted((item for item in fetched if item is not None), key=lambda item: item.date)
        return RangeResult(period=period, available_dates=available, summaries=summaries)


__all__ = [
    "LATEST_KEY",
    "RangeResult",
    "SnapshotReader",
    "SnapshotWriter",
    "average_days_out",
    "round_tenth",
    "snapshot_key",
    "summarize_records",
]
