"""Bounded, sorted index of the dates that have snapshots."""

from __future__ import annotations

import json
import logging
from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Iterable

from availability_tracker.core.errors import CorruptDataError, RetryExhaustedError
from availability_tracker.core.telemetry import get_meter
from availability_tracker.store import KeyValueStore

logger = logging.getLogger(__name__)
_cas_conflicts = get_meter().create_counter(
    "snapshot.index.cas_conflicts",
    unit="{conflict}",
    description="Date index writes that lost a compare-and-set race",
)

INDEX_KEY = "snapshot:dates"
DEFAULT_MAX_ENTRIES = 90
DEFAULT_MAX_ATTEMPTS = 5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DateIndexEntry:
    date: date
    expires_at: datetime | None = None

    def is_live(self, now: datetime) -> bool:
        return self.expires_at is None or self.expires_at > now


class DateIndex:
    """Immutable ascending view of indexed dates.

    ISO calendar dates sort the same way as strings and as ``date`` objects,
    so every lookup here is a bisect over the sorted tuple.
    """

    def __init__(self, dates: Iterable[date] = ()) -> None:
        self._dates: tuple[date, ...] = tuple(sorted(set(dates)))

    def __len__(self) -> int:
        return len(self._dates)

    def __iter__(self):
        return iter(self._dates)

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.exists(day)

    def exists(self, day: date) -> bool:
        pos = bisect_left(self._dates, day)
        return pos < len(self._dates) and self._dates[pos] == day

    def nearest_at_or_before(self, day: date) -> date | None:
        pos = bisect_right(self._dates, day)
        return self._dates[pos - 1] if pos else None

    def nearest_before(self, day: date) -> date | None:
        pos = bisect_left(self._dates, day)
        return self._dates[pos - 1] if pos else None

    def ascending(self) -> list[date]:
        return list(self._dates)

    def descending(self) -> list[date]:
        return list(reversed(self._dates))

    @property
    def oldest(self) -> date | None:
        return self._dates[0] if self._dates else None

    @property
    def newest(self) -> date | None:
        return self._dates[-1] if self._dates else None


def _parse_expiry(value: object) -> datetime | None:
    if value in (None, ""):
        return None
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def decode_index(raw: str | None) -> list[DateIndexEntry]:
    """Decode the stored index; bare date strings are accepted as non-expiring entries."""

    if raw is None:
        return []
    try:
        items = json.loads(raw)
        if not isinstance(items, list):
            raise ValueError("index is not a list")
        entries: list[DateIndexEntry] = []
        for item in items:
            if isinstance(item, str):
                entries.append(DateIndexEntry(date.fromisoformat(item)))
            elif isinstance(item, dict):
                entries.append(
                    DateIndexEntry(
                        date.fromisoformat(str(item["date"])),
                        _parse_expiry(item.get("expiresAt")),
                    )
                )
            else:
                raise ValueError(f"unexpected index item {item!r}")
    except (KeyError, TypeError, ValueError) as exc:
        raise CorruptDataError(f"Date index could not be decoded: {exc}") from exc
    return entries


def encode_index(entries: Iterable[DateIndexEntry]) -> str:
    return json.dumps(
        [
            {
                "date": entry.date.isoformat(),
                "expiresAt": entry.expires_at.isoformat() if entry.expires_at else None,
            }
            for entry in entries
        ]
    )


class DateIndexManager:
    """Read and update the date index stored under ``snapshot:dates``."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        clock: Callable[[], datetime] | None = None,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self._store = store
        self._clock = clock or _utcnow
        self._max_entries = max_entries
        self._max_attempts = max_attempts

    async def load(self) -> DateIndex:
        """Return the live entries; entries past their expiry are hidden, not deleted."""

        entries = decode_index(await self._store.get(INDEX_KEY))
        now = self._clock()
        return DateIndex(entry.date for entry in entries if entry.is_live(now))

    async def exists(self, day: date) -> bool:
        return (await self.load()).exists(day)

    async def nearest_at_or_before(self, day: date) -> date | None:
        return (await self.load()).nearest_at_or_before(day)

    async def all_ascending(self) -> list[date]:
        return (await self.load()).ascending()

    async def all_descending(self) -> list[date]:
        return (await self.load()).descending()

    def _merge(
        self,
        entries: list[DateIndexEntry],
        day: date,
        expires_at: datetime | None,
    ) -> list[DateIndexEntry]:
        now = self._clock()
        kept = {entry.date: entry for entry in entries if entry.is_live(now)}
        kept[day] = DateIndexEntry(day, expires_at)
        ordered = sorted(kept.values(), key=lambda entry: entry.date)
        return ordered[-self._max_entries:]

    async def add(self, day: date, *, expires_at: datetime | None = None) -> DateIndex:
        """Insert ``day`` with compare-and-set so concurrent writers cannot drop each other's dates.

        Re-adding an indexed date only refreshes its expiry. The oldest dates
        are trimmed once more than ``max_entries`` remain.
        """

        for attempt in range(1, self._max_attempts + 1):
            raw = await self._store.get(INDEX_KEY)
            entries = decode_index(raw)
            merged = self._merge(entries, day, expires_at)
            if merged == entries:
                return DateIndex(entry.date for entry in merged)
            if await self._store.compare_and_set(INDEX_KEY, raw, encode_index(merged)):
                return DateIndex(entry.date for entry in merged)
            _cas_conflicts.add(1)
            logger.warning(
                "Date index changed while adding %s (attempt %s/%s)",
                day.isoformat(),
                attempt,
                self._max_attempts,
            )
        raise RetryExhaustedError(
            f"Gave up adding {day.isoformat()} to the date index after {self._max_attempts} attempts"
        )


__all__ = [
    "DateIndex",
    "DateIndexEntry",
    "DateIndexManager",
    "INDEX_KEY",
    "decode_index",
    "encode_index",
]
