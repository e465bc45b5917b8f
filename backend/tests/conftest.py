import asyncio
import inspect
import pathlib
import sys
from datetime import date, datetime, timedelta, timezone

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from availability_tracker.providers.sheets import SheetFetchResult  # noqa: E402
from availability_tracker.schemas import Snapshot, encode_snapshot  # noqa: E402
from availability_tracker.services import summarize_records  # noqa: E402
from availability_tracker.services.date_index import INDEX_KEY, DateIndexEntry, encode_index  # noqa: E402
from availability_tracker.services.snapshots import LATEST_KEY, snapshot_key  # noqa: E402
from availability_tracker.store import InMemoryKeyValueStore  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used in the suite."""

    config.addinivalue_line("markers", "asyncio: mark test as running in an asyncio event loop")


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute async test functions without requiring pytest-asyncio."""

    test_function = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_function):
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            testargs = {arg: pyfuncitem.funcargs[arg] for arg in pyfuncitem._fixtureinfo.argnames}
            loop.run_until_complete(test_function(**testargs))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None


class FakeClock:
    """Settable UTC clock shared by the store and the services under test."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeSheetSource:
    def __init__(self, result: SheetFetchResult) -> None:
        self.result = result
        self.calls = 0

    async def fetch_current_data(self) -> SheetFetchResult:
        self.calls += 1
        return self.result


SHEET_HEADERS = ["Name", "URL", "Category", "Days Out", "Availability Score", "Error Code", "Scraped At"]

SHEET_ROWS = [
    {
        "Name": "North Clinic",
        "URL": "https://north.example.com",
        "Category": "HRT Clinic",
        "Days Out": "4",
        "Availability Score": "80",
        "Error Code": "",
        "Scraped At": "2026-01-10T08:00:00Z",
    },
    {
        "Name": "South Clinic",
        "URL": "https://south.example.com",
        "Category": "TRT",
        "Days Out": "6 days",
        "Availability Score": "65%",
        "Error Code": "",
        "Scraped At": "01/10/2026 08:05",
    },
    {
        "Name": "East Provider",
        "URL": "https://east.example.com",
        "Category": "provider network",
        "Days Out": "",
        "Availability Score": "",
        "Error Code": "TIMEOUT",
        "Scraped At": "",
    },
]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(clock: FakeClock) -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore(clock=clock)


@pytest.fixture
def sheet_source() -> FakeSheetSource:
    return FakeSheetSource(
        SheetFetchResult(success=True, headers=list(SHEET_HEADERS), rows=[dict(r) for r in SHEET_ROWS], source="csv")
    )


def make_snapshot(day: date, records=(), headers=("Name",)) -> Snapshot:
    records = list(records)
    return Snapshot(
        date=day,
        timestamp=datetime(day.year, day.month, day.day, 6, 0, tzinfo=timezone.utc),
        headers=list(headers),
        row_count=len(records),
        records=records,
        summary=summarize_records(records),
    )


async def seed_history(store: InMemoryKeyValueStore, snapshots, *, indexed=None, latest: date | None = None) -> None:
    """Write snapshot bodies directly, index ``indexed`` (default: their dates) and point latest."""

    for snapshot in snapshots:
        await store.set(snapshot_key(snapshot.date), encode_snapshot(snapshot))
    days = sorted(indexed if indexed is not None else [s.date for s in snapshots])
    await store.set(INDEX_KEY, encode_index(DateIndexEntry(day) for day in days))
    if latest is None and days:
        latest = days[-1]
    if latest is not None:
        await store.set(LATEST_KEY, latest.isoformat())
