from datetime import datetime, timezone

from availability_tracker.providers.sheets import SheetFetchResult
from availability_tracker.schemas import SheetDataResponse
from availability_tracker.services import LiveDataCache, LiveDataService
from conftest import FakeSheetSource


class Ticker:
    def __init__(self) -> None:
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value


def _response() -> SheetDataResponse:
    return SheetDataResponse(success=True, fetched_at=datetime(2026, 1, 10, tzinfo=timezone.utc), source="csv")


def test_cache_expires_after_ttl():
    ticker = Ticker()
    cache = LiveDataCache(ttl_seconds=60, clock=ticker)
    assert cache.get() is None

    cache.put(_response())
    ticker.value += 59
    assert cache.get() is not None

    ticker.value += 1
    assert cache.get() is None


def test_cache_clear_drops_value():
    cache = LiveDataCache(ttl_seconds=60, clock=Ticker())
    cache.put(_response())

    cache.clear()

    assert cache.get() is None


async def test_service_serves_cached_rows_until_refresh(sheet_source, clock):
    ticker = Ticker()
    service = LiveDataService(sheet_source, LiveDataCache(ttl_seconds=60, clock=ticker), clock=clock)

    first = await service.get()
    second = await service.get()
    assert sheet_source.calls == 1
    assert second is first
    assert [row.row_index for row in first.data] == [0, 1, 2]
    assert first.fetched_at == clock()

    await service.get(refresh=True)
    assert sheet_source.calls == 2

    ticker.value += 61
    await service.get()
    assert sheet_source.calls == 3


async def test_service_does_not_cache_failures(clock):
    source = FakeSheetSource(SheetFetchResult(success=False, error="403", troubleshooting=["share it"]))
    service = LiveDataService(source, LiveDataCache(ttl_seconds=60, clock=Ticker()), clock=clock)

    response = await service.get()
    await service.get()

    assert response.success is False
    assert response.error == "403"
    assert response.troubleshooting == ["share it"]
    assert response.data == []
    assert source.calls == 2
