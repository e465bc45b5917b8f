import logging
from contextlib import asynccontextmanager
from datetime import date

from httpx import ASGITransport, AsyncClient

from availability_tracker.config import AppSettings
from availability_tracker.core.errors import PersistenceError, StoreUnavailableError
from availability_tracker.main import create_app
from availability_tracker.providers.sheets import SheetFetchResult
from availability_tracker.schemas import Record
from availability_tracker.services.snapshots import LATEST_KEY, snapshot_key
from availability_tracker.store import InMemoryKeyValueStore
from conftest import FakeSheetSource, make_snapshot, seed_history


def _settings(**overrides) -> AppSettings:
    values = {"kv_backend": "memory", "cron_secret": "s3cret", "telemetry_enabled": False}
    values.update(overrides)
    return AppSettings(**values)


def _client(settings: AppSettings, *, store, source, clock):
    app = create_app(settings, store=store, sheet_source=source, clock=clock)

    @asynccontextmanager
    async def _manager():
        async with app.router.lifespan_context(app):
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                yield client

    return _manager


AUTH = {"Authorization": "Bearer s3cret"}


async def test_capture_requires_a_configured_store(sheet_source, clock):
    settings = _settings(kv_backend="upstash", kv_rest_api_url=None, kv_rest_api_token=None)

    async with _client(settings, store=None, source=sheet_source, clock=clock)() as api:
        response = await api.get("/api/cron/snapshot")

    assert response.status_code == 503
    assert response.json()["error"] == "Key-value store not configured"
    assert sheet_source.calls == 0


async def test_capture_rejects_a_wrong_secret(store, sheet_source, clock):
    async with _client(_settings(), store=store, source=sheet_source, clock=clock)() as api:
        missing = await api.get("/api/cron/snapshot")
        wrong = await api.get("/api/cron/snapshot", headers={"Authorization": "Bearer nope"})

    assert missing.status_code == 401
    assert wrong.json() == {"error": "Unauthorized"}
    assert store.keys() == []


async def test_capture_stores_todays_snapshot(store, sheet_source, clock):
    async with _client(_settings(), store=store, source=sheet_source, clock=clock)() as api:
        response = await api.get("/api/cron/snapshot", headers=AUTH)
        stored = await api.get("/api/history", params={"date": "2026-01-10"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["date"] == "2026-01-10"
    assert payload["rowCount"] == 3
    assert payload["summary"] == {
        "totalRows": 3,
        "hrtCount": 1,
        "trtCount": 1,
        "providerCount": 1,
        "errorCount": 1,
        "avgDaysOut": 5.0,
    }
    assert stored.status_code == 200
    assert stored.json()["records"][0]["raw"]["Name"] == "North Clinic"


async def test_capture_without_secret_configured_is_open(store, sheet_source, clock):
    settings = _settings(cron_secret=None)
    async with _client(settings, store=store, source=sheet_source, clock=clock)() as api:
        response = await api.get("/api/cron/snapshot")

    assert response.status_code == 200


async def test_capture_reports_fetch_failures(store, clock):
    source = FakeSheetSource(SheetFetchResult(success=False, error="CSV fetch failed: 404", troubleshooting=["hint"]))

    async with _client(_settings(), store=store, source=source, clock=clock)() as api:
        response = await api.get("/api/cron/snapshot", headers=AUTH)

    assert response.status_code == 500
    assert response.json() == {
        "error": "Failed to fetch sheet data",
        "details": "CSV fetch failed: 404",
        "troubleshooting": ["hint"],
    }


async def test_history_by_date(store, sheet_source, clock):
    await seed_history(store, [make_snapshot(date(2026, 1, 9), [Record(days_out=2)])])

    async with _client(_settings(), store=store, source=sheet_source, clock=clock)() as api:
        found = await api.get("/api/history", params={"date": "2026-01-09"})
        missing = await api.get("/api/history", params={"date": "2026-01-08"})
        invalid = await api.get("/api/history", params={"date": "yesterday"})

    assert found.status_code == 200
    assert found.json()["summary"]["avgDaysOut"] == 2.0
    assert missing.status_code == 404
    assert missing.json() == {"error": "Snapshot not found for this date"}
    assert invalid.status_code == 422


async def test_history_ranges(store, sheet_source, clock):
    await seed_history(
        store,
        [make_snapshot(date(2025, 12, 1)), make_snapshot(date(2026, 1, 8)), make_snapshot(date(2026, 1, 10))],
    )

    async with _client(_settings(), store=store, source=sheet_source, clock=clock)() as api:
        week = await api.get("/api/history")
        everything = await api.get("/api/history", params={"range": "all"})
        bad = await api.get("/api/history", params={"range": "year"})

    assert week.json()["range"] == "week"
    assert [item["date"] for item in week.json()["summaries"]] == ["2026-01-08", "2026-01-10"]
    assert week.json()["availableDates"] == ["2025-12-01", "2026-01-08", "2026-01-10"]
    assert everything.json() == {"dates": ["2025-12-01", "2026-01-08", "2026-01-10"], "latest": "2026-01-10"}
    assert bad.status_code == 422


async def test_history_requires_a_configured_store(sheet_source, clock):
    settings = _settings(kv_backend="upstash", kv_rest_api_url=None, kv_rest_api_token=None)

    async with _client(settings, store=None, source=sheet_source, clock=clock)() as api:
        response = await api.get("/api/history/compare")

    assert response.status_code == 503


async def test_compare_and_alerts(store, sheet_source, clock):
    async with _client(_settings(), store=store, source=sheet_source, clock=clock)() as api:
        empty = await api.get("/api/history/compare")
        no_alerts = await api.get("/api/history/alerts")

        previous = make_snapshot(
            date(2026, 1, 9),
            [Record(raw={"Name": "North Clinic"}, days_out=2), Record(raw={"Name": "South Clinic"}, days_out=6)],
        )
        await seed_history(store, [previous])
        await api.get("/api/cron/snapshot", headers=AUTH)

        compared = await api.get("/api/history/compare", params={"period": "day"})
        alerts = await api.get("/api/history/alerts")

    assert empty.json() == {
        "hasHistory": False,
        "message": "No historical data available yet. Snapshots are taken daily.",
    }
    assert no_alerts.json()["alerts"] == []

    body = compared.json()
    assert body["hasHistory"] is True
    assert body["current"]["date"] == "2026-01-10"
    assert body["previous"]["date"] == "2026-01-09"
    assert body["changes"]["totalRows"] == 1
    assert body["changes"]["totalRowsPercent"] == 50.0
    assert body["availableDates"] == 2

    alert_body = alerts.json()
    assert alert_body["previousDate"] == "2026-01-09"
    assert [a["type"] for a in alert_body["alerts"]] == ["days_out_spike"]
    assert alert_body["alerts"][0]["linkName"] == "North Clinic"


async def test_live_sheet_is_cached_until_refresh(store, sheet_source, clock):
    async with _client(_settings(), store=store, source=sheet_source, clock=clock)() as api:
        first = await api.get("/api/sheet")
        await api.get("/api/sheet")
        await api.get("/api/sheet", params={"refresh": "true"})

    assert first.status_code == 200
    payload = first.json()
    assert payload["success"] is True
    assert payload["source"] == "csv"
    assert payload["data"][1]["rowIndex"] == 1
    assert payload["data"][1]["categoryType"] == "TRT"
    assert sheet_source.calls == 2


async def test_live_sheet_failure_returns_troubleshooting(store, clock):
    source = FakeSheetSource(SheetFetchResult(success=False, error="Received HTML", troubleshooting=["share"]))

    async with _client(_settings(), store=store, source=source, clock=clock)() as api:
        response = await api.get("/api/sheet")
        debug = await api.get("/api/debug")

    assert response.status_code == 500
    assert response.json()["success"] is False
    assert response.json()["troubleshooting"] == ["share"]
    assert debug.status_code == 500


async def test_debug_and_health(store, sheet_source, clock):
    async with _client(_settings(), store=store, source=sheet_source, clock=clock)() as api:
        debug = await api.get("/api/debug")
        health = await api.get("/health")

    assert debug.json()["totalRows"] == 3
    assert len(debug.json()["sampleRows"]) == 3
    assert debug.json()["columnNames"][0] == "Name"
    assert health.json() == {"status": "ok", "timestamp": "2026-01-10T12:00:00+00:00", "storeConfigured": True}


class RefusingIndexStore(InMemoryKeyValueStore):
    async def compare_and_set(self, key, expected, value, ttl_seconds=None):
        raise PersistenceError("index write refused")


class ConflictingIndexStore(InMemoryKeyValueStore):
    async def compare_and_set(self, key, expected, value, ttl_seconds=None):
        return False


class UnreachableStore(InMemoryKeyValueStore):
    async def get(self, key):
        raise StoreUnavailableError(f"Key-value store timed out running GET {key}")


async def test_capture_store_failure_is_reported_without_moving_latest(sheet_source, clock):
    store = RefusingIndexStore(clock=clock)

    async with _client(_settings(), store=store, source=sheet_source, clock=clock)() as api:
        response = await api.get("/api/cron/snapshot", headers=AUTH)

    assert response.status_code == 500
    assert response.json() == {"error": "Storage operation failed", "details": "index write refused"}
    assert "retry-after" not in response.headers
    assert await store.get(LATEST_KEY) is None
    assert sheet_source.calls == 1


async def test_capture_index_conflicts_are_retryable(sheet_source, clock):
    store = ConflictingIndexStore(clock=clock)

    async with _client(_settings(), store=store, source=sheet_source, clock=clock)() as api:
        response = await api.get("/api/cron/snapshot", headers=AUTH)

    assert response.status_code == 503
    assert response.json()["error"] == "Concurrent update conflict"
    assert response.headers["retry-after"] == "1"
    assert await store.get(LATEST_KEY) is None


async def test_unreachable_store_returns_503_with_retry_after(sheet_source, clock):
    async with _client(_settings(), store=UnreachableStore(clock=clock), source=sheet_source, clock=clock)() as api:
        response = await api.get("/api/history", params={"range": "week"})

    assert response.status_code == 503
    assert response.json()["error"] == "Service unavailable"
    assert response.headers["retry-after"] == "5"


async def test_compare_with_missing_latest_body_is_a_hard_error(store, sheet_source, clock):
    await seed_history(
        store,
        [make_snapshot(date(2026, 1, 9))],
        indexed=[date(2026, 1, 9), date(2026, 1, 10)],
    )

    async with _client(_settings(), store=store, source=sheet_source, clock=clock)() as api:
        response = await api.get("/api/history/compare", params={"period": "day"})

    assert response.status_code == 500
    payload = response.json()
    assert payload["error"] == "Snapshot index is inconsistent with stored data"
    assert "2026-01-10" in payload["details"]
    assert "hasHistory" not in payload
    assert await store.get(snapshot_key(date(2026, 1, 10))) is None


def test_startup_logs_configuration_with_secrets_masked(caplog, store, sheet_source, clock):
    caplog.set_level(logging.INFO, logger="availability_tracker.main")

    create_app(_settings(kv_rest_api_token="kv-token"), store=store, sheet_source=sheet_source, clock=clock)

    record = next(r for r in caplog.records if r.getMessage().startswith("Starting"))
    assert record.cron_secret == "***"
    assert record.kv_rest_api_token == "***"
    assert record.kv_backend == "memory"
    assert "s3cret" not in str(record.__dict__)
