"""FastAPI dependencies wiring app-scoped components into request handlers."""

from __future__ import annotations

import hmac
from datetime import datetime
from typing import Callable

from fastapi import Depends, Header, Request

from availability_tracker.config import AppSettings
from availability_tracker.core.errors import AuthorizationError, ConfigurationError
from availability_tracker.providers.sheets import SheetSource
from availability_tracker.services import (
    ComparisonResolver,
    DateIndexManager,
    LiveDataService,
    SnapshotReader,
    SnapshotWriter,
)
from availability_tracker.store import KeyValueStore


def get_app_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_clock(request: Request) -> Callable[[], datetime]:
    return request.app.state.clock


def get_store(request: Request) -> KeyValueStore:
    store: KeyValueStore | None = request.app.state.store
    if store is None:
        raise ConfigurationError("This endpoint requires KV_REST_API_URL and KV_REST_API_TOKEN to store snapshots.")
    return store


def get_sheet_source(request: Request) -> SheetSource:
    return request.app.state.sheet_source


def get_live_data(request: Request) -> LiveDataService:
    return request.app.state.live_data


def get_date_index(
    store: KeyValueStore = Depends(get_store),
    settings: AppSettings = Depends(get_app_settings),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> DateIndexManager:
    return DateIndexManager(
        store,
        clock=clock,
        max_entries=settings.snapshot_retention_dates,
        max_attempts=settings.index_cas_attempts,
    )


def get_reader(
    store: KeyValueStore = Depends(get_store),
    index: DateIndexManager = Depends(get_date_index),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> SnapshotReader:
    return SnapshotReader(store, index, clock=clock)


def get_writer(
    store: KeyValueStore = Depends(get_store),
    index: DateIndexManager = Depends(get_date_index),
    settings: AppSettings = Depends(get_app_settings),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> SnapshotWriter:
    return SnapshotWriter(store, index, clock=clock, ttl_seconds=settings.snapshot_ttl_seconds)


def get_resolver(
    index: DateIndexManager = Depends(get_date_index),
    reader: SnapshotReader = Depends(get_reader),
) -> ComparisonResolver:
    return ComparisonResolver(index, reader)


async def require_capture_secret(
    authorization: str | None = Header(default=None),
    settings: AppSettings = Depends(get_app_settings),
    store: KeyValueStore = Depends(get_store),
) -> None:
    """Reject capture requests lacking ``Bearer <CRON_SECRET>`` when a secret is configured.

    Depends on the store so an unconfigured store is reported before auth.
    """

    if not settings.cron_secret:
        return
    expected = f"Bearer {settings.cron_secret}"
    if not authorization or not hmac.compare_digest(authorization.encode(), expected.encode()):
        raise AuthorizationError("Missing or invalid capture secret")


__all__ = [
    "get_app_settings",
    "get_clock",
    "get_date_index",
    "get_live_data",
    "get_reader",
    "get_resolver",
    "get_sheet_source",
    "get_store",
    "get_writer",
    "require_capture_secret",
]
