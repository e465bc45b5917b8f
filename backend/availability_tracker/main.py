"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Callable

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from availability_tracker import __version__
from availability_tracker.api.routes import api_router
from availability_tracker.config import AppSettings, get_settings
from availability_tracker.core.errors import AvailabilityTrackerError
from availability_tracker.core.logging import setup_logging
from availability_tracker.core.telemetry import setup_telemetry, shutdown_telemetry
from availability_tracker.providers.sheets import GoogleSheetsClient, SheetSource
from availability_tracker.services import LiveDataCache, LiveDataService
from availability_tracker.store import KeyValueStore, build_store

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def _handle_domain_error(request: Request, exc: AvailabilityTrackerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
    headers = None
    if exc.retryable and exc.retry_after_seconds is not None:
        headers = {"Retry-After": str(exc.retry_after_seconds)}
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=headers)


def create_app(
    settings: AppSettings | None = None,
    *,
    store: KeyValueStore | None = None,
    sheet_source: SheetSource | None = None,
    clock: Callable[[], datetime] | None = None,
) -> FastAPI:
    """Build the service; components not passed in are created from ``settings``."""

    settings = settings or get_settings()
    setup_logging(settings.log_level)
    logger.info("Starting %s with configuration", settings.app_name, extra=settings.dict_for_logging())

    if store is None and settings.store_configured:
        store = build_store(settings)
    elif store is None:
        logger.warning("Key-value store not configured; history endpoints will return 503")
    source = sheet_source or GoogleSheetsClient.from_settings(settings)
    app_clock = clock or _utcnow

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        yield
        if store is not None:
            await store.aclose()
        if app.state.telemetry_enabled:
            shutdown_telemetry()

    app = FastAPI(title=settings.app_name, version=__version__, lifespan=_lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.clock = app_clock
    app.state.sheet_source = source
    app.state.live_data = LiveDataService(
        source,
        LiveDataCache(ttl_seconds=settings.live_cache_ttl_seconds),
        clock=app_clock,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_exception_handler(AvailabilityTrackerError, _handle_domain_error)
    app.include_router(api_router)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str | bool]:
        """Return service readiness metadata."""

        return {
            "status": "ok",
            "timestamp": app_clock().isoformat(),
            "storeConfigured": store is not None,
        }

    app.state.telemetry_enabled = setup_telemetry(app, settings)
    return app


app = create_app()

__all__ = ["app", "create_app"]
