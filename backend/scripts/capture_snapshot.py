"""Capture today's availability snapshot outside the HTTP service."""

from __future__ import annotations

import argparse
import asyncio
import logging

from availability_tracker.config import AppSettings, get_settings
from availability_tracker.core.errors import AvailabilityTrackerError
from availability_tracker.core.logging import setup_logging
from availability_tracker.providers.sheets import GoogleSheetsClient, SheetSource
from availability_tracker.schemas import CaptureResponse
from availability_tracker.services import DateIndexManager, SnapshotWriter
from availability_tracker.store import KeyValueStore, build_store

logger = logging.getLogger("capture_snapshot")


async def _run(settings: AppSettings, dry_run: bool, source: SheetSource | None = None) -> int:
    source = source or GoogleSheetsClient.from_settings(settings)

    if dry_run:
        result = await source.fetch_current_data()
        if not result.success:
            logger.error("Fetch failed: %s", result.error)
            for hint in result.troubleshooting:
                logger.error("  - %s", hint)
            return 1
        print(f"Fetched {len(result.rows)} rows via {result.source}; nothing written")
        return 0

    store: KeyValueStore | None = None
    try:
        store = build_store(settings)
        index = DateIndexManager(
            store,
            max_entries=settings.snapshot_retention_dates,
            max_attempts=settings.index_cas_attempts,
        )
        writer = SnapshotWriter(store, index, ttl_seconds=settings.snapshot_ttl_seconds)
        snapshot = await writer.capture_from_source(source)
    except AvailabilityTrackerError as exc:
        logger.error("Capture failed: %s", exc)
        return 1
    finally:
        if store is not None:
            await store.aclose()

    response = CaptureResponse(date=snapshot.date, row_count=snapshot.row_count, summary=snapshot.summary)
    print(response.model_dump_json(by_alias=True, indent=2))
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Capture today's availability snapshot")
    parser.add_argument("--dry-run", action="store_true", help="Fetch and parse the sheet without writing")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    args = parser.parse_args()
    setup_logging(args.log_level or get_settings().log_level)
    raise SystemExit(asyncio.run(_run(get_settings(), args.dry_run)))


if __name__ == "__main__":
    main()
