"""Read-through cache in front of the live sheet data."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable

from availability_tracker.providers.sheets import SheetSource
from availability_tracker.schemas import SheetDataResponse

from .classifier import classify_rows

logger = logging.getLogger(__name__)


class LiveDataCache:
    """Holds the last successful live response for ``ttl_seconds``.

    Owned by one app instance. Concurrent refreshes may both fetch; the last
    one to finish wins.
    """

    def __init__(self, ttl_seconds: float = 60.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._value: SheetDataResponse | None = None
        self._stored_at = 0.0

    def get(self) -> SheetDataResponse | None:
        if self._value is None:
            return None
        if self._clock() - self._stored_at >= self.ttl_seconds:
            return None
        return self._value

    def put(self, value: SheetDataResponse) -> None:
        self._value = value
        self._stored_at = self._clock()

    def clear(self) -> None:
        self._value = None


class LiveDataService:
    def __init__(
        self,
        source: SheetSource,
        cache: LiveDataCache,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._source = source
        self._cache = cache
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def get(self, *, refresh: bool = False) -> SheetDataResponse:
        """Return cached data unless stale or ``refresh`` is set; failures are never cached."""

        if not refresh:
            cached = self._cache.get()
            if cached is not None:
                return cached

        result = await self._source.fetch_current_data()
        if not result.success:
            logger.warning("Live sheet fetch failed: %s", result.error)
            return SheetDataResponse(
                success=False,
                fetched_at=self._clock(),
                source=result.source,
                error=result.error,
                troubleshooting=result.troubleshooting,
            )

        response = SheetDataResponse(
            success=True,
            data=classify_rows(result.rows),
            headers=result.headers,
            fetched_at=self._clock(),
            source=result.source,
        )
        self._cache.put(response)
        return response


__all__ = ["LiveDataCache", "LiveDataService"]
