"""Process-local key-value store for development and tests."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable

from .base import KeyValueStore

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store honouring TTLs against an injectable clock."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or _utcnow
        self._values: dict[str, tuple[str, datetime | None]] = {}
        self._lock = asyncio.Lock()

    def _read(self, key: str) -> str | None:
        item = self._values.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and expires_at <= self._clock():
            del self._values[key]
            return None
        return value

    def _write(self, key: str, value: str, ttl_seconds: int | None) -> None:
        expires_at = None
        if ttl_seconds:
            expires_at = self._clock() + timedelta(seconds=ttl_seconds)
        self._values[key] = (value, expires_at)

    async def get(self, key: str) -> str | None:
        async with self._lock:
            return self._read(key)

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        async with self._lock:
            self._write(key, value, ttl_seconds)

    async def compare_and_set(
        self,
        key: str,
        expected: str | None,
        value: str,
        ttl_seconds: int | None = None,
    ) -> bool:
        async with self._lock:
            if self._read(key) != expected:
                return False
            self._write(key, value, ttl_seconds)
            return True

    def keys(self) -> list[str]:
        return sorted(k for k in list(self._values) if self._read(k) is not None)


__all__ = ["InMemoryKeyValueStore"]
