"""Key-value store contract used by the snapshot services."""

from __future__ import annotations

from abc import ABC, abstractmethod


class KeyValueStore(ABC):
    """Remote string store with per-key expiry and an atomic conditional write.

    Implementations raise ``PersistenceError`` (or ``StoreUnavailableError``
    for timeouts and transport failures) instead of backend-specific errors.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the value stored under ``key`` or ``None`` when absent or expired."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        """Overwrite ``key``; a positive ``ttl_seconds`` makes the value expire."""

    @abstractmethod
    async def compare_and_set(
        self,
        key: str,
        expected: str | None,
        value: str,
        ttl_seconds: int | None = None,
    ) -> bool:
        """Write ``value`` only if the current value equals ``expected``.

        ``expected=None`` requires the key to be absent. Returns ``False``
        without writing when another writer got there first.
        """

    async def aclose(self) -> None:
        return None


__all__ = ["KeyValueStore"]
