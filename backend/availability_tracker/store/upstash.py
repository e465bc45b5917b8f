"""Client for Upstash-compatible REST key-value stores (Vercel KV)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from availability_tracker.core.errors import PersistenceError, StoreUnavailableError

from .base import KeyValueStore

logger = logging.getLogger(__name__)

# KEYS[1] = key; ARGV = expected-present flag, expected, new value, ttl seconds
_COMPARE_AND_SET_SCRIPT = """
local current = redis.call('GET', KEYS[1])
if ARGV[1] == '1' then
  if current ~= ARGV[2] then return 0 end
elseif current then
  return 0
end
if tonumber(ARGV[4]) > 0 then
  redis.call('SET', KEYS[1], ARGV[3], 'EX', ARGV[4])
else
  redis.call('SET', KEYS[1], ARGV[3])
end
return 1
"""


class UpstashKeyValueStore(KeyValueStore):
    """Send Redis commands as JSON arrays over HTTPS with bearer authentication."""

    def __init__(
        self,
        url: str,
        token: str,
        *,
        timeout_seconds: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._token = token
        self._timeout = timeout_seconds
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._owns_client = client is None

    async def _command(self, *args: Any) -> Any:
        command = [str(arg) for arg in args]
        try:
            response = await self._client.post(
                self._url,
                json=command,
                headers={"Authorization": f"Bearer {self._token}"},
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            raise StoreUnavailableError(f"Key-value store timed out running {command[0]}") from exc
        except httpx.HTTPError as exc:
            raise StoreUnavailableError(f"Failed to reach key-value store: {exc}") from exc

        if response.status_code >= 500:
            raise StoreUnavailableError(f"Key-value store error {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            raise PersistenceError("Key-value store returned invalid JSON payload") from exc

        if response.status_code >= 400 or (isinstance(payload, dict) and payload.get("error")):
            detail = payload.get("error") if isinstance(payload, dict) else payload
            raise PersistenceError(f"Key-value store rejected {command[0]} ({response.status_code}): {detail}")
        if not isinstance(payload, dict) or "result" not in payload:
            raise PersistenceError("Key-value store response is missing a result")
        return payload["result"]

    async def get(self, key: str) -> str | None:
        result = await self._command("GET", key)
        if result is None:
            return None
        return str(result)

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        if ttl_seconds:
            await self._command("SET", key, value, "EX", int(ttl_seconds))
        else:
            await self._command("SET", key, value)

    async def compare_and_set(
        self,
        key: str,
        expected: str | None,
        value: str,
        ttl_seconds: int | None = None,
    ) -> bool:
        result = await self._command(
            "EVAL",
            _COMPARE_AND_SET_SCRIPT,
            1,
            key,
            "0" if expected is None else "1",
            expected or "",
            value,
            int(ttl_seconds or 0),
        )
        return int(result) == 1

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = ["UpstashKeyValueStore"]
