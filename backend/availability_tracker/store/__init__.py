"""Key-value store adapters and their factory."""

from __future__ import annotations

import logging

from availability_tracker.config import AppSettings
from availability_tracker.core.errors import ConfigurationError

from .base import KeyValueStore
from .memory import InMemoryKeyValueStore
from .upstash import UpstashKeyValueStore

logger = logging.getLogger(__name__)


def build_store(settings: AppSettings) -> KeyValueStore:
    """Return the store selected by ``settings`` or raise ``ConfigurationError``."""

    if settings.kv_backend == "memory":
        logger.info("Using process-local key-value store; snapshots will not survive restarts")
        return InMemoryKeyValueStore()
    if not settings.store_configured:
        raise ConfigurationError("This endpoint requires KV_REST_API_URL and KV_REST_API_TOKEN to store snapshots.")
    return UpstashKeyValueStore(
        settings.kv_rest_api_url or "",
        settings.kv_rest_api_token or "",
        timeout_seconds=settings.kv_timeout_seconds,
    )


__all__ = [
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "UpstashKeyValueStore",
    "build_store",
]
