"""Application configuration and environment helpers."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SHEET_ID = "1vOXJEegJHJizatcXErv_dOLuWCiz_z8fGZasSDde2tc"
DEFAULT_SHEET_GID = "766458838"


class AppSettings(BaseSettings):
    """Configuration options for the availability tracker service."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = Field(default="Availability Tracker")
    log_level: str = Field(default="INFO")
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    kv_backend: Literal["upstash", "memory"] = Field(
        default="upstash",
        description="Key-value store used for snapshots; 'memory' is process-local.",
    )
    kv_rest_api_url: str | None = Field(default=None, description="REST endpoint of the key-value store.")
    kv_rest_api_token: str | None = Field(default=None)
    kv_timeout_seconds: float = Field(default=10.0, gt=0)

    cron_secret: str | None = Field(
        default=None,
        description="Shared secret required as a bearer token by the capture endpoint.",
    )

    sheet_id: str = Field(default=DEFAULT_SHEET_ID)
    sheet_gid: str = Field(default=DEFAULT_SHEET_GID)
    google_sheets_api_key: str | None = Field(default=None)
    sheet_timeout_seconds: float = Field(default=15.0, gt=0)

    snapshot_ttl_days: int = Field(default=90, ge=1)
    snapshot_retention_dates: int = Field(default=90, ge=1)
    index_cas_attempts: int = Field(default=5, ge=1)
    live_cache_ttl_seconds: float = Field(default=60.0, ge=0)

    telemetry_enabled: bool = Field(default=False)
    telemetry_service_name: str = Field(default="availability-tracker")
    telemetry_otlp_endpoint: str | None = Field(default=None)
    telemetry_otlp_insecure: bool = Field(default=True)
    telemetry_sample_ratio: float = Field(default=1.0, ge=0.0, le=1.0)

    @property
    def store_configured(self) -> bool:
        """Whether enough settings are present to reach a snapshot store."""

        if self.kv_backend == "memory":
            return True
        return bool(self.kv_rest_api_url and self.kv_rest_api_token)

    @property
    def snapshot_ttl_seconds(self) -> int:
        return self.snapshot_ttl_days * 24 * 60 * 60

    def dict_for_logging(self) -> dict[str, Any]:
        """Return a sanitized dict for logging purposes."""

        hidden = {"kv_rest_api_token", "cron_secret", "google_sheets_api_key"}
        return {k: ("***" if k in hidden and v else v) for k, v in self.model_dump().items()}


@lru_cache(maxsize=1)
def get_settings(**overrides: Any) -> AppSettings:
    """Return cached application settings with optional overrides."""

    if overrides:
        return AppSettings(**overrides)
    return AppSettings()


__all__ = [
    "AppSettings",
    "DEFAULT_SHEET_ID",
    "DEFAULT_SHEET_GID",
    "get_settings",
]
