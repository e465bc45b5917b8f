"""Error taxonomy shared by the snapshot services and the HTTP layer."""

from __future__ import annotations

from typing import Any, Sequence

from fastapi import status


class AvailabilityTrackerError(RuntimeError):
    """Base class for errors surfaced to callers as a structured payload."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "Internal error"
    retryable: bool = False
    retry_after_seconds: int | None = None

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error, "details": str(self)}


class ConfigurationError(AvailabilityTrackerError):
    """The key-value store is not configured; nothing was attempted."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error = "Key-value store not configured"

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error, "message": str(self)}


class AuthorizationError(AvailabilityTrackerError):
    """Bad or missing capture secret; rejected before any write."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error = "Unauthorized"

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error}


class UpstreamFetchError(AvailabilityTrackerError):
    """The data source adapter did not return rows."""

    error = "Failed to fetch sheet data"

    def __init__(self, message: str, troubleshooting: Sequence[str] | None = None) -> None:
        super().__init__(message)
        self.troubleshooting = list(troubleshooting or [])

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        if self.troubleshooting:
            payload["troubleshooting"] = self.troubleshooting
        return payload


class PersistenceError(AvailabilityTrackerError):
    """A store read or write failed."""

    error = "Storage operation failed"


class StoreUnavailableError(PersistenceError):
    """The store did not answer within its deadline or could not be reached."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error = "Service unavailable"
    retryable = True
    retry_after_seconds = 5


class RetryExhaustedError(PersistenceError):
    """A compare-and-set update kept losing to concurrent writers."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error = "Concurrent update conflict"
    retryable = True
    retry_after_seconds = 1


class NotFoundError(AvailabilityTrackerError):
    """No snapshot body exists for the requested date."""

    status_code = status.HTTP_404_NOT_FOUND
    error = "Snapshot not found for this date"

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error}


class DataInconsistencyError(AvailabilityTrackerError):
    """The date index references a snapshot whose body cannot be read."""

    error = "Snapshot index is inconsistent with stored data"


class CorruptDataError(AvailabilityTrackerError):
    """A stored value failed to decode into its expected shape."""

    error = "Stored snapshot data is corrupt"


__all__ = [
    "AvailabilityTrackerError",
    "AuthorizationError",
    "ConfigurationError",
    "CorruptDataError",
    "DataInconsistencyError",
    "NotFoundError",
    "PersistenceError",
    "RetryExhaustedError",
    "StoreUnavailableError",
    "UpstreamFetchError",
]
