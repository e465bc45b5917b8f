"""Pydantic schemas for daily snapshots and their persisted form."""

from __future__ import annotations

import datetime as dt

from pydantic import AliasChoices, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from availability_tracker.core.errors import CorruptDataError

from .base import CamelModel
from .records import Record


class Summary(CamelModel):
    total_rows: int = Field(..., ge=0)
    hrt_count: int = Field(..., ge=0)
    trt_count: int = Field(..., ge=0)
    provider_count: int = Field(..., ge=0)
    error_count: int = Field(..., ge=0)
    avg_days_out: float | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "totalRows": 42,
                "hrtCount": 18,
                "trtCount": 15,
                "providerCount": 6,
                "errorCount": 2,
                "avgDaysOut": 9.4,
            }
        },
    )


class Snapshot(CamelModel):
    date: dt.date
    timestamp: dt.datetime
    headers: list[str] = Field(default_factory=list)
    row_count: int = Field(..., ge=0)
    # Bodies written by earlier versions keep their rows under "data"
    records: list[Record] = Field(
        default_factory=list,
        validation_alias=AliasChoices("records", "data"),
    )
    summary: Summary


def encode_snapshot(snapshot: Snapshot) -> str:
    return snapshot.model_dump_json(by_alias=True)


def decode_snapshot(raw: str | bytes, *, expected_date: dt.date | None = None) -> Snapshot:
    """Validate a stored snapshot body.

    Raises ``CorruptDataError`` when the body is not JSON, does not match the
    snapshot shape, or belongs to a different date than the key it was read from.
    """

    try:
        snapshot = Snapshot.model_validate_json(raw)
    except ValidationError as exc:
        label = expected_date.isoformat() if expected_date else "unknown date"
        raise CorruptDataError(
            f"Snapshot body for {label} failed validation: {exc.error_count()} error(s)"
        ) from exc
    if expected_date is not None and snapshot.date != expected_date:
        raise CorruptDataError(
            f"Snapshot stored for {expected_date.isoformat()} is dated {snapshot.date.isoformat()}"
        )
    return snapshot


__all__ = ["Snapshot", "Summary", "decode_snapshot", "encode_snapshot"]
