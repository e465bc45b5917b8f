"""Pydantic schemas for classified sheet rows."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from .base import CamelModel


class CategoryType(str, Enum):
    HRT = "HRT"
    TRT = "TRT"
    PROVIDER = "Provider"
    OTHER = "Other"


class Record(CamelModel):
    """A classified row: typed fields plus the untouched sheet columns."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    raw: dict[str, str] = Field(default_factory=dict, description="Pass-through sheet columns")
    days_out: float | None = None
    availability_score: float | None = None
    has_error: bool = False
    category_type: CategoryType = CategoryType.OTHER


class ParsedRow(Record):
    """Record as served by the live endpoint, with row position and scrape time."""

    row_index: int
    scraped_at: datetime | None = None

    def to_record(self) -> Record:
        return Record.model_validate(self.model_dump(include=set(Record.model_fields)))


__all__ = ["CategoryType", "ParsedRow", "Record"]
