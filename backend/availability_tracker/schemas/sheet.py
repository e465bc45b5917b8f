"""Pydantic schemas for the live sheet endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field

from .base import CamelModel
from .records import ParsedRow


class SheetDataResponse(CamelModel):
    success: bool
    data: list[ParsedRow] = Field(default_factory=list)
    headers: list[str] = Field(default_factory=list)
    fetched_at: datetime
    source: Literal["api", "csv"]
    error: str | None = None
    troubleshooting: list[str] | None = None


class SheetDebugResponse(CamelModel):
    headers: list[str]
    sample_rows: list[dict[str, str]]
    total_rows: int
    column_names: list[str]


__all__ = ["SheetDataResponse", "SheetDebugResponse"]
