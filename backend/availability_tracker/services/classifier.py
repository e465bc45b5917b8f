"""Classify raw sheet rows into typed records."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Iterable, Mapping, Sequence

from availability_tracker.schemas import CategoryType, ParsedRow

DAYS_OUT_COLUMNS = ("Days Out", "DaysOut", "days_out", "Days_Out")
AVAILABILITY_SCORE_COLUMNS = ("Availability Score", "AvailabilityScore", "availability_score", "Score")
SCRAPED_AT_COLUMNS = ("Scraped At", "ScrapedAt", "scraped_at", "Scraped_At", "Timestamp")
ERROR_CODE_COLUMNS = ("Error Code", "ErrorCode", "error_code", "Error_Code")
ERROR_DETAILS_COLUMNS = ("Error Details", "ErrorDetails", "error_details", "Error_Details", "Error")
CATEGORY_COLUMNS = ("Category", "category")

_NUMBER_NOISE = re.compile(r"[,$%]")
_LEADING_NUMBER = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")
_SCRAPED_AT_FORMATS = ("%m/%d/%Y %H:%M:%S", "%m/%d/%Y %H:%M", "%m/%d/%Y", "%d/%m/%Y", "%Y/%m/%d")


def find_column_value(row: Mapping[str, str], names: Sequence[str]) -> str | None:
    """Return the first non-empty value among the column name variants."""

    for name in names:
        value = row.get(name)
        if value is not None and value != "":
            return value
    return None


def parse_number(value: str | None) -> float | None:
    """Parse a sheet cell as a number, ignoring thousands separators, $ and %.

    Like a spreadsheet's lenient parse, trailing text after a leading number is
    ignored ("12 days" -> 12.0).
    """

    if value is None or value == "":
        return None
    cleaned = _NUMBER_NOISE.sub("", value).strip()
    match = _LEADING_NUMBER.match(cleaned)
    if match is None:
        return None
    return float(match.group(0))


def parse_timestamp(value: str | None) -> datetime | None:
    if value is None or value == "":
        return None
    text = value.strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    # month-first wins over day-first when both parse
    for fmt in _SCRAPED_AT_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def has_error(row: Mapping[str, str]) -> bool:
    error_code = find_column_value(row, ERROR_CODE_COLUMNS)
    error_details = find_column_value(row, ERROR_DETAILS_COLUMNS)
    return bool((error_code and error_code.strip()) or (error_details and error_details.strip()))


def category_type(row: Mapping[str, str]) -> CategoryType:
    category = (find_column_value(row, CATEGORY_COLUMNS) or "").upper()
    if "HRT" in category:
        return CategoryType.HRT
    if "TRT" in category:
        return CategoryType.TRT
    if "PROVIDER" in category:
        return CategoryType.PROVIDER
    return CategoryType.OTHER


def classify_rows(rows: Iterable[Mapping[str, str]]) -> list[ParsedRow]:
    """Turn raw sheet rows into typed records, keeping every column in ``raw``."""

    parsed: list[ParsedRow] = []
    for index, row in enumerate(rows):
        raw = {str(key): "" if value is None else str(value) for key, value in row.items()}
        parsed.append(
            ParsedRow(
                raw=raw,
                days_out=parse_number(find_column_value(raw, DAYS_OUT_COLUMNS)),
                availability_score=parse_number(find_column_value(raw, AVAILABILITY_SCORE_COLUMNS)),
                scraped_at=parse_timestamp(find_column_value(raw, SCRAPED_AT_COLUMNS)),
                has_error=has_error(raw),
                category_type=category_type(raw),
                row_index=index,
            )
        )
    return parsed


__all__ = [
    "category_type",
    "classify_rows",
    "find_column_value",
    "has_error",
    "parse_number",
    "parse_timestamp",
]
