"""Client helpers for reading the tracking spreadsheet from Google Sheets."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol
from urllib.parse import quote

import httpx
import pandas as pd

from availability_tracker.config import AppSettings

logger = logging.getLogger(__name__)

SHEETS_API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"
CSV_EXPORT_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}/export"

CSV_TROUBLESHOOTING = [
    'Ensure the Google Sheet is shared as "Anyone with the link can view"',
    "Verify the Sheet ID and GID are correct",
    "Try accessing the CSV URL directly in a browser to test",
]


class SheetFetchError(RuntimeError):
    """Raised internally when one fetch strategy fails."""


@dataclass
class SheetFetchResult:
    success: bool
    headers: list[str] = field(default_factory=list)
    rows: list[dict[str, str]] = field(default_factory=list)
    source: Literal["api", "csv"] = "csv"
    error: str | None = None
    troubleshooting: list[str] = field(default_factory=list)


class SheetSource(Protocol):
    async def fetch_current_data(self) -> SheetFetchResult:
        ...


def rows_from_values(values: list[list[Any]]) -> tuple[list[str], list[dict[str, str]]]:
    """Map a header row plus data rows to dicts; short rows are padded with blanks."""

    if not values:
        return [], []
    headers = [str(h or "").strip() for h in values[0]]
    rows: list[dict[str, str]] = []
    for raw_row in values[1:]:
        row: dict[str, str] = {}
        for idx, header in enumerate(headers):
            value = raw_row[idx] if idx < len(raw_row) else None
            row[header] = "" if value is None else str(value)
        rows.append(row)
    return headers, rows


def parse_csv(text: str) -> tuple[list[str], list[dict[str, str]]]:
    """Parse a CSV export keeping every cell as a string and dropping blank rows."""

    try:
        frame = pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False, skip_blank_lines=True)
    except pd.errors.EmptyDataError:
        return [], []
    except pd.errors.ParserError as exc:
        raise SheetFetchError(f"CSV export could not be parsed: {exc}") from exc

    frame.columns = [str(column).strip() for column in frame.columns]
    headers = list(frame.columns)
    rows = [
        {header: str(value) for header, value in record.items()}
        for record in frame.to_dict(orient="records")
        if any(str(value).strip() for value in record.values())
    ]
    return headers, rows


class GoogleSheetsClient:
    """Fetch the configured sheet via the Sheets API, falling back to CSV export."""

    def __init__(
        self,
        sheet_id: str,
        gid: str,
        *,
        api_key: str | None = None,
        timeout_seconds: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.sheet_id = sheet_id
        self.gid = gid
        self.api_key = api_key
        self._timeout = timeout_seconds
        self._client = client

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "GoogleSheetsClient":
        return cls(
            settings.sheet_id,
            settings.sheet_gid,
            api_key=settings.google_sheets_api_key,
            timeout_seconds=settings.sheet_timeout_seconds,
        )

    async def _get(self, url: str, **kwargs: Any) -> httpx.Response:
        try:
            if self._client is not None:
                return await self._client.get(url, timeout=self._timeout, **kwargs)
            async with httpx.AsyncClient(timeout=self._timeout, follow_redirects=True) as client:
                return await client.get(url, **kwargs)
        except httpx.HTTPError as exc:
            raise SheetFetchError(f"Failed to reach Google Sheets: {exc}") from exc

    async def _fetch_via_api(self) -> SheetFetchResult:
        metadata_res = await self._get(f"{SHEETS_API_BASE}/{self.sheet_id}", params={"key": self.api_key})
        if metadata_res.status_code >= 400:
            raise SheetFetchError(f"Metadata fetch failed: {metadata_res.status_code} - {metadata_res.text}")
        metadata = metadata_res.json()

        sheet_name = "Sheet1"
        for sheet in metadata.get("sheets") or []:
            properties = sheet.get("properties") or {}
            if str(properties.get("sheetId")) == str(self.gid):
                sheet_name = properties.get("title") or sheet_name
                break

        data_res = await self._get(
            f"{SHEETS_API_BASE}/{self.sheet_id}/values/{quote(sheet_name, safe='')}",
            params={"key": self.api_key},
        )
        if data_res.status_code >= 400:
            raise SheetFetchError(f"Data fetch failed: {data_res.status_code} - {data_res.text}")
        headers, rows = rows_from_values(data_res.json().get("values") or [])
        return SheetFetchResult(success=True, headers=headers, rows=rows, source="api")

    async def _fetch_via_csv(self) -> SheetFetchResult:
        response = await self._get(
            CSV_EXPORT_URL.format(sheet_id=self.sheet_id),
            params={"format": "csv", "gid": self.gid},
            headers={"Accept": "text/csv"},
        )
        if response.status_code >= 400:
            raise SheetFetchError(f"CSV fetch failed: {response.status_code}")
        text = response.text
        if "<!DOCTYPE html>" in text or "<html" in text:
            raise SheetFetchError("Received HTML instead of CSV - sheet may not be publicly accessible")
        headers, rows = parse_csv(text)
        return SheetFetchResult(success=True, headers=headers, rows=rows, source="csv")

    async def fetch_current_data(self) -> SheetFetchResult:
        """Return current rows; failures are reported in the result rather than raised."""

        if self.api_key:
            try:
                return await self._fetch_via_api()
            except (SheetFetchError, ValueError) as exc:
                logger.warning("API fetch failed, trying CSV fallback: %s", exc)

        try:
            return await self._fetch_via_csv()
        except SheetFetchError as exc:
            hint = (
                "API fetch failed - check your API key configuration"
                if self.api_key
                else "No API key configured - add GOOGLE_SHEETS_API_KEY for private sheet access"
            )
            return SheetFetchResult(
                success=False,
                source="csv",
                error=str(exc),
                troubleshooting=[hint, *CSV_TROUBLESHOOTING],
            )


__all__ = [
    "CSV_TROUBLESHOOTING",
    "GoogleSheetsClient",
    "SheetFetchError",
    "SheetFetchResult",
    "SheetSource",
    "parse_csv",
    "rows_from_values",
]
