"""Pydantic schemas for snapshot-to-snapshot anomaly alerts."""

from __future__ import annotations

import datetime as dt
from enum import Enum

from .base import CamelModel
from .history import ComparisonPeriod


class AlertSeverity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class AlertType(str, Enum):
    DAYS_OUT_SPIKE = "days_out_spike"
    NEW_ERROR = "new_error"
    ERROR_RESOLVED = "error_resolved"
    AVAILABILITY_DROP = "availability_drop"


class Alert(CamelModel):
    id: str
    type: AlertType
    severity: AlertSeverity
    title: str
    message: str
    link_name: str | None = None
    link_url: str | None = None
    value: float | None = None
    previous_value: float | None = None
    timestamp: dt.datetime


class AlertsResponse(CamelModel):
    period: ComparisonPeriod
    current_date: dt.date | None = None
    previous_date: dt.date | None = None
    alerts: list[Alert]


__all__ = ["Alert", "AlertSeverity", "AlertType", "AlertsResponse"]
