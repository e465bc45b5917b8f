"""Row-level anomaly detection between two snapshots."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Mapping, Sequence

from availability_tracker.schemas import Alert, AlertSeverity, AlertType, Record

DAYS_OUT_SPIKE_PCT = 50
DAYS_OUT_CRITICAL_PCT = 100
SCORE_DROP_POINTS = 20
SCORE_DROP_CRITICAL_POINTS = 40

_SEVERITY_ORDER = {AlertSeverity.CRITICAL: 0, AlertSeverity.WARNING: 1, AlertSeverity.INFO: 2}


def _column(raw: Mapping[str, str], *names: str) -> str:
    for name in names:
        if raw.get(name):
            return raw[name]
    return ""


def _fmt(value: float) -> str:
    return f"{value:g}"


def detect_anomalies(
    current: Sequence[Record],
    previous: Sequence[Record],
    *,
    now: datetime | None = None,
) -> list[Alert]:
    """Compare rows matched by their Name column; rows only present on one side are ignored."""

    if not previous:
        return []
    now = now or datetime.now(timezone.utc)
    stamp = int(now.timestamp() * 1000)

    previous_by_name: dict[str, Record] = {}
    for row in previous:
        name = _column(row.raw, "Name", "name")
        if name:
            previous_by_name[name] = row

    alerts: list[Alert] = []
    for row in current:
        name = _column(row.raw, "Name", "name")
        url = _column(row.raw, "URL", "url")
        prev = previous_by_name.get(name)
        if not name or prev is None:
            continue

        if row.days_out is not None and prev.days_out is not None and prev.days_out > 0:
            change_pct = (row.days_out - prev.days_out) / prev.days_out * 100
            if change_pct >= DAYS_OUT_SPIKE_PCT:
                alerts.append(
                    Alert(
                        id=f"days-spike-{name}-{stamp}",
                        type=AlertType.DAYS_OUT_SPIKE,
                        severity=AlertSeverity.CRITICAL if change_pct >= DAYS_OUT_CRITICAL_PCT else AlertSeverity.WARNING,
                        title="Days Out Spike Detected",
                        message=(
                            f"{name} days out increased by {change_pct:.0f}% "
                            f"({_fmt(prev.days_out)} → {_fmt(row.days_out)})"
                        ),
                        link_name=name,
                        link_url=url,
                        value=row.days_out,
                        previous_value=prev.days_out,
                        timestamp=now,
                    )
                )

        if row.has_error and not prev.has_error:
            alerts.append(
                Alert(
                    id=f"new-error-{name}-{stamp}",
                    type=AlertType.NEW_ERROR,
                    severity=AlertSeverity.CRITICAL,
                    title="New Error Detected",
                    message=f"{name} is now showing an error",
                    link_name=name,
                    link_url=url,
                    timestamp=now,
                )
            )
        elif prev.has_error and not row.has_error:
            alerts.append(
                Alert(
                    id=f"error-resolved-{name}-{stamp}",
                    type=AlertType.ERROR_RESOLVED,
                    severity=AlertSeverity.INFO,
                    title="Error Resolved",
                    message=f"{name} error has been resolved",
                    link_name=name,
                    link_url=url,
                    timestamp=now,
                )
            )

        if row.availability_score is not None and prev.availability_score is not None:
            drop = prev.availability_score - row.availability_score
            if drop >= SCORE_DROP_POINTS:
                alerts.append(
                    Alert(
                        id=f"score-drop-{name}-{stamp}",
                        type=AlertType.AVAILABILITY_DROP,
                        severity=AlertSeverity.CRITICAL if drop >= SCORE_DROP_CRITICAL_POINTS else AlertSeverity.WARNING,
                        title="Availability Score Drop",
                        message=(
                            f"{name} score dropped by {_fmt(drop)} points "
                            f"({_fmt(prev.availability_score)} → {_fmt(row.availability_score)})"
                        ),
                        link_name=name,
                        link_url=url,
                        value=row.availability_score,
                        previous_value=prev.availability_score,
                        timestamp=now,
                    )
                )

    # stable sort keeps row order within a severity
    alerts.sort(key=lambda alert: _SEVERITY_ORDER[alert.severity])
    return alerts


__all__ = ["detect_anomalies"]
