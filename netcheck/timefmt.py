"""Human-readable timespans and durations for reports (local time)."""
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional


class OutagePrecision(Enum):
    NORMAL = "normal"
    EXACT = "exact"

    @property
    def time_format(self) -> str:
        return "%H:%M:%S" if self == OutagePrecision.EXACT else "%H:%M"


DATE_FORMAT = "%Y-%m-%d"


def timespan_string(
    start: datetime,
    end: datetime,
    precision: OutagePrecision = OutagePrecision.NORMAL,
    date_format: Optional[str] = None,
) -> str:
    """'2026-10-19: 10:00 - 10:05', or both dates when the span crosses midnight."""
    date_fmt = date_format or DATE_FORMAT
    time_fmt = precision.time_format
    start_local = start.astimezone()
    end_local = end.astimezone()
    date_start = start_local.strftime(date_fmt)
    date_end = end_local.strftime(date_fmt)
    if date_start == date_end:
        return f"{date_start}: {start_local.strftime(time_fmt)} - {end_local.strftime(time_fmt)}"
    return f"{date_start}: {start_local.strftime(time_fmt)} - {date_end}: {end_local.strftime(time_fmt)}"


def human_duration_val(delta: timedelta) -> tuple[int, str]:
    total = int(delta.total_seconds())
    checks = [
        (total // 86400, "day", "days"),
        (total // 3600, "hour", "hours"),
        (total // 60, "minute", "minutes"),
        (total, "second", "seconds"),
    ]
    value, singular, plural = next((c for c in checks if c[0] >= 1), checks[-1])
    return value, singular if value == 1 else plural


def human_duration(delta: timedelta) -> str:
    value, unit = human_duration_val(delta)
    return f"{value} {unit}"
