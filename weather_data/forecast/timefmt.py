"""Time parsing and display labels for forecast data."""

import re
from datetime import datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo

from weather_data.models.common import parse_timestamp

_DURATION = re.compile(
    r"^P(?:(?P<weeks>\d+)W)?(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)


def parse_duration(value: str) -> timedelta:
    """Parse the ISO 8601 durations the gridpoint API uses, e.g. "P1DT6H".

    Year and month designators are rejected since they have no fixed length.
    """
    match = _DURATION.match(value)
    if match is None or value in ("P", "PT"):
        raise ValueError(f"Unsupported ISO 8601 duration: {value!r}")
    parts = {k: int(v) for k, v in match.groupdict().items() if v is not None}
    return timedelta(**parts)


def parse_valid_time(valid_time: str) -> tuple[datetime, datetime]:
    """Expand "2026-02-11T06:00:00+00:00/PT1H" into (start, end)."""
    start_text, _, duration_text = valid_time.partition("/")
    start = parse_timestamp(start_text)
    if start is None or not duration_text:
        raise ValueError(f"Malformed validTime: {valid_time!r}")
    return start, start + parse_duration(duration_text)


def start_of_next_day(now: datetime) -> datetime:
    """Midnight at the start of the calendar day after ``now``, in its zone."""
    return datetime.combine(now.date() + timedelta(days=1), time(0), tzinfo=now.tzinfo)


def zone(name: str | None, fallback: str) -> tzinfo:
    return ZoneInfo(name or fallback)


def hour_label(dt: datetime) -> str:
    """Hour label such as "8 PM"."""
    return f"{dt.hour % 12 or 12} {'AM' if dt.hour < 12 else 'PM'}"


def clock_label(dt: datetime) -> str:
    """Label such as "Monday 3:05 PM EDT"."""
    hour = dt.hour % 12 or 12
    meridiem = "AM" if dt.hour < 12 else "PM"
    return f"{dt:%A} {hour}:{dt:%M} {meridiem} {dt:%Z}"


def month_and_day(dt: datetime) -> str:
    return f"{dt:%b} {dt.day}"
