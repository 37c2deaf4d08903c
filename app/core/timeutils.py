"""
Timezone helpers shared by the fraud analyzer and the points engine.

Tenants store their local offset as a "+HH:MM" string; attendance times are
stored in UTC.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone


def ensure_utc(dt: datetime) -> datetime:
    """SQLite drops tzinfo on round-trip; treat naive values as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_tz_offset(tz_offset: str | None) -> timezone:
    """Convert "+07:00" / "-05" / "+0530" into a fixed-offset tzinfo."""
    if not tz_offset:
        return timezone.utc
    raw = tz_offset.strip()
    sign = -1 if raw[0] == "-" else 1
    digits = raw[1:] if raw[0] in "+-" else raw
    if ":" in digits:
        hours_str, _, minutes_str = digits.partition(":")
    else:
        hours_str, minutes_str = digits[:2], digits[2:]
    hours = int(hours_str)
    minutes = int(minutes_str) if minutes_str else 0
    return timezone(timedelta(hours=sign * hours, minutes=sign * minutes))


def to_local(dt: datetime, tz_offset: str | None) -> datetime:
    return ensure_utc(dt).astimezone(parse_tz_offset(tz_offset))


def local_day_bounds(day: date, tz_offset: str | None, days: int = 1) -> tuple[datetime, datetime]:
    """UTC [start, end) covering ``days`` local calendar days starting at ``day``."""
    start = datetime.combine(day, time.min, tzinfo=parse_tz_offset(tz_offset))
    end = start + timedelta(days=days)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)
