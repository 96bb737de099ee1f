from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    # Normalize to UTC-naive
    if dt.tzinfo is None:
        # interpret naive as UTC
        return dt.replace(tzinfo=None)

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def normalize_datetime(value) -> datetime:
    """
    Normalize a caller-supplied timestamp to canonical UTC-naive datetime.

    Accepts None (-> utcnow()), aware/naive datetimes and ISO-8601 strings.
    """
    if value is None:
        return utcnow()

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    if isinstance(value, str):
        dt = parse_iso_datetime(value)
        if dt is None:
            raise ValueError("invalid datetime")
        return dt

    raise ValueError("invalid datetime")


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def to_storage_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Full-precision UTC string for persisted timestamps.

    Fixed width (always six fractional digits) so stored values sort the
    same as the datetimes they encode.
    """
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


# Reporting buckets are computed by shifting stored UTC timestamps by a single
# fixed offset. Both storage backends go through these helpers (or the SQL
# equivalent built from offset_modifier) so day/month boundaries agree.

def to_local(dt: datetime, offset_minutes: int) -> datetime:
    return dt + timedelta(minutes=offset_minutes)


def local_day_key(dt: datetime, offset_minutes: int) -> str:
    return to_local(dt, offset_minutes).strftime("%Y-%m-%d")


def local_month_key(dt: datetime, offset_minutes: int) -> str:
    return to_local(dt, offset_minutes).strftime("%Y-%m")


def offset_modifier(offset_minutes: int) -> str:
    """SQLite date() modifier equivalent to to_local()."""
    return f"{offset_minutes:+d} minutes"


def local_today(offset_minutes: int) -> datetime:
    local_now = to_local(utcnow(), offset_minutes)
    return local_now.replace(hour=0, minute=0, second=0, microsecond=0)
