"""Common helpers shared across the console models.

Remote documents carry timestamps in whatever shape the writing client chose:
native datetimes, epoch numbers, ISO strings, or Firestore-style
``{"seconds": ..., "nanoseconds": ...}`` mappings. Everything downstream works
with timezone-aware UTC datetimes only.

- utc_now(): current time as an aware UTC datetime
- parse_utc_timestamp(): ISO string -> aware UTC datetime
- coerce_timestamp(): any timestamp-like value -> aware UTC datetime or None
"""

from datetime import date, datetime, time, timezone
from typing import Any, Optional

# Epoch values above this are treated as milliseconds (year ~5138 in seconds)
_EPOCH_MS_THRESHOLD = 1e11


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_utc_timestamp(timestamp_str: str) -> datetime:
    """Parse UTC timestamp string into timezone-aware datetime object.

    Handles:
    - '2025-10-17T04:02:59+00:00' (timezone-aware)
    - '2025-10-17T04:02:59Z' (Zulu time suffix)
    - '2025-10-17T04:02:59' (naive, assumed UTC)

    Raises:
        ValueError: If the string is not ISO 8601
    """
    timestamp_str = timestamp_str.strip()
    if timestamp_str.endswith("Z"):
        timestamp_str = timestamp_str[:-1]
    dt = datetime.fromisoformat(timestamp_str)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _from_epoch(value: float) -> datetime:
    if abs(value) >= _EPOCH_MS_THRESHOLD:
        value = value / 1000.0
    return datetime.fromtimestamp(value, tz=timezone.utc)


def coerce_timestamp(value: Any) -> Optional[datetime]:
    """Convert a timestamp-like value into an aware UTC datetime.

    Returns None when the value cannot be interpreted; callers decide the
    fallback.
    """
    if value is None or isinstance(value, bool):
        return None

    try:
        if isinstance(value, datetime):
            if value.tzinfo is None:
                return value.replace(tzinfo=timezone.utc)
            return value.astimezone(timezone.utc)

        if isinstance(value, date):
            return datetime.combine(value, time.min, tzinfo=timezone.utc)

        if isinstance(value, (int, float)):
            return _from_epoch(float(value))

        if isinstance(value, str):
            if not value.strip():
                return None
            return parse_utc_timestamp(value)

        if isinstance(value, dict):
            seconds = value.get("seconds", value.get("_seconds"))
            if seconds is None or isinstance(seconds, bool):
                return None
            nanos = value.get("nanoseconds", value.get("_nanoseconds")) or 0
            return datetime.fromtimestamp(
                float(seconds) + float(nanos) / 1e9, tz=timezone.utc
            )

        # Firestore SDK Timestamp and similar objects
        to_datetime = getattr(value, "to_datetime", None) or getattr(value, "ToDatetime", None)
        if callable(to_datetime):
            return coerce_timestamp(to_datetime())
    except (ValueError, TypeError, OverflowError, OSError):
        return None

    return None
