from __future__ import annotations
"""Datetime helpers.

Stored timestamps are naive UTC (SQLite drops tz info); every inbound value is normalized
to that form before it is compared or persisted.
"""
from datetime import datetime, date, timezone
from typing import Any, Optional

from vendorhub.errors import InvalidArgument

_FORMATS = ('%Y-%m-%d', '%Y-%m-%dT%H:%M:%S', '%Y-%m-%dT%H:%M:%S%z')


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def parse_datetime(value: Any, field_name: str) -> Optional[datetime]:
    """Accept datetime, date or an ISO-ish string; None/'' pass through as None."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        raw = value.strip()
        try:
            return to_naive_utc(datetime.fromisoformat(raw.replace('Z', '+00:00')))
        except ValueError:
            pass
        for fmt in _FORMATS:
            try:
                return to_naive_utc(datetime.strptime(raw, fmt))
            except ValueError:
                continue
    raise InvalidArgument(f"{field_name} must be an ISO date or datetime")


def isoformat(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return to_naive_utc(dt).isoformat() + 'Z'
