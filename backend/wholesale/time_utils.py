"""
Timestamps are stored as naive UTC datetimes; the API speaks ISO-8601 with
a trailing "Z". Calendar fields (shipment, production and expiration
dates) are plain dates.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    "2024-05-01", "2024-05-01T09:30", "2024-05-01T09:30:00Z" or with an
    offset. Naive input is taken as UTC; blank input gives None. Raises
    ValueError for anything else, non-strings included.
    """
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"expected an ISO-8601 string, got {type(value).__name__}")
    if not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return _naive_utc(datetime.fromisoformat(text))


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """A calendar date; a full timestamp is reduced to its UTC date."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"expected an ISO-8601 string, got {type(value).__name__}")
    if not value.strip():
        return None
    text = value.strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    return parse_iso_datetime(text).date()


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Whole-second ISO-8601 with "Z"; naive values are already UTC."""
    if dt is None:
        return None
    dt = _naive_utc(dt).replace(microsecond=0)
    return dt.isoformat() + "Z"


def to_iso_date(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None
