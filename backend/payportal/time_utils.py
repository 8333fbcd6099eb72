"""
UTC helpers shared by models, services and tokens.

All datetimes stored or compared server-side are UTC-naive. Serialized
datetimes carry a trailing 'Z'; token claims carry integer epoch seconds.
"""

from __future__ import annotations

import calendar
from datetime import datetime, timezone
from typing import Optional


DATE_ONLY_LENGTH = len("YYYY-MM-DD")


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str], *, end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse an ISO-8601 query value into a UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DD" is midnight UTC, or the last microsecond of that day
      when end_of_day is set (inclusive upper bound of a date filter)
    - "...Z" / "...+HH:MM" is converted to UTC

    Raises ValueError for anything else.
    """
    if value is None or not value.strip():
        return None
    s = value.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)

    if end_of_day and len(s) == DATE_ONLY_LENGTH:
        dt = dt.replace(hour=23, minute=59, second=59, microsecond=999999)
    return dt


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """ISO-8601 with trailing 'Z', to the second. Naive values are UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def to_epoch(dt: datetime) -> int:
    # dt is UTC-naive
    return calendar.timegm(dt.utctimetuple())


def from_epoch(value: int) -> datetime:
    return datetime.fromtimestamp(value, timezone.utc).replace(tzinfo=None)
