"""
Timezone utilities for the SchoolMaster platform.

All datetimes are stored and compared in UTC. The weekly availability grid
is expressed in the platform's local wall clock (Europe/Warsaw by default).
"""

from datetime import datetime, timezone
from typing import Optional, Tuple

import pytz

from .config import settings


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def get_platform_timezone() -> pytz.BaseTzInfo:
    return pytz.timezone(settings.timezone)


def ensure_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    SQLite drops tzinfo on round-trip, so naive values are assumed to be UTC.
    """
    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(timezone.utc)


def to_local(dt: datetime) -> datetime:
    """Convert a datetime to the platform wall clock."""
    return ensure_utc(dt).astimezone(get_platform_timezone())


def local_slot(dt: datetime) -> Tuple[int, str]:
    """
    Map a moment to its weekly grid slot.

    Returns:
        (day_of_week with Sunday as 0, hour label "HH:00")
    """
    local = to_local(dt)
    return (local.weekday() + 1) % 7, f"{local.hour:02d}:00"


def hours_until(dt: datetime, now: Optional[datetime] = None) -> float:
    """Fractional hours from now until dt (negative when dt is in the past)."""
    reference = ensure_utc(now) if now else utc_now()
    return (ensure_utc(dt) - reference).total_seconds() / 3600


def parse_client_datetime(value: str) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp sent by the web client.

    A trailing "Z" is accepted. Naive values are interpreted in the platform
    timezone, matching how the booking calendar renders slots.

    Returns:
        Aware UTC datetime, or None when the value cannot be parsed
    """
    if not value or not isinstance(value, str):
        return None
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = get_platform_timezone().localize(parsed)
    return parsed.astimezone(timezone.utc)
