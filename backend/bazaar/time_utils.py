from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from flask import current_app, has_app_context


CLOCK_EXTENSION_KEY = "bazaar.clock"


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SystemClock:
    """Wall clock. Returns UTC-naive datetimes."""

    def now(self) -> datetime:
        return utcnow()


class FixedClock:
    """
    Manually driven clock for deterministic expiry checks.

    advance() moves time forward; set() jumps to an absolute instant.
    """

    def __init__(self, at: datetime | None = None):
        self._at = to_naive_utc(at) if at is not None else utcnow()

    def now(self) -> datetime:
        return self._at

    def set(self, at: datetime) -> None:
        self._at = to_naive_utc(at)

    def advance(self, **kwargs) -> datetime:
        self._at = self._at + timedelta(**kwargs)
        return self._at


_SYSTEM_CLOCK = SystemClock()


def get_clock():
    """Clock installed on the current app, falling back to the system clock."""
    if has_app_context():
        clock = current_app.extensions.get(CLOCK_EXTENSION_KEY)
        if clock is not None:
            return clock
    return _SYSTEM_CLOCK


def install_clock(app, clock) -> None:
    app.extensions[CLOCK_EXTENSION_KEY] = clock


def to_naive_utc(dt: datetime) -> datetime:
    """Convert an aware datetime to UTC-naive; naive values are taken as UTC."""
    if dt.tzinfo is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


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

    return to_naive_utc(datetime.fromisoformat(s))


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
