"""
eph_backend/core/clock.py
Wall-clock source for lifecycle and registration decisions.

All timestamps are naive UTC, matching the DateTime columns.
"""
from datetime import datetime, timezone
from typing import Optional


class Clock:
    """System clock."""

    def now(self) -> datetime:
        return datetime.utcnow()


class FixedClock(Clock):
    """Clock pinned to a moment. Used by tests and replay tooling."""

    def __init__(self, moment: datetime):
        self.moment = moment

    def now(self) -> datetime:
        return self.moment

    def set(self, moment: datetime) -> None:
        self.moment = moment


_system_clock = Clock()


def get_clock() -> Clock:
    """FastAPI dependency. Override in tests via app.dependency_overrides."""
    return _system_clock


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Drop tzinfo after converting to UTC so values compare against the stored columns."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
