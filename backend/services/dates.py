"""Date helpers: server-clock resolution of proposed dates and age arithmetic."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite returns them naive)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def add_minutes(value: datetime, minutes: int) -> datetime:
    return value + timedelta(minutes=minutes)


def years_before(day: date, years: int) -> date:
    """Same calendar day ``years`` earlier; Feb 29 falls back to Feb 28."""
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        return day.replace(year=day.year - years, month=2, day=28)


def age_on(birth_date: date, day: date) -> int:
    """Completed years between ``birth_date`` and ``day``."""
    age = day.year - birth_date.year
    if (day.month, day.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def resolve_proposed_date(
    proposed_date: Optional[datetime],
    offset_minutes: Optional[int],
    now: datetime,
) -> Optional[datetime]:
    """Absolute date as given, or ``now + offset_minutes``; None when neither is set."""
    if offset_minutes is not None:
        return add_minutes(now, offset_minutes)
    if proposed_date is not None:
        return as_utc(proposed_date)
    return None
