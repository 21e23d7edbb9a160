from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Tuple

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class InvalidChallengeDate(ValueError):
    """Raised when a caller hands over something that is not a ``YYYY-MM-DD`` date."""


def parse_challenge_date(value: str) -> date:
    if not isinstance(value, str) or not _ISO_DATE.match(value):
        raise InvalidChallengeDate(f"Expected a YYYY-MM-DD date, got {value!r}")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise InvalidChallengeDate(f"Invalid calendar date {value!r}") from exc


def _as_utc(moment: datetime | None) -> datetime:
    if moment is None:
        return datetime.now(timezone.utc)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def to_reference_day(moment: datetime | None = None, *, offset_hours: int = -5) -> date:
    """Calendar day of *moment* in the reference zone.

    The reference zone is a constant offset from UTC (US Eastern standard
    time by default). Daylight saving is not modelled, so during EDT the day
    rolls over at 01:00 local wall-clock time. Naive datetimes are read as UTC.
    """

    return (_as_utc(moment) + timedelta(hours=offset_hours)).date()


def next_reset_at(moment: datetime | None = None, *, offset_hours: int = -5) -> datetime:
    """UTC instant of the next reference-zone midnight after *moment*."""

    tomorrow = to_reference_day(moment, offset_hours=offset_hours) + timedelta(days=1)
    midnight = datetime(tomorrow.year, tomorrow.month, tomorrow.day, tzinfo=timezone.utc)
    return midnight - timedelta(hours=offset_hours)


def time_until_reset(moment: datetime | None = None, *, offset_hours: int = -5) -> Tuple[int, int, int]:
    now = _as_utc(moment)
    remaining = int((next_reset_at(now, offset_hours=offset_hours) - now).total_seconds())
    hours, remainder = divmod(max(0, remaining), 3600)
    minutes, seconds = divmod(remainder, 60)
    return hours, minutes, seconds


def days_between(start: date, end: date) -> int:
    return (end - start).days


def display_date(value: date) -> str:
    """Human label used by history views, e.g. ``February 20, 2024``."""

    return f"{value:%B} {value.day}, {value.year}"


__all__ = [
    "InvalidChallengeDate",
    "days_between",
    "display_date",
    "next_reset_at",
    "parse_challenge_date",
    "time_until_reset",
    "to_reference_day",
]
