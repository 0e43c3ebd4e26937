"""Departure-time helpers.

A pool stores its departure as a calendar ``date`` plus an ``HH:MM`` string,
both local to the service time zone.  Everything else in the domain works
with timezone-aware datetimes.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

HHMM_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")


def parse_hhmm(value: str) -> time:
    if not HHMM_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM format")
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def departure_at(day: date, hhmm: str, tz_name: str) -> datetime:
    """Combine a pool's date and time into an aware datetime."""
    return datetime.combine(day, parse_hhmm(hhmm), tzinfo=ZoneInfo(tz_name))


def as_utc(value: datetime) -> datetime:
    """Normalise a stored timestamp; naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def minutes_until(departure: datetime, now: datetime) -> float:
    return (departure - now).total_seconds() / 60
