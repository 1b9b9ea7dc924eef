"""Shared utility functions."""

from __future__ import annotations

import re
from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
TIME_OF_DAY_FORMAT = "%H:%M"

_LEADING_HOUR = re.compile(r"^\s*(\d{1,2})")


def utc_now() -> datetime:
    """Return aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_today() -> date:
    """Return current UTC calendar date."""
    return utc_now().date()


def ensure_utc(dt: datetime) -> datetime:
    """Normalize datetime to UTC timezone."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Quantize amount to 2 decimal places."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def parse_time_of_day(value: str | time | None) -> time | None:
    """Parse "HH:MM" or "HH:MM:SS" strings; return None when unparseable."""
    if value is None or isinstance(value, time):
        return value
    for fmt in (TIME_OF_DAY_FORMAT, "%H:%M:%S"):
        try:
            return datetime.strptime(value.strip(), fmt).time()
        except ValueError:
            continue
    return None


def parse_leading_hour(value: str | None, default: int) -> int:
    """Read the hour component of a loosely formatted time string."""
    if not value:
        return default
    match = _LEADING_HOUR.match(value)
    if match is None:
        return default
    return int(match.group(1))


def format_time_of_day(value: time) -> str:
    return value.strftime(TIME_OF_DAY_FORMAT)
