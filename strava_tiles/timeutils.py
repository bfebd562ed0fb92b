"""ISO-8601 timestamp parsing for GPX time tags.

Conversion uses explicit calendar arithmetic rather than ``datetime`` so the
result is independent of the local timezone database. A trailing ``Z`` or
numeric offset is removed but not applied: ``10:00:00+02:00`` is read as
10:00 UTC.
"""

from __future__ import annotations

import logging

from .errors import TimeParseError

LOGGER = logging.getLogger(__name__)

# Days elapsed before the first of each month in a non-leap year.
_CUMULATIVE_MONTH_DAYS = (0, 31, 59, 90, 120, 151, 181, 212, 243, 273, 304, 334)
_MONTH_LENGTHS = (31, 29, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)


def is_leap_year(year: int) -> bool:
    return (year % 4 == 0 and year % 100 != 0) or year % 400 == 0


def _days_in_year(year: int) -> int:
    return 366 if is_leap_year(year) else 365


def _strip_offset(value: str) -> str:
    value = value.rstrip("Z").rstrip("z")
    plus = value.rfind("+")
    if plus != -1:
        return value[:plus]
    minus = value.rfind("-")
    # Dashes at or before index 10 belong to the date part.
    if minus > 10:
        return value[:minus]
    return value


def _int_parts(text: str, sep: str) -> list[int]:
    parts = []
    for piece in text.split(sep):
        try:
            parts.append(int(piece))
        except ValueError as exc:
            raise TimeParseError(f"Non-numeric component {piece!r} in {text!r}") from exc
    return parts


def days_since_epoch(year: int, month: int, day: int) -> int:
    """Return whole days between 1970-01-01 and the given calendar date."""

    if not 1 <= month <= 12:
        raise TimeParseError(f"Month out of range: {month}")
    if not 1 <= day <= _MONTH_LENGTHS[month - 1]:
        raise TimeParseError(f"Day out of range: {day}")
    days = 0
    if year >= 1970:
        for y in range(1970, year):
            days += _days_in_year(y)
    else:
        for y in range(year, 1970):
            days -= _days_in_year(y)
    days += _CUMULATIVE_MONTH_DAYS[month - 1]
    if month > 2 and is_leap_year(year):
        days += 1
    return days + day - 1


def parse_iso8601(value: str) -> int:
    """Convert ``YYYY-MM-DDTHH:MM[:SS][.fraction][Z|±HH:MM]`` to Unix seconds.

    Raises:
        TimeParseError: If the value does not have a date and a time part or
            any component is out of range.
    """

    text = _strip_offset(value.strip())
    parts = text.split("T")
    if len(parts) != 2:
        raise TimeParseError(f"Missing date/time separator in {value!r}")
    date_parts = _int_parts(parts[0], "-")
    time_text = parts[1].split(".")[0]
    time_parts = _int_parts(time_text, ":")
    if len(date_parts) < 3 or len(time_parts) < 2:
        raise TimeParseError(f"Incomplete timestamp {value!r}")

    year, month, day = date_parts[:3]
    hour, minute = time_parts[:2]
    second = time_parts[2] if len(time_parts) > 2 else 0
    if not (0 <= hour < 24 and 0 <= minute < 60 and 0 <= second <= 60):
        raise TimeParseError(f"Time of day out of range in {value!r}")

    days = days_since_epoch(year, month, day)
    return days * 86400 + hour * 3600 + minute * 60 + second


def parse_iso8601_or_zero(value: str) -> int:
    """Lenient variant of :func:`parse_iso8601` returning epoch zero on failure."""

    try:
        return parse_iso8601(value)
    except TimeParseError as exc:
        LOGGER.warning("Unparseable timestamp treated as epoch zero: %s", exc)
        return 0


__all__ = [
    "days_since_epoch",
    "is_leap_year",
    "parse_iso8601",
    "parse_iso8601_or_zero",
]
