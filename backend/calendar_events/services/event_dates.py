from __future__ import annotations

import re
from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# "2025-10-23T09:30:00+03:00[Europe/Kyiv]": offset stamp plus optional IANA region.
_ZONED_PATTERN = re.compile(r"^\s*(?P<stamp>[^\[\]]+?)(?:\[(?P<region>[^\[\]]+)\])?\s*$")


def parse_zoned_datetime(value: str | datetime) -> datetime:
    """
    Parse an ISO-8601 timestamp that carries an offset and/or a bracketed region.

    With both present the instant comes from the offset and the region becomes
    the attached zone. A region alone pins the local wall time to that zone.
    Timestamps with neither are rejected.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValueError("timestamp must include a UTC offset or time zone")
        return value

    if not isinstance(value, str):
        raise ValueError("timestamp must be an ISO-8601 string")

    match = _ZONED_PATTERN.match(value)
    if match is None:
        raise ValueError(f"Invalid zoned timestamp: {value}")

    try:
        parsed = datetime.fromisoformat(match.group("stamp"))
    except ValueError as exc:
        raise ValueError(f"Invalid zoned timestamp: {value}") from exc

    region = match.group("region")
    if region is None:
        if parsed.tzinfo is None:
            raise ValueError("timestamp must include a UTC offset or time zone")
        return parsed

    try:
        zone = ZoneInfo(region)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown time zone: {region}") from exc

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=zone)
    return parsed.astimezone(zone)


def to_instant(value: datetime | None) -> datetime | None:
    """Drop the attached zone, keeping the absolute instant (as UTC)."""
    if value is None:
        return None
    return value.astimezone(timezone.utc)


def from_instant(value: datetime | None) -> datetime | None:
    """Surface a stored instant in UTC; storage keeps no zone of its own."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def shift_months(month_start: date, offset: int) -> date:
    # Normalize any input date to month start for stable month arithmetic.
    absolute_index = (month_start.year * 12 + (month_start.month - 1)) + offset
    next_year, month_zero_based = divmod(absolute_index, 12)
    return date(next_year, month_zero_based + 1, 1)


def _local_midnight(day: date, zone) -> datetime:
    return datetime.combine(day, time.min, tzinfo=zone).astimezone(timezone.utc)


def month_window(reference: datetime) -> tuple[datetime, datetime]:
    """
    Build [start_of_month, start_of_next_month) around `reference`.

    Only year, month and zone of the reference matter. Both bounds are local
    midnights in that zone, returned as UTC instants. Raises ValueError when
    a bound falls outside the years datetime can hold (1..9999).
    """
    zone = reference.tzinfo
    try:
        month_start = date(reference.year, reference.month, 1)
        next_month_start = shift_months(month_start, 1)
        return _local_midnight(month_start, zone), _local_midnight(next_month_start, zone)
    except (OverflowError, ValueError) as exc:
        raise ValueError(f"No month window for {reference.isoformat()}: outside the supported date range") from exc


def is_same_day_span(start: datetime | None, finish: datetime | None) -> bool:
    """
    True when start is strictly before finish and both share a calendar date.

    Dates are read in each timestamp's own zone. Missing endpoints pass; they
    are reported by required-field checks instead.
    """
    if start is None or finish is None:
        return True

    try:
        same_day = start.date() == finish.date()
        return same_day and to_instant(start) < to_instant(finish)
    except (AttributeError, TypeError, ValueError):
        return False
