"""Calendar-naive date helpers.

Goal windows are stored as local wall-clock strings ("YYYY-MM-DDTHH:MM")
with no timezone attached. Everything here works on naive datetimes so
that adding a day always lands on the same wall-clock time.
"""

import time
from datetime import date, datetime, timedelta


def format_iso_date(d: date) -> str:
    """Format as YYYY-MM-DD."""
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def format_local_datetime(dt: datetime) -> str:
    """Format as YYYY-MM-DDTHH:MM (seconds dropped)."""
    return f"{format_iso_date(dt)}T{dt.hour:02d}:{dt.minute:02d}"


def parse_local_datetime(value: str) -> datetime:
    """
    Parse a local datetime string without timezone conversion.

    Accepts "YYYY-MM-DDTHH:MM" and tolerates a missing time part
    ("YYYY-MM-DD" parses as midnight).

    Args:
        value: Local datetime string

    Returns:
        Naive datetime

    Raises:
        ValueError: If the string is not a calendar date/time
    """
    date_part, _, time_part = value.partition("T")
    pieces = date_part.split("-")
    if len(pieces) != 3:
        raise ValueError(f"Not a local datetime: {value!r}")
    year, month, day = (int(p) for p in pieces)

    hour, minute = 0, 0
    if time_part:
        clock = time_part.split(":")
        hour = int(clock[0])
        if len(clock) > 1:
            minute = int(clock[1])

    try:
        return datetime(year, month, day, hour, minute)
    except OverflowError as e:
        raise ValueError(f"Not a local datetime: {value!r}") from e


def is_local_datetime(value) -> bool:
    """True for a string with a date/time separator that parses."""
    if not isinstance(value, str) or "T" not in value:
        return False
    try:
        parse_local_datetime(value)
    except (ValueError, OverflowError):
        return False
    return True


def is_iso_date(value) -> bool:
    """True for a legacy date-only string (first ten characters parse)."""
    if not isinstance(value, str) or len(value) < 10:
        return False
    try:
        date.fromisoformat(value[:10])
    except ValueError:
        return False
    return True


def add_hours(dt: datetime, hours: float) -> datetime:
    return dt + timedelta(hours=hours)


def add_days(dt: datetime, days: float) -> datetime:
    return dt + timedelta(days=days)


def add_months(dt: datetime, months: int) -> datetime:
    """
    Add calendar months with day rollover.

    A day that doesn't exist in the target month spills into the next
    one, so Jan 31 + 1 month is Mar 3 (Mar 2 in leap years).
    """
    index = dt.year * 12 + (dt.month - 1) + months
    year, month = divmod(index, 12)
    first = dt.replace(year=year, month=month + 1, day=1)
    return first + timedelta(days=dt.day - 1)


def add_years(dt: datetime, years: int) -> datetime:
    return add_months(dt, years * 12)


def start_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(dt: datetime) -> datetime:
    """Start of the week containing dt (Sunday 00:00)."""
    # Python weekday: Monday=0, Sunday=6
    days_since_sunday = (dt.weekday() + 1) % 7
    return start_of_day(dt) - timedelta(days=days_since_sunday)


def day_key(dt: datetime) -> str:
    return format_iso_date(dt)


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def from_ms(ms: float) -> datetime:
    """Epoch milliseconds to a naive local datetime."""
    return datetime.fromtimestamp(ms / 1000)


def to_ms(dt: datetime) -> int:
    """Naive local datetime to epoch milliseconds."""
    return int(dt.timestamp() * 1000)
