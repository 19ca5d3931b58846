"""Per-timeframe duration rules and goal window arithmetic."""

import math
from dataclasses import dataclass
from typing import Union

from .dates import (
    add_days,
    add_hours,
    add_months,
    format_local_datetime,
    parse_local_datetime,
)
from .models import DurationUnit, GoalValidationError, Timeframe


@dataclass(frozen=True)
class DurationPolicy:
    """Allowed duration unit and inclusive range for a timeframe."""

    unit: DurationUnit
    min: float
    max: float
    default: float
    label: str


POLICIES: dict[Timeframe, DurationPolicy] = {
    Timeframe.DAILY: DurationPolicy(DurationUnit.HOURS, 0, 24, 24, "hours"),
    Timeframe.WEEKLY: DurationPolicy(DurationUnit.DAYS, 1, 7, 7, "days"),
    Timeframe.MONTHLY: DurationPolicy(DurationUnit.DAYS, 1, 31, 30, "days"),
    Timeframe.YEARLY: DurationPolicy(DurationUnit.MONTHS, 1, 12, 12, "months"),
}


def policy_for(timeframe: Timeframe) -> DurationPolicy:
    return POLICIES[Timeframe(timeframe)]


def validate_duration(timeframe: Timeframe, raw_value: Union[str, int, float, None]) -> float:
    """
    Parse and range-check a user-entered duration.

    Args:
        timeframe: Timeframe whose policy applies
        raw_value: Form value (string or number)

    Returns:
        The duration as a number

    Raises:
        GoalValidationError: If empty, not a finite number, or out of range
    """
    policy = policy_for(timeframe)

    if raw_value is None or (isinstance(raw_value, str) and raw_value.strip() == ""):
        raise GoalValidationError(f"Enter a duration ({policy.label}).")

    if isinstance(raw_value, bool):
        raise GoalValidationError("Duration must be a number.")

    try:
        value = float(raw_value.strip() if isinstance(raw_value, str) else raw_value)
    except (TypeError, ValueError):
        raise GoalValidationError("Duration must be a number.")

    if not math.isfinite(value):
        raise GoalValidationError("Duration must be a number.")

    if value < policy.min or value > policy.max:
        raise GoalValidationError(
            f"Invalid duration. Must be between {policy.min:g} and "
            f"{policy.max:g} ({policy.label})."
        )

    return int(value) if value.is_integer() else value


def compute_end_at(start_at: str, unit: DurationUnit, value: float) -> str:
    """
    Compute the window end from its start.

    Hours and days are exact, weeks are seven days, months use calendar
    rollover (fractional months are truncated).
    """
    start = parse_local_datetime(start_at)
    unit = DurationUnit(unit)

    if unit == DurationUnit.HOURS:
        end = add_hours(start, value)
    elif unit == DurationUnit.DAYS:
        end = add_days(start, value)
    elif unit == DurationUnit.WEEKS:
        end = add_days(start, value * 7)
    else:
        end = add_months(start, int(value))

    return format_local_datetime(end)


def validate_start(start_at) -> str:
    """Reject a start that isn't a local datetime; return it zero-padded."""
    if not isinstance(start_at, str):
        raise GoalValidationError("Pick a start date and time.")
    try:
        start = parse_local_datetime(start_at)
    except (ValueError, OverflowError):
        raise GoalValidationError("Pick a start date and time.")
    return format_local_datetime(start)


def validate_window(start_at: str, end_at: str) -> None:
    """Raise unless end_at is strictly after start_at."""
    if not parse_local_datetime(end_at) > parse_local_datetime(start_at):
        raise GoalValidationError("The end must be after the start.")
