"""Tests for duration rules and window computation."""

import pytest

from routineland.goals.models import DurationUnit, GoalValidationError, Timeframe
from routineland.goals.policy import (
    compute_end_at,
    policy_for,
    validate_duration,
    validate_start,
    validate_window,
)


class TestValidateDuration:
    def test_weekly_above_max_is_rejected(self):
        with pytest.raises(GoalValidationError) as exc_info:
            validate_duration(Timeframe.WEEKLY, "8")
        assert "between 1 and 7" in exc_info.value.message

    def test_weekly_max_is_accepted(self):
        assert validate_duration(Timeframe.WEEKLY, "7") == 7

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_empty_is_rejected(self, value):
        with pytest.raises(GoalValidationError):
            validate_duration(Timeframe.DAILY, value)

    @pytest.mark.parametrize("value", ["abc", "nan", "inf", True])
    def test_non_numbers_are_rejected(self, value):
        with pytest.raises(GoalValidationError):
            validate_duration(Timeframe.DAILY, value)

    def test_fractional_hours_allowed(self):
        assert validate_duration(Timeframe.DAILY, "1.5") == 1.5

    def test_monthly_uses_days(self):
        assert policy_for(Timeframe.MONTHLY).unit == DurationUnit.DAYS
        assert validate_duration(Timeframe.MONTHLY, 31) == 31
        with pytest.raises(GoalValidationError):
            validate_duration(Timeframe.MONTHLY, 32)


class TestComputeEndAt:
    def test_seven_days_rolls_over_month(self):
        assert compute_end_at("2024-02-26T10:00", DurationUnit.DAYS, 7) == "2024-03-04T10:00"

    def test_hours(self):
        assert compute_end_at("2024-03-13T22:00", DurationUnit.HOURS, 3) == "2024-03-14T01:00"

    def test_weeks_are_seven_days(self):
        assert compute_end_at("2024-01-01T00:00", DurationUnit.WEEKS, 2) == "2024-01-15T00:00"

    def test_months_follow_calendar(self):
        assert compute_end_at("2024-01-31T00:00", DurationUnit.MONTHS, 1) == "2024-03-02T00:00"
        assert compute_end_at("2024-03-01T00:00", DurationUnit.MONTHS, 12) == "2025-03-01T00:00"


class TestWindow:
    def test_zero_length_window_is_rejected(self):
        with pytest.raises(GoalValidationError):
            validate_window("2024-03-13T08:00", "2024-03-13T08:00")

    def test_positive_window_passes(self):
        validate_window("2024-03-13T08:00", "2024-03-13T09:00")

    def test_start_is_normalized(self):
        assert validate_start("2024-3-5T9:05") == "2024-03-05T09:05"

    def test_bad_start_is_rejected(self):
        with pytest.raises(GoalValidationError):
            validate_start("someday")

    def test_start_year_beyond_any_date_is_rejected(self):
        with pytest.raises(GoalValidationError):
            validate_start("99999999999999999999-01-01T00:00")
