"""
Break Compliance Unit Tests

Tests for meal break requirements, meal timing, rest breaks and rest
break pay.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from engines.errors import MissingTimestampError
from engines.schemas.compliance import ViolationCode
from engines.schemas.time_entry import BreakType
from tests.factories import make_break, make_entry


def short_break(start: datetime, paid: bool = True):
    return make_break(start, minutes=10, break_type=BreakType.SHORT_BREAK, paid=paid)


class TestMealBreakRequirements:
    """Test meal break presence and length."""

    def test_seven_hour_shift_without_meal_break(self, validator):
        entry = make_entry(datetime(2024, 3, 4, 9), 7)

        result = validator.validate_break_requirements(entry)

        assert result.compliant is False
        assert result.violation == ViolationCode.MISSING_MEAL_BREAK
        assert result.meal_break_required is True
        assert result.required_break_minutes == 30
        assert result.actual_break_minutes == Decimal("0")
        assert result.shift_hours == Decimal("7.00")

    def test_paid_lunch_is_not_a_meal_break(self, validator):
        entry = make_entry(
            datetime(2024, 3, 4, 9), 7,
            breaks=[make_break(datetime(2024, 3, 4, 12), paid=True)],
        )

        result = validator.validate_break_requirements(entry)

        assert result.violation == ViolationCode.MISSING_MEAL_BREAK
        assert result.actual_break_minutes == Decimal("0")
        assert validator.validate_break_timing(entry).meal_break_taken is False

    def test_meal_break_too_short(self, validator):
        entry = make_entry(
            datetime(2024, 3, 4, 9), 8,
            breaks=[make_break(datetime(2024, 3, 4, 12), minutes=15)],
        )

        result = validator.validate_break_requirements(entry)

        assert result.violations == [ViolationCode.MEAL_BREAK_TOO_SHORT]
        assert result.actual_break_minutes == Decimal("15.00")

    def test_thirty_minute_meal_break_is_compliant(self, validator):
        entry = make_entry(
            datetime(2024, 3, 4, 9), 8.5,
            breaks=[make_break(datetime(2024, 3, 4, 12))],
        )

        result = validator.validate_break_requirements(entry)

        assert result.compliant is True
        assert result.violation is None

    def test_short_shift_needs_no_meal_break(self, validator):
        entry = make_entry(datetime(2024, 3, 4, 9), 4)

        result = validator.validate_break_requirements(entry)

        assert result.compliant is True
        assert result.meal_break_required is False
        assert result.required_break_minutes == 0

    def test_waiver_with_consent_under_six_hours(self, validator):
        entry = make_entry(
            datetime(2024, 3, 4, 9), 5.5,
            meal_break_waived=True, waiver_consent=True,
        )

        result = validator.validate_break_requirements(entry)

        assert result.compliant is True
        assert result.waiver_applied is True
        assert result.waiver_valid is True

    def test_waiver_without_consent_is_invalid(self, validator):
        entry = make_entry(datetime(2024, 3, 4, 9), 5.5, meal_break_waived=True)

        result = validator.validate_break_requirements(entry)

        assert result.violations == [ViolationCode.MISSING_MEAL_BREAK]
        assert result.waiver_applied is False
        assert result.waiver_valid is False

    def test_waiver_not_allowed_on_long_shift(self, validator):
        entry = make_entry(
            datetime(2024, 3, 4, 9), 7,
            meal_break_waived=True, waiver_consent=True,
        )

        result = validator.validate_break_requirements(entry)

        assert result.waiver_valid is False
        assert result.violation == ViolationCode.MISSING_MEAL_BREAK

    def test_open_entry_raises(self, validator):
        with pytest.raises(MissingTimestampError):
            validator.validate_break_requirements(make_entry(hours=None))


class TestMealBreakTiming:
    """Test meal break start deadline."""

    def test_lunch_after_six_hours_is_too_late(self, validator):
        entry = make_entry(
            datetime(2024, 3, 4, 8), 9.5,
            breaks=[make_break(datetime(2024, 3, 4, 14))],
        )

        result = validator.validate_break_timing(entry)

        assert result.violation == ViolationCode.MEAL_BREAK_TOO_LATE
        assert result.meal_break_taken is True
        assert result.break_started_after_hours == Decimal("6.00")
        assert result.maximum_hours == Decimal("5")

    def test_lunch_at_four_hours_is_on_time(self, validator):
        entry = make_entry(
            datetime(2024, 3, 4, 8), 8.5,
            breaks=[make_break(datetime(2024, 3, 4, 12))],
        )

        result = validator.validate_break_timing(entry)

        assert result.compliant is True
        assert result.break_started_after_hours == Decimal("4.00")

    def test_no_meal_break_is_not_a_timing_violation(self, validator):
        result = validator.validate_break_timing(make_entry(datetime(2024, 3, 4, 8), 9))

        assert result.compliant is True
        assert result.meal_break_taken is False


class TestRestBreaks:
    """Test rest breaks per worked interval."""

    def test_nine_hours_with_only_lunch(self, validator):
        entry = make_entry(
            datetime(2024, 3, 4, 8), 9.5,
            breaks=[make_break(datetime(2024, 3, 4, 12))],
        )

        result = validator.validate_rest_breaks(entry)

        assert result.worked_hours == Decimal("9.00")
        assert result.required_rest_breaks == 2
        assert result.actual_rest_breaks == 0
        assert result.missing_rest_breaks == 2
        assert result.violation == ViolationCode.MISSING_REST_BREAK

    def test_two_rest_breaks_in_eight_hours(self, validator):
        entry = make_entry(
            datetime(2024, 3, 4, 9), 8,
            breaks=[
                short_break(datetime(2024, 3, 4, 11)),
                short_break(datetime(2024, 3, 4, 15)),
            ],
        )

        result = validator.validate_rest_breaks(entry)

        assert result.compliant is True
        assert result.required_rest_breaks == 2
        assert result.rest_break_minutes == 10

    def test_under_four_hours_needs_none(self, validator):
        result = validator.validate_rest_breaks(make_entry(datetime(2024, 3, 4, 9), 3.5))

        assert result.required_rest_breaks == 0
        assert result.compliant is True


class TestRestBreakPay:
    """Test that rest breaks are paid."""

    def test_unpaid_rest_break(self, validator):
        entry = make_entry(
            datetime(2024, 3, 4, 9), 8,
            breaks=[short_break(datetime(2024, 3, 4, 11), paid=False)],
        )

        result = validator.validate_break_pay(entry)

        assert result.violation == ViolationCode.UNPAID_REST_BREAK
        assert result.unpaid_rest_breaks == 1

    def test_paid_rest_break(self, validator):
        entry = make_entry(
            datetime(2024, 3, 4, 9), 8,
            breaks=[short_break(datetime(2024, 3, 4, 11))],
        )

        result = validator.validate_break_pay(entry)

        assert result.compliant is True
        assert result.rest_breaks == 1

    def test_unpaid_meal_break_is_fine(self, validator):
        entry = make_entry(
            datetime(2024, 3, 4, 9), 8.5,
            breaks=[make_break(datetime(2024, 3, 4, 12))],
        )

        assert validator.validate_break_pay(entry).compliant is True
