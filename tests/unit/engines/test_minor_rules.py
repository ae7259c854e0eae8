"""
Minor Employee Restriction Unit Tests

Tests for daily hour caps and allowed working windows for employees
under 18.
"""

from datetime import datetime
from decimal import Decimal

from engines.schemas.compliance import ViolationCode
from engines.schemas.time_entry import EmployeeType
from tests.factories import make_entry, make_profile


class TestMinorHours:
    """Test daily hour caps."""

    def test_school_day_over_three_hours(self, validator):
        entry = make_entry(datetime(2024, 3, 4, 14), 4.5, employee_age=16, school_day=True)

        result = validator.validate_minor_restrictions(entry)

        assert result.violations == [ViolationCode.SCHOOL_DAY_HOURS_EXCEEDED]
        assert result.applicable is True
        assert result.maximum_allowed == Decimal("3")
        assert result.hours_worked == Decimal("4.50")

    def test_non_school_day_over_eight_hours(self, validator):
        entry = make_entry(datetime(2024, 7, 6, 9), 9.5, employee_age=16)

        result = validator.validate_minor_restrictions(entry)

        assert result.violations == [ViolationCode.NON_SCHOOL_DAY_HOURS_EXCEEDED]
        assert result.maximum_allowed == Decimal("8")

    def test_within_limits(self, validator):
        entry = make_entry(datetime(2024, 3, 4, 15), 3, employee_age=15, school_day=True)

        result = validator.validate_minor_restrictions(entry)

        assert result.compliant is True


class TestMinorTimeWindow:
    """Test the allowed time-of-day window."""

    def test_school_year_evening_shift(self, validator):
        entry = make_entry(datetime(2024, 3, 8, 20), 3, employee_age=16, school_year=True)

        result = validator.validate_minor_restrictions(entry)

        assert result.violations == [ViolationCode.PROHIBITED_HOURS]
        assert result.clock_in_time == "20:00"
        assert result.clock_out_time == "23:00"
        assert result.allowed_start_time == "07:00"
        assert result.allowed_end_time == "19:00"

    def test_summer_allows_until_nine(self, validator):
        entry = make_entry(datetime(2024, 7, 6, 17), 4, employee_age=16)

        result = validator.validate_minor_restrictions(entry)

        assert result.compliant is True
        assert result.allowed_end_time == "21:00"

    def test_early_start(self, validator):
        entry = make_entry(datetime(2024, 7, 6, 6), 4, employee_age=16)

        result = validator.validate_minor_restrictions(entry)

        assert result.violations == [ViolationCode.PROHIBITED_HOURS]

    def test_hours_and_window_violations_together(self, validator):
        entry = make_entry(
            datetime(2024, 3, 4, 16), 4, employee_age=16, school_day=True, school_year=True
        )

        result = validator.validate_minor_restrictions(entry)

        assert result.violations == [
            ViolationCode.SCHOOL_DAY_HOURS_EXCEEDED,
            ViolationCode.PROHIBITED_HOURS,
        ]
        assert result.violation == ViolationCode.SCHOOL_DAY_HOURS_EXCEEDED


class TestApplicability:
    """Test who the restrictions apply to."""

    def test_adult_is_not_restricted(self, validator):
        entry = make_entry(datetime(2024, 3, 4, 20), 10, employee_age=18, school_day=True)

        result = validator.validate_minor_restrictions(entry)

        assert result.applicable is False
        assert result.compliant is True

    def test_minor_type_without_age(self, validator):
        entry = make_entry(
            datetime(2024, 3, 4, 14), 4.5, employee_type=EmployeeType.MINOR, school_day=True
        )

        result = validator.validate_minor_restrictions(entry)

        assert result.applicable is True
        assert result.violation == ViolationCode.SCHOOL_DAY_HOURS_EXCEEDED

    def test_minor_type_from_profile(self, store, validator):
        store.add_profile(make_profile(employee_type=EmployeeType.MINOR))
        entry = make_entry(datetime(2024, 7, 6, 9), 9.5)

        result = validator.validate_minor_restrictions(entry)

        assert result.applicable is True

    def test_no_age_and_ordinary_type(self, validator):
        result = validator.validate_minor_restrictions(make_entry(datetime(2024, 3, 4, 9), 8))

        assert result.applicable is False
