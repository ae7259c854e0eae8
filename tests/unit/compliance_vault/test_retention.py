"""
Record Retention Unit Tests

Tests for retention rules, expiry dates and FLSA workweek records.
"""

from datetime import date, timedelta
from decimal import Decimal

from compliance_vault.retention import (
    RecordKind,
    build_flsa_record,
    get_payroll_retention_policy,
    get_retention_policy,
    retention_expires_on,
)
from engines.schemas.policy import RecordKeepingPolicy
from tests.factories import MONDAY, make_week


class TestRetentionPolicies:
    """Test retention periods and required contents."""

    def test_time_records(self, policy_set):
        policy = get_retention_policy(policy_set)

        assert policy.record_type == RecordKind.TIME
        assert policy.minimum_retention_years >= 3
        assert policy.includes_pay is True
        assert policy.includes_hours_worked is True
        assert policy.includes_deductions is True

    def test_payroll_records(self, policy_set):
        policy = get_payroll_retention_policy(policy_set)

        assert policy.record_type == RecordKind.PAYROLL
        assert policy.minimum_retention_years >= 2
        assert policy.includes_wage_tables is True
        assert policy.includes_benefits is True

    def test_default_policy_set_is_used(self):
        assert get_retention_policy().minimum_retention_years == 3

    def test_state_rule_extends_retention(self, policy_set):
        policies = policy_set.with_policies(
            RecordKeepingPolicy(
                name="NY Records", state="NY", effective_date=date(2010, 1, 1),
                time_record_retention_years=6,
            )
        )

        assert get_retention_policy(policies, state="NY").minimum_retention_years == 6
        assert get_retention_policy(policies, state="TX").minimum_retention_years == 3


class TestRetentionExpiry:
    """Test expiry date arithmetic."""

    def test_time_record_expiry(self, policy_set):
        assert retention_expires_on(date(2024, 3, 4), "time", policy_set) == date(2027, 3, 4)

    def test_payroll_record_expiry(self, policy_set):
        assert retention_expires_on(date(2024, 3, 4), RecordKind.PAYROLL, policy_set) == date(2026, 3, 4)

    def test_leap_day(self, policy_set):
        assert retention_expires_on(date(2024, 2, 29), "time", policy_set) == date(2027, 2, 28)


class TestFLSARecord:
    """Test the per-workweek FLSA record."""

    def test_record_fields(self, store, overtime_service):
        for entry in make_week([9, 9, 9, 9, 9]):
            store.add_entry(entry)
        weekly = overtime_service.calculate_weekly_overtime(
            "emp-001", MONDAY.date(), MONDAY.date() + timedelta(days=6)
        )

        record = build_flsa_record(weekly, Decimal("20.00"), employee_name="Jane Doe")

        assert record.employee_id == "emp-001"
        assert record.employee_name == "Jane Doe"
        assert record.workweek_start_date == date(2024, 3, 4)
        assert record.hours_worked_each_day[date(2024, 3, 4)] == Decimal("9.00")
        assert record.total_hours_worked_per_week == Decimal("45.00")
        assert record.regular_rate_of_pay == Decimal("20.00")
        assert record.total_regular_earnings == Decimal("800.00")
        assert record.total_overtime_earnings == Decimal("150.00")
        assert record.total_weekly_earnings == Decimal("950.00")
        assert record.pay_period_end_date == date(2024, 3, 10)
