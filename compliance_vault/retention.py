"""
Compliance Vault Retention

Record-keeping requirements for time and payroll records: how long each
kind must be kept, what it must contain, and the per-workweek data points
an FLSA time record carries.

Retention periods come from the RECORD_KEEPING policy in force on the
record date, so a longer state rule overrides the federal minimum.
"""

import logging
from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from engines.schemas.time_engine import WeeklyOvertimeResult
from engines.services.policy_catalog import PolicySet, build_default_policy_set
from engines.services.time_calculator import calculate_overtime_pay

logger = logging.getLogger(__name__)


class RecordKind(str, Enum):
    TIME = "time"
    PAYROLL = "payroll"


class RetentionPolicy(BaseModel):
    """How long a record kind is kept and what it must include."""

    record_type: RecordKind
    minimum_retention_years: int = Field(..., ge=1)
    policy_name: str

    # Time records (29 CFR 516.2)
    includes_pay: bool = False
    includes_hours_worked: bool = False
    includes_deductions: bool = False

    # Payroll records (29 CFR 516.6)
    includes_wage_tables: bool = False
    includes_benefits: bool = False


class FLSARecord(BaseModel):
    """Per-workweek record data points required by 29 CFR 516.2."""

    employee_id: str
    employee_name: str | None = None
    workweek_start_date: date
    hours_worked_each_day: dict[date, Decimal] = Field(
        default_factory=dict, description="Worked hours keyed by calendar day"
    )
    total_hours_worked_per_week: Decimal
    regular_rate_of_pay: Decimal
    total_regular_earnings: Decimal
    total_overtime_earnings: Decimal = Field(
        ..., description="Overtime and double-time premium earnings"
    )
    total_weekly_earnings: Decimal
    pay_period_end_date: date


def _policies(policies: PolicySet | None) -> PolicySet:
    return policies if policies is not None else build_default_policy_set()


def get_retention_policy(
    policies: PolicySet | None = None,
    on: date | None = None,
    state: str | None = None,
) -> RetentionPolicy:
    """Retention rule for time records (hours, pay and deductions)."""
    policy = _policies(policies).record_keeping(on or date.today(), state)
    return RetentionPolicy(
        record_type=RecordKind.TIME,
        minimum_retention_years=policy.time_record_retention_years,
        policy_name=policy.name,
        includes_pay=True,
        includes_hours_worked=True,
        includes_deductions=True,
    )


def get_payroll_retention_policy(
    policies: PolicySet | None = None,
    on: date | None = None,
    state: str | None = None,
) -> RetentionPolicy:
    """Retention rule for payroll records (wage tables and benefits)."""
    policy = _policies(policies).record_keeping(on or date.today(), state)
    return RetentionPolicy(
        record_type=RecordKind.PAYROLL,
        minimum_retention_years=policy.payroll_record_retention_years,
        policy_name=policy.name,
        includes_wage_tables=True,
        includes_benefits=True,
    )


def _add_years(start: date, years: int) -> date:
    try:
        return start.replace(year=start.year + years)
    except ValueError:
        # Feb 29 -> Feb 28
        return start.replace(year=start.year + years, day=28)


def retention_expires_on(
    record_date: date,
    record_kind: RecordKind | str,
    policies: PolicySet | None = None,
    state: str | None = None,
) -> date:
    """Earliest date a record created on ``record_date`` may be destroyed."""
    kind = RecordKind(record_kind)
    if kind == RecordKind.TIME:
        retention = get_retention_policy(policies, record_date, state)
    else:
        retention = get_payroll_retention_policy(policies, record_date, state)

    expires = _add_years(record_date, retention.minimum_retention_years)
    logger.debug(f"{kind.value} record from {record_date} retained until {expires}")
    return expires


def build_flsa_record(
    weekly: WeeklyOvertimeResult,
    regular_rate: Decimal | int | float,
    employee_name: str | None = None,
    pay_period_end: date | None = None,
) -> FLSARecord:
    """
    Assemble the FLSA record for one workweek from its overtime result.

    Overtime earnings include double-time earnings.
    """
    pay = calculate_overtime_pay(
        regular_rate,
        weekly.regular_hours,
        weekly.overtime_hours,
        weekly.overtime_multiplier,
        weekly.double_time_hours,
    )

    return FLSARecord(
        employee_id=weekly.employee_id,
        employee_name=employee_name,
        workweek_start_date=weekly.period_start,
        hours_worked_each_day={d.work_date: d.total_hours for d in weekly.daily_breakdown},
        total_hours_worked_per_week=weekly.total_hours,
        regular_rate_of_pay=Decimal(str(regular_rate)),
        total_regular_earnings=pay.regular_pay,
        total_overtime_earnings=pay.overtime_pay + pay.double_time_pay,
        total_weekly_earnings=pay.total_pay,
        pay_period_end_date=pay_period_end or weekly.period_end,
    )
