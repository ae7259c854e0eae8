"""
Time Engine Schemas

Output models for shift hour calculation, overtime pay and
weekly/pay-period aggregation.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field


class BreakSummary(BaseModel):
    """Break minutes split by pay treatment."""

    total_break_minutes: Decimal = Decimal("0")
    paid_break_minutes: Decimal = Decimal("0")
    unpaid_break_minutes: Decimal = Decimal("0")

    @property
    def deductible_minutes(self) -> Decimal:
        # Only unpaid breaks come off worked time
        return self.unpaid_break_minutes


class HourBreakdown(BaseModel):
    """
    Hours for a single shift.

    ``regular_hours + overtime_hours + double_time_hours == total_hours``.
    """

    total_hours: Decimal = Field(..., ge=0, description="Elapsed time minus unpaid breaks")
    regular_hours: Decimal = Field(..., ge=0)
    overtime_hours: Decimal = Field(..., ge=0)
    double_time_hours: Decimal = Field(..., ge=0)

    break_minutes: Decimal = Decimal("0")
    paid_break_minutes: Decimal = Decimal("0")
    unpaid_break_minutes: Decimal = Decimal("0")


class PaySplit(BaseModel):
    """Gross pay split by hour bucket."""

    regular_pay: Decimal
    overtime_pay: Decimal
    double_time_pay: Decimal = Decimal("0")
    total_pay: Decimal


class DailyHours(BaseModel):
    """One workday inside a weekly aggregation."""

    work_date: date
    total_hours: Decimal
    regular_hours: Decimal
    overtime_hours: Decimal
    double_time_hours: Decimal
    entry_ids: list[str] = Field(default_factory=list)


class WeeklyOvertimeResult(BaseModel):
    """Overtime totals for one workweek (or any caller-defined period)."""

    employee_id: str
    period_start: date
    period_end: date

    total_hours: Decimal = Field(..., description="Worked hours only; PTO and holidays excluded")
    regular_hours: Decimal
    overtime_hours: Decimal
    double_time_hours: Decimal = Decimal("0")

    overtime_multiplier: Decimal = Field(
        ..., description="1.5 normally; the double-time multiplier under the 7th-day rule"
    )
    exempt_status: bool = False
    seventh_day_rule_applied: bool = False
    consecutive_days_worked: int = 0

    policy_name: str | None = None
    daily_breakdown: list[DailyHours] = Field(default_factory=list)
    calculation_notes: list[str] = Field(default_factory=list)


class OvertimeSummary(BaseModel):
    """Pay-period roll-up of weekly overtime results."""

    employee_id: str
    period_start: date
    period_end: date

    total_hours: Decimal
    total_regular_hours: Decimal
    total_overtime_hours: Decimal
    total_double_time_hours: Decimal
    average_hours_per_day: Decimal
    days_worked: int
    days_with_overtime: int
    days_with_double_time: int
    weeks: list[WeeklyOvertimeResult] = Field(default_factory=list)
