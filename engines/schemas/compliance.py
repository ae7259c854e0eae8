"""
Compliance Schemas

Result models for the labor-law compliance checks.

A result is compliant exactly when it carries no violation codes.
Supporting numbers (hours worked, limits, break minutes) ride along so
reports can explain the finding without re-running the check.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, computed_field

from engines.schemas.time_entry import EmployeeType


class ViolationCode(str, Enum):
    """Enumerated non-compliance conditions, in check definition order."""
    EXCESSIVE_CONSECUTIVE_HOURS = "EXCESSIVE_CONSECUTIVE_HOURS"
    EXCEEDS_TWO_WEEK_LIMIT = "EXCEEDS_TWO_WEEK_LIMIT"
    CONSECUTIVE_DAYS_LIMIT = "CONSECUTIVE_DAYS_LIMIT"
    MISSING_MEAL_BREAK = "MISSING_MEAL_BREAK"
    MEAL_BREAK_TOO_SHORT = "MEAL_BREAK_TOO_SHORT"
    MEAL_BREAK_TOO_LATE = "MEAL_BREAK_TOO_LATE"
    MISSING_REST_BREAK = "MISSING_REST_BREAK"
    UNPAID_REST_BREAK = "UNPAID_REST_BREAK"
    INSUFFICIENT_REST_PERIOD = "INSUFFICIENT_REST_PERIOD"
    SCHOOL_DAY_HOURS_EXCEEDED = "SCHOOL_DAY_HOURS_EXCEEDED"
    NON_SCHOOL_DAY_HOURS_EXCEEDED = "NON_SCHOOL_DAY_HOURS_EXCEEDED"
    PROHIBITED_HOURS = "PROHIBITED_HOURS"


class ValidationResult(BaseModel):
    """Common shape of every check result."""

    violations: list[ViolationCode] = Field(default_factory=list)

    @computed_field
    @property
    def compliant(self) -> bool:
        return not self.violations

    @computed_field
    @property
    def violation(self) -> ViolationCode | None:
        """First violation code, or None when compliant."""
        return self.violations[0] if self.violations else None


class MaximumHoursResult(ValidationResult):
    entry_id: str
    hours_worked: Decimal
    maximum_allowed: Decimal
    requires_manager_approval: bool = False


class WorkHourComplianceResult(ValidationResult):
    employee_id: str
    employee_type: EmployeeType
    window_start: date
    window_end: date
    total_hours: Decimal
    maximum_hours: Decimal | None = Field(
        default=None, description="None when the employee type has no window cap"
    )


class ConsecutiveDaysResult(ValidationResult):
    employee_id: str
    lookback_days: int
    window_start: date
    window_end: date
    max_consecutive_days: int = 0
    streak_start: date | None = None
    streak_end: date | None = None
    consecutive_days_limit: int
    requires_rest_day: bool = False
    recommendation: str | None = None


class BreakRequirementResult(ValidationResult):
    entry_id: str
    shift_hours: Decimal
    meal_break_required: bool = False
    required_break_minutes: int = 0
    actual_break_minutes: Decimal = Decimal("0")
    waiver_applied: bool = False
    waiver_valid: bool | None = Field(
        default=None, description="None when no waiver was requested"
    )


class BreakTimingResult(ValidationResult):
    entry_id: str
    meal_break_taken: bool = False
    break_started_after_hours: Decimal | None = None
    maximum_hours: Decimal


class RestBreakResult(ValidationResult):
    entry_id: str
    worked_hours: Decimal
    required_rest_breaks: int = 0
    actual_rest_breaks: int = 0
    missing_rest_breaks: int = 0
    rest_break_minutes: int


class BreakPayResult(ValidationResult):
    entry_id: str
    rest_breaks: int = 0
    unpaid_rest_breaks: int = 0


class RestPeriodResult(ValidationResult):
    employee_id: str
    next_shift_clock_in: datetime
    previous_clock_out: datetime | None = None
    actual_rest_hours: Decimal | None = None
    required_rest_hours: Decimal
    sufficient: bool = True
    waiver_applied: bool = False
    consent_given: bool = False
    premium_pay_required: bool = False
    premium_pay_rate: Decimal | None = None


class MinorRestrictionResult(ValidationResult):
    entry_id: str
    applicable: bool = False
    employee_age: int | None = None
    school_day: bool = False
    school_year: bool = False
    hours_worked: Decimal = Decimal("0")
    maximum_allowed: Decimal | None = None
    clock_in_time: str | None = None
    clock_out_time: str | None = None
    allowed_start_time: str | None = None
    allowed_end_time: str | None = None


class StateComplianceResult(ValidationResult):
    entry_id: str
    state: str
    policy_name: str
    hours_worked: Decimal
    daily_overtime_applies: bool = False
    daily_threshold: Decimal | None = None
    daily_overtime_hours: Decimal = Decimal("0")
    double_time_threshold: Decimal | None = None
    double_time_hours: Decimal = Decimal("0")
    seventh_day_rule: bool = False
    consecutive_days: int = 0
    overtime_multiplier: Decimal


class ComplianceReport(ValidationResult):
    """All per-entry checks for one shift, in check definition order."""

    entry_id: str
    employee_id: str
    work_date: date
    requires_manager_approval: bool = False
    premium_pay_required: bool = False

    maximum_hours: MaximumHoursResult
    work_hours: WorkHourComplianceResult | None = None
    consecutive_days: ConsecutiveDaysResult | None = None
    break_requirements: BreakRequirementResult
    break_timing: BreakTimingResult
    rest_breaks: RestBreakResult
    break_pay: BreakPayResult
    rest_period: RestPeriodResult
    minor_restrictions: MinorRestrictionResult
    state_compliance: StateComplianceResult | None = None


class PeriodComplianceReport(ValidationResult):
    """Compliance of every shift an employee worked in a date window."""

    employee_id: str
    period_start: date
    period_end: date
    entries_evaluated: int = 0
    entries_with_violations: int = 0
    violation_counts: dict[str, int] = Field(default_factory=dict)
    work_hours: WorkHourComplianceResult | None = None
    consecutive_days: ConsecutiveDaysResult
    entry_reports: list[ComplianceReport] = Field(default_factory=list)
