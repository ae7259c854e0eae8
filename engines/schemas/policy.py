"""
Policy Schemas

Typed, versioned compliance configuration. Each rule category is its own
model, discriminated by ``type``; threshold names are fields rather than
keys of a free-form rules map.

Policies are immutable once effective. A rule change is a new policy with
a later ``effective_date``, which keeps past shifts evaluable under the
rules that applied to them.
"""

from datetime import date, time
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from engines.schemas.time_entry import EmployeeProfile, EmployeeType


class PolicyType(str, Enum):
    OVERTIME = "OVERTIME"
    BREAK = "BREAK"
    REST = "REST"
    WORK_HOURS = "WORK_HOURS"
    MINOR = "MINOR"
    RECORD_KEEPING = "RECORD_KEEPING"


class PolicyBase(BaseModel):
    """Fields shared by every policy record."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str = Field(..., min_length=1, max_length=200)
    effective_date: date
    end_date: date | None = None
    state: str | None = Field(
        default=None,
        description="Jurisdiction the policy overrides; None for the federal baseline",
    )
    applicable_groups: list[str] = Field(
        default_factory=list,
        description="Departments, employment types or job titles; empty applies to everyone",
    )
    description: str | None = Field(default=None, max_length=1000)

    @field_validator("state")
    @classmethod
    def _normalize_state(cls, value: str | None) -> str | None:
        return value.strip().upper() if value else None

    @model_validator(mode="after")
    def _check_dates(self) -> "PolicyBase":
        if self.end_date is not None and self.end_date <= self.effective_date:
            raise ValueError("End date must be after effective date")
        return self

    def is_effective(self, on: date) -> bool:
        if on < self.effective_date:
            return False
        if self.end_date is not None and on > self.end_date:
            return False
        return True

    def applies_to(self, profile: EmployeeProfile | None) -> bool:
        if not self.applicable_groups:
            return True
        if profile is None:
            return False

        for group in self.applicable_groups:
            if group in (profile.department, profile.employment_type):
                return True
            if profile.job_title and group.lower() in profile.job_title.lower():
                return True
        return False


class OvertimePolicy(PolicyBase):
    """Daily/weekly overtime thresholds, multipliers and exemption rules."""

    type: Literal[PolicyType.OVERTIME] = PolicyType.OVERTIME

    daily_overtime_threshold: Decimal | None = Field(
        default=None, gt=0, description="Hours per day before overtime (state rules)"
    )
    double_time_threshold: Decimal | None = Field(
        default=None, gt=0, description="Hours per day before double time"
    )
    weekly_overtime_threshold: Decimal = Field(default=Decimal("40"), gt=0)
    overtime_multiplier: Decimal = Field(default=Decimal("1.5"), ge=1)
    double_time_multiplier: Decimal = Field(default=Decimal("2.0"), ge=1)
    seventh_day_rule: bool = Field(
        default=False,
        description="7th consecutive day in a workweek is paid at the double-time multiplier",
    )

    # FLSA exemption
    exempt_from_overtime: bool = False
    minimum_salary: Decimal | None = Field(
        default=None, ge=0, description="Weekly salary floor for the exemption"
    )
    duties_test: str | None = None

    @model_validator(mode="after")
    def _check_thresholds(self) -> "OvertimePolicy":
        if (
            self.double_time_threshold is not None
            and self.daily_overtime_threshold is not None
            and self.double_time_threshold <= self.daily_overtime_threshold
        ):
            raise ValueError(
                "Double time threshold must be greater than daily overtime threshold"
            )
        if self.double_time_multiplier <= self.overtime_multiplier:
            raise ValueError(
                "Double time multiplier must be greater than overtime multiplier"
            )
        return self


class BreakPolicy(PolicyBase):
    """Meal and rest break requirements within a shift."""

    type: Literal[PolicyType.BREAK] = PolicyType.BREAK

    meal_break_min_minutes: int = Field(default=30, gt=0)
    meal_break_required_after_hours: Decimal = Field(default=Decimal("5"), gt=0)
    meal_break_deadline_hours: Decimal = Field(default=Decimal("5"), gt=0)
    meal_break_waiver_max_hours: Decimal = Field(
        default=Decimal("6"), gt=0, description="Shifts shorter than this may waive the meal break"
    )
    rest_break_minutes_per_4_hours: int = Field(default=10, gt=0)
    rest_break_interval_hours: Decimal = Field(default=Decimal("4"), gt=0)
    rest_breaks_must_be_paid: bool = True


class RestPolicy(PolicyBase):
    """Minimum rest between consecutive shifts."""

    type: Literal[PolicyType.REST] = PolicyType.REST

    min_rest_hours_between_shifts: Decimal = Field(default=Decimal("8"), gt=0)
    reduced_rest_premium_rate: Decimal = Field(default=Decimal("1.5"), ge=1)


class WorkHourPolicy(PolicyBase):
    """Caps on shift length, rolling two-week hours and consecutive working days."""

    type: Literal[PolicyType.WORK_HOURS] = PolicyType.WORK_HOURS

    max_consecutive_shift_hours: Decimal = Field(default=Decimal("16"), gt=0)
    two_week_limits: dict[EmployeeType, Decimal] = Field(
        default_factory=lambda: {EmployeeType.MEDICAL_RESIDENT: Decimal("80")},
        description="Hours allowed per 14-day window, by employee type",
    )
    max_consecutive_days: int = Field(default=7, gt=1)
    consecutive_days_lookback: int = Field(default=30, gt=0)


class MinorPolicy(PolicyBase):
    """Hour and time-of-day restrictions for employees under the age threshold."""

    type: Literal[PolicyType.MINOR] = PolicyType.MINOR

    minor_age_threshold: int = Field(default=18, gt=0)
    school_day_max_hours: Decimal = Field(default=Decimal("3"), gt=0)
    non_school_day_max_hours: Decimal = Field(default=Decimal("8"), gt=0)
    earliest_start: time = time(7, 0)
    school_year_latest_end: time = time(19, 0)
    summer_latest_end: time = time(21, 0)

    @model_validator(mode="after")
    def _check_window(self) -> "MinorPolicy":
        if self.school_year_latest_end <= self.earliest_start:
            raise ValueError("School year window must end after it starts")
        if self.summer_latest_end <= self.earliest_start:
            raise ValueError("Summer window must end after it starts")
        return self


class RecordKeepingPolicy(PolicyBase):
    """Minimum retention periods for time and payroll records."""

    type: Literal[PolicyType.RECORD_KEEPING] = PolicyType.RECORD_KEEPING

    time_record_retention_years: int = Field(default=3, ge=1)
    payroll_record_retention_years: int = Field(default=2, ge=1)


Policy = Annotated[
    Union[
        OvertimePolicy,
        BreakPolicy,
        RestPolicy,
        WorkHourPolicy,
        MinorPolicy,
        RecordKeepingPolicy,
    ],
    Field(discriminator="type"),
]

_policy_adapter: TypeAdapter[Policy] = TypeAdapter(Policy)


def parse_policy(data: dict[str, Any]) -> Policy:
    """Build the typed policy for a raw record, dispatching on ``type``."""
    return _policy_adapter.validate_python(data)
