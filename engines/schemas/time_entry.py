"""
Time Entry Schemas

Shift and break records consumed by the calculation engines.

Stored hour totals may ride along on a record, but they are a snapshot
only. The engines always recompute hours from the clock and break
timestamps.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TypeVar
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from engines.errors import InvalidStatusTransitionError, UnknownCategoryError


class TimeEntryStatus(str, Enum):
    """Approval workflow status of a time entry."""
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    COMPLETED = "completed"
    REJECTED = "rejected"

    def can_transition_to(self, target: "TimeEntryStatus") -> bool:
        return target in _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS: dict[TimeEntryStatus, frozenset[TimeEntryStatus]] = {
    TimeEntryStatus.PENDING_APPROVAL: frozenset(
        {TimeEntryStatus.APPROVED, TimeEntryStatus.REJECTED}
    ),
    # COMPLETED once the pay period closes
    TimeEntryStatus.APPROVED: frozenset({TimeEntryStatus.COMPLETED}),
    TimeEntryStatus.COMPLETED: frozenset(),
    TimeEntryStatus.REJECTED: frozenset(),
}

# Statuses whose hours count toward period aggregation
COUNTABLE_STATUSES = frozenset({TimeEntryStatus.APPROVED, TimeEntryStatus.COMPLETED})


class BreakType(str, Enum):
    """Break categories. LUNCH is a meal break, SHORT_BREAK a rest break."""
    LUNCH = "LUNCH"
    SHORT_BREAK = "SHORT_BREAK"
    PERSONAL = "PERSONAL"


class EntryCategory(str, Enum):
    """What a time entry represents. Only WORKED time counts toward overtime."""
    WORKED = "WORKED"
    PTO = "PTO"
    HOLIDAY = "HOLIDAY"


class EmployeeType(str, Enum):
    ORDINARY = "ORDINARY"
    MEDICAL_RESIDENT = "MEDICAL_RESIDENT"
    MINOR = "MINOR"


E = TypeVar("E", bound=Enum)


def normalize_state_code(value: str | None) -> str | None:
    """Upper-case two-letter state code, or None."""
    if value is None:
        return None
    value = value.strip().upper()
    if len(value) != 2 or not value.isalpha():
        raise ValueError(f"Invalid state code: {value!r}")
    return value


def parse_category(enum_cls: type[E], value: E | str) -> E:
    """
    Coerce a raw string into one of the engine enums.

    Accepts the member value or name in any case. Raises
    UnknownCategoryError for anything else.
    """
    if isinstance(value, enum_cls):
        return value
    raw = str(value).strip()
    for member in enum_cls:
        if raw.lower() in (str(member.value).lower(), member.name.lower()):
            return member
    raise UnknownCategoryError(f"Unknown {enum_cls.__name__}: {value!r}")


class BreakEntry(BaseModel):
    """A break inside exactly one time entry."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    break_type: BreakType
    start: datetime
    end: datetime | None = Field(default=None, description="None while the break is running")
    paid: bool = False

    @model_validator(mode="after")
    def _check_range(self) -> "BreakEntry":
        if self.end is not None and self.end < self.start:
            raise ValueError("Break end time must not be before start time")
        return self

    @property
    def is_meal_break(self) -> bool:
        return self.break_type == BreakType.LUNCH

    @property
    def is_rest_break(self) -> bool:
        return self.break_type == BreakType.SHORT_BREAK

    @property
    def duration_minutes(self) -> Decimal:
        if self.end is None:
            return Decimal("0")
        return Decimal(str((self.end - self.start).total_seconds())) / Decimal("60")


class TimeEntry(BaseModel):
    """
    One shift: clock-in to clock-out plus its breaks.

    Entries are immutable; corrections and status changes produce a
    new instance.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    employee_id: str = Field(..., description="Employee identifier")
    clock_in: datetime
    clock_out: datetime | None = Field(default=None, description="None while the shift is open")
    status: TimeEntryStatus = TimeEntryStatus.PENDING_APPROVAL
    category: EntryCategory = EntryCategory.WORKED
    breaks: list[BreakEntry] = Field(default_factory=list)

    # Employee context captured with the shift
    exempt_from_overtime: bool = False
    employee_type: EmployeeType = EmployeeType.ORDINARY
    employee_age: int | None = Field(default=None, ge=0, le=120)
    school_day: bool = False
    school_year: bool = False
    state: str | None = Field(default=None, description="Two-letter jurisdiction code")

    # Waivers
    meal_break_waived: bool = False
    waiver_consent: bool = False
    reduced_rest_period: bool = False
    employee_consent: bool = False
    premium_pay_rate: Decimal | None = Field(default=None, ge=1)

    # Stored snapshot, never read by the engines
    total_hours: Decimal | None = None
    regular_hours: Decimal | None = None
    overtime_hours: Decimal | None = None
    double_time_hours: Decimal | None = None

    @field_validator("employee_id")
    @classmethod
    def _require_employee_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("employee_id is required")
        return value

    @field_validator("state")
    @classmethod
    def _normalize_state(cls, value: str | None) -> str | None:
        return normalize_state_code(value)

    @model_validator(mode="after")
    def _check_intervals(self) -> "TimeEntry":
        if self.clock_out is not None and self.clock_out < self.clock_in:
            raise ValueError("Clock out time must not be before clock in time")

        ordered = sorted(self.breaks, key=lambda b: b.start)
        for brk in ordered:
            if brk.start < self.clock_in:
                raise ValueError("Break cannot start before clock in time")
            if self.clock_out is not None:
                if brk.end is None:
                    raise ValueError("Closed shift cannot contain an open break")
                if brk.end > self.clock_out:
                    raise ValueError("Break cannot end after clock out time")

        for previous, current in zip(ordered, ordered[1:]):
            if previous.end is None or current.start < previous.end:
                raise ValueError("Break periods cannot overlap")
        return self

    @property
    def is_open(self) -> bool:
        return self.clock_out is None

    @property
    def work_date(self) -> date:
        """Calendar day a shift is attributed to (its clock-in date)."""
        return self.clock_in.date()

    @property
    def meal_breaks(self) -> list[BreakEntry]:
        return [b for b in self.breaks if b.is_meal_break]

    @property
    def rest_breaks(self) -> list[BreakEntry]:
        return [b for b in self.breaks if b.is_rest_break]

    def transition_to(self, status: TimeEntryStatus | str) -> "TimeEntry":
        """Return a copy of this entry in the new workflow status."""
        target = parse_category(TimeEntryStatus, status)
        if not self.status.can_transition_to(target):
            raise InvalidStatusTransitionError(
                f"Cannot move time entry {self.id} from {self.status.value} to {target.value}"
            )
        if target == TimeEntryStatus.APPROVED and self.is_open:
            raise InvalidStatusTransitionError("Open shifts cannot be approved")
        return self.model_copy(update={"status": target})


class EmployeeProfile(BaseModel):
    """Employee attributes used for policy applicability and exemption tests."""

    model_config = ConfigDict(frozen=True)

    employee_id: str
    name: str | None = None
    employee_type: EmployeeType = EmployeeType.ORDINARY
    state: str | None = None
    department: str | None = None
    employment_type: str | None = None
    job_title: str | None = None
    weekly_salary: Decimal | None = Field(default=None, ge=0)
    exempt_from_overtime: bool = False
    hourly_rate: Decimal | None = Field(default=None, ge=0)

    @field_validator("state")
    @classmethod
    def _normalize_state(cls, value: str | None) -> str | None:
        return normalize_state_code(value)
