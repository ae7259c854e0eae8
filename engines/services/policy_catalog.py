"""
Policy Catalog

Builds the immutable set of compliance policies injected into the
calculation and validation services, and resolves which policy governs
a given shift.

Resolution is by effective date at the time of the shift, so a past
shift is always evaluated under the rules that applied when it was
worked, even after a newer policy version takes effect.
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import date, time
from decimal import Decimal
from types import MappingProxyType
from typing import Any

from engines.config import Settings, get_settings
from engines.errors import PolicyNotFoundError
from engines.schemas.policy import (
    BreakPolicy,
    MinorPolicy,
    OvertimePolicy,
    Policy,
    PolicyType,
    RecordKeepingPolicy,
    RestPolicy,
    WorkHourPolicy,
)
from engines.schemas.time_entry import EmployeeProfile, EmployeeType

logger = logging.getLogger(__name__)

BASELINE_EFFECTIVE_DATE = date(2000, 1, 1)

# State daily overtime overrides.
# CA Labor Code 510; AK 23.10.060; NV NRS 608.018; CO COMPS Order #39
STATE_OVERTIME_RULES: Mapping[str, Mapping[str, Any]] = MappingProxyType({
    "CA": MappingProxyType({
        "daily_overtime_threshold": Decimal("8"),
        "double_time_threshold": Decimal("12"),
        "seventh_day_rule": True,
    }),
    "AK": MappingProxyType({
        "daily_overtime_threshold": Decimal("8"),
    }),
    "NV": MappingProxyType({
        "daily_overtime_threshold": Decimal("8"),
    }),
    "CO": MappingProxyType({
        "daily_overtime_threshold": Decimal("12"),
    }),
})


def _parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


class PolicySet:
    """Read-only collection of policies with effective-date resolution."""

    def __init__(self, policies: Iterable[Policy]):
        self._policies: tuple[Policy, ...] = tuple(policies)

    def __len__(self) -> int:
        return len(self._policies)

    @property
    def policies(self) -> tuple[Policy, ...]:
        return self._policies

    def with_policies(self, *policies: Policy) -> "PolicySet":
        """New set with extra policies (e.g. a newer rule version) appended."""
        return PolicySet(self._policies + tuple(policies))

    def resolve(
        self,
        policy_type: PolicyType,
        on: date,
        state: str | None = None,
        profile: EmployeeProfile | None = None,
    ) -> Policy:
        """
        Find the policy of ``policy_type`` governing a shift worked on ``on``.

        A state override beats the federal baseline. Within a tier, a
        group-specific policy beats a universal one, then the latest
        effective date wins.
        """
        candidates = [
            p
            for p in self._policies
            if p.type == policy_type and p.is_effective(on) and p.applies_to(profile)
        ]
        state = state.upper() if state else None

        tier = [p for p in candidates if state is not None and p.state == state]
        if not tier:
            tier = [p for p in candidates if p.state is None]
        if not tier:
            raise PolicyNotFoundError(
                f"No {policy_type.value} policy effective on {on.isoformat()}"
                + (f" for state {state}" if state else "")
            )

        chosen = max(tier, key=lambda p: (bool(p.applicable_groups), p.effective_date))
        logger.debug(f"Resolved {policy_type.value} policy '{chosen.name}' for {on} ({state or 'federal'})")
        return chosen

    # Typed shortcuts

    def overtime(self, on: date, state: str | None = None, profile: EmployeeProfile | None = None) -> OvertimePolicy:
        return self.resolve(PolicyType.OVERTIME, on, state, profile)

    def breaks(self, on: date, state: str | None = None, profile: EmployeeProfile | None = None) -> BreakPolicy:
        return self.resolve(PolicyType.BREAK, on, state, profile)

    def rest(self, on: date, state: str | None = None, profile: EmployeeProfile | None = None) -> RestPolicy:
        return self.resolve(PolicyType.REST, on, state, profile)

    def work_hours(self, on: date, state: str | None = None, profile: EmployeeProfile | None = None) -> WorkHourPolicy:
        return self.resolve(PolicyType.WORK_HOURS, on, state, profile)

    def minor(self, on: date, state: str | None = None, profile: EmployeeProfile | None = None) -> MinorPolicy:
        return self.resolve(PolicyType.MINOR, on, state, profile)

    def record_keeping(self, on: date, state: str | None = None) -> RecordKeepingPolicy:
        return self.resolve(PolicyType.RECORD_KEEPING, on, state)


def build_federal_policies(
    settings: Settings,
    effective_date: date = BASELINE_EFFECTIVE_DATE,
) -> list[Policy]:
    """Federal baseline policy for every rule category, from settings."""
    return [
        OvertimePolicy(
            name="FLSA Overtime",
            effective_date=effective_date,
            weekly_overtime_threshold=settings.weekly_overtime_threshold,
            overtime_multiplier=settings.overtime_multiplier,
            double_time_multiplier=settings.double_time_multiplier,
            minimum_salary=settings.exempt_minimum_weekly_salary,
        ),
        BreakPolicy(
            name="Meal and Rest Breaks",
            effective_date=effective_date,
            meal_break_min_minutes=settings.meal_break_min_minutes,
            meal_break_required_after_hours=settings.meal_break_required_after_hours,
            meal_break_deadline_hours=settings.meal_break_deadline_hours,
            meal_break_waiver_max_hours=settings.meal_break_waiver_max_hours,
            rest_break_minutes_per_4_hours=settings.rest_break_minutes_per_4_hours,
            rest_break_interval_hours=settings.rest_break_interval_hours,
        ),
        RestPolicy(
            name="Rest Between Shifts",
            effective_date=effective_date,
            min_rest_hours_between_shifts=settings.min_rest_hours_between_shifts,
            reduced_rest_premium_rate=settings.reduced_rest_premium_rate,
        ),
        WorkHourPolicy(
            name="Maximum Working Hours",
            effective_date=effective_date,
            max_consecutive_shift_hours=settings.max_consecutive_shift_hours,
            two_week_limits={
                EmployeeType.MEDICAL_RESIDENT: settings.medical_resident_two_week_limit,
            },
            max_consecutive_days=settings.max_consecutive_days,
            consecutive_days_lookback=settings.consecutive_days_lookback,
        ),
        MinorPolicy(
            name="Minor Employee Restrictions",
            effective_date=effective_date,
            minor_age_threshold=settings.minor_age_threshold,
            school_day_max_hours=settings.minor_school_day_max_hours,
            non_school_day_max_hours=settings.minor_non_school_day_max_hours,
            earliest_start=_parse_hhmm(settings.minor_earliest_start),
            school_year_latest_end=_parse_hhmm(settings.minor_school_year_latest_end),
            summer_latest_end=_parse_hhmm(settings.minor_summer_latest_end),
        ),
        RecordKeepingPolicy(
            name="FLSA Record Keeping",
            effective_date=effective_date,
            time_record_retention_years=settings.time_record_retention_years,
            payroll_record_retention_years=settings.payroll_record_retention_years,
        ),
    ]


def build_state_overtime_policies(
    settings: Settings,
    effective_date: date = BASELINE_EFFECTIVE_DATE,
) -> list[OvertimePolicy]:
    """One overtime override per state in STATE_OVERTIME_RULES."""
    return [
        OvertimePolicy(
            name=f"{state} Daily Overtime",
            state=state,
            effective_date=effective_date,
            weekly_overtime_threshold=settings.weekly_overtime_threshold,
            overtime_multiplier=settings.overtime_multiplier,
            double_time_multiplier=settings.double_time_multiplier,
            **rules,
        )
        for state, rules in STATE_OVERTIME_RULES.items()
    ]


def build_default_policy_set(settings: Settings | None = None) -> PolicySet:
    """Federal baseline plus state overtime overrides."""
    settings = settings or get_settings()
    policies = build_federal_policies(settings) + build_state_overtime_policies(settings)
    logger.info(f"Built default policy set with {len(policies)} policies")
    return PolicySet(policies)
