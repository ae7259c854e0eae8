"""
Overtime Calculation Service

Aggregates shift hours into workweeks and pay periods and applies the
period-level rules: weekly threshold, exemption status and the state
7th-consecutive-day rule.

Only approved (or completed) WORKED entries count. PTO and holiday
entries never contribute to the hours that trigger overtime.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from engines.config import Settings, get_settings
from engines.errors import InvalidTimeRangeError, MissingIdentifierError
from engines.schemas.policy import OvertimePolicy
from engines.schemas.time_engine import DailyHours, OvertimeSummary, WeeklyOvertimeResult
from engines.schemas.time_entry import (
    COUNTABLE_STATUSES,
    EmployeeProfile,
    EntryCategory,
    TimeEntry,
)
from engines.services.entry_store import TimeEntrySource
from engines.services.policy_catalog import PolicySet
from engines.services.time_calculator import ZERO, calculate_entry_hours, split_daily_hours

logger = logging.getLogger(__name__)


def workweek_bounds(day: date, workweek_start_index: int) -> tuple[date, date]:
    """First and last day of the workweek containing ``day``."""
    start = day - timedelta(days=(day.weekday() - workweek_start_index) % 7)
    return start, start + timedelta(days=6)


def longest_streak(days: Iterable[date]) -> tuple[int, date | None, date | None]:
    """
    Longest run of consecutive calendar days.

    Returns:
        Tuple of (length, first_day, last_day); (0, None, None) when empty
    """
    ordered = sorted(set(days))
    if not ordered:
        return 0, None, None

    best = (1, ordered[0], ordered[0])
    run_start = ordered[0]
    run_length = 1
    for previous, current in zip(ordered, ordered[1:]):
        if current - previous == timedelta(days=1):
            run_length += 1
        else:
            run_start = current
            run_length = 1
        if run_length > best[0]:
            best = (run_length, run_start, current)
    return best


def streak_ending_on(days: Iterable[date], last_day: date, earliest: date | None = None) -> int:
    """Number of consecutive worked days ending on ``last_day`` (0 if not worked)."""
    worked = set(days)
    count = 0
    current = last_day
    while current in worked and (earliest is None or current >= earliest):
        count += 1
        current -= timedelta(days=1)
    return count


def countable_entries(entries: Iterable[TimeEntry]) -> list[TimeEntry]:
    """Closed, approved WORKED entries: the ones whose hours count toward overtime."""
    kept = []
    for entry in entries:
        if entry.category != EntryCategory.WORKED:
            logger.debug(f"Excluding {entry.category.value} entry {entry.id} from worked hours")
            continue
        if entry.status not in COUNTABLE_STATUSES:
            continue
        if entry.is_open:
            logger.warning(f"Skipping open time entry {entry.id} during aggregation")
            continue
        kept.append(entry)
    return kept


class OvertimeCalculationService:
    """
    Weekly and pay-period overtime for one employee.

    Holds no mutable state: repeated calls over the same entries and
    policies return identical results.
    """

    def __init__(
        self,
        source: TimeEntrySource,
        policies: PolicySet,
        settings: Settings | None = None,
    ):
        self.source = source
        self.policies = policies
        self.settings = settings or get_settings()

    def calculate_weekly_overtime(
        self,
        employee_id: str,
        period_start: date,
        period_end: date,
    ) -> WeeklyOvertimeResult:
        """
        Calculate overtime for a workweek (or any caller-defined period).

        Algorithm:
        1. Load entries, keep approved WORKED shifts
        2. Sum hours per workday, splitting by the day's daily thresholds
        3. Move regular hours above the weekly threshold into overtime
        4. Zero out overtime for exempt employees
        5. Escalate the multiplier under the 7th-consecutive-day rule
        """
        self._check_request(employee_id, period_start, period_end)

        profile = self.source.load_profile(employee_id)
        entries = countable_entries(
            self.source.load_entries(employee_id, period_start, period_end)
        )
        state = self._state_for(entries, profile)
        policy = self.policies.overtime(period_start, state, profile)
        notes: list[str] = []

        daily = self._daily_breakdown(entries, profile)

        total = sum((d.total_hours for d in daily), ZERO)
        regular = sum((d.regular_hours for d in daily), ZERO)
        overtime = sum((d.overtime_hours for d in daily), ZERO)
        double_time = sum((d.double_time_hours for d in daily), ZERO)

        if regular > policy.weekly_overtime_threshold:
            excess = regular - policy.weekly_overtime_threshold
            regular = policy.weekly_overtime_threshold
            overtime += excess
            notes.append(
                f"{excess} hours over the {policy.weekly_overtime_threshold}-hour weekly threshold"
            )

        streak, _, _ = longest_streak(d.work_date for d in daily if d.total_hours > 0)
        multiplier = policy.overtime_multiplier
        seventh_day = False

        exempt = self._is_exempt(policy, profile, entries, notes)
        if exempt:
            regular, overtime, double_time = total, ZERO, ZERO
            notes.append("Employee is exempt from overtime")
        elif policy.seventh_day_rule and streak >= 7:
            seventh_day = True
            multiplier = policy.double_time_multiplier
            notes.append(
                f"7th consecutive day worked; multiplier {policy.double_time_multiplier} applies"
            )

        result = WeeklyOvertimeResult(
            employee_id=employee_id,
            period_start=period_start,
            period_end=period_end,
            total_hours=total,
            regular_hours=regular,
            overtime_hours=overtime,
            double_time_hours=double_time,
            overtime_multiplier=multiplier,
            exempt_status=exempt,
            seventh_day_rule_applied=seventh_day,
            consecutive_days_worked=streak,
            policy_name=policy.name,
            daily_breakdown=daily,
            calculation_notes=notes,
        )

        logger.info(
            f"Weekly overtime for {employee_id} {period_start}..{period_end}: "
            f"{total}h total, {overtime}h OT, {double_time}h DT (exempt={exempt})"
        )
        return result

    def calculate_pay_period(
        self,
        employee_id: str,
        period_start: date,
        period_end: date,
    ) -> list[WeeklyOvertimeResult]:
        """
        One weekly result per workweek in a pay period.

        Workweeks are cut at the pay period boundaries so no hours are
        counted in two periods.
        """
        self._check_request(employee_id, period_start, period_end)

        results = []
        week_start, week_end = workweek_bounds(period_start, self.settings.workweek_start_index)
        while week_start <= period_end:
            results.append(
                self.calculate_weekly_overtime(
                    employee_id,
                    max(week_start, period_start),
                    min(week_end, period_end),
                )
            )
            week_start += timedelta(days=7)
            week_end += timedelta(days=7)
        return results

    def get_overtime_summary(
        self,
        employee_id: str,
        period_start: date,
        period_end: date,
    ) -> OvertimeSummary:
        """Totals and overtime day counts for a pay period."""
        weeks = self.calculate_pay_period(employee_id, period_start, period_end)
        days = [d for week in weeks for d in week.daily_breakdown if d.total_hours > 0]

        total = sum((w.total_hours for w in weeks), ZERO)
        average = (
            (total / len(days)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
            if days
            else ZERO
        )

        return OvertimeSummary(
            employee_id=employee_id,
            period_start=period_start,
            period_end=period_end,
            total_hours=total,
            total_regular_hours=sum((w.regular_hours for w in weeks), ZERO),
            total_overtime_hours=sum((w.overtime_hours for w in weeks), ZERO),
            total_double_time_hours=sum((w.double_time_hours for w in weeks), ZERO),
            average_hours_per_day=average,
            days_worked=len(days),
            days_with_overtime=sum(1 for d in days if d.overtime_hours > 0),
            days_with_double_time=sum(1 for d in days if d.double_time_hours > 0),
            weeks=weeks,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_request(self, employee_id: str, start: date, end: date) -> None:
        if not employee_id or not employee_id.strip():
            raise MissingIdentifierError("employee_id is required")
        if end < start:
            raise InvalidTimeRangeError(f"Period end {end} is before start {start}")

    @staticmethod
    def _state_for(entries: Sequence[TimeEntry], profile: EmployeeProfile | None) -> str | None:
        for entry in entries:
            if entry.state:
                return entry.state
        return profile.state if profile else None

    def _daily_breakdown(
        self,
        entries: Sequence[TimeEntry],
        profile: EmployeeProfile | None,
    ) -> list[DailyHours]:
        """Hours per workday, split by the policy in force on that day."""
        by_day: dict[date, list[TimeEntry]] = defaultdict(list)
        for entry in entries:
            by_day[entry.work_date].append(entry)

        breakdown = []
        for day in sorted(by_day):
            day_entries = by_day[day]
            day_total = sum((calculate_entry_hours(e).total_hours for e in day_entries), ZERO)
            day_policy: OvertimePolicy = self.policies.overtime(
                day, self._state_for(day_entries, profile), profile
            )
            regular, overtime, double_time = split_daily_hours(
                day_total,
                day_policy.daily_overtime_threshold,
                day_policy.double_time_threshold,
            )
            breakdown.append(
                DailyHours(
                    work_date=day,
                    total_hours=day_total,
                    regular_hours=regular,
                    overtime_hours=overtime,
                    double_time_hours=double_time,
                    entry_ids=[e.id for e in day_entries],
                )
            )
        return breakdown

    @staticmethod
    def _is_exempt(
        policy: OvertimePolicy,
        profile: EmployeeProfile | None,
        entries: Sequence[TimeEntry],
        notes: list[str],
    ) -> bool:
        """
        Exempt when flagged by the policy, the profile or an entry, and the
        salary test (if the salary is known) passes.
        """
        flagged = (
            policy.exempt_from_overtime
            or (profile is not None and profile.exempt_from_overtime)
            or any(e.exempt_from_overtime for e in entries)
        )
        if not flagged:
            return False

        salary = profile.weekly_salary if profile else None
        if policy.minimum_salary is not None and salary is not None and salary < policy.minimum_salary:
            notes.append(
                f"Weekly salary {salary} below exemption minimum {policy.minimum_salary}; "
                f"overtime applies"
            )
            return False
        return True
