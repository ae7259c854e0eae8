"""
Compliance Validator

Labor-law checks over time entries: shift length, rolling work-hour caps,
consecutive days, meal and rest breaks, rest between shifts, minor
restrictions and state overtime rules.

Each check is independent and returns a result model. A failed check
is data (violation codes on the result), never an exception; only
malformed input raises.
"""

import logging
from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta

from engines.config import Settings, get_settings
from engines.errors import (
    InvalidTimeRangeError,
    MissingIdentifierError,
    MissingTimestampError,
    UnknownCategoryError,
)
from engines.schemas.compliance import (
    BreakPayResult,
    BreakRequirementResult,
    BreakTimingResult,
    ComplianceReport,
    ConsecutiveDaysResult,
    MaximumHoursResult,
    MinorRestrictionResult,
    PeriodComplianceReport,
    RestBreakResult,
    RestPeriodResult,
    StateComplianceResult,
    ViolationCode,
    WorkHourComplianceResult,
)
from engines.schemas.time_entry import (
    BreakEntry,
    EmployeeProfile,
    EmployeeType,
    EntryCategory,
    TimeEntry,
    TimeEntryStatus,
    parse_category,
)
from engines.services.entry_store import TimeEntrySource
from engines.services.overtime_calculator import longest_streak, streak_ending_on, workweek_bounds
from engines.services.policy_catalog import PolicySet
from engines.services.time_calculator import (
    ZERO,
    calculate_entry_hours,
    hours_between,
    quantize_hours,
)

logger = logging.getLogger(__name__)

TWO_WEEK_WINDOW_DAYS = 14

_CODE_ORDER = {code: index for index, code in enumerate(ViolationCode)}


def order_violations(codes: Iterable[ViolationCode]) -> list[ViolationCode]:
    """Deduplicate codes and put them in check definition order."""
    return sorted(set(codes), key=_CODE_ORDER.__getitem__)


def _hhmm(value) -> str:
    return value.strftime("%H:%M")


class ComplianceValidator:
    """
    Evaluates time entries against the policies in force on the shift date.

    Policies are resolved per check by the shift's work date and state
    (falling back to the employee profile's state).
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

    # ------------------------------------------------------------------
    # Shift length and rolling hour caps
    # ------------------------------------------------------------------

    def validate_maximum_hours(self, entry: TimeEntry) -> MaximumHoursResult:
        """Flag shifts longer than the consecutive-hours cap for manager approval."""
        self._require_closed(entry)
        profile = self._profile(entry.employee_id)
        policy = self.policies.work_hours(entry.work_date, self._state(entry, profile), profile)

        hours = quantize_hours(hours_between(entry.clock_in, entry.clock_out))
        exceeded = hours > policy.max_consecutive_shift_hours

        return MaximumHoursResult(
            entry_id=entry.id,
            hours_worked=hours,
            maximum_allowed=policy.max_consecutive_shift_hours,
            requires_manager_approval=exceeded,
            violations=[ViolationCode.EXCESSIVE_CONSECUTIVE_HOURS] if exceeded else [],
        )

    def check_work_hour_compliance(
        self,
        employee_id: str,
        window_start: date,
        window_end: date,
        employee_type: EmployeeType | str | None = None,
        entry: TimeEntry | None = None,
    ) -> WorkHourComplianceResult:
        """
        Total worked hours in a window against the employee type's cap.

        Types with no configured cap are always compliant. ``entry`` is a
        shift being evaluated that may not be stored yet; it is counted once.
        """
        self._check_window(employee_id, window_start, window_end)
        profile = self._profile(employee_id)
        if employee_type is None:
            employee_type = profile.employee_type if profile else EmployeeType.ORDINARY
        employee_type = parse_category(EmployeeType, employee_type)

        policy = self.policies.work_hours(window_end, profile.state if profile else None, profile)
        limit = policy.two_week_limits.get(employee_type)

        entries = self._worked_entries(employee_id, window_start, window_end, include=entry)
        total = sum((calculate_entry_hours(e).total_hours for e in entries), ZERO)
        exceeded = limit is not None and total > limit

        if exceeded:
            logger.info(
                f"{employee_id} worked {total}h between {window_start} and {window_end} "
                f"(limit {limit}h for {employee_type.value})"
            )

        return WorkHourComplianceResult(
            employee_id=employee_id,
            employee_type=employee_type,
            window_start=window_start,
            window_end=window_end,
            total_hours=total,
            maximum_hours=limit,
            violations=[ViolationCode.EXCEEDS_TWO_WEEK_LIMIT] if exceeded else [],
        )

    def analyze_consecutive_days(
        self,
        employee_id: str,
        lookback_days: int | None = None,
        as_of: date | None = None,
        entry: TimeEntry | None = None,
    ) -> ConsecutiveDaysResult:
        """
        Longest run of consecutive worked calendar days in the lookback window.

        A run reaching the consecutive-days limit calls for a mandatory
        rest day.
        """
        if not employee_id or not employee_id.strip():
            raise MissingIdentifierError("employee_id is required")

        as_of = as_of or date.today()
        profile = self._profile(employee_id)
        policy = self.policies.work_hours(as_of, profile.state if profile else None, profile)

        lookback = policy.consecutive_days_lookback if lookback_days is None else lookback_days
        if lookback <= 0:
            raise InvalidTimeRangeError(f"Lookback must be positive, got {lookback}")

        window_start = as_of - timedelta(days=lookback - 1)
        entries = self._worked_entries(employee_id, window_start, as_of, include=entry)
        streak, streak_start, streak_end = longest_streak(e.work_date for e in entries)

        limit = policy.max_consecutive_days
        exceeded = streak >= limit
        recommendation = None
        if exceeded:
            recommendation = (
                f"Schedule a mandatory rest day: {streak} consecutive days worked "
                f"({streak_start} to {streak_end})"
            )
            logger.info(f"{employee_id}: {recommendation}")

        return ConsecutiveDaysResult(
            employee_id=employee_id,
            lookback_days=lookback,
            window_start=window_start,
            window_end=as_of,
            max_consecutive_days=streak,
            streak_start=streak_start,
            streak_end=streak_end,
            consecutive_days_limit=limit,
            requires_rest_day=exceeded,
            recommendation=recommendation,
            violations=[ViolationCode.CONSECUTIVE_DAYS_LIMIT] if exceeded else [],
        )

    # ------------------------------------------------------------------
    # Breaks
    # ------------------------------------------------------------------

    def validate_break_requirements(self, entry: TimeEntry) -> BreakRequirementResult:
        """
        Meal break required once worked hours pass the threshold.

        Shorter shifts (under the waiver cap) may waive it when the
        employee consented.
        """
        self._require_closed(entry)
        profile = self._profile(entry.employee_id)
        policy = self.policies.breaks(entry.work_date, self._state(entry, profile), profile)

        worked = calculate_entry_hours(entry).total_hours
        required = worked > policy.meal_break_required_after_hours
        meals = self._unpaid_meal_breaks(entry)
        meal_minutes = quantize_hours(sum((b.duration_minutes for b in meals), ZERO))

        waiver_valid = None
        waiver_applied = False
        if entry.meal_break_waived:
            waiver_valid = entry.waiver_consent and worked < policy.meal_break_waiver_max_hours
            waiver_applied = waiver_valid

        violations = []
        if required and not waiver_applied:
            if not meals:
                violations.append(ViolationCode.MISSING_MEAL_BREAK)
            elif meal_minutes < policy.meal_break_min_minutes:
                violations.append(ViolationCode.MEAL_BREAK_TOO_SHORT)

        return BreakRequirementResult(
            entry_id=entry.id,
            shift_hours=worked,
            meal_break_required=required and not waiver_applied,
            required_break_minutes=policy.meal_break_min_minutes if required else 0,
            actual_break_minutes=meal_minutes,
            waiver_applied=waiver_applied,
            waiver_valid=waiver_valid,
            violations=violations,
        )

    def validate_break_timing(self, entry: TimeEntry) -> BreakTimingResult:
        """The first meal break must start within the deadline from clock-in."""
        self._require_closed(entry)
        profile = self._profile(entry.employee_id)
        policy = self.policies.breaks(entry.work_date, self._state(entry, profile), profile)

        meals = sorted(self._unpaid_meal_breaks(entry), key=lambda b: b.start)
        if not meals:
            return BreakTimingResult(
                entry_id=entry.id,
                maximum_hours=policy.meal_break_deadline_hours,
            )

        started_after = quantize_hours(hours_between(entry.clock_in, meals[0].start))
        late = started_after > policy.meal_break_deadline_hours

        return BreakTimingResult(
            entry_id=entry.id,
            meal_break_taken=True,
            break_started_after_hours=started_after,
            maximum_hours=policy.meal_break_deadline_hours,
            violations=[ViolationCode.MEAL_BREAK_TOO_LATE] if late else [],
        )

    def validate_rest_breaks(self, entry: TimeEntry) -> RestBreakResult:
        """One rest break per full rest interval of worked time."""
        self._require_closed(entry)
        profile = self._profile(entry.employee_id)
        policy = self.policies.breaks(entry.work_date, self._state(entry, profile), profile)

        worked = calculate_entry_hours(entry).total_hours
        required = int(worked // policy.rest_break_interval_hours)
        actual = len(entry.rest_breaks)
        missing = max(0, required - actual)

        return RestBreakResult(
            entry_id=entry.id,
            worked_hours=worked,
            required_rest_breaks=required,
            actual_rest_breaks=actual,
            missing_rest_breaks=missing,
            rest_break_minutes=policy.rest_break_minutes_per_4_hours,
            violations=[ViolationCode.MISSING_REST_BREAK] if missing else [],
        )

    def validate_break_pay(self, entry: TimeEntry) -> BreakPayResult:
        profile = self._profile(entry.employee_id)
        policy = self.policies.breaks(entry.work_date, self._state(entry, profile), profile)

        rest_breaks = entry.rest_breaks
        unpaid = sum(1 for b in rest_breaks if not b.paid)
        flagged = policy.rest_breaks_must_be_paid and unpaid > 0

        return BreakPayResult(
            entry_id=entry.id,
            rest_breaks=len(rest_breaks),
            unpaid_rest_breaks=unpaid,
            violations=[ViolationCode.UNPAID_REST_BREAK] if flagged else [],
        )

    # ------------------------------------------------------------------
    # Rest between shifts
    # ------------------------------------------------------------------

    def validate_rest_period(
        self,
        employee_id: str,
        next_shift_clock_in: datetime,
        next_entry: TimeEntry | None = None,
    ) -> RestPeriodResult:
        """
        Rest since the previous shift's clock-out.

        A short rest is waived when the next shift carries a reduced-rest
        agreement with employee consent; the shift is then owed premium pay.
        """
        if not employee_id or not employee_id.strip():
            raise MissingIdentifierError("employee_id is required")
        if next_shift_clock_in is None:
            raise MissingTimestampError("Next shift clock in time is required")

        profile = self._profile(employee_id)
        next_day = next_shift_clock_in.date()
        if next_entry is None:
            next_entry = self._entry_starting_at(employee_id, next_shift_clock_in)
        state = self._state(next_entry, profile) if next_entry else (profile.state if profile else None)
        policy = self.policies.rest(next_day, state, profile)
        required = policy.min_rest_hours_between_shifts

        previous = self._previous_shift(employee_id, next_shift_clock_in, next_entry)
        if previous is None:
            return RestPeriodResult(
                employee_id=employee_id,
                next_shift_clock_in=next_shift_clock_in,
                required_rest_hours=required,
            )

        if previous.clock_out > next_shift_clock_in:
            # overlapping shifts leave no rest
            actual = ZERO
        else:
            actual = quantize_hours(hours_between(previous.clock_out, next_shift_clock_in))
        result = RestPeriodResult(
            employee_id=employee_id,
            next_shift_clock_in=next_shift_clock_in,
            previous_clock_out=previous.clock_out,
            actual_rest_hours=actual,
            required_rest_hours=required,
        )
        if actual >= required:
            return result

        waiver = next_entry is not None and next_entry.reduced_rest_period
        consent = waiver and next_entry.employee_consent
        if consent:
            rate = next_entry.premium_pay_rate or policy.reduced_rest_premium_rate
            logger.info(
                f"Reduced rest of {actual}h for {employee_id} accepted with consent; "
                f"premium pay at {rate}x"
            )
            return result.model_copy(update={
                "sufficient": False,
                "waiver_applied": True,
                "consent_given": True,
                "premium_pay_required": True,
                "premium_pay_rate": rate,
            })

        return result.model_copy(update={
            "sufficient": False,
            "waiver_applied": waiver,
            "violations": [ViolationCode.INSUFFICIENT_REST_PERIOD],
        })

    # ------------------------------------------------------------------
    # Minors
    # ------------------------------------------------------------------

    def validate_minor_restrictions(self, entry: TimeEntry) -> MinorRestrictionResult:
        """
        Daily hour caps and allowed time-of-day window for minors.

        School days (or school-year weeks) use the earlier evening cutoff;
        otherwise the summer window applies.
        """
        self._require_closed(entry)
        profile = self._profile(entry.employee_id)
        policy = self.policies.minor(entry.work_date, self._state(entry, profile), profile)

        declared_minor = EmployeeType.MINOR in (
            entry.employee_type,
            profile.employee_type if profile else None,
        )
        age = entry.employee_age
        applicable = age < policy.minor_age_threshold if age is not None else declared_minor

        if not applicable:
            return MinorRestrictionResult(entry_id=entry.id, employee_age=age)

        hours = calculate_entry_hours(entry).total_hours
        limit = policy.school_day_max_hours if entry.school_day else policy.non_school_day_max_hours
        latest_end = (
            policy.school_year_latest_end
            if entry.school_day or entry.school_year
            else policy.summer_latest_end
        )

        violations = []
        if hours > limit:
            violations.append(
                ViolationCode.SCHOOL_DAY_HOURS_EXCEEDED
                if entry.school_day
                else ViolationCode.NON_SCHOOL_DAY_HOURS_EXCEEDED
            )

        start = entry.clock_in.time()
        end = entry.clock_out.time()
        crosses_midnight = entry.clock_out.date() > entry.clock_in.date()
        if start < policy.earliest_start or end > latest_end or crosses_midnight:
            violations.append(ViolationCode.PROHIBITED_HOURS)

        return MinorRestrictionResult(
            entry_id=entry.id,
            applicable=True,
            employee_age=age,
            school_day=entry.school_day,
            school_year=entry.school_year,
            hours_worked=hours,
            maximum_allowed=limit,
            clock_in_time=_hhmm(start),
            clock_out_time=_hhmm(end),
            allowed_start_time=_hhmm(policy.earliest_start),
            allowed_end_time=_hhmm(latest_end),
            violations=violations,
        )

    # ------------------------------------------------------------------
    # State rules
    # ------------------------------------------------------------------

    def validate_state_compliance(self, entry: TimeEntry, state_code: str) -> StateComplianceResult:
        """Apply a state's daily overtime and 7th-day rules to one shift."""
        if not state_code or not state_code.strip():
            raise MissingIdentifierError("state_code is required")
        state = state_code.strip().upper()
        if len(state) != 2 or not state.isalpha():
            raise UnknownCategoryError(f"Invalid state code: {state_code!r}")
        self._require_closed(entry)

        profile = self._profile(entry.employee_id)
        policy = self.policies.overtime(entry.work_date, state, profile)
        hours = calculate_entry_hours(entry, policy)

        week_start, _ = workweek_bounds(entry.work_date, self.settings.workweek_start_index)
        worked_days = {
            e.work_date
            for e in self._worked_entries(entry.employee_id, week_start, entry.work_date, include=entry)
        }
        consecutive = streak_ending_on(worked_days, entry.work_date, earliest=week_start)

        seventh_day = policy.seventh_day_rule and consecutive >= 7
        multiplier = policy.double_time_multiplier if seventh_day else policy.overtime_multiplier

        logger.debug(
            f"State {state} rules for entry {entry.id}: {hours.overtime_hours}h daily OT, "
            f"{hours.double_time_hours}h DT, day {consecutive} of streak"
        )

        return StateComplianceResult(
            entry_id=entry.id,
            state=state,
            policy_name=policy.name,
            hours_worked=hours.total_hours,
            daily_overtime_applies=policy.daily_overtime_threshold is not None,
            daily_threshold=policy.daily_overtime_threshold,
            daily_overtime_hours=hours.overtime_hours,
            double_time_threshold=policy.double_time_threshold,
            double_time_hours=hours.double_time_hours,
            seventh_day_rule=seventh_day,
            consecutive_days=consecutive,
            overtime_multiplier=multiplier,
        )

    # ------------------------------------------------------------------
    # Aggregate reports
    # ------------------------------------------------------------------

    def validate_entry(self, entry: TimeEntry) -> ComplianceReport:
        """Run every applicable check for one closed shift."""
        self._require_closed(entry)
        profile = self._profile(entry.employee_id)
        employee_type = self._employee_type(entry, profile)

        maximum_hours = self.validate_maximum_hours(entry)

        work_hours = None
        policy = self.policies.work_hours(entry.work_date, self._state(entry, profile), profile)
        if employee_type in policy.two_week_limits:
            work_hours = self.check_work_hour_compliance(
                entry.employee_id,
                entry.work_date - timedelta(days=TWO_WEEK_WINDOW_DAYS - 1),
                entry.work_date,
                employee_type,
                entry=entry,
            )

        consecutive_days = self.analyze_consecutive_days(
            entry.employee_id, as_of=entry.work_date, entry=entry
        )
        break_requirements = self.validate_break_requirements(entry)
        break_timing = self.validate_break_timing(entry)
        rest_breaks = self.validate_rest_breaks(entry)
        break_pay = self.validate_break_pay(entry)
        rest_period = self.validate_rest_period(entry.employee_id, entry.clock_in, entry)
        minor_restrictions = self.validate_minor_restrictions(entry)

        state = self._state(entry, profile)
        state_compliance = self.validate_state_compliance(entry, state) if state else None

        checks = [
            maximum_hours,
            work_hours,
            consecutive_days,
            break_requirements,
            break_timing,
            rest_breaks,
            break_pay,
            rest_period,
            minor_restrictions,
            state_compliance,
        ]
        violations = order_violations(
            code for check in checks if check is not None for code in check.violations
        )

        report = ComplianceReport(
            entry_id=entry.id,
            employee_id=entry.employee_id,
            work_date=entry.work_date,
            requires_manager_approval=maximum_hours.requires_manager_approval,
            premium_pay_required=rest_period.premium_pay_required,
            maximum_hours=maximum_hours,
            work_hours=work_hours,
            consecutive_days=consecutive_days,
            break_requirements=break_requirements,
            break_timing=break_timing,
            rest_breaks=rest_breaks,
            break_pay=break_pay,
            rest_period=rest_period,
            minor_restrictions=minor_restrictions,
            state_compliance=state_compliance,
            violations=violations,
        )

        if violations:
            logger.info(
                f"Entry {entry.id} for {entry.employee_id} on {entry.work_date}: "
                f"{', '.join(v.value for v in violations)}"
            )
        return report

    def validate_period(
        self,
        employee_id: str,
        period_start: date,
        period_end: date,
    ) -> PeriodComplianceReport:
        """
        Compliance for every worked shift in a period, plus window checks.

        The work-hour cap is evaluated over every rolling two-week window
        ending on a worked day; the worst window is reported.
        """
        self._check_window(employee_id, period_start, period_end)
        profile = self._profile(employee_id)

        entries = self._worked_entries(employee_id, period_start, period_end)
        reports = [self.validate_entry(entry) for entry in entries]

        work_hours = None
        employee_type = self._employee_type(entries[0], profile) if entries else None
        if employee_type is not None:
            policy = self.policies.work_hours(period_end, profile.state if profile else None, profile)
            if employee_type in policy.two_week_limits:
                windows = [
                    self.check_work_hour_compliance(
                        employee_id,
                        day - timedelta(days=TWO_WEEK_WINDOW_DAYS - 1),
                        day,
                        employee_type,
                    )
                    for day in sorted({e.work_date for e in entries})
                ]
                if windows:
                    work_hours = max(windows, key=lambda w: w.total_hours)

        consecutive_days = self.analyze_consecutive_days(
            employee_id,
            lookback_days=(period_end - period_start).days + 1,
            as_of=period_end,
        )

        counts = Counter(code.value for report in reports for code in report.violations)
        window_codes = list(consecutive_days.violations)
        if work_hours is not None:
            window_codes.extend(work_hours.violations)
        violations = order_violations(
            [code for report in reports for code in report.violations] + window_codes
        )

        logger.info(
            f"Period {period_start}..{period_end} for {employee_id}: {len(reports)} entries, "
            f"{sum(1 for r in reports if r.violations)} with violations"
        )

        return PeriodComplianceReport(
            employee_id=employee_id,
            period_start=period_start,
            period_end=period_end,
            entries_evaluated=len(reports),
            entries_with_violations=sum(1 for r in reports if r.violations),
            violation_counts=dict(counts),
            work_hours=work_hours,
            consecutive_days=consecutive_days,
            entry_reports=reports,
            violations=violations,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _profile(self, employee_id: str) -> EmployeeProfile | None:
        return self.source.load_profile(employee_id)

    @staticmethod
    def _state(entry: TimeEntry | None, profile: EmployeeProfile | None) -> str | None:
        if entry is not None and entry.state:
            return entry.state
        return profile.state if profile else None

    @staticmethod
    def _employee_type(entry: TimeEntry, profile: EmployeeProfile | None) -> EmployeeType:
        if entry.employee_type != EmployeeType.ORDINARY or profile is None:
            return entry.employee_type
        return profile.employee_type

    @staticmethod
    def _require_closed(entry: TimeEntry) -> None:
        if entry.is_open:
            raise MissingTimestampError(f"Time entry {entry.id} has no clock out time")

    @staticmethod
    def _check_window(employee_id: str, start: date, end: date) -> None:
        if not employee_id or not employee_id.strip():
            raise MissingIdentifierError("employee_id is required")
        if end < start:
            raise InvalidTimeRangeError(f"Window end {end} is before start {start}")

    def _worked_entries(
        self,
        employee_id: str,
        start: date,
        end: date,
        include: TimeEntry | None = None,
    ) -> list[TimeEntry]:
        """
        Closed WORKED shifts that were not rejected.

        ``include`` replaces any stored entry with the same id, so a shift
        under evaluation counts once whether or not it is stored.
        """
        loaded = self.source.load_entries(employee_id, start, end)
        if include is not None:
            loaded = [e for e in loaded if e.id != include.id]
            if include.employee_id == employee_id and start <= include.work_date <= end:
                loaded.append(include)

        worked = []
        for entry in loaded:
            if entry.category != EntryCategory.WORKED or entry.status == TimeEntryStatus.REJECTED:
                continue
            if entry.is_open:
                logger.warning(f"Skipping open time entry {entry.id} in compliance window")
                continue
            worked.append(entry)
        return worked

    @staticmethod
    def _unpaid_meal_breaks(entry: TimeEntry) -> list[BreakEntry]:
        return [b for b in entry.meal_breaks if not b.paid]

    def _entry_starting_at(self, employee_id: str, clock_in: datetime) -> TimeEntry | None:
        day = clock_in.date()
        for entry in self.source.load_entries(employee_id, day, day):
            if entry.clock_in == clock_in:
                return entry
        return None

    def _previous_shift(
        self,
        employee_id: str,
        next_shift_clock_in: datetime,
        next_entry: TimeEntry | None,
    ) -> TimeEntry | None:
        """
        Latest-ending shift that started before the next shift.

        It may still be running at the next clock-in (an overlap).
        """
        day = next_shift_clock_in.date()
        window_start = day - timedelta(days=self.settings.consecutive_days_lookback)
        candidates: Sequence[TimeEntry] = [
            e
            for e in self._worked_entries(employee_id, window_start, day)
            if (next_entry is None or e.id != next_entry.id)
            and e.clock_in < next_shift_clock_in
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda e: e.clock_out)
