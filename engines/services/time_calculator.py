"""
Time Calculation Engine

Pure calculation logic that turns one shift's clock times and breaks
into regular, overtime and double-time hours, and hours into pay.

Hours are always derived from timestamps here; stored totals on a
time entry are never consulted.
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from engines.errors import InvalidTimeRangeError, LaborEngineError, MissingTimestampError
from engines.schemas.policy import OvertimePolicy
from engines.schemas.time_engine import BreakSummary, HourBreakdown, PaySplit
from engines.schemas.time_entry import BreakEntry, TimeEntry

logger = logging.getLogger(__name__)

HOURS_QUANTUM = Decimal("0.01")
PAY_QUANTUM = Decimal("0.01")

ZERO = Decimal("0")


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Convert a number to Decimal without picking up float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_hours(value: Decimal, quantum: Decimal = HOURS_QUANTUM) -> Decimal:
    return value.quantize(quantum, rounding=ROUND_HALF_UP)


def hours_between(start: datetime, end: datetime) -> Decimal:
    """Elapsed hours between two timestamps (unrounded)."""
    if end < start:
        raise InvalidTimeRangeError(
            f"End {end.isoformat()} is before start {start.isoformat()}"
        )
    return Decimal(str((end - start).total_seconds())) / Decimal("3600")


def calculate_break_deductions(breaks: Iterable[BreakEntry]) -> BreakSummary:
    """
    Total, paid and unpaid break minutes.

    Paid breaks count as worked time; only unpaid minutes are deducted.
    """
    total = paid = unpaid = ZERO
    for brk in breaks:
        duration = brk.duration_minutes
        total += duration
        if brk.paid:
            paid += duration
        else:
            unpaid += duration

    return BreakSummary(
        total_break_minutes=quantize_hours(total),
        paid_break_minutes=quantize_hours(paid),
        unpaid_break_minutes=quantize_hours(unpaid),
    )


def split_daily_hours(
    total_hours: Decimal,
    daily_overtime_threshold: Decimal | None,
    double_time_threshold: Decimal | None = None,
) -> tuple[Decimal, Decimal, Decimal]:
    """
    Allocate hours into (regular, overtime, double time) buckets.

    Regular hours fill up to the daily threshold, overtime up to the
    double-time threshold, and anything beyond that is double time.
    Without a double-time threshold all excess is overtime; without a
    daily threshold there is no daily overtime at all.
    """
    if daily_overtime_threshold is None:
        if double_time_threshold is None:
            return total_hours, ZERO, ZERO
        regular = min(total_hours, double_time_threshold)
        return regular, ZERO, total_hours - regular

    if double_time_threshold is not None and double_time_threshold <= daily_overtime_threshold:
        raise LaborEngineError(
            "Double time threshold must be greater than daily overtime threshold"
        )

    regular = min(total_hours, daily_overtime_threshold)
    excess = total_hours - regular
    if double_time_threshold is None:
        return regular, excess, ZERO

    overtime = min(excess, double_time_threshold - daily_overtime_threshold)
    return regular, overtime, excess - overtime


def calculate_daily_hours(
    clock_in: datetime | None,
    clock_out: datetime | None,
    breaks: Iterable[BreakEntry],
    daily_overtime_threshold: Decimal | int | float | None,
    double_time_threshold: Decimal | int | float | None = None,
) -> HourBreakdown:
    """
    Calculate hours worked for one shift.

    Algorithm:
    1. Elapsed time between clock in and clock out
    2. Subtract unpaid break time (paid breaks stay in)
    3. Round to the hour quantum
    4. Allocate to regular / overtime / double time by threshold

    Raises:
        MissingTimestampError: clock in/out or a break end is missing
        InvalidTimeRangeError: clock out before clock in, or a break
            outside the shift
    """
    if clock_in is None or clock_out is None:
        raise MissingTimestampError("Clock in and clock out times are required")
    if clock_out < clock_in:
        raise InvalidTimeRangeError(
            f"Clock out {clock_out.isoformat()} is before clock in {clock_in.isoformat()}"
        )

    breaks = list(breaks)
    for brk in breaks:
        if brk.end is None:
            raise MissingTimestampError(f"Break {brk.id} has no end time")
        if brk.start < clock_in or brk.end > clock_out:
            raise InvalidTimeRangeError(f"Break {brk.id} falls outside the shift")

    daily = to_decimal(daily_overtime_threshold) if daily_overtime_threshold is not None else None
    double = to_decimal(double_time_threshold) if double_time_threshold is not None else None

    summary = calculate_break_deductions(breaks)
    worked = hours_between(clock_in, clock_out) - summary.deductible_minutes / Decimal("60")
    if worked < ZERO:
        raise InvalidTimeRangeError("Unpaid break time exceeds the shift length")

    total_hours = quantize_hours(worked)
    regular, overtime, double_time = split_daily_hours(total_hours, daily, double)

    logger.debug(
        f"Shift {clock_in.isoformat()} - {clock_out.isoformat()}: "
        f"{total_hours}h ({regular} reg / {overtime} OT / {double_time} DT)"
    )

    return HourBreakdown(
        total_hours=total_hours,
        regular_hours=regular,
        overtime_hours=overtime,
        double_time_hours=double_time,
        break_minutes=summary.total_break_minutes,
        paid_break_minutes=summary.paid_break_minutes,
        unpaid_break_minutes=summary.unpaid_break_minutes,
    )


def calculate_entry_hours(
    entry: TimeEntry,
    policy: OvertimePolicy | None = None,
) -> HourBreakdown:
    """
    Hours for a stored time entry under an overtime policy.

    Open shifts have no hours yet. Without a policy, all hours are regular.
    """
    if entry.is_open:
        return HourBreakdown(
            total_hours=ZERO,
            regular_hours=ZERO,
            overtime_hours=ZERO,
            double_time_hours=ZERO,
        )

    return calculate_daily_hours(
        entry.clock_in,
        entry.clock_out,
        entry.breaks,
        policy.daily_overtime_threshold if policy else None,
        policy.double_time_threshold if policy else None,
    )


def calculate_overtime_pay(
    regular_rate: Decimal | int | float,
    regular_hours: Decimal | int | float,
    overtime_hours: Decimal | int | float,
    overtime_multiplier: Decimal | int | float = Decimal("1.5"),
    double_time_hours: Decimal | int | float = ZERO,
    double_time_multiplier: Decimal | int | float = Decimal("2.0"),
) -> PaySplit:
    """
    Split gross pay by hour bucket.

    regular_pay = rate × regular hours
    overtime_pay = rate × multiplier × overtime hours
    double_time_pay = rate × double-time multiplier × double-time hours
    """
    rate = to_decimal(regular_rate)
    regular = to_decimal(regular_hours)
    overtime = to_decimal(overtime_hours)
    double_time = to_decimal(double_time_hours)

    if min(rate, regular, overtime, double_time) < ZERO:
        raise LaborEngineError("Rates and hours must not be negative")

    regular_pay = (rate * regular).quantize(PAY_QUANTUM, rounding=ROUND_HALF_UP)
    overtime_pay = (rate * to_decimal(overtime_multiplier) * overtime).quantize(
        PAY_QUANTUM, rounding=ROUND_HALF_UP
    )
    double_time_pay = (rate * to_decimal(double_time_multiplier) * double_time).quantize(
        PAY_QUANTUM, rounding=ROUND_HALF_UP
    )

    return PaySplit(
        regular_pay=regular_pay,
        overtime_pay=overtime_pay,
        double_time_pay=double_time_pay,
        total_pay=regular_pay + overtime_pay + double_time_pay,
    )
