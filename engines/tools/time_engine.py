"""
Time Engine MCP Tool

Shift hours, overtime pay split and weekly overtime exposed as MCP tools.

Tools take plain JSON: time entries are dicts in the TimeEntry shape,
dates are ISO strings. Each call evaluates its own in-memory snapshot.
"""

from datetime import date, datetime
from typing import Any

from fastmcp import FastMCP
from pydantic import TypeAdapter

from engines.config import get_settings
from engines.schemas.time_entry import BreakEntry, EmployeeProfile, TimeEntry
from engines.services.entry_store import InMemoryTimeEntryStore
from engines.services.overtime_calculator import OvertimeCalculationService
from engines.services.policy_catalog import build_default_policy_set
from engines.services.time_calculator import calculate_daily_hours, calculate_overtime_pay

# Initialize MCP server (will be started from server.py)
mcp = FastMCP("LaborWatch Time Engine")

_breaks_adapter = TypeAdapter(list[BreakEntry])


def build_store(
    entries: list[dict[str, Any]],
    profile: dict[str, Any] | None = None,
) -> InMemoryTimeEntryStore:
    """Validate raw entry and profile dicts into a one-off entry store."""
    return InMemoryTimeEntryStore(
        entries=[TimeEntry.model_validate(raw) for raw in entries],
        profiles=[EmployeeProfile.model_validate(profile)] if profile else [],
    )


@mcp.tool()
async def calculate_shift_hours(
    clock_in: str,
    clock_out: str,
    breaks: list[dict[str, Any]] | None = None,
    daily_overtime_threshold: float | None = None,
    double_time_threshold: float | None = None,
) -> dict:
    """
    Calculate worked hours for a single shift.

    Unpaid breaks are deducted, paid breaks count as worked time. With a
    daily threshold (e.g. 8 in California) hours beyond it are overtime,
    and beyond the double-time threshold (e.g. 12) double time.

    Args:
        clock_in: Shift start (ISO 8601 datetime)
        clock_out: Shift end (ISO 8601 datetime)
        breaks: Breaks as {"break_type", "start", "end", "paid"} dicts
        daily_overtime_threshold: Hours per day before overtime
        double_time_threshold: Hours per day before double time

    Returns:
        Hour breakdown with regular, overtime and double-time hours
    """
    result = calculate_daily_hours(
        datetime.fromisoformat(clock_in),
        datetime.fromisoformat(clock_out),
        _breaks_adapter.validate_python(breaks or []),
        daily_overtime_threshold,
        double_time_threshold,
    )
    return result.model_dump(mode="json")


@mcp.tool()
async def calculate_overtime_pay_split(
    regular_rate: float,
    regular_hours: float,
    overtime_hours: float,
    overtime_multiplier: float = 1.5,
    double_time_hours: float = 0.0,
    double_time_multiplier: float = 2.0,
) -> dict:
    """
    Split gross pay into regular, overtime and double-time pay.

    Example:
        $20/hr, 40 regular + 10 overtime at 1.5x
        - Regular: $800.00
        - Overtime: $300.00
        - Total: $1,100.00
    """
    result = calculate_overtime_pay(
        regular_rate,
        regular_hours,
        overtime_hours,
        overtime_multiplier,
        double_time_hours,
        double_time_multiplier,
    )
    return result.model_dump(mode="json")


@mcp.tool()
async def calculate_weekly_overtime(
    employee_id: str,
    period_start: str,
    period_end: str,
    entries: list[dict[str, Any]],
    profile: dict[str, Any] | None = None,
) -> dict:
    """
    Calculate weekly overtime from an employee's time entries.

    Only approved or completed WORKED entries count. State daily rules
    apply when the entries (or the profile) carry a state code.

    Args:
        employee_id: Employee identifier
        period_start: Workweek start (YYYY-MM-DD)
        period_end: Workweek end (YYYY-MM-DD)
        entries: Time entries as dicts
        profile: Optional employee profile (salary, exemption, state)

    Returns:
        Weekly totals, daily breakdown and calculation notes
    """
    service = OvertimeCalculationService(
        build_store(entries, profile), build_default_policy_set(), get_settings()
    )
    result = service.calculate_weekly_overtime(
        employee_id, date.fromisoformat(period_start), date.fromisoformat(period_end)
    )
    return result.model_dump(mode="json")


@mcp.tool()
async def get_overtime_summary(
    employee_id: str,
    period_start: str,
    period_end: str,
    entries: list[dict[str, Any]],
    profile: dict[str, Any] | None = None,
) -> dict:
    """
    Summarize overtime across a pay period, one result per workweek.

    Args:
        employee_id: Employee identifier
        period_start: Pay period start (YYYY-MM-DD)
        period_end: Pay period end (YYYY-MM-DD)
        entries: Time entries as dicts
        profile: Optional employee profile

    Returns:
        Period totals, overtime day counts and the weekly results
    """
    service = OvertimeCalculationService(
        build_store(entries, profile), build_default_policy_set(), get_settings()
    )
    summary = service.get_overtime_summary(
        employee_id, date.fromisoformat(period_start), date.fromisoformat(period_end)
    )
    return summary.model_dump(mode="json")
