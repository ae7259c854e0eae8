"""
Compliance MCP Tool

Labor-law validation and record retention exposed as MCP tools.
"""

from datetime import date
from typing import Any, Literal

from compliance_vault.retention import (
    get_payroll_retention_policy,
    get_retention_policy,
    retention_expires_on,
)
from engines.config import get_settings
from engines.schemas.time_entry import TimeEntry
from engines.services.compliance_validator import ComplianceValidator
from engines.services.policy_catalog import build_default_policy_set

# Use the same MCP instance as time_engine
from engines.tools.time_engine import build_store, mcp


@mcp.tool()
async def validate_time_entry(
    entry: dict[str, Any],
    history: list[dict[str, Any]] | None = None,
    profile: dict[str, Any] | None = None,
) -> dict:
    """
    Run every compliance check for one shift.

    Checks shift length, rolling work-hour caps, consecutive days, meal
    and rest breaks, rest since the previous shift, minor restrictions
    and state overtime rules.

    Args:
        entry: The shift to validate, as a TimeEntry dict
        history: Other shifts of the same employee (previous shift,
            consecutive-day and two-week window checks)
        profile: Optional employee profile

    Returns:
        Compliance report with violation codes and per-check detail
    """
    target = TimeEntry.model_validate(entry)
    store = build_store(history or [], profile)
    store.add_entry(target)

    validator = ComplianceValidator(store, build_default_policy_set(), get_settings())
    return validator.validate_entry(target).model_dump(mode="json")


@mcp.tool()
async def validate_compliance_period(
    employee_id: str,
    period_start: str,
    period_end: str,
    entries: list[dict[str, Any]],
    profile: dict[str, Any] | None = None,
) -> dict:
    """
    Validate every shift an employee worked in a period.

    Args:
        employee_id: Employee identifier
        period_start: Period start (YYYY-MM-DD)
        period_end: Period end (YYYY-MM-DD)
        entries: Time entries as dicts
        profile: Optional employee profile

    Returns:
        Period report with violation counts and one report per shift
    """
    validator = ComplianceValidator(
        build_store(entries, profile), build_default_policy_set(), get_settings()
    )
    report = validator.validate_period(
        employee_id, date.fromisoformat(period_start), date.fromisoformat(period_end)
    )
    return report.model_dump(mode="json")


@mcp.tool()
async def get_record_retention(
    record_kind: Literal["time", "payroll"] = "time",
    record_date: str | None = None,
    state: str | None = None,
) -> dict:
    """
    Look up the retention rule for time or payroll records.

    Args:
        record_kind: "time" (hours, pay, deductions) or "payroll"
            (wage tables, benefits)
        record_date: Record creation date (YYYY-MM-DD); adds the
            expiry date to the result
        state: Optional state whose record-keeping rule applies

    Returns:
        Retention years, required contents and optional expiry date
    """
    policies = build_default_policy_set()
    on = date.fromisoformat(record_date) if record_date else None
    if record_kind == "time":
        retention = get_retention_policy(policies, on, state)
    else:
        retention = get_payroll_retention_policy(policies, on, state)

    result = retention.model_dump(mode="json")
    if on is not None:
        result["retention_expires_on"] = retention_expires_on(
            on, record_kind, policies, state
        ).isoformat()
    return result
