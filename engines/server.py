"""
LaborWatch Compliance Engines - MCP Server

FastMCP server exposing time and compliance tools:
- Time Engine: shift hours, overtime pay split, weekly overtime
- Compliance: shift and period validation, record retention
"""

import logging
from contextlib import asynccontextmanager

from fastmcp import FastMCP

from engines.config import get_settings

settings = get_settings()

# Configure logging
logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

# Import the MCP instance and tools from tool modules
# This registers all the tools with the MCP server
from engines.tools.time_engine import mcp  # noqa: E402
from engines.tools.compliance import *  # noqa: E402, F401, F403


@asynccontextmanager
async def lifespan(server: FastMCP):
    """MCP server lifespan manager."""
    logger.info(f"{settings.app_name} starting...")
    yield
    logger.info(f"{settings.app_name} shutting down...")


# Configure the MCP server
mcp.name = settings.app_name
mcp.description = """
LaborWatch labor-law compliance and overtime engines.

1. **Time Engine** (calculate_shift_hours, calculate_overtime_pay_split,
   calculate_weekly_overtime, get_overtime_summary)
   - Shift hours after unpaid break deductions
   - Federal weekly and state daily overtime / double time
   - Exemption and 7th-consecutive-day rules

2. **Compliance** (validate_time_entry, validate_compliance_period, get_record_retention)
   - Maximum shift length, rolling two-week caps, consecutive days
   - Meal and rest breaks, rest between shifts
   - Minor hour and time-of-day restrictions
   - FLSA record retention

Hours are always recomputed from clock and break timestamps.
"""


def main():
    """Run the MCP server."""
    logger.info(f"Starting {settings.app_name} MCP Server")
    mcp.run()


if __name__ == "__main__":
    main()
