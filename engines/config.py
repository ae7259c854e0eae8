"""
LaborWatch Configuration

Environment-based settings for the labor-law compliance engine.
Federal baseline thresholds live here; state overrides are built
into the policy catalog.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "LaborWatch Compliance Engine"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # Calculation
    workweek_start: Literal[
        "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"
    ] = Field(default="monday", description="First day of the fixed FLSA workweek")

    # FLSA overtime
    weekly_overtime_threshold: Decimal = Decimal("40")
    overtime_multiplier: Decimal = Decimal("1.5")
    double_time_multiplier: Decimal = Decimal("2.0")
    exempt_minimum_weekly_salary: Decimal = Decimal("684")  # 29 CFR 541.600

    # Work hour limits
    max_consecutive_shift_hours: Decimal = Decimal("16")
    medical_resident_two_week_limit: Decimal = Decimal("80")
    max_consecutive_days: int = 7
    consecutive_days_lookback: int = 30

    # Breaks
    meal_break_min_minutes: int = 30
    meal_break_required_after_hours: Decimal = Decimal("5")
    meal_break_deadline_hours: Decimal = Decimal("5")
    meal_break_waiver_max_hours: Decimal = Decimal("6")
    rest_break_minutes_per_4_hours: int = 10
    rest_break_interval_hours: Decimal = Decimal("4")

    # Rest between shifts
    min_rest_hours_between_shifts: Decimal = Decimal("8")
    reduced_rest_premium_rate: Decimal = Decimal("1.5")

    # Minor employees
    minor_age_threshold: int = 18
    minor_school_day_max_hours: Decimal = Decimal("3")
    minor_non_school_day_max_hours: Decimal = Decimal("8")
    minor_earliest_start: str = "07:00"
    minor_school_year_latest_end: str = "19:00"
    minor_summer_latest_end: str = "21:00"

    # Record keeping (29 CFR 516.5 / 516.6)
    time_record_retention_years: int = 3
    payroll_record_retention_years: int = 2

    @computed_field
    @property
    def workweek_start_index(self) -> int:
        """Workweek start as a ``date.weekday()`` index (Monday = 0)."""
        return WEEKDAYS.index(self.workweek_start)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
