"""
Test Configuration and Fixtures

Provides settings, the default policy set and entry-store-backed services.
"""

import pytest

from engines.config import Settings
from engines.services.compliance_validator import ComplianceValidator
from engines.services.entry_store import InMemoryTimeEntryStore
from engines.services.overtime_calculator import OvertimeCalculationService
from engines.services.policy_catalog import build_default_policy_set


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults only (no .env lookup)."""
    return Settings(_env_file=None)


@pytest.fixture
def policy_set(settings):
    return build_default_policy_set(settings)


@pytest.fixture
def store() -> InMemoryTimeEntryStore:
    return InMemoryTimeEntryStore()


@pytest.fixture
def overtime_service(store, policy_set, settings) -> OvertimeCalculationService:
    return OvertimeCalculationService(store, policy_set, settings)


@pytest.fixture
def validator(store, policy_set, settings) -> ComplianceValidator:
    return ComplianceValidator(store, policy_set, settings)
