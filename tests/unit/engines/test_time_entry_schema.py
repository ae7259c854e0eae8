"""
Time Entry Schema Unit Tests

Tests for entry invariants, the approval workflow and category parsing.
"""

from datetime import date, datetime

import pytest
from pydantic import ValidationError

from engines.errors import InvalidStatusTransitionError, UnknownCategoryError
from engines.schemas.time_entry import (
    BreakEntry,
    BreakType,
    EntryCategory,
    TimeEntry,
    TimeEntryStatus,
    parse_category,
)
from tests.factories import make_break, make_entry, make_profile


class TestTimeEntryInvariants:
    """Test interval validation."""

    def test_clock_out_before_clock_in(self):
        with pytest.raises(ValidationError):
            TimeEntry(
                employee_id="emp-001",
                clock_in=datetime(2024, 3, 4, 17),
                clock_out=datetime(2024, 3, 4, 9),
            )

    def test_break_before_clock_in(self):
        with pytest.raises(ValidationError):
            make_entry(datetime(2024, 3, 4, 9), 8, breaks=[make_break(datetime(2024, 3, 4, 8))])

    def test_break_after_clock_out(self):
        with pytest.raises(ValidationError):
            make_entry(datetime(2024, 3, 4, 9), 8, breaks=[make_break(datetime(2024, 3, 4, 16, 45))])

    def test_overlapping_breaks(self):
        with pytest.raises(ValidationError):
            make_entry(
                datetime(2024, 3, 4, 9), 8,
                breaks=[
                    make_break(datetime(2024, 3, 4, 12)),
                    make_break(datetime(2024, 3, 4, 12, 15)),
                ],
            )

    def test_open_break_in_closed_shift(self):
        running = BreakEntry(break_type=BreakType.LUNCH, start=datetime(2024, 3, 4, 12))

        with pytest.raises(ValidationError):
            make_entry(datetime(2024, 3, 4, 9), 8, breaks=[running])

    def test_open_break_in_open_shift_is_allowed(self):
        running = BreakEntry(break_type=BreakType.LUNCH, start=datetime(2024, 3, 4, 12))

        entry = make_entry(datetime(2024, 3, 4, 9), None, breaks=[running])

        assert entry.is_open is True

    def test_blank_employee_id(self):
        with pytest.raises(ValidationError):
            make_entry(employee_id="   ")

    def test_state_is_normalized(self):
        assert make_entry(state=" ca ").state == "CA"

    def test_invalid_state(self):
        with pytest.raises(ValidationError):
            make_entry(state="Calif")

    def test_work_date_is_clock_in_date(self):
        entry = make_entry(datetime(2024, 3, 4, 22), 6)

        assert entry.work_date == date(2024, 3, 4)

    def test_entries_are_immutable(self):
        entry = make_entry()

        with pytest.raises(ValidationError):
            entry.clock_out = None


class TestEmployeeProfile:
    """Test profile field normalization."""

    def test_state_is_normalized(self):
        assert make_profile(state=" ca ").state == "CA"

    def test_invalid_state(self):
        with pytest.raises(ValidationError):
            make_profile(state="California")

    def test_state_is_optional(self):
        assert make_profile().state is None


class TestApprovalWorkflow:
    """Test status transitions."""

    def test_pending_to_approved(self):
        entry = make_entry(status=TimeEntryStatus.PENDING_APPROVAL)

        approved = entry.transition_to(TimeEntryStatus.APPROVED)

        assert approved.status == TimeEntryStatus.APPROVED
        assert entry.status == TimeEntryStatus.PENDING_APPROVAL

    def test_approved_to_completed(self):
        assert make_entry().transition_to("completed").status == TimeEntryStatus.COMPLETED

    def test_approved_back_to_pending_is_rejected(self):
        with pytest.raises(InvalidStatusTransitionError):
            make_entry().transition_to(TimeEntryStatus.PENDING_APPROVAL)

    def test_rejected_is_final(self):
        entry = make_entry(status=TimeEntryStatus.REJECTED)

        with pytest.raises(InvalidStatusTransitionError):
            entry.transition_to(TimeEntryStatus.APPROVED)

    def test_open_shift_cannot_be_approved(self):
        entry = make_entry(hours=None, status=TimeEntryStatus.PENDING_APPROVAL)

        with pytest.raises(InvalidStatusTransitionError):
            entry.transition_to(TimeEntryStatus.APPROVED)


class TestParseCategory:
    """Test enum coercion from raw strings."""

    def test_case_insensitive_value(self):
        assert parse_category(EntryCategory, "pto") == EntryCategory.PTO

    def test_member_passthrough(self):
        assert parse_category(BreakType, BreakType.LUNCH) == BreakType.LUNCH

    def test_status_by_name(self):
        assert parse_category(TimeEntryStatus, "PENDING_APPROVAL") == TimeEntryStatus.PENDING_APPROVAL

    def test_unknown_value(self):
        with pytest.raises(UnknownCategoryError):
            parse_category(EntryCategory, "SICK")


class TestBreakEntry:
    """Test break records."""

    def test_end_before_start(self):
        with pytest.raises(ValidationError):
            BreakEntry(
                break_type=BreakType.LUNCH,
                start=datetime(2024, 3, 4, 12),
                end=datetime(2024, 3, 4, 11),
            )

    def test_kinds(self):
        lunch = make_break(datetime(2024, 3, 4, 12))
        rest = make_break(datetime(2024, 3, 4, 15), minutes=10, break_type=BreakType.SHORT_BREAK)

        assert lunch.is_meal_break and not lunch.is_rest_break
        assert rest.is_rest_break and not rest.is_meal_break
        assert rest.duration_minutes == 10
