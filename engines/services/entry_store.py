"""
Time Entry Source

Synchronous data-access seam between the engines and whatever stores
time entries. Callers that load asynchronously resolve their data first
and hand the engines a snapshot.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date
from typing import Protocol

from engines.errors import InvalidTimeRangeError, MissingIdentifierError
from engines.schemas.time_entry import EmployeeProfile, TimeEntry

logger = logging.getLogger(__name__)


class TimeEntrySource(Protocol):
    """What the engines need from the entry store."""

    def load_entries(
        self, employee_id: str, start: date, end: date
    ) -> Sequence[TimeEntry]:
        """Entries whose clock-in date falls in ``[start, end]``, oldest first."""
        ...

    def load_profile(self, employee_id: str) -> EmployeeProfile | None:
        """Employee attributes, or None if the store has none."""
        ...


class InMemoryTimeEntryStore:
    """
    Snapshot of entries held in memory.

    Used by the MCP tools (one store per call) and by callers that have
    already fetched the entries they want evaluated.
    """

    def __init__(
        self,
        entries: Iterable[TimeEntry] = (),
        profiles: Iterable[EmployeeProfile] = (),
    ):
        self._entries: dict[str, list[TimeEntry]] = defaultdict(list)
        self._profiles: dict[str, EmployeeProfile] = {}
        for entry in entries:
            self.add_entry(entry)
        for profile in profiles:
            self.add_profile(profile)

    def add_entry(self, entry: TimeEntry) -> None:
        """Store an entry, replacing any entry with the same id."""
        bucket = self._entries[entry.employee_id]
        bucket[:] = [e for e in bucket if e.id != entry.id]
        bucket.append(entry)
        bucket.sort(key=lambda e: e.clock_in)

    def add_profile(self, profile: EmployeeProfile) -> None:
        self._profiles[profile.employee_id] = profile

    def load_entries(
        self, employee_id: str, start: date, end: date
    ) -> Sequence[TimeEntry]:
        if not employee_id:
            raise MissingIdentifierError("employee_id is required")
        if end < start:
            raise InvalidTimeRangeError(f"Range end {end} is before start {start}")

        found = [
            entry
            for entry in self._entries.get(employee_id, [])
            if start <= entry.work_date <= end
        ]
        logger.debug(f"Loaded {len(found)} entries for {employee_id} between {start} and {end}")
        return tuple(found)

    def load_profile(self, employee_id: str) -> EmployeeProfile | None:
        return self._profiles.get(employee_id)
