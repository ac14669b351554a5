from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..common.geo import GeoPoint
from ..core.enums import EntryKind


@dataclass(frozen=True)
class AdminEdit:
    """Audit marker left on entries inserted or edited by an admin."""

    edited_by: int
    edited_at: datetime


@dataclass(frozen=True)
class HistoryEntry:
    """A single check-in or check-out event."""

    entry_id: int
    kind: EntryKind
    location: GeoPoint
    photo: str
    timestamp: datetime
    admin_edit: Optional[AdminEdit] = None


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: the attendance ledger of one user on one project.

    ``entries`` is in insertion order, which admin edits may make
    non-chronological.
    """

    attendance_id: int
    user_id: int
    project_id: int
    entries: tuple[HistoryEntry, ...] = ()

    @property
    def last_entry(self) -> Optional[HistoryEntry]:
        return self.entries[-1] if self.entries else None

    def find_entry(self, entry_id: int) -> Optional[HistoryEntry]:
        for e in self.entries:
            if e.entry_id == entry_id:
                return e
        return None


@dataclass(frozen=True)
class WorkingTime:
    total_minutes: int
    total_hours: float


@dataclass(frozen=True)
class DayAttendance:
    """Read-model: one present day in a period summary."""

    day: date
    check_in: datetime
    check_out: datetime
    minutes: int
    hours: float


@dataclass(frozen=True)
class AttendanceSummary:
    present_days: int
    absent_days: int
    total_working_days: int
    total_minutes: int = 0
    total_hours: float = 0.0
    days: tuple[DayAttendance, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class SubmissionResult:
    entries: tuple[HistoryEntry, ...]
    distance_meters: float


@dataclass(frozen=True)
class MonthlySummary:
    total_entries: int
    days_worked: int
