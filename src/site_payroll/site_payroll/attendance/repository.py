from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..common.geo import GeoPoint
from ..core.enums import EntryKind
from .model import AdminEdit, AttendanceRecord, HistoryEntry


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_user_and_project(self, user_id: int, project_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_or_create(self, user_id: int, project_id: int) -> AttendanceRecord:
        """Ledgers are created lazily on the first submission."""

        raise NotImplementedError

    def list_for_user(self, user_id: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_project(self, project_id: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def append_entry(
        self,
        *,
        attendance_id: int,
        kind: EntryKind,
        location: GeoPoint,
        photo: str,
        timestamp: datetime,
        admin_edit: Optional[AdminEdit] = None,
    ) -> HistoryEntry:
        raise NotImplementedError

    def update_entry(
        self,
        *,
        attendance_id: int,
        entry_id: int,
        kind: EntryKind,
        timestamp: datetime,
        admin_edit: AdminEdit,
    ) -> bool:
        """Admin-only override; no sequencing checks."""

        raise NotImplementedError

    def delete_entry(self, *, attendance_id: int, entry_id: int) -> bool:
        raise NotImplementedError
