from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import as_utc, now_utc, utc_date
from ..common.geo import GeoPoint, parse_coordinates
from ..common.locks import KeyedLock
from ..common.logging_config import get_logger
from ..common.permissions import require_role
from ..common.validators import require_enum, require_int, require_non_empty
from ..core.enums import ADMIN_ROLES, EntryKind
from ..core.exceptions import (
    BackdatedEntryError,
    CheckOutFirstError,
    ConsecutiveKindError,
    NotFoundError,
    ValidationError,
)
from ..users.model import Actor
from .model import AdminEdit, AttendanceRecord, HistoryEntry
from .repository import AttendanceRepository
from .working_time import chronological


class AttendanceAdminService:
    """Trusted repair of attendance history.

    Admins bypass the worker check-in/out state machine. Inserts are still
    held to per-day ordering; edits and deletes are not validated at all.
    Every mutation stamps the entry with the editing admin and is logged.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        *,
        locks: Optional[KeyedLock] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._attendance = attendance
        self._locks = locks or KeyedLock()
        self._log = logger or get_logger(__name__)

    def insert_entry(
        self,
        actor: Actor,
        *,
        user_id: int,
        project_id: int,
        kind: EntryKind | str,
        photo: str,
        location: GeoPoint | list,
        timestamp: datetime,
        now: Optional[datetime] = None,
    ) -> HistoryEntry:
        require_role(actor, ADMIN_ROLES, "Only super admin can add attendance")
        kind = require_enum(EntryKind, kind, "attendance type")
        photo = require_non_empty(photo, "Photo")
        point = location if isinstance(location, GeoPoint) else parse_coordinates(location)
        timestamp = as_utc(timestamp)
        user_id, project_id = require_int(user_id, "user_id"), require_int(project_id, "project_id")

        with self._locks.hold((user_id, project_id)):
            record = self._attendance.get_for_user_and_project(user_id, project_id)
            day_entries = [
                e
                for e in chronological(record.entries if record else ())
                if utc_date(e.timestamp) == utc_date(timestamp)
            ]
            if not day_entries:
                if kind == EntryKind.CHECK_OUT:
                    raise CheckOutFirstError(utc_date(timestamp))
            else:
                last = day_entries[-1]
                if timestamp <= last.timestamp:
                    raise BackdatedEntryError(timestamp, last.timestamp)
                if kind == last.kind:
                    raise ConsecutiveKindError(kind.value)

            if record is None:
                record = self._attendance.get_or_create(user_id, project_id)

            entry = self._attendance.append_entry(
                attendance_id=record.attendance_id,
                kind=kind,
                location=point,
                photo=photo,
                timestamp=timestamp,
                admin_edit=AdminEdit(edited_by=actor.user_id, edited_at=as_utc(now) if now else now_utc()),
            )

        self._log.warning(
            "attendance entry inserted by admin",
            extra={
                "actor_id": actor.user_id,
                "attendance_id": record.attendance_id,
                "entry_id": entry.entry_id,
                "kind": kind.value,
                "entry_time": timestamp,
            },
        )
        return entry

    def _record_or_404(self, attendance_id: int) -> AttendanceRecord:
        record = self._attendance.get_by_id(require_int(attendance_id, "attendance_id"))
        if not record:
            raise NotFoundError("Attendance record not found", attendance_id=attendance_id)
        return record

    def _require_entry(self, attendance_id: int, entry_id: int) -> tuple[AttendanceRecord, HistoryEntry]:
        record = self._record_or_404(attendance_id)
        entry = record.find_entry(require_int(entry_id, "entry_id"))
        if not entry:
            raise NotFoundError("Attendance entry not found", attendance_id=attendance_id, entry_id=entry_id)
        return record, entry

    def edit_entry(
        self,
        actor: Actor,
        *,
        attendance_id: int,
        entry_id: int,
        kind: EntryKind | str | None = None,
        timestamp: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> HistoryEntry:
        require_role(actor, ADMIN_ROLES, "Only super admin can edit attendance")
        if kind is None and timestamp is None:
            raise ValidationError("Nothing to change: provide an attendance type or a timestamp")
        kind = require_enum(EntryKind, kind, "attendance type") if kind is not None else None
        timestamp = as_utc(timestamp) if timestamp is not None else None
        admin_edit = AdminEdit(edited_by=actor.user_id, edited_at=as_utc(now) if now else now_utc())
        key = self._record_or_404(attendance_id)

        with self._locks.hold((key.user_id, key.project_id)):
            record, entry = self._require_entry(key.attendance_id, entry_id)
            new_kind = kind if kind is not None else entry.kind
            new_time = timestamp if timestamp is not None else entry.timestamp
            ok = self._attendance.update_entry(
                attendance_id=record.attendance_id,
                entry_id=entry.entry_id,
                kind=new_kind,
                timestamp=new_time,
                admin_edit=admin_edit,
            )
            if not ok:
                raise NotFoundError("Attendance entry not found", attendance_id=attendance_id, entry_id=entry_id)

        self._log.warning(
            "attendance entry edited by admin",
            extra={
                "actor_id": actor.user_id,
                "attendance_id": record.attendance_id,
                "entry_id": entry.entry_id,
                "old_kind": entry.kind.value,
                "new_kind": new_kind.value,
                "old_time": entry.timestamp,
                "new_time": new_time,
            },
        )
        return HistoryEntry(
            entry_id=entry.entry_id,
            kind=new_kind,
            location=entry.location,
            photo=entry.photo,
            timestamp=new_time,
            admin_edit=admin_edit,
        )

    def delete_entry(self, actor: Actor, *, attendance_id: int, entry_id: int) -> None:
        require_role(actor, ADMIN_ROLES, "Only super admin can delete attendance records")
        key = self._record_or_404(attendance_id)

        with self._locks.hold((key.user_id, key.project_id)):
            record, entry = self._require_entry(key.attendance_id, entry_id)
            if not self._attendance.delete_entry(attendance_id=record.attendance_id, entry_id=entry.entry_id):
                raise NotFoundError("Attendance entry not found", attendance_id=attendance_id, entry_id=entry_id)

        self._log.warning(
            "attendance entry deleted by admin",
            extra={
                "actor_id": actor.user_id,
                "attendance_id": record.attendance_id,
                "entry_id": entry.entry_id,
                "kind": entry.kind.value,
                "entry_time": entry.timestamp,
            },
        )
