from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..common.geo import GeoPoint
from ..core.enums import EntryKind
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime, to_db_datetime
from .model import AdminEdit, AttendanceRecord, HistoryEntry
from .repository import AttendanceRepository

_ENTRY_COLUMNS = """
    entry_id, attendance_id, kind, location_lng, location_lat, photo, entry_time, edited_by, edited_at
"""


def _to_entry(r: dict) -> HistoryEntry:
    admin_edit = None
    if r.get("edited_by") is not None:
        admin_edit = AdminEdit(edited_by=int(r["edited_by"]), edited_at=from_db_datetime(r["edited_at"]))
    return HistoryEntry(
        entry_id=int(r["entry_id"]),
        kind=EntryKind(r["kind"]),
        location=GeoPoint(longitude=float(r["location_lng"]), latitude=float(r["location_lat"])),
        photo=r["photo"],
        timestamp=from_db_datetime(r["entry_time"]),
        admin_edit=admin_edit,
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _load(self, cur, headers: Sequence[dict]) -> list[AttendanceRecord]:
        if not headers:
            return []
        ids = [int(h["attendance_id"]) for h in headers]
        placeholders = ",".join(["%s"] * len(ids))
        cur.execute(
            f"""
            SELECT {_ENTRY_COLUMNS}
            FROM attendance_entries
            WHERE attendance_id IN ({placeholders})
            ORDER BY entry_id
            """,
            tuple(ids),
        )
        by_record: dict[int, list[HistoryEntry]] = {i: [] for i in ids}
        for r in fetchall(cur):
            by_record[int(r["attendance_id"])].append(_to_entry(r))

        return [
            AttendanceRecord(
                attendance_id=int(h["attendance_id"]),
                user_id=int(h["user_id"]),
                project_id=int(h["project_id"]),
                entries=tuple(by_record[int(h["attendance_id"])]),
            )
            for h in headers
        ]

    def _select_one(self, where: str, params: tuple) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT attendance_id, user_id, project_id FROM attendance_records WHERE {where}", params)
            header = fetchone(cur)
            if not header:
                return None
            return self._load(cur, [header])[0]

    def _select_many(self, where: str, params: tuple) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT attendance_id, user_id, project_id FROM attendance_records WHERE {where} ORDER BY attendance_id",
                params,
            )
            return self._load(cur, fetchall(cur))

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        return self._select_one("attendance_id=%s", (attendance_id,))

    def get_for_user_and_project(self, user_id: int, project_id: int) -> Optional[AttendanceRecord]:
        return self._select_one("user_id=%s AND project_id=%s", (user_id, project_id))

    def get_or_create(self, user_id: int, project_id: int) -> AttendanceRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            # UNIQUE(user_id, project_id) makes concurrent first submissions safe.
            cur.execute(
                "INSERT IGNORE INTO attendance_records(user_id, project_id) VALUES(%s,%s)",
                (user_id, project_id),
            )
        record = self.get_for_user_and_project(user_id, project_id)
        if record is None:
            raise RuntimeError(f"attendance record for user={user_id} project={project_id} was not created")
        return record

    def list_for_user(self, user_id: int) -> Sequence[AttendanceRecord]:
        return self._select_many("user_id=%s", (user_id,))

    def list_for_project(self, project_id: int) -> Sequence[AttendanceRecord]:
        return self._select_many("project_id=%s", (project_id,))

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_entries(
                    attendance_id, kind, location_lng, location_lat, photo, entry_time, edited_by, edited_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    attendance_id,
                    kind.value,
                    location.longitude,
                    location.latitude,
                    photo,
                    to_db_datetime(timestamp),
                    admin_edit.edited_by if admin_edit else None,
                    to_db_datetime(admin_edit.edited_at) if admin_edit else None,
                ),
            )
            entry_id = int(cur.lastrowid)

        return HistoryEntry(
            entry_id=entry_id,
            kind=kind,
            location=location,
            photo=photo,
            timestamp=timestamp,
            admin_edit=admin_edit,
        )

    def update_entry(
        self,
        *,
        attendance_id: int,
        entry_id: int,
        kind: EntryKind,
        timestamp: datetime,
        admin_edit: AdminEdit,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_entries
                SET kind=%s, entry_time=%s, edited_by=%s, edited_at=%s
                WHERE attendance_id=%s AND entry_id=%s
                """,
                (
                    kind.value,
                    to_db_datetime(timestamp),
                    admin_edit.edited_by,
                    to_db_datetime(admin_edit.edited_at),
                    attendance_id,
                    entry_id,
                ),
            )
            return cur.rowcount > 0

    def delete_entry(self, *, attendance_id: int, entry_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM attendance_entries WHERE attendance_id=%s AND entry_id=%s",
                (attendance_id, entry_id),
            )
            return cur.rowcount > 0
