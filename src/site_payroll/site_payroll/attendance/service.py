from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Optional

from ..common.datetime_utils import as_utc, month_bounds, now_utc, utc_date
from ..common.geo import GeoPoint, haversine_meters, parse_coordinates
from ..common.locks import KeyedLock
from ..common.logging_config import get_logger
from ..common.permissions import require_role
from ..common.validators import require_enum, require_int, require_non_empty, require_period
from ..core.constants import GEOFENCE_RADIUS_METERS, LATE_CHECKIN_HOUR
from ..core.enums import PAYROLL_MANAGER_ROLES, DayStatus, EntryKind, Role
from ..core.exceptions import (
    AlreadyCheckedInError,
    NoOpenCheckInError,
    NotFoundError,
    OutOfRangeError,
    ProjectLocationMissingError,
)
from ..projects.repository import ProjectRepository
from ..users.model import Actor
from .calendars.base import WorkingCalendar
from .calendars.weekday_calendar import WeekdayCalendar
from .model import (
    AttendanceSummary,
    DayAttendance,
    HistoryEntry,
    MonthlySummary,
    SubmissionResult,
    WorkingTime,
)
from .repository import AttendanceRepository
from .working_time import chronological, compute_working_time, group_by_day


def entry_to_dict(e: HistoryEntry) -> dict[str, Any]:
    return {
        "entry_id": e.entry_id,
        "attendance_type": e.kind.value,
        "coordinates": e.location.as_coordinates(),
        "photo": e.photo,
        "timestamp": e.timestamp.isoformat(),
        "edited_by_admin": e.admin_edit is not None,
        "edited_by": e.admin_edit.edited_by if e.admin_edit else None,
        "edited_at": e.admin_edit.edited_at.isoformat() if e.admin_edit else None,
    }


class AttendanceService:
    """Worker-facing attendance ledger: admission-controlled check-in/out and read models."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        projects: ProjectRepository,
        *,
        calendar: Optional[WorkingCalendar] = None,
        geofence_radius_meters: float = GEOFENCE_RADIUS_METERS,
        late_checkin_hour: int = LATE_CHECKIN_HOUR,
        locks: Optional[KeyedLock] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._attendance = attendance
        self._projects = projects
        self._calendar = calendar or WeekdayCalendar()
        self._radius = float(geofence_radius_meters)
        self._late_hour = int(late_checkin_hour)
        self._locks = locks or KeyedLock()
        self._log = logger or get_logger(__name__)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit_entry(
        self,
        actor: Actor,
        *,
        project_id: int,
        kind: EntryKind | str,
        photo: str,
        location: GeoPoint | list,
        now: Optional[datetime] = None,
    ) -> SubmissionResult:
        require_role(actor, {Role.LABOUR}, "Only labour can mark attendance")
        kind = require_enum(EntryKind, kind, "attendance type")
        photo = require_non_empty(photo, "Photo")
        point = location if isinstance(location, GeoPoint) else parse_coordinates(location)

        project = self._projects.get_by_id(require_int(project_id, "project_id"))
        if not project:
            raise NotFoundError("Project not found", project_id=project_id)
        if project.location is None:
            raise ProjectLocationMissingError(project.project_id)

        distance = haversine_meters(point, project.location)
        if distance > self._radius:
            self._log.info(
                "attendance rejected: outside geofence",
                extra={"user_id": actor.user_id, "project_id": project.project_id, "distance_m": round(distance, 2)},
            )
            raise OutOfRangeError(distance, self._radius)

        with self._locks.hold((actor.user_id, project.project_id)):
            record = self._attendance.get_for_user_and_project(actor.user_id, project.project_id)
            self._check_sequence(record.last_entry if record else None, kind)

            if record is None:
                record = self._attendance.get_or_create(actor.user_id, project.project_id)

            entry = self._attendance.append_entry(
                attendance_id=record.attendance_id,
                kind=kind,
                location=point,
                photo=photo,
                timestamp=as_utc(now) if now else now_utc(),
            )

        self._log.info(
            "attendance entry recorded",
            extra={
                "user_id": actor.user_id,
                "project_id": project.project_id,
                "kind": kind.value,
                "entry_id": entry.entry_id,
                "distance_m": round(distance, 2),
            },
        )
        return SubmissionResult(entries=record.entries + (entry,), distance_meters=distance)

    @staticmethod
    def _check_sequence(last: Optional[HistoryEntry], kind: EntryKind) -> None:
        # Strict alternation against the last entry overall, not per day.
        if kind == EntryKind.CHECK_IN and last is not None and last.kind == EntryKind.CHECK_IN:
            raise AlreadyCheckedInError(last_entry_at=last.timestamp)
        if kind == EntryKind.CHECK_OUT and (last is None or last.kind != EntryKind.CHECK_IN):
            raise NoOpenCheckInError(last_kind=last.kind.value if last else None)

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def _entries(self, user_id: int, project_id: int) -> tuple[HistoryEntry, ...]:
        user_id, project_id = require_int(user_id, "user_id"), require_int(project_id, "project_id")
        record = self._attendance.get_for_user_and_project(user_id, project_id)
        return record.entries if record else ()

    def get_attendance_summary(
        self,
        user_id: int,
        project_id: int,
        period_start: date,
        period_end: date,
    ) -> AttendanceSummary:
        require_period(period_start, period_end)

        working_days = self._calendar.working_days(period_start, period_end)
        in_period = [e for e in self._entries(user_id, project_id) if period_start <= utc_date(e.timestamp) <= period_end]

        days: list[DayAttendance] = []
        for day, items in sorted(group_by_day(in_period).items()):
            check_ins = [e for e in items if e.kind == EntryKind.CHECK_IN]
            check_outs = [e for e in items if e.kind == EntryKind.CHECK_OUT]
            if not check_ins or not check_outs:
                continue
            wt = compute_working_time(items)
            days.append(
                DayAttendance(
                    day=day,
                    check_in=check_ins[0].timestamp,
                    check_out=check_outs[-1].timestamp,
                    minutes=wt.total_minutes,
                    hours=wt.total_hours,
                )
            )

        present = {d.day for d in days}
        absent_days = sum(1 for d in working_days if d not in present)
        total_minutes = sum(d.minutes for d in days)

        return AttendanceSummary(
            present_days=len(days),
            absent_days=absent_days,
            total_working_days=len(working_days),
            total_minutes=total_minutes,
            total_hours=round(total_minutes / 60, 2),
            days=tuple(days),
        )

    def get_daily_working_hours(self, user_id: int, project_id: int, day: date) -> WorkingTime:
        items = group_by_day(self._entries(user_id, project_id)).get(day, [])
        return compute_working_time(items)

    def get_monthly_summary(self, user_id: int, project_id: int, year: int, month: int) -> MonthlySummary:
        start, end = month_bounds(year, month)
        in_month = [e for e in self._entries(user_id, project_id) if start <= utc_date(e.timestamp) <= end]
        return MonthlySummary(
            total_entries=len(in_month),
            days_worked=len({utc_date(e.timestamp) for e in in_month}),
        )

    def get_today_status(self, user_id: int, project_id: int, *, now: Optional[datetime] = None) -> DayStatus:
        today = utc_date(now or now_utc())
        items = group_by_day(self._entries(user_id, project_id)).get(today)
        if not items:
            return DayStatus.NOT_MARKED
        if items[-1].kind == EntryKind.CHECK_IN:
            return DayStatus.CHECKED_IN
        return DayStatus.CHECKED_OUT

    def get_day_status(self, user_id: int, project_id: int, day: date) -> DayStatus:
        items = group_by_day(self._entries(user_id, project_id)).get(day)
        if not items:
            return DayStatus.ABSENT

        first_check_in = next((e for e in items if e.kind == EntryKind.CHECK_IN), None)
        if first_check_in and first_check_in.timestamp.hour > self._late_hour:
            return DayStatus.LATE
        return DayStatus.PRESENT

    # ------------------------------------------------------------------
    # History views
    # ------------------------------------------------------------------

    def get_my_history(self, user_id: int) -> list[dict]:
        """The user's entries across projects, grouped by UTC date, newest first."""
        rows = []
        for record in self._attendance.list_for_user(require_int(user_id, "user_id")):
            for day, items in group_by_day(record.entries).items():
                wt = compute_working_time(items)
                rows.append(
                    {
                        "date": day.isoformat(),
                        "project_id": record.project_id,
                        "hours": wt.total_hours,
                        "entries": [entry_to_dict(e) for e in items],
                    }
                )
        rows.sort(key=lambda r: (r["date"], r["project_id"]), reverse=True)
        return rows

    def get_project_attendance(self, actor: Actor, project_id: int) -> list[dict]:
        require_role(actor, PAYROLL_MANAGER_ROLES, "You cannot view project attendance")
        return [
            {
                "attendance_id": record.attendance_id,
                "user_id": record.user_id,
                "total_hours": compute_working_time(chronological(record.entries)).total_hours,
                "entries": [entry_to_dict(e) for e in chronological(record.entries)],
            }
            for record in self._attendance.list_for_project(require_int(project_id, "project_id"))
        ]
