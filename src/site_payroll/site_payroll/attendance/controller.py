from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import month_bounds, now_utc, utc_date
from ..common.permissions import require_self_or_role
from ..common.web import arg_date, arg_datetime, arg_int, current_actor, json_body, login_required, ok
from ..core.enums import PAYROLL_MANAGER_ROLES
from ..core.exceptions import ValidationError
from ..container import Container
from .service import entry_to_dict


def _required(value, name: str):
    if value is None:
        raise ValidationError(f"{name} is required")
    return value


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service
    admin = container.attendance_admin_service

    def target_user(actor) -> int:
        """``?user_id=`` for managers, otherwise the caller."""
        user_id = arg_int("user_id") or actor.user_id
        require_self_or_role(actor, user_id, PAYROLL_MANAGER_ROLES)
        return user_id

    @app.route("/api/attendance", methods=["POST"], endpoint="submit_attendance")
    @login_required
    def submit_attendance():
        data = json_body()
        result = service.submit_entry(
            current_actor(),
            project_id=_required(data.get("project_id"), "project_id"),
            kind=data.get("type"),
            photo=data.get("photo"),
            location=data.get("coordinates"),
        )
        return ok(
            {
                "entries": [entry_to_dict(e) for e in result.entries],
                "distance_meters": round(result.distance_meters, 2),
            },
            status=201,
            message="Attendance marked",
        )

    @app.route("/api/attendance/history", methods=["GET"], endpoint="attendance_history")
    @login_required
    def attendance_history():
        actor = current_actor()
        return ok(service.get_my_history(target_user(actor)))

    @app.route("/api/attendance/summary", methods=["GET"], endpoint="attendance_summary")
    @login_required
    def attendance_summary():
        actor = current_actor()
        summary = service.get_attendance_summary(
            target_user(actor),
            _required(arg_int("project_id"), "project_id"),
            _required(arg_date("start"), "start"),
            _required(arg_date("end"), "end"),
        )
        return ok(summary)

    @app.route("/api/attendance/working-hours", methods=["GET"], endpoint="attendance_working_hours")
    @login_required
    def attendance_working_hours():
        actor = current_actor()
        day = arg_date("date") or utc_date(now_utc())
        return ok(service.get_daily_working_hours(target_user(actor), _required(arg_int("project_id"), "project_id"), day))

    @app.route("/api/attendance/today", methods=["GET"], endpoint="attendance_today")
    @login_required
    def attendance_today():
        actor = current_actor()
        status = service.get_today_status(target_user(actor), _required(arg_int("project_id"), "project_id"))
        return ok({"status": status})

    @app.route("/api/attendance/day-status", methods=["GET"], endpoint="attendance_day_status")
    @login_required
    def attendance_day_status():
        actor = current_actor()
        day = _required(arg_date("date"), "date")
        status = service.get_day_status(target_user(actor), _required(arg_int("project_id"), "project_id"), day)
        return ok({"date": day, "status": status})

    @app.route("/api/attendance/monthly", methods=["GET"], endpoint="attendance_monthly")
    @login_required
    def attendance_monthly():
        actor = current_actor()
        today = utc_date(now_utc())
        year = arg_int("year") or today.year
        month = arg_int("month") or today.month
        start, end = month_bounds(year, month)
        summary = service.get_monthly_summary(
            target_user(actor), _required(arg_int("project_id"), "project_id"), year, month
        )
        return ok(summary, period={"start": start, "end": end})

    @app.route("/api/projects/<int:project_id>/attendance", methods=["GET"], endpoint="project_attendance")
    @login_required
    def project_attendance(project_id: int):
        return ok(service.get_project_attendance(current_actor(), project_id))

    # ------------------------------------------------------------------
    # Admin repair
    # ------------------------------------------------------------------

    @app.route("/api/admin/attendance", methods=["POST"], endpoint="admin_insert_attendance")
    @login_required
    def admin_insert_attendance():
        data = json_body()
        entry = admin.insert_entry(
            current_actor(),
            user_id=_required(data.get("user_id"), "user_id"),
            project_id=_required(data.get("project_id"), "project_id"),
            kind=data.get("type"),
            photo=data.get("photo"),
            location=data.get("coordinates"),
            timestamp=_required(arg_datetime("timestamp", data), "timestamp"),
        )
        return ok(entry_to_dict(entry), status=201, message="Attendance entry added")

    @app.route(
        "/api/admin/attendance/<int:attendance_id>/entries/<int:entry_id>",
        methods=["PATCH"],
        endpoint="admin_edit_attendance",
    )
    @login_required
    def admin_edit_attendance(attendance_id: int, entry_id: int):
        data = json_body()
        entry = admin.edit_entry(
            current_actor(),
            attendance_id=attendance_id,
            entry_id=entry_id,
            kind=data.get("type"),
            timestamp=arg_datetime("timestamp", data),
        )
        return ok(entry_to_dict(entry), message="Attendance entry updated")

    @app.route(
        "/api/admin/attendance/<int:attendance_id>/entries/<int:entry_id>",
        methods=["DELETE"],
        endpoint="admin_delete_attendance",
    )
    @login_required
    def admin_delete_attendance(attendance_id: int, entry_id: int):
        admin.delete_entry(current_actor(), attendance_id=attendance_id, entry_id=entry_id)
        return ok(message="Attendance entry deleted")
