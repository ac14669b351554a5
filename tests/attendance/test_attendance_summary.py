from datetime import date, time

import pytest

from src.site_payroll.site_payroll.attendance.calendars.weekday_calendar import WeekdayCalendar
from src.site_payroll.site_payroll.attendance.service import AttendanceService
from src.site_payroll.site_payroll.core.enums import DayStatus, EntryKind
from src.site_payroll.site_payroll.core.exceptions import AuthorizationError, ValidationError

from conftest import LABOUR_ID, PROJECT_ID, utc

# 2026-03-02 is a Monday; the 8th is a Sunday.
MON, TUE, WED, SAT, SUN = date(2026, 3, 2), date(2026, 3, 3), date(2026, 3, 4), date(2026, 3, 7), date(2026, 3, 8)


def test_sundays_are_not_working_days(container, attendance_repo):
    attendance_repo.add_day(LABOUR_ID, PROJECT_ID, MON)
    attendance_repo.add_day(LABOUR_ID, PROJECT_ID, TUE, end=time(13, 30))
    attendance_repo.add_day(LABOUR_ID, PROJECT_ID, SUN)

    summary = container.attendance_service.get_attendance_summary(LABOUR_ID, PROJECT_ID, MON, SUN)

    assert summary.total_working_days == 6
    assert summary.present_days == 3
    assert summary.absent_days == 4
    assert summary.total_minutes == 480 + 270 + 480
    assert [d.day for d in summary.days] == [MON, TUE, SUN]


def test_absent_days_never_go_negative(container, attendance_repo):
    attendance_repo.add_day(LABOUR_ID, PROJECT_ID, SUN)

    summary = container.attendance_service.get_attendance_summary(LABOUR_ID, PROJECT_ID, SUN, SUN)

    assert summary.total_working_days == 0
    assert summary.present_days == 1
    assert summary.absent_days == 0


def test_day_with_only_a_check_in_is_not_present(container, attendance_repo):
    attendance_repo.add(LABOUR_ID, PROJECT_ID, EntryKind.CHECK_IN, utc(2026, 3, 2, 9))

    summary = container.attendance_service.get_attendance_summary(LABOUR_ID, PROJECT_ID, MON, MON)

    assert summary.present_days == 0
    assert summary.absent_days == 1


def test_calendar_is_configurable(attendance_repo, projects):
    svc = AttendanceService(attendance_repo, projects, calendar=WeekdayCalendar((5, 6)))

    summary = svc.get_attendance_summary(LABOUR_ID, PROJECT_ID, MON, SUN)

    assert summary.total_working_days == 5


def test_period_end_before_start_is_rejected(container):
    with pytest.raises(ValidationError):
        container.attendance_service.get_attendance_summary(LABOUR_ID, PROJECT_ID, TUE, MON)


def test_today_status(container, attendance_repo):
    svc = container.attendance_service
    assert svc.get_today_status(LABOUR_ID, PROJECT_ID, now=utc(2026, 3, 2, 8)) == DayStatus.NOT_MARKED

    attendance_repo.add(LABOUR_ID, PROJECT_ID, EntryKind.CHECK_IN, utc(2026, 3, 2, 9))
    assert svc.get_today_status(LABOUR_ID, PROJECT_ID, now=utc(2026, 3, 2, 12)) == DayStatus.CHECKED_IN

    attendance_repo.add(LABOUR_ID, PROJECT_ID, EntryKind.CHECK_OUT, utc(2026, 3, 2, 17))
    assert svc.get_today_status(LABOUR_ID, PROJECT_ID, now=utc(2026, 3, 2, 18)) == DayStatus.CHECKED_OUT


def test_day_status_marks_late_after_the_configured_hour(container, attendance_repo):
    attendance_repo.add_day(LABOUR_ID, PROJECT_ID, MON, start=time(9, 59))
    attendance_repo.add_day(LABOUR_ID, PROJECT_ID, TUE, start=time(10, 0))
    svc = container.attendance_service

    assert svc.get_day_status(LABOUR_ID, PROJECT_ID, MON) == DayStatus.PRESENT
    assert svc.get_day_status(LABOUR_ID, PROJECT_ID, TUE) == DayStatus.LATE
    assert svc.get_day_status(LABOUR_ID, PROJECT_ID, WED) == DayStatus.ABSENT


def test_daily_hours_and_monthly_summary(container, attendance_repo):
    attendance_repo.add_day(LABOUR_ID, PROJECT_ID, MON)
    attendance_repo.add_day(LABOUR_ID, PROJECT_ID, SAT, start=time(8, 0), end=time(12, 15))
    svc = container.attendance_service

    assert svc.get_daily_working_hours(LABOUR_ID, PROJECT_ID, SAT).total_hours == 4.25

    monthly = svc.get_monthly_summary(LABOUR_ID, PROJECT_ID, 2026, 3)
    assert monthly.total_entries == 4
    assert monthly.days_worked == 2


def test_history_is_grouped_by_day_newest_first(container, attendance_repo):
    attendance_repo.add_day(LABOUR_ID, PROJECT_ID, MON)
    attendance_repo.add_day(LABOUR_ID, PROJECT_ID, TUE)

    rows = container.attendance_service.get_my_history(LABOUR_ID)

    assert [r["date"] for r in rows] == ["2026-03-03", "2026-03-02"]
    assert rows[0]["hours"] == 8.0
    assert [e["attendance_type"] for e in rows[0]["entries"]] == ["check-in", "check-out"]


def test_project_attendance_needs_a_manager(container, attendance_repo, manager, labour):
    attendance_repo.add_day(LABOUR_ID, PROJECT_ID, MON)

    rows = container.attendance_service.get_project_attendance(manager, PROJECT_ID)
    assert rows[0]["user_id"] == LABOUR_ID
    assert rows[0]["total_hours"] == 8.0

    with pytest.raises(AuthorizationError):
        container.attendance_service.get_project_attendance(labour, PROJECT_ID)
