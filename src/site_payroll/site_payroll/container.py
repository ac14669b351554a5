from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .attendance.admin_service import AttendanceAdminService
from .attendance.calendars.weekday_calendar import WeekdayCalendar
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .common.locks import KeyedLock
from .core.constants import DEFAULT_NON_WORKING_WEEKDAYS, GEOFENCE_RADIUS_METERS, LATE_CHECKIN_HOUR
from .database.connection import DBConfig, DatabaseConnection
from .payroll.advance_service import AdvanceService
from .payroll.calculator.standard_calculator import StandardPayrollCalculator
from .payroll.mysql_advance_repository import MySQLAdvanceRepository
from .payroll.mysql_payroll_repository import MySQLPayrollRepository
from .payroll.mysql_salary_repository import MySQLSalaryStructureRepository
from .payroll.repository import AdvanceRepository, PayrollRepository, SalaryStructureRepository
from .payroll.service import PayrollService
from .payroll.structure_service import SalaryStructureService
from .projects.mysql_project_repository import MySQLProjectRepository
from .projects.repository import ProjectRepository
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    users_repo: UserRepository
    projects_repo: ProjectRepository
    attendance_repo: AttendanceRepository
    structures_repo: SalaryStructureRepository
    payrolls_repo: PayrollRepository
    advances_repo: AdvanceRepository

    auth_service: AuthService
    attendance_service: AttendanceService
    attendance_admin_service: AttendanceAdminService
    salary_structure_service: SalaryStructureService
    payroll_service: PayrollService
    advance_service: AdvanceService


def assemble(
    *,
    users_repo: UserRepository,
    projects_repo: ProjectRepository,
    attendance_repo: AttendanceRepository,
    structures_repo: SalaryStructureRepository,
    payrolls_repo: PayrollRepository,
    advances_repo: AdvanceRepository,
    conn: Optional[DatabaseConnection] = None,
    geofence_radius_meters: float = GEOFENCE_RADIUS_METERS,
    non_working_weekdays: Iterable[int] = DEFAULT_NON_WORKING_WEEKDAYS,
    late_checkin_hour: int = LATE_CHECKIN_HOUR,
) -> Container:
    """Wire services over any set of repositories (MySQL or in-memory)."""
    # Ledger writes and settlements lock separately; recovery shares the settlement lock.
    attendance_locks = KeyedLock()
    settlement_locks = KeyedLock()

    attendance_service = AttendanceService(
        attendance_repo,
        projects_repo,
        calendar=WeekdayCalendar(tuple(non_working_weekdays)),
        geofence_radius_meters=geofence_radius_meters,
        late_checkin_hour=late_checkin_hour,
        locks=attendance_locks,
    )

    return Container(
        conn=conn,
        users_repo=users_repo,
        projects_repo=projects_repo,
        attendance_repo=attendance_repo,
        structures_repo=structures_repo,
        payrolls_repo=payrolls_repo,
        advances_repo=advances_repo,
        auth_service=AuthService(users_repo),
        attendance_service=attendance_service,
        attendance_admin_service=AttendanceAdminService(attendance_repo, locks=attendance_locks),
        salary_structure_service=SalaryStructureService(structures_repo),
        payroll_service=PayrollService(
            payrolls_repo,
            structures_repo,
            advances_repo,
            attendance_service,
            calculator=StandardPayrollCalculator(),
            locks=settlement_locks,
        ),
        advance_service=AdvanceService(advances_repo, payrolls_repo, locks=settlement_locks),
    )


def build_container(
    *,
    db_config: dict,
    geofence_radius_meters: float = GEOFENCE_RADIUS_METERS,
    non_working_weekdays: Iterable[int] = DEFAULT_NON_WORKING_WEEKDAYS,
    late_checkin_hour: int = LATE_CHECKIN_HOUR,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))

    return assemble(
        conn=conn,
        users_repo=MySQLUserRepository(conn),
        projects_repo=MySQLProjectRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        structures_repo=MySQLSalaryStructureRepository(conn),
        payrolls_repo=MySQLPayrollRepository(conn),
        advances_repo=MySQLAdvanceRepository(conn),
        geofence_radius_meters=geofence_radius_meters,
        non_working_weekdays=non_working_weekdays,
        late_checkin_hour=late_checkin_hour,
    )
