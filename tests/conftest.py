from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, time, timezone
from typing import Optional

import pytest
from werkzeug.security import generate_password_hash

from src.site_payroll.site_payroll.attendance.model import AdminEdit, AttendanceRecord, HistoryEntry
from src.site_payroll.site_payroll.common.geo import GeoPoint
from src.site_payroll.site_payroll.common.logging_config import reset_logging
from src.site_payroll.site_payroll.container import assemble
from src.site_payroll.site_payroll.core.enums import EntryKind, Role, SalaryType
from src.site_payroll.site_payroll.core.exceptions import DuplicatePeriodError
from src.site_payroll.site_payroll.payroll.model import Advance, Payroll, SalaryStructure
from src.site_payroll.site_payroll.projects.model import Project
from src.site_payroll.site_payroll.users.model import Actor, User

SITE = GeoPoint(longitude=77.5946, latitude=12.9716)

ADMIN_ID, MANAGER_ID, LABOUR_ID, CLIENT_ID = 1, 2, 3, 4
PROJECT_ID, NO_LOCATION_PROJECT_ID = 10, 11


def utc(y, m, d, hh=0, mm=0, ss=0) -> datetime:
    return datetime(y, m, d, hh, mm, ss, tzinfo=timezone.utc)


class InMemoryUsers:
    def __init__(self, users: list[User]):
        self._by_id = {u.user_id: u for u in users}

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._by_id.get(user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self._by_id.values() if u.email == email), None)


class InMemoryProjects:
    def __init__(self, projects: list[Project]):
        self._by_id = {p.project_id: p for p in projects}

    def get_by_id(self, project_id: int) -> Optional[Project]:
        return self._by_id.get(project_id)


class InMemoryAttendance:
    def __init__(self):
        self._records: dict[int, AttendanceRecord] = {}
        self._record_id = 0
        self._entry_id = 0

    def get_by_id(self, attendance_id):
        return self._records.get(attendance_id)

    def get_for_user_and_project(self, user_id, project_id):
        return next(
            (r for r in self._records.values() if r.user_id == user_id and r.project_id == project_id),
            None,
        )

    def get_or_create(self, user_id, project_id):
        record = self.get_for_user_and_project(user_id, project_id)
        if record is None:
            self._record_id += 1
            record = AttendanceRecord(attendance_id=self._record_id, user_id=user_id, project_id=project_id)
            self._records[record.attendance_id] = record
        return record

    def list_for_user(self, user_id):
        return [r for r in self._records.values() if r.user_id == user_id]

    def list_for_project(self, project_id):
        return [r for r in self._records.values() if r.project_id == project_id]

    def append_entry(self, *, attendance_id, kind, location, photo, timestamp, admin_edit=None):
        self._entry_id += 1
        entry = HistoryEntry(
            entry_id=self._entry_id,
            kind=kind,
            location=location,
            photo=photo,
            timestamp=timestamp,
            admin_edit=admin_edit,
        )
        record = self._records[attendance_id]
        self._records[attendance_id] = replace(record, entries=record.entries + (entry,))
        return entry

    def update_entry(self, *, attendance_id, entry_id, kind, timestamp, admin_edit: AdminEdit):
        record = self._records.get(attendance_id)
        if record is None or record.find_entry(entry_id) is None:
            return False
        entries = tuple(
            replace(e, kind=kind, timestamp=timestamp, admin_edit=admin_edit) if e.entry_id == entry_id else e
            for e in record.entries
        )
        self._records[attendance_id] = replace(record, entries=entries)
        return True

    def delete_entry(self, *, attendance_id, entry_id):
        record = self._records.get(attendance_id)
        if record is None or record.find_entry(entry_id) is None:
            return False
        self._records[attendance_id] = replace(
            record, entries=tuple(e for e in record.entries if e.entry_id != entry_id)
        )
        return True

    # test helpers

    def add(self, user_id, project_id, kind: EntryKind, at: datetime) -> HistoryEntry:
        record = self.get_or_create(user_id, project_id)
        return self.append_entry(attendance_id=record.attendance_id, kind=kind, location=SITE, photo="p.jpg", timestamp=at)

    def add_day(self, user_id, project_id, day: date, start=time(9, 0), end=time(17, 0)) -> None:
        self.add(user_id, project_id, EntryKind.CHECK_IN, datetime.combine(day, start, tzinfo=timezone.utc))
        self.add(user_id, project_id, EntryKind.CHECK_OUT, datetime.combine(day, end, tzinfo=timezone.utc))


class InMemoryStructures:
    def __init__(self):
        self._by_id: dict[int, SalaryStructure] = {}
        self._id = 0

    def get_by_id(self, structure_id):
        return self._by_id.get(structure_id)

    def get_active(self, user_id, project_id):
        return next(
            (
                s
                for s in sorted(self._by_id.values(), key=lambda s: -s.structure_id)
                if s.user_id == user_id and s.project_id == project_id and s.is_active
            ),
            None,
        )

    def list_filtered(self, *, project_id=None, user_id=None, role=None, is_active=None):
        return [
            s
            for s in sorted(self._by_id.values(), key=lambda s: -s.structure_id)
            if (project_id is None or s.project_id == project_id)
            and (user_id is None or s.user_id == user_id)
            and (role is None or s.role == role)
            and (is_active is None or s.is_active == is_active)
        ]

    def create_active(self, *, user_id, project_id, role, salary_type, rate_amount, overtime_rate,
                      effective_from, effective_to, created_by, now):
        for s in list(self._by_id.values()):
            if s.user_id == user_id and s.project_id == project_id and s.is_active:
                self._by_id[s.structure_id] = replace(s, is_active=False, effective_to=now)
        self._id += 1
        structure = SalaryStructure(
            structure_id=self._id,
            user_id=user_id,
            project_id=project_id,
            role=role,
            salary_type=salary_type,
            rate_amount=rate_amount,
            overtime_rate=overtime_rate,
            effective_from=effective_from,
            effective_to=effective_to,
            is_active=True,
            created_by=created_by,
        )
        self._by_id[structure.structure_id] = structure
        return structure

    def deactivate(self, structure_id, *, effective_to):
        s = self._by_id.get(structure_id)
        if s is None:
            return None
        if s.is_active:
            s = replace(s, is_active=False, effective_to=effective_to)
            self._by_id[structure_id] = s
        return s


class InMemoryPayrolls:
    def __init__(self):
        self._by_id: dict[int, Payroll] = {}
        self._id = 0

    def get_by_id(self, payroll_id):
        return self._by_id.get(payroll_id)

    def exists_for_period(self, user_id, project_id, period_start, period_end):
        return any(
            (p.user_id, p.project_id, p.period_start, p.period_end) == (user_id, project_id, period_start, period_end)
            for p in self._by_id.values()
        )

    def get_latest_for_user(self, user_id, project_id):
        mine = [p for p in self._by_id.values() if p.user_id == user_id and p.project_id == project_id]
        return max(mine, key=lambda p: (p.period_end, p.payroll_id), default=None)

    def add(self, payroll):
        # same contract as the unique period key in MySQL
        if self.exists_for_period(payroll.user_id, payroll.project_id, payroll.period_start, payroll.period_end):
            raise DuplicatePeriodError(payroll.user_id, payroll.project_id, payroll.period_start, payroll.period_end)
        self._id += 1
        stored = replace(payroll, payroll_id=self._id)
        self._by_id[stored.payroll_id] = stored
        return stored

    def update(self, payroll):
        if payroll.payroll_id not in self._by_id:
            return False
        self._by_id[payroll.payroll_id] = payroll
        return True

    def delete(self, payroll_id):
        return self._by_id.pop(payroll_id, None) is not None

    def list_filtered(self, *, project_id=None, user_id=None, role=None, payment_status=None,
                      period_start=None, period_end=None):
        items = [
            p
            for p in self._by_id.values()
            if (project_id is None or p.project_id == project_id)
            and (user_id is None or p.user_id == user_id)
            and (role is None or p.role == role)
            and (payment_status is None or p.payment_status == payment_status)
            and (period_start is None or p.period_start >= period_start)
            and (period_end is None or p.period_end <= period_end)
        ]
        return sorted(items, key=lambda p: (p.period_end, p.payroll_id), reverse=True)


class InMemoryAdvances:
    def __init__(self):
        self._by_id: dict[int, Advance] = {}
        self._id = 0
        self.fail_next_save = False

    def get_by_id(self, advance_id):
        return self._by_id.get(advance_id)

    def list_for_user_and_project(self, user_id, project_id):
        return [a for a in self._by_id.values() if a.user_id == user_id and a.project_id == project_id]

    def list_filtered(self, *, project_id=None, user_id=None, recovery_status=None):
        items = [
            a
            for a in self._by_id.values()
            if (project_id is None or a.project_id == project_id)
            and (user_id is None or a.user_id == user_id)
            and (recovery_status is None or a.recovery_status == recovery_status)
        ]
        return sorted(items, key=lambda a: (a.given_date, a.advance_id), reverse=True)

    def add(self, advance):
        self._id += 1
        stored = replace(advance, advance_id=self._id)
        self._by_id[stored.advance_id] = stored
        return stored

    def update(self, advance):
        if advance.advance_id not in self._by_id:
            return False
        self._by_id[advance.advance_id] = advance
        return True

    def save_recoveries(self, advances):
        if self.fail_next_save:
            self.fail_next_save = False
            raise RuntimeError("connection lost")
        for a in advances:
            self._by_id[a.advance_id] = a

    def delete(self, advance_id):
        return self._by_id.pop(advance_id, None) is not None


@pytest.fixture(autouse=True)
def _clean_logging():
    yield
    reset_logging()


@pytest.fixture
def users():
    return InMemoryUsers(
        [
            User(ADMIN_ID, "Admin", "admin@example.com", generate_password_hash("admin123"), Role.SUPER_ADMIN),
            User(MANAGER_ID, "Manager", "manager@example.com", generate_password_hash("manager123"), Role.SITE_MANAGER),
            User(LABOUR_ID, "Ravi", "labour@example.com", generate_password_hash("labour123"), Role.LABOUR),
            User(CLIENT_ID, "Client", "client@example.com", generate_password_hash("client123"), Role.CLIENT),
        ]
    )


@pytest.fixture
def projects():
    return InMemoryProjects(
        [
            Project(PROJECT_ID, "Tower A", "Block A", SITE, site_manager_id=MANAGER_ID),
            Project(NO_LOCATION_PROJECT_ID, "Unplanned", None, None),
        ]
    )


@pytest.fixture
def attendance_repo():
    return InMemoryAttendance()


@pytest.fixture
def structures_repo():
    return InMemoryStructures()


@pytest.fixture
def payrolls_repo():
    return InMemoryPayrolls()


@pytest.fixture
def advances_repo():
    return InMemoryAdvances()


@pytest.fixture
def container(users, projects, attendance_repo, structures_repo, payrolls_repo, advances_repo):
    return assemble(
        users_repo=users,
        projects_repo=projects,
        attendance_repo=attendance_repo,
        structures_repo=structures_repo,
        payrolls_repo=payrolls_repo,
        advances_repo=advances_repo,
    )


@pytest.fixture
def admin():
    return Actor(ADMIN_ID, Role.SUPER_ADMIN)


@pytest.fixture
def manager():
    return Actor(MANAGER_ID, Role.SITE_MANAGER)


@pytest.fixture
def labour():
    return Actor(LABOUR_ID, Role.LABOUR)


@pytest.fixture
def client_actor():
    return Actor(CLIENT_ID, Role.CLIENT)


@pytest.fixture
def daily_structure(container, manager):
    """Daily 500 with 50/hour overtime for the labour user on the main project."""
    return container.salary_structure_service.create_structure(
        manager,
        user_id=LABOUR_ID,
        project_id=PROJECT_ID,
        role=Role.LABOUR,
        salary_type=SalaryType.DAILY,
        rate_amount="500",
        overtime_rate="50",
        now=utc(2026, 2, 1),
    )
