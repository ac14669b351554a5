import threading

import pytest

from src.site_payroll.site_payroll.attendance.admin_service import AttendanceAdminService
from src.site_payroll.site_payroll.attendance.model import AdminEdit
from src.site_payroll.site_payroll.common.locks import KeyedLock
from src.site_payroll.site_payroll.core.enums import EntryKind
from src.site_payroll.site_payroll.core.exceptions import (
    AuthorizationError,
    BackdatedEntryError,
    CheckOutFirstError,
    ConsecutiveKindError,
    NotFoundError,
    ValidationError,
)

from conftest import ADMIN_ID, LABOUR_ID, PROJECT_ID, SITE, utc


def _insert(container, actor, kind, at):
    return container.attendance_admin_service.insert_entry(
        actor,
        user_id=LABOUR_ID,
        project_id=PROJECT_ID,
        kind=kind,
        photo="admin.jpg",
        location=SITE.as_coordinates(),
        timestamp=at,
        now=utc(2026, 3, 10, 12),
    )


def test_insert_is_stamped_with_the_admin(container, attendance_repo, admin):
    entry = _insert(container, admin, "check-in", utc(2026, 3, 2, 9))

    assert entry.admin_edit is not None
    assert entry.admin_edit.edited_by == ADMIN_ID
    assert entry.admin_edit.edited_at == utc(2026, 3, 10, 12)
    assert attendance_repo.get_for_user_and_project(LABOUR_ID, PROJECT_ID).entries == (entry,)


def test_check_out_cannot_open_a_day(container, admin):
    with pytest.raises(CheckOutFirstError):
        _insert(container, admin, "check-out", utc(2026, 3, 2, 17))


def test_insert_must_follow_the_last_entry_of_the_day(container, attendance_repo, admin):
    attendance_repo.add_day(LABOUR_ID, PROJECT_ID, utc(2026, 3, 2).date())

    with pytest.raises(BackdatedEntryError):
        _insert(container, admin, "check-in", utc(2026, 3, 2, 12))
    with pytest.raises(ConsecutiveKindError):
        _insert(container, admin, "check-out", utc(2026, 3, 2, 18))

    entry = _insert(container, admin, "check-in", utc(2026, 3, 2, 18))
    assert entry.kind == EntryKind.CHECK_IN


def test_insert_ignores_worker_alternation_across_days(container, attendance_repo, admin):
    # An open check-in on Monday does not block an admin check-in on Tuesday.
    attendance_repo.add(LABOUR_ID, PROJECT_ID, EntryKind.CHECK_IN, utc(2026, 3, 2, 9))

    entry = _insert(container, admin, "check-in", utc(2026, 3, 3, 9))
    assert entry.kind == EntryKind.CHECK_IN


def test_only_admins_may_repair(container, manager, labour):
    for actor in (manager, labour):
        with pytest.raises(AuthorizationError):
            _insert(container, actor, "check-in", utc(2026, 3, 2, 9))


def test_edit_bypasses_sequencing_and_stamps(container, attendance_repo, admin):
    attendance_repo.add_day(LABOUR_ID, PROJECT_ID, utc(2026, 3, 2).date())
    record = attendance_repo.get_for_user_and_project(LABOUR_ID, PROJECT_ID)
    check_out = record.entries[1]

    edited = container.attendance_admin_service.edit_entry(
        admin,
        attendance_id=record.attendance_id,
        entry_id=check_out.entry_id,
        kind="check-in",
        now=utc(2026, 3, 10),
    )

    assert edited.kind == EntryKind.CHECK_IN
    assert edited.timestamp == check_out.timestamp
    stored = attendance_repo.get_by_id(record.attendance_id).find_entry(check_out.entry_id)
    assert stored.kind == EntryKind.CHECK_IN
    assert stored.admin_edit.edited_by == ADMIN_ID


def test_edit_needs_a_change_and_an_existing_entry(container, attendance_repo, admin):
    attendance_repo.add_day(LABOUR_ID, PROJECT_ID, utc(2026, 3, 2).date())
    record = attendance_repo.get_for_user_and_project(LABOUR_ID, PROJECT_ID)
    svc = container.attendance_admin_service

    with pytest.raises(ValidationError):
        svc.edit_entry(admin, attendance_id=record.attendance_id, entry_id=record.entries[0].entry_id)
    with pytest.raises(NotFoundError):
        svc.edit_entry(admin, attendance_id=record.attendance_id, entry_id=999, timestamp=utc(2026, 3, 2, 8))


def test_delete_entry(container, attendance_repo, admin):
    attendance_repo.add_day(LABOUR_ID, PROJECT_ID, utc(2026, 3, 2).date())
    record = attendance_repo.get_for_user_and_project(LABOUR_ID, PROJECT_ID)

    container.attendance_admin_service.delete_entry(
        admin, attendance_id=record.attendance_id, entry_id=record.entries[0].entry_id
    )

    remaining = attendance_repo.get_by_id(record.attendance_id).entries
    assert [e.kind for e in remaining] == [EntryKind.CHECK_OUT]


def test_edit_reads_the_entry_after_taking_the_ledger_lock(attendance_repo, admin):
    attendance_repo.add_day(LABOUR_ID, PROJECT_ID, utc(2026, 3, 2).date())
    record = attendance_repo.get_for_user_and_project(LABOUR_ID, PROJECT_ID)
    check_in = record.entries[0]
    locks = KeyedLock()
    svc = AttendanceAdminService(attendance_repo, locks=locks)
    edited = []

    def edit_time_only():
        edited.append(
            svc.edit_entry(
                admin, attendance_id=record.attendance_id, entry_id=check_in.entry_id, timestamp=utc(2026, 3, 2, 8)
            )
        )

    with locks.hold((LABOUR_ID, PROJECT_ID)):
        t = threading.Thread(target=edit_time_only)
        t.start()
        t.join(0.1)
        assert t.is_alive()
        # a concurrent writer changes the kind while the edit waits
        attendance_repo.update_entry(
            attendance_id=record.attendance_id,
            entry_id=check_in.entry_id,
            kind=EntryKind.CHECK_OUT,
            timestamp=check_in.timestamp,
            admin_edit=AdminEdit(edited_by=ADMIN_ID, edited_at=utc(2026, 3, 3)),
        )
    t.join(5)

    assert edited[0].kind == EntryKind.CHECK_OUT
    stored = attendance_repo.get_by_id(record.attendance_id).find_entry(check_in.entry_id)
    assert (stored.kind, stored.timestamp) == (EntryKind.CHECK_OUT, utc(2026, 3, 2, 8))


def test_delete_of_an_entry_removed_while_waiting_is_not_found(attendance_repo, admin):
    attendance_repo.add_day(LABOUR_ID, PROJECT_ID, utc(2026, 3, 2).date())
    record = attendance_repo.get_for_user_and_project(LABOUR_ID, PROJECT_ID)
    check_in = record.entries[0]
    locks = KeyedLock()
    svc = AttendanceAdminService(attendance_repo, locks=locks)
    errors = []

    def delete():
        try:
            svc.delete_entry(admin, attendance_id=record.attendance_id, entry_id=check_in.entry_id)
        except NotFoundError as exc:
            errors.append(exc)

    with locks.hold((LABOUR_ID, PROJECT_ID)):
        t = threading.Thread(target=delete)
        t.start()
        t.join(0.1)
        assert t.is_alive()
        attendance_repo.delete_entry(attendance_id=record.attendance_id, entry_id=check_in.entry_id)
    t.join(5)

    assert len(errors) == 1


def test_entry_ids_must_be_integers(container, attendance_repo, admin):
    attendance_repo.add_day(LABOUR_ID, PROJECT_ID, utc(2026, 3, 2).date())
    record = attendance_repo.get_for_user_and_project(LABOUR_ID, PROJECT_ID)

    with pytest.raises(ValidationError):
        container.attendance_admin_service.delete_entry(admin, attendance_id=record.attendance_id, entry_id="first")
    with pytest.raises(ValidationError):
        container.attendance_admin_service.edit_entry(
            admin, attendance_id="x", entry_id=1, timestamp=utc(2026, 3, 2, 8)
        )
