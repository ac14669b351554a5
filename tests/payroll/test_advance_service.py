from datetime import date
from decimal import Decimal

import pytest

from src.site_payroll.site_payroll.core.enums import RecoveryStatus
from src.site_payroll.site_payroll.core.exceptions import (
    AdvanceAlreadyRecoveredError,
    AdvanceLockedError,
    AuthorizationError,
    ExceedsPayrollCapacityError,
    ExceedsRemainingError,
    NoRecoverableBalanceError,
    ValidationError,
)

from conftest import LABOUR_ID, PROJECT_ID, utc


@pytest.fixture
def advances(container):
    return container.advance_service


@pytest.fixture
def march_payroll(container, attendance_repo, manager, daily_structure):
    """Ten present days at 500: net 5000."""
    for d in range(2, 13):
        if date(2026, 3, d).weekday() != 6:
            attendance_repo.add_day(LABOUR_ID, PROJECT_ID, date(2026, 3, d))
    return container.payroll_service.generate_payroll(
        manager,
        user_id=LABOUR_ID,
        project_id=PROJECT_ID,
        period_start=date(2026, 3, 1),
        period_end=date(2026, 3, 31),
    )


def _give(advances, actor, amount, given=None):
    return advances.give_advance(
        actor, user_id=LABOUR_ID, project_id=PROJECT_ID, amount=amount, reason="festival", given_date=given or utc(2026, 3, 5)
    )


def test_give_advance(advances, manager):
    advance = _give(advances, manager, "2500")

    assert advance.advance_id > 0
    assert advance.amount == Decimal("2500.00")
    assert advance.amount_recovered == Decimal("0.00")
    assert advance.recovery_status == RecoveryStatus.PENDING
    assert advance.created_by == manager.user_id


@pytest.mark.parametrize("amount", ["0", "-10", "abc"])
def test_give_advance_needs_a_positive_amount(advances, manager, amount):
    with pytest.raises(ValidationError):
        _give(advances, manager, amount)


def test_labour_cannot_give_advances(advances, labour):
    with pytest.raises(AuthorizationError):
        _give(advances, labour, "100")


def test_recover_against_latest_payroll(advances, manager, march_payroll, payrolls_repo):
    assert march_payroll.net_salary == Decimal("5000.00")
    advance = _give(advances, manager, "3000")

    advance, payroll = advances.recover_advance(manager, advance.advance_id, "1000")

    assert advance.amount_recovered == Decimal("1000.00")
    assert advance.recovery_status == RecoveryStatus.PARTIALLY_RECOVERED
    assert payroll.payroll_id == march_payroll.payroll_id
    assert payrolls_repo.get_by_id(payroll.payroll_id).advance_recovered == Decimal("1000.00")

    advance, _ = advances.recover_advance(manager, advance.advance_id, "2000")
    assert advance.recovery_status == RecoveryStatus.RECOVERED

    with pytest.raises(AdvanceAlreadyRecoveredError):
        advances.recover_advance(manager, advance.advance_id, "1")


def test_recover_is_capped_by_remaining_amount(advances, manager, march_payroll):
    advance = _give(advances, manager, "1000")

    with pytest.raises(ExceedsRemainingError) as exc:
        advances.recover_advance(manager, advance.advance_id, "1500")

    assert exc.value.available == Decimal("1000.00")


def test_recover_is_capped_by_payroll_capacity(advances, manager, march_payroll, advances_repo):
    advance = _give(advances, manager, "8000")

    with pytest.raises(ExceedsPayrollCapacityError) as exc:
        advances.recover_advance(manager, advance.advance_id, "6000")

    assert exc.value.available == Decimal("5000.00")
    assert advances_repo.get_by_id(advance.advance_id).amount_recovered == Decimal("0.00")

    advances.recover_advance(manager, advance.advance_id, "5000")
    with pytest.raises(NoRecoverableBalanceError) as exc:
        advances.recover_advance(manager, advance.advance_id, "1")
    assert exc.value.details["payroll_id"] == march_payroll.payroll_id


def test_recover_needs_a_payroll(advances, manager):
    advance = _give(advances, manager, "1000")

    with pytest.raises(NoRecoverableBalanceError) as exc:
        advances.recover_advance(manager, advance.advance_id, "100")

    assert exc.value.details["payroll_id"] is None


def test_only_pending_advances_can_change(advances, manager, march_payroll):
    pending = _give(advances, manager, "1000")
    started = _give(advances, manager, "1000")
    advances.recover_advance(manager, started.advance_id, "100")

    updated = advances.update_advance(manager, pending.advance_id, amount="1200", reason="medical")
    assert updated.amount == Decimal("1200.00")
    assert updated.reason == "medical"

    with pytest.raises(AdvanceLockedError):
        advances.update_advance(manager, started.advance_id, amount="900")
    with pytest.raises(AdvanceLockedError):
        advances.delete_advance(manager, started.advance_id)

    advances.delete_advance(manager, pending.advance_id)
    assert [a.advance_id for a in advances.list_advances(manager)] == [started.advance_id]


def test_summaries(advances, manager, labour, client_actor, march_payroll):
    a = _give(advances, manager, "1000", utc(2026, 3, 3))
    _give(advances, manager, "500", utc(2026, 3, 4))
    advances.recover_advance(manager, a.advance_id, "1000")

    mine = advances.user_advance_summary(labour, LABOUR_ID, PROJECT_ID)
    assert mine.total_given == Decimal("1500.00")
    assert mine.total_recovered == Decimal("1000.00")
    assert mine.total_pending == Decimal("500.00")
    assert len(advances.list_my_advances(labour)) == 2

    with pytest.raises(AuthorizationError):
        advances.user_advance_summary(client_actor, LABOUR_ID, PROJECT_ID)
    with pytest.raises(AuthorizationError):
        advances.get_advance(client_actor, a.advance_id)

    totals = {t.status: t for t in advances.project_advance_summary(manager, PROJECT_ID)}
    assert totals[RecoveryStatus.RECOVERED].total_recovered == Decimal("1000.00")
    assert totals[RecoveryStatus.PENDING].total_amount == Decimal("500.00")
    assert [x.advance_id for x in advances.list_advances(manager, recovery_status="recovered")] == [a.advance_id]


@pytest.mark.parametrize("amount", ["NaN", "Infinity", float("nan"), float("-inf")])
def test_give_advance_rejects_non_finite_amounts(advances, manager, advances_repo, amount):
    with pytest.raises(ValidationError):
        _give(advances, manager, amount)
    assert advances_repo.list_filtered() == []


def test_recover_rejects_a_nan_amount(advances, manager, march_payroll):
    advance = _give(advances, manager, "1000")
    with pytest.raises(ValidationError):
        advances.recover_advance(manager, advance.advance_id, "NaN")


def test_advance_ids_must_be_integers(advances, manager, labour):
    with pytest.raises(ValidationError):
        advances.give_advance(manager, user_id="abc", project_id=PROJECT_ID, amount="100")
    with pytest.raises(ValidationError):
        advances.user_advance_summary(labour, LABOUR_ID, "x")
    with pytest.raises(ValidationError):
        advances.get_advance(manager, "first")
