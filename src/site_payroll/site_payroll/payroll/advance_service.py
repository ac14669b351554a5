from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Optional

from ..common.datetime_utils import as_utc, now_utc
from ..common.locks import KeyedLock
from ..common.logging_config import get_logger
from ..common.permissions import require_role, require_self_or_role
from ..common.validators import money, require_amount, require_enum, require_int
from ..core.enums import PAYROLL_MANAGER_ROLES, RecoveryStatus
from ..core.exceptions import (
    AdvanceAlreadyRecoveredError,
    AdvanceLockedError,
    ExceedsPayrollCapacityError,
    ExceedsRemainingError,
    NoRecoverableBalanceError,
    NotFoundError,
)
from ..users.model import Actor
from .model import ZERO, Advance, AdvanceStatusTotals, AdvanceSummary, Payroll
from .repository import AdvanceRepository, PayrollRepository


class AdvanceService:
    """Cash advances and their recovery outside of payroll generation."""

    def __init__(
        self,
        advances: AdvanceRepository,
        payrolls: PayrollRepository,
        *,
        locks: Optional[KeyedLock] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._advances = advances
        self._payrolls = payrolls
        self._locks = locks or KeyedLock()
        self._log = logger or get_logger(__name__)

    def _get(self, advance_id: int) -> Advance:
        advance = self._advances.get_by_id(require_int(advance_id, "advance_id"))
        if advance is None:
            raise NotFoundError("Advance not found", advance_id=advance_id)
        return advance

    def give_advance(
        self,
        actor: Actor,
        *,
        user_id: int,
        project_id: int,
        amount: Any,
        reason: Optional[str] = None,
        given_date: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> Advance:
        require_role(actor, PAYROLL_MANAGER_ROLES, "You cannot give advances")
        advance = self._advances.add(
            Advance(
                advance_id=0,
                user_id=require_int(user_id, "user_id"),
                project_id=require_int(project_id, "project_id"),
                amount=require_amount(amount, "amount", positive=True),
                given_date=as_utc(given_date or now or now_utc()),
                reason=reason,
                created_by=actor.user_id,
            )
        )
        self._log.info(
            "advance given",
            extra={
                "advance_id": advance.advance_id,
                "user_id": advance.user_id,
                "project_id": advance.project_id,
                "amount": advance.amount,
            },
        )
        return advance

    def recover_advance(self, actor: Actor, advance_id: int, amount_to_recover: Any) -> tuple[Advance, Payroll]:
        """Recover part of one advance against the worker's latest payroll.

        Gated twice: by the advance's remaining balance and by what the
        latest payroll for the same (user, project) can still absorb.
        """
        require_role(actor, PAYROLL_MANAGER_ROLES, "You cannot recover advances")
        requested = require_amount(amount_to_recover, "amount to recover", positive=True)
        advance = self._get(advance_id)

        with self._locks.hold((advance.user_id, advance.project_id)):
            advance = self._get(advance_id)
            if advance.recovery_status == RecoveryStatus.RECOVERED:
                raise AdvanceAlreadyRecoveredError(advance.advance_id, requested)
            if requested > advance.remaining:
                raise ExceedsRemainingError(requested, advance.remaining)

            payroll = self._payrolls.get_latest_for_user(advance.user_id, advance.project_id)
            if payroll is None:
                raise NoRecoverableBalanceError(requested, None)
            capacity = payroll.net_salary - payroll.advance_recovered
            if capacity <= 0:
                raise NoRecoverableBalanceError(requested, payroll.payroll_id)
            if requested > capacity:
                raise ExceedsPayrollCapacityError(requested, capacity, payroll.payroll_id)

            updated_advance = replace(advance, amount_recovered=advance.amount_recovered + requested)
            updated_payroll = replace(payroll, advance_recovered=payroll.advance_recovered + requested)
            self._advances.update(updated_advance)
            try:
                self._payrolls.update(updated_payroll)
            except Exception:
                self._advances.update(advance)
                raise

        self._log.info(
            "advance recovered",
            extra={
                "advance_id": advance.advance_id,
                "payroll_id": payroll.payroll_id,
                "amount": requested,
                "recovery_status": updated_advance.recovery_status.value,
            },
        )
        return updated_advance, updated_payroll

    def _pending(self, advance_id: int, action: str) -> Advance:
        advance = self._get(advance_id)
        if advance.recovery_status != RecoveryStatus.PENDING:
            raise AdvanceLockedError(advance.advance_id, advance.recovery_status, action)
        return advance

    def update_advance(
        self,
        actor: Actor,
        advance_id: int,
        *,
        amount: Any = None,
        reason: Optional[str] = None,
        given_date: Optional[datetime] = None,
    ) -> Advance:
        require_role(actor, PAYROLL_MANAGER_ROLES, "You cannot update advances")
        new_amount = require_amount(amount, "amount", positive=True) if amount is not None else None
        key = self._get(advance_id)

        with self._locks.hold((key.user_id, key.project_id)):
            advance = self._pending(key.advance_id, "update")
            updated = replace(
                advance,
                amount=new_amount if new_amount is not None else advance.amount,
                reason=reason if reason is not None else advance.reason,
                given_date=as_utc(given_date) if given_date else advance.given_date,
            )
            self._advances.update(updated)
        self._log.info("advance updated", extra={"advance_id": updated.advance_id, "by": actor.user_id})
        return updated

    def delete_advance(self, actor: Actor, advance_id: int) -> None:
        require_role(actor, PAYROLL_MANAGER_ROLES, "You cannot delete advances")
        key = self._get(advance_id)

        with self._locks.hold((key.user_id, key.project_id)):
            advance = self._pending(key.advance_id, "delete")
            self._advances.delete(advance.advance_id)
        self._log.info("advance deleted", extra={"advance_id": advance.advance_id, "by": actor.user_id})

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_advance(self, actor: Actor, advance_id: int) -> Advance:
        advance = self._get(advance_id)
        require_self_or_role(actor, advance.user_id, PAYROLL_MANAGER_ROLES)
        return advance

    def list_advances(
        self,
        actor: Actor,
        *,
        project_id: Optional[int] = None,
        user_id: Optional[int] = None,
        recovery_status: Optional[RecoveryStatus | str] = None,
    ) -> list[Advance]:
        require_role(actor, PAYROLL_MANAGER_ROLES, "You cannot list advances")
        status = require_enum(RecoveryStatus, recovery_status, "recovery status") if recovery_status else None
        return list(self._advances.list_filtered(project_id=project_id, user_id=user_id, recovery_status=status))

    def list_my_advances(self, actor: Actor) -> list[Advance]:
        return list(self._advances.list_filtered(user_id=actor.user_id))

    def user_advance_summary(self, actor: Actor, user_id: int, project_id: int) -> AdvanceSummary:
        user_id, project_id = require_int(user_id, "user_id"), require_int(project_id, "project_id")
        require_self_or_role(actor, user_id, PAYROLL_MANAGER_ROLES)
        advances = tuple(self._advances.list_filtered(user_id=user_id, project_id=project_id))
        total_given = money(sum((a.amount for a in advances), ZERO))
        total_recovered = money(sum((a.amount_recovered for a in advances), ZERO))
        return AdvanceSummary(
            advances=advances,
            total_given=total_given,
            total_recovered=total_recovered,
            total_pending=total_given - total_recovered,
        )

    def project_advance_summary(self, actor: Actor, project_id: int) -> list[AdvanceStatusTotals]:
        require_role(actor, PAYROLL_MANAGER_ROLES, "You cannot view advance summaries")
        grouped: dict[RecoveryStatus, list[Advance]] = {}
        for a in self._advances.list_filtered(project_id=require_int(project_id, "project_id")):
            grouped.setdefault(a.recovery_status, []).append(a)
        return [
            AdvanceStatusTotals(
                status=status,
                count=len(items),
                total_amount=money(sum((a.amount for a in items), ZERO)),
                total_recovered=money(sum((a.amount_recovered for a in items), ZERO)),
            )
            for status, items in grouped.items()
        ]
