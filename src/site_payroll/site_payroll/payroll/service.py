from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Optional

from ..attendance.model import AttendanceSummary
from ..attendance.service import AttendanceService
from ..common.datetime_utils import as_utc, now_utc
from ..common.locks import KeyedLock
from ..common.logging_config import get_logger
from ..common.permissions import require_role, require_self_or_role
from ..common.validators import money, require_amount, require_enum, require_int, require_period
from ..core.enums import PAYROLL_MANAGER_ROLES, PaymentMode, PaymentStatus, Role
from ..core.exceptions import (
    DomainError,
    DuplicatePeriodError,
    NoActiveStructureError,
    NotFoundError,
    PayrollLockedError,
    RecoveryExceedsEarningsError,
    RecoveryExceedsOutstandingError,
    ValidationError,
)
from ..users.model import Actor
from .calculator.base import PayrollCalculator
from .calculator.standard_calculator import StandardPayrollCalculator
from .model import (
    ZERO,
    Allowance,
    BulkPayrollResult,
    Deduction,
    Payroll,
    PayrollPreview,
    PayrollStatusTotals,
    SalaryStructure,
)
from .pay_items import parse_allowances, parse_deductions, split_recovery
from .recovery import allocate_fifo, outstanding
from .repository import AdvanceRepository, PayrollRepository, SalaryStructureRepository


class PayrollService:
    """Settlement of pay for (user, project, period).

    Generation runs under a per-(user, project) lock shared with advance
    recovery. A settlement is validated completely before anything is
    written; the advance FIFO walk happens after the payroll is stored and
    the payroll is removed again if that walk cannot be saved.
    """

    def __init__(
        self,
        payrolls: PayrollRepository,
        structures: SalaryStructureRepository,
        advances: AdvanceRepository,
        attendance: AttendanceService,
        *,
        calculator: Optional[PayrollCalculator] = None,
        locks: Optional[KeyedLock] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._payrolls = payrolls
        self._structures = structures
        self._advances = advances
        self._attendance = attendance
        self._calculator = calculator or StandardPayrollCalculator()
        self._locks = locks or KeyedLock()
        self._log = logger or get_logger(__name__)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def _active_structure(self, user_id: int, project_id: int) -> SalaryStructure:
        structure = self._structures.get_active(user_id, project_id)
        if structure is None:
            raise NoActiveStructureError(project_id, user_id)
        return structure

    def _compute(
        self,
        user_id: int,
        project_id: int,
        period_start: date,
        period_end: date,
        allowances: tuple[Allowance, ...],
        deductions: tuple[Deduction, ...],
        overtime_hours: Decimal,
        *,
        structure: Optional[SalaryStructure] = None,
    ) -> tuple[PayrollPreview, list]:
        structure = structure or self._active_structure(user_id, project_id)
        summary: AttendanceSummary = self._attendance.get_attendance_summary(
            user_id, project_id, period_start, period_end
        )

        recovery_items, other_deductions = split_recovery(deductions)
        requested = money(sum((d.amount for d in recovery_items), ZERO))

        before_recovery = self._calculator.compute(
            structure,
            summary,
            overtime_hours=overtime_hours,
            allowances=allowances,
            deductions=other_deductions,
        )
        net_before_recovery = before_recovery.gross_salary - before_recovery.total_deductions

        open_advances = outstanding(self._advances.list_for_user_and_project(user_id, project_id))
        balance = sum((a.remaining for a in open_advances), ZERO)

        if requested > 0 and requested > net_before_recovery:
            raise RecoveryExceedsEarningsError(requested, max(ZERO, net_before_recovery))
        if requested > balance:
            raise RecoveryExceedsOutstandingError(requested, balance)

        figures = self._calculator.compute(
            structure,
            summary,
            overtime_hours=overtime_hours,
            allowances=allowances,
            deductions=deductions,
        )
        preview = PayrollPreview(
            structure=structure,
            total_working_days=summary.total_working_days,
            present_days=summary.present_days,
            absent_days=summary.absent_days,
            total_hours=summary.total_hours,
            overtime_hours=overtime_hours,
            allowances=allowances,
            deductions=deductions,
            figures=figures,
            advance_recovery=requested,
            outstanding_balance=balance,
        )
        return preview, open_advances

    @staticmethod
    def _overtime(value: Any) -> Decimal:
        return require_amount(value if value is not None else 0, "overtime hours")

    def preview_payroll(
        self,
        actor: Actor,
        *,
        user_id: int,
        project_id: int,
        period_start: date,
        period_end: date,
        allowances: Optional[Iterable[Any]] = None,
        deductions: Optional[Iterable[Any]] = None,
        overtime_hours: Any = 0,
    ) -> PayrollPreview:
        require_role(actor, PAYROLL_MANAGER_ROLES, "You cannot preview payroll")
        require_period(period_start, period_end)
        preview, _ = self._compute(
            require_int(user_id, "user_id"),
            require_int(project_id, "project_id"),
            period_start,
            period_end,
            parse_allowances(allowances),
            parse_deductions(deductions),
            self._overtime(overtime_hours),
        )
        return preview

    def generate_payroll(
        self,
        actor: Actor,
        *,
        user_id: int,
        project_id: int,
        period_start: date,
        period_end: date,
        allowances: Optional[Iterable[Any]] = None,
        deductions: Optional[Iterable[Any]] = None,
        overtime_hours: Any = 0,
        remarks: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Payroll:
        require_role(actor, PAYROLL_MANAGER_ROLES, "You cannot generate payroll")
        require_period(period_start, period_end)
        user_id, project_id = require_int(user_id, "user_id"), require_int(project_id, "project_id")
        allowances = parse_allowances(allowances)
        deductions = parse_deductions(deductions)
        overtime = self._overtime(overtime_hours)

        with self._locks.hold((user_id, project_id)):
            return self._settle(
                actor,
                user_id,
                project_id,
                period_start,
                period_end,
                allowances,
                deductions,
                overtime,
                remarks=remarks,
                now=now,
            )

    def _settle(
        self,
        actor: Actor,
        user_id: int,
        project_id: int,
        period_start: date,
        period_end: date,
        allowances: tuple[Allowance, ...],
        deductions: tuple[Deduction, ...],
        overtime: Decimal,
        *,
        remarks: Optional[str] = None,
        now: Optional[datetime] = None,
        structure: Optional[SalaryStructure] = None,
    ) -> Payroll:
        if self._payrolls.exists_for_period(user_id, project_id, period_start, period_end):
            raise DuplicatePeriodError(user_id, project_id, period_start, period_end)

        preview, open_advances = self._compute(
            user_id,
            project_id,
            period_start,
            period_end,
            allowances,
            deductions,
            overtime,
            structure=structure,
        )
        figures = preview.figures
        self._log.debug(
            "payroll figures computed",
            extra={
                "user_id": user_id,
                "project_id": project_id,
                "present_days": preview.present_days,
                "gross_salary": figures.gross_salary,
                "net_salary": figures.net_salary,
                "advance_recovery": preview.advance_recovery,
            },
        )

        payroll = self._payrolls.add(
            Payroll(
                payroll_id=0,
                user_id=user_id,
                project_id=project_id,
                salary_structure_id=preview.structure.structure_id,
                role=preview.structure.role,
                period_start=period_start,
                period_end=period_end,
                total_working_days=preview.total_working_days,
                present_days=preview.present_days,
                absent_days=preview.absent_days,
                overtime_hours=overtime,
                basic_salary=figures.basic_salary,
                overtime_pay=figures.overtime_pay,
                allowances=allowances,
                deductions=deductions,
                total_allowances=figures.total_allowances,
                total_deductions=figures.total_deductions,
                gross_salary=figures.gross_salary,
                net_salary=figures.net_salary,
                advance_paid=money(sum((a.amount for a in open_advances), ZERO)),
                advance_recovered=preview.advance_recovery,
                payment_status=PaymentStatus.PENDING,
                remarks=remarks,
                created_by=actor.user_id,
                created_at=as_utc(now) if now else now_utc(),
            )
        )

        if preview.advance_recovery > 0:
            recovered = allocate_fifo(open_advances, preview.advance_recovery)
            try:
                self._advances.save_recoveries(recovered)
            except Exception:
                self._payrolls.delete(payroll.payroll_id)
                raise
            self._log.info(
                "advances recovered from payroll",
                extra={
                    "payroll_id": payroll.payroll_id,
                    "advance_ids": [a.advance_id for a in recovered],
                    "amount": preview.advance_recovery,
                },
            )

        self._log.info(
            "payroll generated",
            extra={
                "payroll_id": payroll.payroll_id,
                "user_id": user_id,
                "project_id": project_id,
                "period_start": period_start,
                "period_end": period_end,
                "net_salary": payroll.net_salary,
            },
        )
        return payroll

    def generate_bulk_payroll(
        self,
        actor: Actor,
        *,
        project_id: int,
        period_start: date,
        period_end: date,
        allowances: Optional[Iterable[Any]] = None,
        deductions: Optional[Iterable[Any]] = None,
        now: Optional[datetime] = None,
    ) -> BulkPayrollResult:
        """Settle every worker with an active structure on the project.

        No overtime and no advance recovery in bulk mode; one worker failing
        does not stop the others.
        """
        require_role(actor, PAYROLL_MANAGER_ROLES, "You cannot generate payroll")
        require_period(period_start, period_end)
        project_id = require_int(project_id, "project_id")
        allowances = parse_allowances(allowances)
        _, deductions = split_recovery(parse_deductions(deductions))

        structures = self._structures.list_filtered(project_id=project_id, is_active=True)
        if not structures:
            raise NoActiveStructureError(project_id)

        result = BulkPayrollResult()
        for structure in structures:
            try:
                with self._locks.hold((structure.user_id, project_id)):
                    payroll = self._settle(
                        actor,
                        structure.user_id,
                        project_id,
                        period_start,
                        period_end,
                        allowances,
                        deductions,
                        ZERO,
                        now=now,
                        structure=structure,
                    )
                result.succeeded.append((structure.user_id, payroll.payroll_id))
            except DomainError as exc:
                self._log.info(
                    "bulk payroll skipped user",
                    extra={"user_id": structure.user_id, "project_id": project_id, "code": exc.code},
                )
                result.failed.append((structure.user_id, exc.message))

        self._log.info(
            "bulk payroll finished",
            extra={"project_id": project_id, "succeeded": len(result.succeeded), "failed": len(result.failed)},
        )
        return result

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def _existing(self, payroll_id: int) -> Payroll:
        payroll = self._payrolls.get_by_id(require_int(payroll_id, "payroll_id"))
        if payroll is None:
            raise NotFoundError("Payroll not found", payroll_id=payroll_id)
        return payroll

    def get_payroll(self, actor: Actor, payroll_id: int) -> Payroll:
        payroll = self._existing(payroll_id)
        require_self_or_role(actor, payroll.user_id, PAYROLL_MANAGER_ROLES)
        return payroll

    def _pending(self, payroll_id: int, action: str) -> Payroll:
        payroll = self._existing(payroll_id)
        if payroll.payment_status != PaymentStatus.PENDING:
            raise PayrollLockedError(payroll.payroll_id, payroll.payment_status, action)
        return payroll

    def update_payroll(
        self,
        actor: Actor,
        payroll_id: int,
        *,
        allowances: Optional[Iterable[Any]] = None,
        deductions: Optional[Iterable[Any]] = None,
        overtime_hours: Any = None,
        remarks: Optional[str] = None,
    ) -> Payroll:
        """Change pay items of a pending payroll and recompute its totals.

        Advance recovery items are fixed once the advances were walked; they
        cannot be supplied here and the stored ones are kept.
        """
        require_role(actor, PAYROLL_MANAGER_ROLES, "You cannot update payroll")
        key = self._existing(payroll_id)
        overtime_input = self._overtime(overtime_hours) if overtime_hours is not None else None
        supplied_allowances = parse_allowances(allowances) if allowances is not None else None
        supplied_deductions = parse_deductions(deductions) if deductions is not None else None

        with self._locks.hold((key.user_id, key.project_id)):
            payroll = self._pending(key.payroll_id, "update")

            new_allowances = supplied_allowances if supplied_allowances is not None else payroll.allowances
            stored_recovery, stored_others = split_recovery(payroll.deductions)
            if supplied_deductions is not None:
                supplied_recovery, stored_others = split_recovery(supplied_deductions)
                if supplied_recovery:
                    raise ValidationError(
                        "Advance recovery cannot be changed on an existing payroll",
                        payroll_id=payroll.payroll_id,
                    )
            new_deductions = stored_others + stored_recovery
            overtime = overtime_input if overtime_input is not None else payroll.overtime_hours

            structure = self._structures.get_by_id(payroll.salary_structure_id)
            if structure is None:
                raise NotFoundError("Linked salary structure not found", structure_id=payroll.salary_structure_id)

            summary = self._attendance.get_attendance_summary(
                payroll.user_id, payroll.project_id, payroll.period_start, payroll.period_end
            )
            before_recovery = self._calculator.compute(
                structure, summary, overtime_hours=overtime, allowances=new_allowances, deductions=stored_others
            )
            net_before_recovery = before_recovery.gross_salary - before_recovery.total_deductions
            if payroll.advance_recovered > 0 and payroll.advance_recovered > net_before_recovery:
                raise RecoveryExceedsEarningsError(payroll.advance_recovered, max(ZERO, net_before_recovery))

            figures = self._calculator.compute(
                structure, summary, overtime_hours=overtime, allowances=new_allowances, deductions=new_deductions
            )
            updated = replace(
                payroll,
                total_working_days=summary.total_working_days,
                present_days=summary.present_days,
                absent_days=summary.absent_days,
                overtime_hours=overtime,
                allowances=new_allowances,
                deductions=new_deductions,
                basic_salary=figures.basic_salary,
                overtime_pay=figures.overtime_pay,
                total_allowances=figures.total_allowances,
                total_deductions=figures.total_deductions,
                gross_salary=figures.gross_salary,
                net_salary=figures.net_salary,
                remarks=remarks if remarks is not None else payroll.remarks,
            )
            self._payrolls.update(updated)

        self._log.info(
            "payroll updated",
            extra={"payroll_id": updated.payroll_id, "net_salary": updated.net_salary, "by": actor.user_id},
        )
        return updated

    def record_payment(
        self,
        actor: Actor,
        payroll_id: int,
        *,
        payment_mode: PaymentMode | str,
        amount: Any = None,
        transaction_reference: Optional[str] = None,
        payment_date: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> Payroll:
        """Pay part or all of the remaining net salary; ``amount=None`` pays the rest."""
        require_role(actor, PAYROLL_MANAGER_ROLES, "You cannot record payments")
        mode = require_enum(PaymentMode, payment_mode, "payment mode")
        key = self._existing(payroll_id)

        with self._locks.hold((key.user_id, key.project_id)):
            payroll = self._existing(key.payroll_id)
            if payroll.payment_status == PaymentStatus.PAID:
                raise PayrollLockedError(payroll.payroll_id, payroll.payment_status, "pay")

            remaining = payroll.net_salary - payroll.amount_paid
            paying = remaining if amount is None else require_amount(amount, "amount")
            if paying > remaining:
                raise ValidationError(
                    "Payment exceeds the amount still due",
                    requested=paying,
                    available=remaining,
                    payroll_id=payroll.payroll_id,
                )
            if paying == 0 and remaining > 0:
                raise ValidationError("Payment amount must be greater than 0", payroll_id=payroll.payroll_id)

            paid_total = payroll.amount_paid + paying
            status = PaymentStatus.PAID if paid_total >= payroll.net_salary else PaymentStatus.PARTIALLY_PAID
            updated = replace(
                payroll,
                amount_paid=paid_total,
                payment_status=status,
                payment_mode=mode,
                transaction_reference=transaction_reference or payroll.transaction_reference,
                payment_date=as_utc(payment_date) if payment_date else (as_utc(now) if now else now_utc()),
            )
            self._payrolls.update(updated)

        self._log.info(
            "payroll payment recorded",
            extra={
                "payroll_id": updated.payroll_id,
                "amount": paying,
                "payment_status": status.value,
                "payment_mode": mode.value,
            },
        )
        return updated

    def delete_payroll(self, actor: Actor, payroll_id: int) -> None:
        require_role(actor, PAYROLL_MANAGER_ROLES, "You cannot delete payroll")
        key = self._existing(payroll_id)

        with self._locks.hold((key.user_id, key.project_id)):
            payroll = self._pending(key.payroll_id, "delete")
            if payroll.advance_recovered > 0:
                raise ValidationError(
                    "Payroll has recovered advances and cannot be deleted",
                    payroll_id=payroll.payroll_id,
                    advance_recovered=payroll.advance_recovered,
                )
            self._payrolls.delete(payroll.payroll_id)

        self._log.info("payroll deleted", extra={"payroll_id": payroll.payroll_id, "by": actor.user_id})

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_payrolls(
        self,
        actor: Actor,
        *,
        project_id: Optional[int] = None,
        user_id: Optional[int] = None,
        role: Optional[Role | str] = None,
        payment_status: Optional[PaymentStatus | str] = None,
        period_start: Optional[date] = None,
        period_end: Optional[date] = None,
    ) -> list[Payroll]:
        require_role(actor, PAYROLL_MANAGER_ROLES, "You cannot list payrolls")
        return list(
            self._payrolls.list_filtered(
                project_id=project_id,
                user_id=user_id,
                role=require_enum(Role, role, "role") if role else None,
                payment_status=require_enum(PaymentStatus, payment_status, "payment status") if payment_status else None,
                period_start=period_start,
                period_end=period_end,
            )
        )

    def list_my_payrolls(self, actor: Actor) -> list[Payroll]:
        return list(self._payrolls.list_filtered(user_id=actor.user_id))

    def project_payroll_summary(self, actor: Actor, project_id: int) -> list[PayrollStatusTotals]:
        require_role(actor, PAYROLL_MANAGER_ROLES, "You cannot view payroll summaries")
        grouped: dict[PaymentStatus, list[Payroll]] = {}
        for p in self._payrolls.list_filtered(project_id=require_int(project_id, "project_id")):
            grouped.setdefault(p.payment_status, []).append(p)
        return [
            PayrollStatusTotals(
                status=status,
                count=len(items),
                total_net=money(sum((p.net_salary for p in items), ZERO)),
                total_gross=money(sum((p.gross_salary for p in items), ZERO)),
            )
            for status, items in grouped.items()
        ]
