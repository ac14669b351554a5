from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import (
    AllowanceReason,
    DeductionReason,
    PaymentMode,
    PaymentStatus,
    RecoveryStatus,
    Role,
    SalaryType,
)

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class SalaryStructure:
    """Domain entity: how a user is paid on a project.

    Superseded rather than edited: a new active structure closes the old one.
    """

    structure_id: int
    user_id: int
    project_id: int
    role: Role
    salary_type: SalaryType
    rate_amount: Decimal
    overtime_rate: Decimal
    effective_from: datetime
    effective_to: Optional[datetime] = None
    is_active: bool = True
    created_by: Optional[int] = None


@dataclass(frozen=True)
class Allowance:
    reason: AllowanceReason
    amount: Decimal
    note: Optional[str] = None


@dataclass(frozen=True)
class Deduction:
    reason: DeductionReason
    amount: Decimal
    note: Optional[str] = None

    @property
    def is_advance_recovery(self) -> bool:
        return self.reason == DeductionReason.ADVANCE_RECOVERY


@dataclass(frozen=True)
class PayrollFigures:
    """Computed amounts of one settlement."""

    basic_salary: Decimal
    overtime_pay: Decimal
    total_allowances: Decimal
    total_deductions: Decimal
    gross_salary: Decimal
    net_salary: Decimal


@dataclass(frozen=True)
class Payroll:
    """Domain entity: one settlement for (user, project, period)."""

    payroll_id: int
    user_id: int
    project_id: int
    salary_structure_id: int
    role: Role
    period_start: date
    period_end: date

    total_working_days: int
    present_days: int
    absent_days: int
    overtime_hours: Decimal

    basic_salary: Decimal
    overtime_pay: Decimal
    allowances: tuple[Allowance, ...]
    deductions: tuple[Deduction, ...]
    total_allowances: Decimal
    total_deductions: Decimal
    gross_salary: Decimal
    net_salary: Decimal

    advance_paid: Decimal = ZERO
    advance_recovered: Decimal = ZERO

    payment_status: PaymentStatus = PaymentStatus.PENDING
    amount_paid: Decimal = ZERO
    payment_date: Optional[datetime] = None
    payment_mode: Optional[PaymentMode] = None
    transaction_reference: Optional[str] = None

    remarks: Optional[str] = None
    created_by: Optional[int] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Advance:
    """Domain entity: cash handed to a worker, recovered from later pay."""

    advance_id: int
    user_id: int
    project_id: int
    amount: Decimal
    given_date: datetime
    reason: Optional[str] = None
    amount_recovered: Decimal = ZERO
    created_by: Optional[int] = None

    @property
    def remaining(self) -> Decimal:
        return self.amount - self.amount_recovered

    @property
    def recovery_status(self) -> RecoveryStatus:
        if self.amount_recovered >= self.amount:
            return RecoveryStatus.RECOVERED
        if self.amount_recovered > 0:
            return RecoveryStatus.PARTIALLY_RECOVERED
        return RecoveryStatus.PENDING


@dataclass(frozen=True)
class PayrollPreview:
    """Settlement figures computed without persisting anything."""

    structure: SalaryStructure
    total_working_days: int
    present_days: int
    absent_days: int
    total_hours: float
    overtime_hours: Decimal
    allowances: tuple[Allowance, ...]
    deductions: tuple[Deduction, ...]
    figures: PayrollFigures
    advance_recovery: Decimal
    outstanding_balance: Decimal


@dataclass(frozen=True)
class BulkPayrollResult:
    succeeded: list[tuple[int, int]] = field(default_factory=list)
    failed: list[tuple[int, str]] = field(default_factory=list)


@dataclass(frozen=True)
class AdvanceSummary:
    advances: tuple[Advance, ...]
    total_given: Decimal
    total_recovered: Decimal
    total_pending: Decimal


@dataclass(frozen=True)
class PayrollStatusTotals:
    status: PaymentStatus
    count: int
    total_net: Decimal
    total_gross: Decimal


@dataclass(frozen=True)
class AdvanceStatusTotals:
    status: RecoveryStatus
    count: int
    total_amount: Decimal
    total_recovered: Decimal
