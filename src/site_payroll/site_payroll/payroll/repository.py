from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from ..core.enums import PaymentStatus, RecoveryStatus, Role, SalaryType
from .model import Advance, Payroll, SalaryStructure


class SalaryStructureRepository(Protocol):
    def get_by_id(self, structure_id: int) -> Optional[SalaryStructure]:
        raise NotImplementedError

    def get_active(self, user_id: int, project_id: int) -> Optional[SalaryStructure]:
        raise NotImplementedError

    def list_filtered(
        self,
        *,
        project_id: Optional[int] = None,
        user_id: Optional[int] = None,
        role: Optional[Role] = None,
        is_active: Optional[bool] = None,
    ) -> Sequence[SalaryStructure]:
        """Newest first."""

        raise NotImplementedError

    def create_active(
        self,
        *,
        user_id: int,
        project_id: int,
        role: Role,
        salary_type: SalaryType,
        rate_amount: Decimal,
        overtime_rate: Decimal,
        effective_from: datetime,
        effective_to: Optional[datetime],
        created_by: int,
        now: datetime,
    ) -> SalaryStructure:
        """Deactivate the current active structure (closing it at ``now``) and insert the new one."""

        raise NotImplementedError

    def deactivate(self, structure_id: int, *, effective_to: datetime) -> Optional[SalaryStructure]:
        raise NotImplementedError


class PayrollRepository(Protocol):
    def get_by_id(self, payroll_id: int) -> Optional[Payroll]:
        raise NotImplementedError

    def exists_for_period(self, user_id: int, project_id: int, period_start: date, period_end: date) -> bool:
        raise NotImplementedError

    def get_latest_for_user(self, user_id: int, project_id: int) -> Optional[Payroll]:
        """Most recent settlement by period end (then id)."""

        raise NotImplementedError

    def add(self, payroll: Payroll) -> Payroll:
        """Insert and return the stored payroll with its id.

        Raises ``DuplicatePeriodError`` when the period is already settled.
        """

        raise NotImplementedError

    def update(self, payroll: Payroll) -> bool:
        raise NotImplementedError

    def delete(self, payroll_id: int) -> bool:
        raise NotImplementedError

    def list_filtered(
        self,
        *,
        project_id: Optional[int] = None,
        user_id: Optional[int] = None,
        role: Optional[Role] = None,
        payment_status: Optional[PaymentStatus] = None,
        period_start: Optional[date] = None,
        period_end: Optional[date] = None,
    ) -> Sequence[Payroll]:
        """Newest first. ``period_start`` / ``period_end`` are lower / upper bounds."""

        raise NotImplementedError


class AdvanceRepository(Protocol):
    def get_by_id(self, advance_id: int) -> Optional[Advance]:
        raise NotImplementedError

    def list_for_user_and_project(self, user_id: int, project_id: int) -> Sequence[Advance]:
        raise NotImplementedError

    def list_filtered(
        self,
        *,
        project_id: Optional[int] = None,
        user_id: Optional[int] = None,
        recovery_status: Optional[RecoveryStatus] = None,
    ) -> Sequence[Advance]:
        """Newest given date first."""

        raise NotImplementedError

    def add(self, advance: Advance) -> Advance:
        raise NotImplementedError

    def update(self, advance: Advance) -> bool:
        raise NotImplementedError

    def save_recoveries(self, advances: Sequence[Advance]) -> None:
        """Persist ``amount_recovered`` of several advances in one transaction."""

        raise NotImplementedError

    def delete(self, advance_id: int) -> bool:
        raise NotImplementedError
