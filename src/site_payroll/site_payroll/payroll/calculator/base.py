from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Sequence

from ...attendance.model import AttendanceSummary
from ..model import Allowance, Deduction, PayrollFigures, SalaryStructure


class PayrollCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll)."""

    @abstractmethod
    def basic_salary(self, structure: SalaryStructure, summary: AttendanceSummary) -> Decimal:
        raise NotImplementedError

    @abstractmethod
    def compute(
        self,
        structure: SalaryStructure,
        summary: AttendanceSummary,
        *,
        overtime_hours: Decimal,
        allowances: Sequence[Allowance],
        deductions: Sequence[Deduction],
    ) -> PayrollFigures:
        raise NotImplementedError
