from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from ...attendance.model import AttendanceSummary
from ...common.validators import money
from ...core.enums import SalaryType
from ..model import ZERO, Allowance, Deduction, PayrollFigures, SalaryStructure
from .base import PayrollCalculator


class StandardPayrollCalculator(PayrollCalculator):
    """Standard rule.

    basic: daily = rate x present days, monthly = rate, hourly = rate x hours worked.
    gross = basic + overtime + allowances; net = gross - deductions, not below 0.
    """

    def basic_salary(self, structure: SalaryStructure, summary: AttendanceSummary) -> Decimal:
        if structure.salary_type == SalaryType.DAILY:
            return money(structure.rate_amount * summary.present_days)
        if structure.salary_type == SalaryType.MONTHLY:
            return money(structure.rate_amount)
        if structure.salary_type == SalaryType.HOURLY:
            return money(structure.rate_amount * Decimal(str(summary.total_hours)))
        raise ValueError(f"Unsupported salary type: {structure.salary_type!r}")

    def compute(
        self,
        structure: SalaryStructure,
        summary: AttendanceSummary,
        *,
        overtime_hours: Decimal,
        allowances: Sequence[Allowance],
        deductions: Sequence[Deduction],
    ) -> PayrollFigures:
        basic = self.basic_salary(structure, summary)
        overtime_pay = money((structure.overtime_rate or ZERO) * Decimal(overtime_hours))
        total_allowances = money(sum((a.amount for a in allowances), ZERO))
        total_deductions = money(sum((d.amount for d in deductions), ZERO))
        gross = basic + overtime_pay + total_allowances

        return PayrollFigures(
            basic_salary=basic,
            overtime_pay=overtime_pay,
            total_allowances=total_allowances,
            total_deductions=total_deductions,
            gross_salary=gross,
            net_salary=max(ZERO, gross - total_deductions),
        )
