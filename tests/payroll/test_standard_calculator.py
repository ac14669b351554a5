from decimal import Decimal

from src.site_payroll.site_payroll.attendance.model import AttendanceSummary
from src.site_payroll.site_payroll.core.enums import AllowanceReason, DeductionReason, Role, SalaryType
from src.site_payroll.site_payroll.payroll.calculator.standard_calculator import StandardPayrollCalculator
from src.site_payroll.site_payroll.payroll.model import Allowance, Deduction, SalaryStructure

from conftest import LABOUR_ID, PROJECT_ID, utc


def _structure(salary_type, rate, overtime_rate="0"):
    return SalaryStructure(
        structure_id=1,
        user_id=LABOUR_ID,
        project_id=PROJECT_ID,
        role=Role.LABOUR,
        salary_type=salary_type,
        rate_amount=Decimal(rate),
        overtime_rate=Decimal(overtime_rate),
        effective_from=utc(2026, 1, 1),
    )


def test_daily_rate_with_overtime_allowances_and_deductions():
    summary = AttendanceSummary(present_days=20, absent_days=4, total_working_days=24)

    figures = StandardPayrollCalculator().compute(
        _structure(SalaryType.DAILY, "500", "50"),
        summary,
        overtime_hours=Decimal("3"),
        allowances=[Allowance(AllowanceReason.TRAVEL, Decimal("200"))],
        deductions=[Deduction(DeductionReason.PENALTY, Decimal("100"))],
    )

    assert figures.basic_salary == Decimal("10000.00")
    assert figures.overtime_pay == Decimal("150.00")
    assert figures.total_allowances == Decimal("200.00")
    assert figures.gross_salary == Decimal("10350.00")
    assert figures.total_deductions == Decimal("100.00")
    assert figures.net_salary == Decimal("10250.00")


def test_monthly_rate_ignores_attendance():
    calc = StandardPayrollCalculator()
    summary = AttendanceSummary(present_days=3, absent_days=21, total_working_days=24)

    assert calc.basic_salary(_structure(SalaryType.MONTHLY, "30000"), summary) == Decimal("30000.00")


def test_hourly_rate_uses_hours_worked():
    calc = StandardPayrollCalculator()
    summary = AttendanceSummary(present_days=1, absent_days=0, total_working_days=1, total_minutes=450, total_hours=7.5)

    assert calc.basic_salary(_structure(SalaryType.HOURLY, "120.50"), summary) == Decimal("903.75")


def test_net_salary_never_goes_negative():
    summary = AttendanceSummary(present_days=1, absent_days=0, total_working_days=1)

    figures = StandardPayrollCalculator().compute(
        _structure(SalaryType.DAILY, "500"),
        summary,
        overtime_hours=Decimal("0"),
        allowances=[],
        deductions=[Deduction(DeductionReason.ABSENCE, Decimal("800"))],
    )

    assert figures.gross_salary == Decimal("500.00")
    assert figures.total_deductions == Decimal("800.00")
    assert figures.net_salary == Decimal("0.00")
