from __future__ import annotations

import json
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from mysql.connector.errors import IntegrityError

from ..core.enums import AllowanceReason, DeductionReason, PaymentMode, PaymentStatus, Role
from ..core.exceptions import DuplicatePeriodError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime, is_duplicate_key, to_db_datetime
from .model import Allowance, Deduction, Payroll
from .pay_items import item_to_dict
from .repository import PayrollRepository

_COLUMNS = """
    payroll_id, user_id, project_id, salary_structure_id, role, period_start, period_end,
    total_working_days, present_days, absent_days, overtime_hours,
    basic_salary, overtime_pay, allowances, deductions, total_allowances, total_deductions,
    gross_salary, net_salary, advance_paid, advance_recovered,
    payment_status, amount_paid, payment_date, payment_mode, transaction_reference,
    remarks, created_by, created_at
"""

# Columns rewritten by update(); identity and period are immutable.
_MUTABLE = (
    "total_working_days",
    "present_days",
    "absent_days",
    "overtime_hours",
    "basic_salary",
    "overtime_pay",
    "allowances",
    "deductions",
    "total_allowances",
    "total_deductions",
    "gross_salary",
    "net_salary",
    "advance_paid",
    "advance_recovered",
    "payment_status",
    "amount_paid",
    "payment_date",
    "payment_mode",
    "transaction_reference",
    "remarks",
)


def _load_items(raw) -> list:
    if raw is None:
        return []
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    return json.loads(raw) if isinstance(raw, str) else list(raw)


def _to_payroll(r: dict) -> Payroll:
    return Payroll(
        payroll_id=int(r["payroll_id"]),
        user_id=int(r["user_id"]),
        project_id=int(r["project_id"]),
        salary_structure_id=int(r["salary_structure_id"]),
        role=Role(r["role"]),
        period_start=r["period_start"],
        period_end=r["period_end"],
        total_working_days=int(r["total_working_days"]),
        present_days=int(r["present_days"]),
        absent_days=int(r["absent_days"]),
        overtime_hours=Decimal(r["overtime_hours"]),
        basic_salary=Decimal(r["basic_salary"]),
        overtime_pay=Decimal(r["overtime_pay"]),
        allowances=tuple(
            Allowance(AllowanceReason(i["reason"]), Decimal(i["amount"]), i.get("note"))
            for i in _load_items(r["allowances"])
        ),
        deductions=tuple(
            Deduction(DeductionReason(i["reason"]), Decimal(i["amount"]), i.get("note"))
            for i in _load_items(r["deductions"])
        ),
        total_allowances=Decimal(r["total_allowances"]),
        total_deductions=Decimal(r["total_deductions"]),
        gross_salary=Decimal(r["gross_salary"]),
        net_salary=Decimal(r["net_salary"]),
        advance_paid=Decimal(r["advance_paid"]),
        advance_recovered=Decimal(r["advance_recovered"]),
        payment_status=PaymentStatus(r["payment_status"]),
        amount_paid=Decimal(r["amount_paid"]),
        payment_date=from_db_datetime(r["payment_date"]),
        payment_mode=PaymentMode(r["payment_mode"]) if r.get("payment_mode") else None,
        transaction_reference=r.get("transaction_reference"),
        remarks=r.get("remarks"),
        created_by=int(r["created_by"]) if r.get("created_by") is not None else None,
        created_at=from_db_datetime(r["created_at"]),
    )


def _row_values(p: Payroll) -> dict:
    return {
        "total_working_days": p.total_working_days,
        "present_days": p.present_days,
        "absent_days": p.absent_days,
        "overtime_hours": p.overtime_hours,
        "basic_salary": p.basic_salary,
        "overtime_pay": p.overtime_pay,
        "allowances": json.dumps([item_to_dict(a) for a in p.allowances]),
        "deductions": json.dumps([item_to_dict(d) for d in p.deductions]),
        "total_allowances": p.total_allowances,
        "total_deductions": p.total_deductions,
        "gross_salary": p.gross_salary,
        "net_salary": p.net_salary,
        "advance_paid": p.advance_paid,
        "advance_recovered": p.advance_recovered,
        "payment_status": p.payment_status.value,
        "amount_paid": p.amount_paid,
        "payment_date": to_db_datetime(p.payment_date),
        "payment_mode": p.payment_mode.value if p.payment_mode else None,
        "transaction_reference": p.transaction_reference,
        "remarks": p.remarks,
    }


class MySQLPayrollRepository(PayrollRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, payroll_id: int) -> Optional[Payroll]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM payrolls WHERE payroll_id = %s", (payroll_id,))
            r = fetchone(cur)
            return _to_payroll(r) if r else None

    def exists_for_period(self, user_id: int, project_id: int, period_start: date, period_end: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT 1 FROM payrolls
                WHERE user_id = %s AND project_id = %s AND period_start = %s AND period_end = %s
                LIMIT 1
                """,
                (user_id, project_id, period_start, period_end),
            )
            return fetchone(cur) is not None

    def get_latest_for_user(self, user_id: int, project_id: int) -> Optional[Payroll]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM payrolls
                WHERE user_id = %s AND project_id = %s
                ORDER BY period_end DESC, payroll_id DESC
                LIMIT 1
                """,
                (user_id, project_id),
            )
            r = fetchone(cur)
            return _to_payroll(r) if r else None

    def add(self, payroll: Payroll) -> Payroll:
        values = _row_values(payroll)
        columns = (
            "user_id",
            "project_id",
            "salary_structure_id",
            "role",
            "period_start",
            "period_end",
            *_MUTABLE,
            "created_by",
            "created_at",
        )
        params = (
            payroll.user_id,
            payroll.project_id,
            payroll.salary_structure_id,
            payroll.role.value,
            payroll.period_start,
            payroll.period_end,
            *(values[c] for c in _MUTABLE),
            payroll.created_by,
            to_db_datetime(payroll.created_at),
        )
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"INSERT INTO payrolls ({', '.join(columns)}) VALUES ({', '.join(['%s'] * len(columns))})",
                    params,
                )
                payroll_id = int(cur.lastrowid)
        except IntegrityError as exc:
            if is_duplicate_key(exc):
                raise DuplicatePeriodError(
                    payroll.user_id, payroll.project_id, payroll.period_start, payroll.period_end
                ) from exc
            raise
        return replace(payroll, payroll_id=payroll_id)

    def update(self, payroll: Payroll) -> bool:
        values = _row_values(payroll)
        assignments = ", ".join(f"{c} = %s" for c in _MUTABLE)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE payrolls SET {assignments} WHERE payroll_id = %s",
                (*(values[c] for c in _MUTABLE), payroll.payroll_id),
            )
            return cur.rowcount > 0

    def delete(self, payroll_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM payrolls WHERE payroll_id = %s", (payroll_id,))
            return cur.rowcount > 0

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
        where, params = ["1 = 1"], []
        if project_id is not None:
            where.append("project_id = %s")
            params.append(project_id)
        if user_id is not None:
            where.append("user_id = %s")
            params.append(user_id)
        if role is not None:
            where.append("role = %s")
            params.append(role.value)
        if payment_status is not None:
            where.append("payment_status = %s")
            params.append(payment_status.value)
        if period_start is not None:
            where.append("period_start >= %s")
            params.append(period_start)
        if period_end is not None:
            where.append("period_end <= %s")
            params.append(period_end)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM payrolls
                WHERE {' AND '.join(where)}
                ORDER BY period_end DESC, payroll_id DESC
                """,
                tuple(params),
            )
            return [_to_payroll(r) for r in fetchall(cur)]
