from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import RecoveryStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime, to_db_datetime
from .model import Advance
from .repository import AdvanceRepository

_COLUMNS = "advance_id, user_id, project_id, amount, reason, given_date, amount_recovered, recovery_status, created_by"


def _to_advance(r: dict) -> Advance:
    return Advance(
        advance_id=int(r["advance_id"]),
        user_id=int(r["user_id"]),
        project_id=int(r["project_id"]),
        amount=Decimal(r["amount"]),
        given_date=from_db_datetime(r["given_date"]),
        reason=r.get("reason"),
        amount_recovered=Decimal(r["amount_recovered"]),
        created_by=int(r["created_by"]) if r.get("created_by") is not None else None,
    )


class MySQLAdvanceRepository(AdvanceRepository):
    """``recovery_status`` is stored alongside the amounts so it can be filtered on."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, advance_id: int) -> Optional[Advance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM advances WHERE advance_id = %s", (advance_id,))
            r = fetchone(cur)
            return _to_advance(r) if r else None

    def list_for_user_and_project(self, user_id: int, project_id: int) -> Sequence[Advance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM advances
                WHERE user_id = %s AND project_id = %s
                ORDER BY given_date, advance_id
                """,
                (user_id, project_id),
            )
            return [_to_advance(r) for r in fetchall(cur)]

    def list_filtered(
        self,
        *,
        project_id: Optional[int] = None,
        user_id: Optional[int] = None,
        recovery_status: Optional[RecoveryStatus] = None,
    ) -> Sequence[Advance]:
        where, params = ["1 = 1"], []
        if project_id is not None:
            where.append("project_id = %s")
            params.append(project_id)
        if user_id is not None:
            where.append("user_id = %s")
            params.append(user_id)
        if recovery_status is not None:
            where.append("recovery_status = %s")
            params.append(recovery_status.value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM advances WHERE {' AND '.join(where)} ORDER BY given_date DESC, advance_id DESC",
                tuple(params),
            )
            return [_to_advance(r) for r in fetchall(cur)]

    def add(self, advance: Advance) -> Advance:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO advances
                    (user_id, project_id, amount, reason, given_date, amount_recovered, recovery_status, created_by)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    advance.user_id,
                    advance.project_id,
                    advance.amount,
                    advance.reason,
                    to_db_datetime(advance.given_date),
                    advance.amount_recovered,
                    advance.recovery_status.value,
                    advance.created_by,
                ),
            )
            advance_id = int(cur.lastrowid)
        return replace(advance, advance_id=advance_id)

    def update(self, advance: Advance) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE advances
                SET amount = %s, reason = %s, given_date = %s, amount_recovered = %s, recovery_status = %s
                WHERE advance_id = %s
                """,
                (
                    advance.amount,
                    advance.reason,
                    to_db_datetime(advance.given_date),
                    advance.amount_recovered,
                    advance.recovery_status.value,
                    advance.advance_id,
                ),
            )
            return cur.rowcount > 0

    def save_recoveries(self, advances: Sequence[Advance]) -> None:
        if not advances:
            return
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                "UPDATE advances SET amount_recovered = %s, recovery_status = %s WHERE advance_id = %s",
                [(a.amount_recovered, a.recovery_status.value, a.advance_id) for a in advances],
            )

    def delete(self, advance_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM advances WHERE advance_id = %s", (advance_id,))
            return cur.rowcount > 0
