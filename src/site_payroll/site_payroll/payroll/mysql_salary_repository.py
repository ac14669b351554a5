from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import Role, SalaryType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime, to_db_datetime
from .model import SalaryStructure
from .repository import SalaryStructureRepository

_COLUMNS = """
    structure_id, user_id, project_id, role, salary_type, rate_amount, overtime_rate,
    effective_from, effective_to, is_active, created_by
"""


def _to_structure(r: dict) -> SalaryStructure:
    return SalaryStructure(
        structure_id=int(r["structure_id"]),
        user_id=int(r["user_id"]),
        project_id=int(r["project_id"]),
        role=Role(r["role"]),
        salary_type=SalaryType(r["salary_type"]),
        rate_amount=Decimal(r["rate_amount"]),
        overtime_rate=Decimal(r["overtime_rate"]),
        effective_from=from_db_datetime(r["effective_from"]),
        effective_to=from_db_datetime(r["effective_to"]),
        is_active=bool(r["is_active"]),
        created_by=int(r["created_by"]) if r.get("created_by") is not None else None,
    )


class MySQLSalaryStructureRepository(SalaryStructureRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, structure_id: int) -> Optional[SalaryStructure]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM salary_structures WHERE structure_id = %s", (structure_id,))
            r = fetchone(cur)
            return _to_structure(r) if r else None

    def get_active(self, user_id: int, project_id: int) -> Optional[SalaryStructure]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM salary_structures
                WHERE user_id = %s AND project_id = %s AND is_active = 1
                ORDER BY structure_id DESC
                LIMIT 1
                """,
                (user_id, project_id),
            )
            r = fetchone(cur)
            return _to_structure(r) if r else None

    def list_filtered(
        self,
        *,
        project_id: Optional[int] = None,
        user_id: Optional[int] = None,
        role: Optional[Role] = None,
        is_active: Optional[bool] = None,
    ) -> Sequence[SalaryStructure]:
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
        if is_active is not None:
            where.append("is_active = %s")
            params.append(1 if is_active else 0)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM salary_structures WHERE {' AND '.join(where)} ORDER BY structure_id DESC",
                tuple(params),
            )
            return [_to_structure(r) for r in fetchall(cur)]

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE salary_structures
                SET is_active = 0, effective_to = %s
                WHERE user_id = %s AND project_id = %s AND is_active = 1
                """,
                (to_db_datetime(now), user_id, project_id),
            )
            cur.execute(
                """
                INSERT INTO salary_structures
                    (user_id, project_id, role, salary_type, rate_amount, overtime_rate,
                     effective_from, effective_to, is_active, created_by)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, 1, %s)
                """,
                (
                    user_id,
                    project_id,
                    role.value,
                    salary_type.value,
                    rate_amount,
                    overtime_rate,
                    to_db_datetime(effective_from),
                    to_db_datetime(effective_to),
                    created_by,
                ),
            )
            structure_id = int(cur.lastrowid)

        return SalaryStructure(
            structure_id=structure_id,
            user_id=user_id,
            project_id=project_id,
            role=role,
            salary_type=salary_type,
            rate_amount=rate_amount,
            overtime_rate=overtime_rate,
            effective_from=effective_from,
            effective_to=effective_to,
            is_active=True,
            created_by=created_by,
        )

    def deactivate(self, structure_id: int, *, effective_to: datetime) -> Optional[SalaryStructure]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE salary_structures SET is_active = 0, effective_to = %s WHERE structure_id = %s AND is_active = 1",
                (to_db_datetime(effective_to), structure_id),
            )
            cur.execute(f"SELECT {_COLUMNS} FROM salary_structures WHERE structure_id = %s", (structure_id,))
            r = fetchone(cur)
            return _to_structure(r) if r else None
