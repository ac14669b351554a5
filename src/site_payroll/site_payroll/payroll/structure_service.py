from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from ..common.datetime_utils import as_utc, now_utc
from ..common.logging_config import get_logger
from ..common.permissions import require_role
from ..common.validators import require_amount, require_enum, require_int
from ..core.enums import PAYROLL_MANAGER_ROLES, Role, SalaryType
from ..core.exceptions import NoActiveStructureError, NotFoundError, ValidationError
from ..users.model import Actor
from .model import SalaryStructure
from .repository import SalaryStructureRepository

PAYABLE_ROLES = (Role.SITE_MANAGER, Role.LABOUR)


class SalaryStructureService:
    def __init__(self, structures: SalaryStructureRepository, *, logger: Optional[logging.Logger] = None):
        self._structures = structures
        self._log = logger or get_logger(__name__)

    def create_structure(
        self,
        actor: Actor,
        *,
        user_id: int,
        project_id: int,
        role: Role | str,
        salary_type: SalaryType | str,
        rate_amount: Any,
        overtime_rate: Any = 0,
        effective_from: Optional[datetime] = None,
        effective_to: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> SalaryStructure:
        """Create the active structure for (user, project), closing the previous one."""
        require_role(actor, PAYROLL_MANAGER_ROLES, "You cannot manage salary structures")
        role = require_enum(Role, role, "role")
        if role not in PAYABLE_ROLES:
            raise ValidationError("Salary structures apply to site managers and labour only", role=role.value)

        now = as_utc(now) if now else now_utc()
        effective_from = as_utc(effective_from) if effective_from else now
        if effective_to is not None and as_utc(effective_to) < effective_from:
            raise ValidationError("effective_to cannot be before effective_from")

        structure = self._structures.create_active(
            user_id=require_int(user_id, "user_id"),
            project_id=require_int(project_id, "project_id"),
            role=role,
            salary_type=require_enum(SalaryType, salary_type, "salary type"),
            rate_amount=require_amount(rate_amount, "rate amount"),
            overtime_rate=require_amount(overtime_rate if overtime_rate is not None else 0, "overtime rate"),
            effective_from=effective_from,
            effective_to=as_utc(effective_to) if effective_to else None,
            created_by=actor.user_id,
            now=now,
        )
        self._log.info(
            "salary structure created",
            extra={
                "structure_id": structure.structure_id,
                "user_id": structure.user_id,
                "project_id": structure.project_id,
                "salary_type": structure.salary_type.value,
                "rate_amount": structure.rate_amount,
            },
        )
        return structure

    def list_structures(
        self,
        actor: Actor,
        *,
        project_id: Optional[int] = None,
        user_id: Optional[int] = None,
        role: Optional[Role | str] = None,
        is_active: Optional[bool] = None,
    ) -> list[SalaryStructure]:
        require_role(actor, PAYROLL_MANAGER_ROLES, "You cannot view salary structures")
        return list(
            self._structures.list_filtered(
                project_id=project_id,
                user_id=user_id,
                role=require_enum(Role, role, "role") if role else None,
                is_active=is_active,
            )
        )

    def get_structure(self, actor: Actor, structure_id: int) -> SalaryStructure:
        require_role(actor, PAYROLL_MANAGER_ROLES, "You cannot view salary structures")
        structure = self._structures.get_by_id(require_int(structure_id, "structure_id"))
        if structure is None:
            raise NotFoundError("Salary structure not found", structure_id=structure_id)
        return structure

    def get_active_structure(self, actor: Actor, user_id: int, project_id: int) -> SalaryStructure:
        require_role(actor, PAYROLL_MANAGER_ROLES, "You cannot view salary structures")
        user_id, project_id = require_int(user_id, "user_id"), require_int(project_id, "project_id")
        structure = self._structures.get_active(user_id, project_id)
        if structure is None:
            raise NoActiveStructureError(project_id, user_id)
        return structure

    def deactivate_structure(self, actor: Actor, structure_id: int, *, now: Optional[datetime] = None) -> SalaryStructure:
        require_role(actor, PAYROLL_MANAGER_ROLES, "You cannot manage salary structures")
        structure = self._structures.deactivate(
            require_int(structure_id, "structure_id"), effective_to=as_utc(now) if now else now_utc()
        )
        if structure is None:
            raise NotFoundError("Salary structure not found", structure_id=structure_id)
        self._log.info("salary structure deactivated", extra={"structure_id": structure.structure_id})
        return structure
