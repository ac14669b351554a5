from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: User.

    Note: plain data object (no DB access code).
    """

    user_id: int
    name: str
    email: str
    password_hash: str
    role: Role
    is_active: bool = True


@dataclass(frozen=True)
class Actor:
    """Who is performing an operation; all permission checks read this."""

    user_id: int
    role: Role
