from __future__ import annotations

from typing import Iterable

from ..core.enums import Role
from ..core.exceptions import AuthorizationError
from ..users.model import Actor


def require_role(actor: Actor, allowed: Iterable[Role], message: str = "You do not have permission") -> None:
    allowed = frozenset(allowed)
    if actor.role not in allowed:
        raise AuthorizationError(
            message,
            role=actor.role.value,
            allowed=sorted(r.value for r in allowed),
        )


def require_self_or_role(actor: Actor, user_id: int, allowed: Iterable[Role]) -> None:
    """Owners may read their own data; everyone else needs one of ``allowed``."""
    if int(actor.user_id) == int(user_id):
        return
    require_role(actor, allowed, "You can only view your own records")
