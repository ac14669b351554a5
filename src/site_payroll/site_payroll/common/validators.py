from __future__ import annotations

import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Type, TypeVar

from ..core.constants import MONEY_PLACES
from ..core.exceptions import ValidationError

E = TypeVar("E", bound=Enum)

_MONEY_QUANTUM = Decimal(1).scaleb(-MONEY_PLACES)
_INT_TEXT = re.compile(r"\s*-?\d+\s*")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def money(value: Any) -> Decimal:
    """Coerce numbers and numeric strings to a 2-place Decimal."""
    if isinstance(value, float):
        value = repr(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid amount: {value!r}")
    # NaN and Infinity survive quantize()
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    try:
        return amount.quantize(_MONEY_QUANTUM, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"Amount out of range: {value!r}")


def require_int(value: Any, field_name: str) -> int:
    """Ids and counts from request bodies: ints or digit strings only."""
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field_name}: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INT_TEXT.fullmatch(value):
        return int(value)
    raise ValidationError(f"Invalid {field_name}: {value!r}")


def require_amount(value: Any, field_name: str, *, positive: bool = False) -> Decimal:
    amount = money(value)
    if amount < 0 or (positive and amount == 0):
        qualifier = "greater than 0" if positive else "0 or more"
        raise ValidationError(f"{field_name} must be {qualifier}", **{field_name: str(amount)})
    return amount


def require_enum(enum_cls: Type[E], value: Any, field_name: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"Invalid {field_name}: {value!r} (allowed: {allowed})")


def require_period(period_start: date, period_end: date) -> None:
    if period_end < period_start:
        raise ValidationError(
            "Period end cannot be before period start",
            period_start=period_start,
            period_end=period_end,
        )
