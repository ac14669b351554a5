from __future__ import annotations

from typing import Any, Iterable, Optional

from ..common.validators import require_amount, require_enum
from ..core.enums import AllowanceReason, DeductionReason
from ..core.exceptions import ValidationError
from .model import Allowance, Deduction


def _fields(item: Any, kind: str) -> tuple[Any, Any, Optional[str]]:
    if not isinstance(item, dict):
        raise ValidationError(f"Each {kind} must be an object with reason and amount")
    note = item.get("note")
    return item.get("reason"), item.get("amount"), (str(note) if note is not None else None)


def parse_allowances(items: Optional[Iterable[Any]]) -> tuple[Allowance, ...]:
    """Accept ``Allowance`` values or ``{"reason", "amount", "note"}`` dicts."""
    parsed = []
    for item in items or ():
        if isinstance(item, Allowance):
            parsed.append(item)
            continue
        reason, amount, note = _fields(item, "allowance")
        parsed.append(
            Allowance(
                reason=require_enum(AllowanceReason, reason, "allowance reason"),
                amount=require_amount(amount, "allowance amount"),
                note=note,
            )
        )
    return tuple(parsed)


def parse_deductions(items: Optional[Iterable[Any]]) -> tuple[Deduction, ...]:
    parsed = []
    for item in items or ():
        if isinstance(item, Deduction):
            parsed.append(item)
            continue
        reason, amount, note = _fields(item, "deduction")
        parsed.append(
            Deduction(
                reason=require_enum(DeductionReason, reason, "deduction reason"),
                amount=require_amount(amount, "deduction amount"),
                note=note,
            )
        )
    return tuple(parsed)


def split_recovery(deductions: Iterable[Deduction]) -> tuple[tuple[Deduction, ...], tuple[Deduction, ...]]:
    """(advance recovery items, everything else)."""
    recovery, others = [], []
    for d in deductions:
        (recovery if d.is_advance_recovery else others).append(d)
    return tuple(recovery), tuple(others)


def item_to_dict(item: Allowance | Deduction) -> dict:
    return {"reason": item.reason.value, "amount": str(item.amount), "note": item.note}
