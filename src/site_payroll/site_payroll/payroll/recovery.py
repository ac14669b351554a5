"""FIFO advance recovery.

Pure functions over ``Advance`` values; persistence is left to the caller.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Iterable, Sequence

from ..core.enums import RecoveryStatus
from ..core.exceptions import RecoveryExceedsOutstandingError
from .model import ZERO, Advance


def outstanding(advances: Iterable[Advance]) -> list[Advance]:
    """Advances not yet fully recovered, oldest first (given date, then id)."""
    return sorted(
        (a for a in advances if a.recovery_status != RecoveryStatus.RECOVERED),
        key=lambda a: (a.given_date, a.advance_id),
    )


def outstanding_balance(advances: Iterable[Advance]) -> Decimal:
    return sum((a.remaining for a in outstanding(advances)), ZERO)


def allocate_fifo(advances: Sequence[Advance], amount: Decimal) -> list[Advance]:
    """Spread ``amount`` over outstanding advances, oldest first.

    Returns only the advances that changed, in the order they were touched.
    A newer advance is never touched while an older one has a balance.
    """
    to_recover = Decimal(amount)
    if to_recover <= 0:
        return []

    queue = outstanding(advances)
    available = sum((a.remaining for a in queue), ZERO)
    if to_recover > available:
        raise RecoveryExceedsOutstandingError(requested=to_recover, available=available)

    updated: list[Advance] = []
    for advance in queue:
        if to_recover <= 0:
            break
        take = min(advance.remaining, to_recover)
        updated.append(replace(advance, amount_recovered=advance.amount_recovered + take))
        to_recover -= take
    return updated
