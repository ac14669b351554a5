from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from ..common.datetime_utils import utc_date
from ..core.enums import EntryKind
from .model import HistoryEntry, WorkingTime


def chronological(entries: Iterable[HistoryEntry]) -> list[HistoryEntry]:
    """Entries sorted by timestamp; ties keep insertion order."""
    return sorted(entries, key=lambda e: e.timestamp)


def _interval_minutes(check_in: datetime, check_out: datetime) -> int:
    seconds = (check_out - check_in).total_seconds()
    if seconds <= 0:
        return 0
    # round half up to whole minutes
    return int((seconds + 30) // 60)


def compute_working_time(entries: Sequence[HistoryEntry]) -> WorkingTime:
    """Fold a chronologically sorted entry sequence into worked minutes.

    Lenient rules: a repeated check-in replaces the open one (last check-in
    wins), a check-out without an open check-in is ignored, and a trailing
    check-in contributes nothing.
    """
    total_minutes = 0
    last_check_in: Optional[datetime] = None

    for entry in entries:
        if entry.kind == EntryKind.CHECK_IN:
            last_check_in = entry.timestamp
        elif entry.kind == EntryKind.CHECK_OUT and last_check_in is not None:
            total_minutes += _interval_minutes(last_check_in, entry.timestamp)
            last_check_in = None

    return WorkingTime(total_minutes=total_minutes, total_hours=round(total_minutes / 60, 2))


def group_by_day(entries: Iterable[HistoryEntry]) -> dict[date, list[HistoryEntry]]:
    """Chronological entries grouped by UTC calendar date."""
    days: dict[date, list[HistoryEntry]] = defaultdict(list)
    for e in chronological(entries):
        days[utc_date(e.timestamp)].append(e)
    return dict(days)
