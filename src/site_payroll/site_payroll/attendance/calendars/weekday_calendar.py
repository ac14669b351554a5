from __future__ import annotations

from datetime import date
from typing import Iterable

from ...core.constants import DEFAULT_NON_WORKING_WEEKDAYS
from .base import WorkingCalendar


class WeekdayCalendar(WorkingCalendar):
    """Every day is a working day except the listed weekdays (Monday=0 .. Sunday=6)."""

    def __init__(self, non_working_weekdays: Iterable[int] = DEFAULT_NON_WORKING_WEEKDAYS):
        self.non_working_weekdays = frozenset(int(d) for d in non_working_weekdays)

    def is_working_day(self, day: date) -> bool:
        return day.weekday() not in self.non_working_weekdays
