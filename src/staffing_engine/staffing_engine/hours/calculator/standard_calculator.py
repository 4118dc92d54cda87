from __future__ import annotations

from ...assignments.model import Assignment
from ...common.datetime_utils import hours_between
from ...core.constants import DEFAULT_REGULAR_HOURS_PER_DAY
from .base import HoursCalculator, WorkedHours


class StandardHoursCalculator(HoursCalculator):
    """Standard rule: sum of closed entries; anything past the daily limit is overtime.

    An entry that is still open counts as zero until it is closed.
    """

    def __init__(self, regular_hours_per_day: float = DEFAULT_REGULAR_HOURS_PER_DAY):
        self._limit = float(regular_hours_per_day)

    def worked_hours(self, assignment: Assignment) -> WorkedHours:
        total = sum(hours_between(e.clock_in, e.clock_out) for e in assignment.closed_entries if e.clock_out)
        regular = min(total, self._limit)
        overtime = max(total - self._limit, 0.0)
        return WorkedHours(total=total, regular=regular, overtime=overtime)
