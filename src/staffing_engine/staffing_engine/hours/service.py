from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from ..assignments.model import Assignment
from .calculator.base import ZERO_HOURS, HoursCalculator, WorkedHours
from .calculator.standard_calculator import StandardHoursCalculator


@dataclass(frozen=True)
class AssignmentHours:
    assignment_id: int
    user_id: int
    role_code: str
    hours: WorkedHours


@dataclass(frozen=True)
class ShiftHours:
    shift_id: int
    workers: Sequence[AssignmentHours]
    totals: WorkedHours


class HoursReportService:
    def __init__(self, *, calculator: Optional[HoursCalculator] = None):
        self._calculator = calculator or StandardHoursCalculator()

    def for_assignment(self, assignment: Assignment) -> WorkedHours:
        return self._calculator.worked_hours(assignment)

    def for_shift(self, shift_id: int, assignments: Sequence[Assignment]) -> ShiftHours:
        """Regular/overtime split per worker, then summed for the shift."""
        workers = [
            AssignmentHours(
                assignment_id=a.assignment_id,
                user_id=a.user_id,
                role_code=a.role_code,
                hours=self._calculator.worked_hours(a),
            )
            for a in assignments
        ]
        totals = ZERO_HOURS
        for w in workers:
            totals = totals + w.hours
        return ShiftHours(shift_id=shift_id, workers=workers, totals=totals)
