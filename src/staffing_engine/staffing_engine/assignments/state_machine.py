"""Worker attendance lifecycle.

NotStarted -> ClockedIn <-> ClockedOut (on break) -> ShiftEnded
NotStarted -> NoShow

Transitions are pure: they take an Assignment and return the next Assignment,
or raise without touching anything.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

from ..core.constants import MAX_TIME_ENTRIES
from ..core.enums import WorkerStatus
from ..core.exceptions import InvalidTransition, MaxEntriesExceeded, ValidationError
from .model import Assignment, TimeEntry

_ALLOWED_FROM: dict[str, frozenset[WorkerStatus]] = {
    "clock_in": frozenset({WorkerStatus.NOT_STARTED, WorkerStatus.CLOCKED_OUT}),
    "clock_out": frozenset({WorkerStatus.CLOCKED_IN}),
    "end_shift": frozenset({WorkerStatus.CLOCKED_IN, WorkerStatus.CLOCKED_OUT}),
    "mark_no_show": frozenset({WorkerStatus.NOT_STARTED}),
}


def allowed_from(action: str) -> frozenset[WorkerStatus]:
    return _ALLOWED_FROM[action]


class AttendanceStateMachine:
    def __init__(self, *, max_entries: int = MAX_TIME_ENTRIES, min_work_minutes: int = 0):
        self._max_entries = int(max_entries)
        self._min_work = timedelta(minutes=int(min_work_minutes))

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def _require_state(self, action: str, assignment: Assignment) -> None:
        if assignment.status in _ALLOWED_FROM[action]:
            return
        if assignment.status.is_terminal:
            raise InvalidTransition(
                f"Cannot {action.replace('_', ' ')}: worker is already {assignment.status.value}"
            )
        raise InvalidTransition(f"Cannot {action.replace('_', ' ')} from {assignment.status.value}")

    def clock_in(self, assignment: Assignment, *, now: datetime) -> Assignment:
        self._require_state("clock_in", assignment)
        if assignment.active_entry is not None:
            raise InvalidTransition("Worker is already clocked in")
        if len(assignment.time_entries) >= self._max_entries:
            raise MaxEntriesExceeded(
                f"Maximum time entries ({self._max_entries}) reached for this shift; end the shift instead"
            )

        entry = TimeEntry(entry_number=assignment.next_entry_number, clock_in=now)
        return replace(
            assignment,
            status=WorkerStatus.CLOCKED_IN,
            time_entries=assignment.time_entries + (entry,),
        )

    def clock_out(self, assignment: Assignment, *, now: datetime) -> Assignment:
        """Start a break: close the active entry, the worker may clock in again."""
        self._require_state("clock_out", assignment)
        active = assignment.active_entry
        if active is None:
            raise InvalidTransition("No active clock-in found for this worker")
        self._check_close_time(active, now)
        if now - active.clock_in < self._min_work:
            raise ValidationError(
                f"Minimum work period of {int(self._min_work.total_seconds() // 60)} minute(s) required"
            )

        return replace(
            assignment,
            status=WorkerStatus.CLOCKED_OUT,
            time_entries=self._close(assignment.time_entries, active, now),
        )

    def end_shift(self, assignment: Assignment, *, now: datetime) -> Assignment:
        self._require_state("end_shift", assignment)
        entries = assignment.time_entries
        active = assignment.active_entry
        if active is not None:
            self._check_close_time(active, now)
            entries = self._close(entries, active, now)

        return replace(assignment, status=WorkerStatus.SHIFT_ENDED, time_entries=entries)

    def mark_no_show(self, assignment: Assignment) -> Assignment:
        self._require_state("mark_no_show", assignment)
        if assignment.time_entries:
            raise InvalidTransition("A worker with time entries cannot be marked as no show")
        return replace(assignment, status=WorkerStatus.NO_SHOW)

    @staticmethod
    def _check_close_time(entry: TimeEntry, now: datetime) -> None:
        if now < entry.clock_in:
            raise ValidationError("Clock out time must not be before clock in time")

    @staticmethod
    def _close(entries: tuple[TimeEntry, ...], active: TimeEntry, now: datetime) -> tuple[TimeEntry, ...]:
        return tuple(replace(e, clock_out=now) if e.entry_number == active.entry_number else e for e in entries)


def check_invariants(assignment: Assignment, *, max_entries: int = MAX_TIME_ENTRIES) -> None:
    """Raise ValidationError when an assignment breaks the time entry rules."""

    entries = assignment.time_entries
    if len(entries) > max_entries:
        raise ValidationError("Too many time entries")
    numbers = [e.entry_number for e in entries]
    if numbers != sorted(set(numbers)) or any(n < 1 or n > max_entries for n in numbers):
        raise ValidationError("Time entry numbers must be unique and ordered")
    if sum(1 for e in entries if e.is_active) > 1:
        raise ValidationError("At most one time entry may be active")
    for e in entries:
        if e.clock_out is not None and e.clock_out < e.clock_in:
            raise ValidationError("Clock out before clock in")
    if assignment.status == WorkerStatus.NO_SHOW and entries:
        raise ValidationError("No-show assignments cannot have time entries")
    if assignment.status == WorkerStatus.CLOCKED_IN and assignment.active_entry is None:
        raise ValidationError("Clocked-in worker must have an active entry")
    if assignment.status != WorkerStatus.CLOCKED_IN and assignment.active_entry is not None:
        raise ValidationError("Only a clocked-in worker may have an active entry")
