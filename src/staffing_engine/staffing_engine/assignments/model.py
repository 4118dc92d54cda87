from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import WorkerStatus


@dataclass(frozen=True)
class TimeEntry:
    """One clock-in/clock-out pair. ``clock_out is None`` means the entry is active."""

    entry_number: int
    clock_in: datetime
    clock_out: Optional[datetime] = None
    break_start: Optional[datetime] = None
    break_end: Optional[datetime] = None
    entry_id: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.clock_out is None


@dataclass(frozen=True)
class Assignment:
    """Domain entity: one worker bound to one shift in one role (AssignedPersonnel).

    ``time_entries`` is ordered by ``entry_number``. ``version`` increases on every
    save and backs the repository compare-and-swap.
    """

    assignment_id: int
    shift_id: int
    user_id: int
    role_code: str
    status: WorkerStatus = WorkerStatus.NOT_STARTED
    time_entries: tuple[TimeEntry, ...] = ()
    version: int = 0

    @property
    def active_entry(self) -> Optional[TimeEntry]:
        for e in self.time_entries:
            if e.is_active:
                return e
        return None

    @property
    def closed_entries(self) -> tuple[TimeEntry, ...]:
        return tuple(e for e in self.time_entries if not e.is_active)

    @property
    def next_entry_number(self) -> int:
        return max((e.entry_number for e in self.time_entries), default=0) + 1


@dataclass(frozen=True)
class BulkFailure:
    assignment_id: int
    code: str
    message: str


@dataclass(frozen=True)
class BulkResult:
    """Outcome of a shift-wide attendance action; partial success is expected."""

    operation: str
    shift_id: int
    affected: tuple[int, ...] = ()
    skipped: tuple[int, ...] = ()
    failures: tuple[BulkFailure, ...] = ()

    @property
    def affected_count(self) -> int:
        return len(self.affected)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)


@dataclass(frozen=True)
class ShiftConflict:
    """Another shift on the same day that the worker is already booked on, overlapping in time."""

    shift_id: int
    assignment_id: int
    role_code: str
    start_time: datetime
    end_time: datetime
