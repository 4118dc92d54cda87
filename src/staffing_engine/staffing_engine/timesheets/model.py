from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import TimesheetStatus


@dataclass(frozen=True)
class TimesheetEntry:
    """Snapshot of one worker's time entry, taken when the timesheet is submitted."""

    assignment_id: int
    user_id: int
    role_code: str
    entry_number: int
    clock_in: datetime
    clock_out: Optional[datetime] = None


@dataclass(frozen=True)
class Timesheet:
    """Approval envelope for one shift's attendance data.

    ``version`` increases on every saved transition and backs the repository
    compare-and-swap.
    """

    timesheet_id: int
    shift_id: int
    status: TimesheetStatus = TimesheetStatus.DRAFT

    company_signature: Optional[str] = None
    manager_signature: Optional[str] = None
    unsigned_document_ref: Optional[str] = None
    signed_document_ref: Optional[str] = None
    rejection_reason: Optional[str] = None

    submitted_by: Optional[int] = None
    submitted_at: Optional[datetime] = None
    company_approved_by: Optional[int] = None
    company_approved_at: Optional[datetime] = None
    company_notes: Optional[str] = None
    manager_approved_by: Optional[int] = None
    manager_approved_at: Optional[datetime] = None
    manager_notes: Optional[str] = None
    rejected_by: Optional[int] = None
    rejected_at: Optional[datetime] = None
    unlocked_by: Optional[int] = None
    unlocked_at: Optional[datetime] = None
    unlock_reason: Optional[str] = None

    version: int = 0
