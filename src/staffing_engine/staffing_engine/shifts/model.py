from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import ShiftStatus


@dataclass(frozen=True)
class Job:
    """Domain entity: a client's job that schedules shifts."""

    job_id: int
    company_id: int
    name: str


@dataclass(frozen=True)
class Shift:
    """Domain entity: a scheduled block of work for a Job.

    ``requirements`` maps a built-in role code to the number of workers needed.
    ``company_id`` is denormalized from the job so the client ⊇ job ⊇ shift chain
    is readable from the shift alone.
    """

    shift_id: int
    job_id: int
    company_id: int
    work_date: date
    start_time: datetime
    end_time: datetime
    status: ShiftStatus = ShiftStatus.PENDING
    location: Optional[str] = None
    requirements: dict[str, int] = field(default_factory=dict)

    def required_for(self, role_code: str) -> int:
        return int(self.requirements.get(role_code, 0))
