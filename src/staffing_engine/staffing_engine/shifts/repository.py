from __future__ import annotations

from typing import Mapping, Optional, Protocol

from ..core.enums import ShiftStatus
from .model import Job, Shift


class ShiftRepository(Protocol):
    def get_by_id(self, shift_id: int) -> Optional[Shift]:
        raise NotImplementedError

    def get_job(self, job_id: int) -> Optional[Job]:
        raise NotImplementedError

    def company_exists(self, company_id: int) -> bool:
        raise NotImplementedError

    def update_status(self, shift_id: int, *, status: ShiftStatus, only_from: tuple[ShiftStatus, ...] = ()) -> bool:
        """Set the status; when ``only_from`` is given, only if the current status is one of them."""

        raise NotImplementedError

    def update_requirements(self, shift_id: int, requirements: Mapping[str, int]) -> bool:
        raise NotImplementedError
