from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Timesheet, TimesheetEntry


class TimesheetRepository(Protocol):
    def get_by_id(self, timesheet_id: int) -> Optional[Timesheet]:
        raise NotImplementedError

    def get_for_shift(self, shift_id: int) -> Optional[Timesheet]:
        raise NotImplementedError

    def create_draft(self, shift_id: int) -> Timesheet:
        """Create the shift's Draft timesheet, or return the existing one."""

        raise NotImplementedError

    def list_entries(self, timesheet_id: int) -> Sequence[TimesheetEntry]:
        raise NotImplementedError

    def compare_and_swap(
        self,
        timesheet: Timesheet,
        *,
        expected_version: int,
        entries: Optional[Sequence[TimesheetEntry]] = None,
    ) -> bool:
        """Write every field of ``timesheet`` in one step if the stored version still matches.

        When ``entries`` is given, the entry snapshot is replaced in the same
        transaction. Returns False (and writes nothing) on a version mismatch.
        """

        raise NotImplementedError
