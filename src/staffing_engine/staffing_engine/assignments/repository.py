from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Assignment


class AssignmentRepository(Protocol):
    def get_by_id(self, assignment_id: int) -> Optional[Assignment]:
        raise NotImplementedError

    def get_for_shift_and_user(self, *, shift_id: int, user_id: int) -> Optional[Assignment]:
        raise NotImplementedError

    def list_for_shift(self, shift_id: int) -> Sequence[Assignment]:
        raise NotImplementedError

    def create(self, *, shift_id: int, user_id: int, role_code: str) -> Optional[Assignment]:
        """Insert a NotStarted assignment; ``None`` when (shift, user) is already taken."""

        raise NotImplementedError

    def list_for_user(self, user_id: int) -> Sequence[Assignment]:
        raise NotImplementedError

    def delete_if_no_entries(self, assignment_id: int) -> bool:
        raise NotImplementedError

    def replace_worker(self, assignment: Assignment, *, expected_version: int) -> bool:
        """Compare-and-swap the worker, role and status of an assignment that has no time entries.

        Raises ``ValidationError`` when the new worker already holds an assignment on the shift.
        """

        raise NotImplementedError

    def save(self, assignment: Assignment, *, expected_version: int) -> bool:
        """Compare-and-swap: persist status and entries only if the stored version still matches.

        Status and entries are written together or not at all.
        """

        raise NotImplementedError
