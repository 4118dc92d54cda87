from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..common.events import EventBus, StaffingEvent
from ..common.locks import KeyedLocks
from ..core.enums import ShiftStatus, WorkerStatus
from ..core.exceptions import (
    ConcurrentModification,
    DomainError,
    InvalidTransition,
    NotFoundError,
    ValidationError,
)
from ..permissions.resolver import AuthorizationResolver
from ..roles.catalog import RoleCatalog
from ..shifts.model import Shift
from ..shifts.repository import ShiftRepository
from ..users.model import User
from ..users.repository import UserRepository
from .model import Assignment, BulkFailure, BulkResult, ShiftConflict
from .repository import AssignmentRepository
from .state_machine import AttendanceStateMachine, allowed_from, check_invariants

logger = logging.getLogger("staffing_engine.attendance")

_CLOSED_SHIFT_STATUSES = (ShiftStatus.CANCELLED, ShiftStatus.COMPLETED)
_STARTABLE_SHIFT_STATUSES = (ShiftStatus.PENDING, ShiftStatus.ACTIVE)


class AttendanceService:
    """Assign workers to shifts and drive their attendance transitions.

    Every transition runs under a per-assignment lock and is saved with a
    compare-and-swap on the assignment version, so two requests racing on the
    same worker cannot both open an entry.
    """

    def __init__(
        self,
        assignments: AssignmentRepository,
        shifts: ShiftRepository,
        users: UserRepository,
        roles: RoleCatalog,
        resolver: AuthorizationResolver,
        *,
        state_machine: AttendanceStateMachine | None = None,
        locks: KeyedLocks | None = None,
        events: EventBus | None = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._assignments = assignments
        self._shifts = shifts
        self._users = users
        self._roles = roles
        self._resolver = resolver
        self._machine = state_machine or AttendanceStateMachine()
        self._locks = locks or KeyedLocks()
        self._events = events or EventBus()
        self._clock = clock

    def _shift(self, shift_id: int) -> Shift:
        shift = self._shifts.get_by_id(int(shift_id))
        if not shift:
            raise NotFoundError("Shift not found")
        return shift

    def _assignment(self, assignment_id: int) -> Assignment:
        assignment = self._assignments.get_by_id(int(assignment_id))
        if not assignment:
            raise NotFoundError("Assignment not found")
        return assignment

    def assign_worker(self, *, actor: User, shift_id: int, user_id: int, role_code: str) -> Assignment:
        shift = self._shift(shift_id)
        self._resolver.require_manage(actor, shift, action="assign workers to this shift")

        if shift.status in _CLOSED_SHIFT_STATUSES:
            raise InvalidTransition(f"Cannot assign workers to a {shift.status.value} shift")

        role = self._roles.resolve(role_code)

        worker = self._users.get_by_id(int(user_id))
        if not worker:
            raise NotFoundError("User not found")
        if not worker.is_active:
            raise ValidationError("Inactive users cannot be assigned to shifts")

        created = self._assignments.create(shift_id=shift.shift_id, user_id=worker.user_id, role_code=role.code)
        if created is None:
            raise ValidationError("Worker is already assigned to this shift")

        logger.info(
            "worker_assigned",
            extra={
                "assignment_id": created.assignment_id,
                "shift_id": shift.shift_id,
                "user_id": worker.user_id,
                "role_code": role.code,
                "actor_id": actor.user_id,
            },
        )
        self._publish("assignment_changed", shift.shift_id, actor, assignment_id=created.assignment_id, change="assigned")
        return created

    def unassign_worker(self, *, actor: User, assignment_id: int) -> None:
        assignment = self._assignment(assignment_id)
        shift = self._shift(assignment.shift_id)
        self._resolver.require_manage(actor, shift, action="remove workers from this shift")

        with self._locks.hold(("assignment", assignment.assignment_id)):
            current = self._assignment(assignment.assignment_id)
            if current.time_entries:
                raise InvalidTransition("Cannot remove a worker who already has time entries")
            if not self._assignments.delete_if_no_entries(current.assignment_id):
                raise InvalidTransition("Cannot remove a worker who already has time entries")

        logger.info(
            "worker_unassigned",
            extra={"assignment_id": assignment.assignment_id, "shift_id": shift.shift_id, "actor_id": actor.user_id},
        )
        self._publish(
            "assignment_changed", shift.shift_id, actor, assignment_id=assignment.assignment_id, change="unassigned"
        )

    def replace_assignment(self, *, actor: User, assignment_id: int, new_user_id: int, role_code: str) -> Assignment:
        """Put another worker on an assignment that has not been worked yet, keeping its id."""
        assignment = self._assignment(assignment_id)
        shift = self._shift(assignment.shift_id)
        self._resolver.require_manage(actor, shift, action="replace workers on this shift")

        if shift.status in _CLOSED_SHIFT_STATUSES:
            raise InvalidTransition(f"Cannot replace workers on a {shift.status.value} shift")

        role = self._roles.resolve(role_code)
        worker = self._users.get_by_id(int(new_user_id))
        if not worker:
            raise NotFoundError("User not found")
        if not worker.is_active:
            raise ValidationError("Inactive users cannot be assigned to shifts")

        with self._locks.hold(("assignment", assignment.assignment_id)):
            current = self._assignment(assignment.assignment_id)
            if current.time_entries:
                raise InvalidTransition("Cannot replace a worker who already has time entries")
            if self._assignments.get_for_shift_and_user(shift_id=shift.shift_id, user_id=worker.user_id):
                raise ValidationError("Worker is already assigned to this shift")

            updated = replace(current, user_id=worker.user_id, role_code=role.code, status=WorkerStatus.NOT_STARTED)
            if not self._assignments.replace_worker(updated, expected_version=current.version):
                logger.warning(
                    "assignment_save_conflict",
                    extra={
                        "assignment_id": current.assignment_id,
                        "action": "replace_assignment",
                        "expected_version": current.version,
                    },
                )
                raise ConcurrentModification("Assignment was modified by another request; reload and try again")
            updated = replace(updated, version=current.version + 1)

        logger.info(
            "worker_replaced",
            extra={
                "assignment_id": updated.assignment_id,
                "shift_id": shift.shift_id,
                "previous_user_id": current.user_id,
                "user_id": worker.user_id,
                "role_code": role.code,
                "actor_id": actor.user_id,
            },
        )
        self._publish(
            "assignment_changed",
            shift.shift_id,
            actor,
            assignment_id=updated.assignment_id,
            change="replaced",
            previous_user_id=current.user_id,
        )
        return updated

    def check_conflicts(self, *, shift_id: int, user_id: int) -> list[ShiftConflict]:
        """The worker's assignments on other shifts of the same day whose hours overlap this one."""
        shift = self._shift(shift_id)

        conflicts: list[ShiftConflict] = []
        for other in self._assignments.list_for_user(int(user_id)):
            if other.shift_id == shift.shift_id:
                continue
            other_shift = self._shifts.get_by_id(other.shift_id)
            if not other_shift or other_shift.work_date != shift.work_date:
                continue
            if other_shift.start_time < shift.end_time and other_shift.end_time > shift.start_time:
                conflicts.append(
                    ShiftConflict(
                        shift_id=other_shift.shift_id,
                        assignment_id=other.assignment_id,
                        role_code=other.role_code,
                        start_time=other_shift.start_time,
                        end_time=other_shift.end_time,
                    )
                )
        return conflicts

    def clock_in(self, *, actor: User, assignment_id: int, now: Optional[datetime] = None) -> Assignment:
        now = now or self._clock()
        updated, shift = self._transition(
            actor, assignment_id, "clock_in", lambda a: self._machine.clock_in(a, now=now)
        )
        if shift.status in _STARTABLE_SHIFT_STATUSES:
            # First clock-in on the shift starts it.
            if self._shifts.update_status(
                shift.shift_id, status=ShiftStatus.IN_PROGRESS, only_from=_STARTABLE_SHIFT_STATUSES
            ):
                logger.info("shift_started", extra={"shift_id": shift.shift_id, "actor_id": actor.user_id})
        return updated

    def clock_out(self, *, actor: User, assignment_id: int, now: Optional[datetime] = None) -> Assignment:
        now = now or self._clock()
        updated, _ = self._transition(actor, assignment_id, "clock_out", lambda a: self._machine.clock_out(a, now=now))
        return updated

    def end_shift(self, *, actor: User, assignment_id: int, now: Optional[datetime] = None) -> Assignment:
        now = now or self._clock()
        updated, _ = self._transition(actor, assignment_id, "end_shift", lambda a: self._machine.end_shift(a, now=now))
        return updated

    def mark_no_show(self, *, actor: User, assignment_id: int) -> Assignment:
        updated, _ = self._transition(actor, assignment_id, "mark_no_show", self._machine.mark_no_show)
        return updated

    def start_break_all(self, *, actor: User, shift_id: int, now: Optional[datetime] = None) -> BulkResult:
        now = now or self._clock()
        return self._bulk(actor, shift_id, "clock_out", lambda a: self._machine.clock_out(a, now=now))

    def end_shift_all(self, *, actor: User, shift_id: int, now: Optional[datetime] = None) -> BulkResult:
        now = now or self._clock()
        return self._bulk(actor, shift_id, "end_shift", lambda a: self._machine.end_shift(a, now=now))

    def _transition(
        self,
        actor: User,
        assignment_id: int,
        action: str,
        apply: Callable[[Assignment], Assignment],
    ) -> tuple[Assignment, Shift]:
        assignment = self._assignment(assignment_id)
        shift = self._shift(assignment.shift_id)
        self._resolver.require_manage(actor, shift, action="record attendance on this shift")

        updated = self._apply_locked(assignment.assignment_id, action, apply)
        self._log_transition(action, updated, actor)
        self._publish(
            "attendance_changed",
            shift.shift_id,
            actor,
            assignment_id=updated.assignment_id,
            action=action,
            status=updated.status.value,
        )
        return updated, shift

    def _apply_locked(
        self,
        assignment_id: int,
        action: str,
        apply: Callable[[Assignment], Assignment],
        *,
        eligible: Optional[frozenset[WorkerStatus]] = None,
    ) -> Optional[Assignment]:
        """Apply under the assignment lock; ``None`` when the fresh status is outside ``eligible``."""
        with self._locks.hold(("assignment", assignment_id)):
            current = self._assignment(assignment_id)
            if eligible is not None and current.status not in eligible:
                return None
            updated = apply(current)
            check_invariants(updated, max_entries=self._machine.max_entries)

            if not self._assignments.save(updated, expected_version=current.version):
                logger.warning(
                    "assignment_save_conflict",
                    extra={"assignment_id": assignment_id, "action": action, "expected_version": current.version},
                )
                raise ConcurrentModification("Assignment was modified by another request; reload and try again")

            return replace(updated, version=current.version + 1)

    def _bulk(
        self,
        actor: User,
        shift_id: int,
        action: str,
        apply: Callable[[Assignment], Assignment],
    ) -> BulkResult:
        shift = self._shift(shift_id)
        self._resolver.require_manage(actor, shift, action="record attendance on this shift")

        eligible = allowed_from(action)
        affected: list[int] = []
        skipped: list[int] = []
        failures: list[BulkFailure] = []

        for assignment in self._assignments.list_for_shift(shift.shift_id):
            if assignment.status not in eligible:
                skipped.append(assignment.assignment_id)
                continue
            try:
                updated = self._apply_locked(assignment.assignment_id, action, apply, eligible=eligible)
            except DomainError as exc:
                failures.append(BulkFailure(assignment_id=assignment.assignment_id, code=exc.code, message=str(exc)))
                continue
            if updated is None:
                # moved out of an eligible state after the listing was read
                skipped.append(assignment.assignment_id)
                continue
            affected.append(updated.assignment_id)
            self._log_transition(action, updated, actor)

        result = BulkResult(
            operation=action,
            shift_id=shift.shift_id,
            affected=tuple(affected),
            skipped=tuple(skipped),
            failures=tuple(failures),
        )
        logger.info(
            "bulk_attendance_applied",
            extra={
                "shift_id": shift.shift_id,
                "action": action,
                "affected": result.affected_count,
                "skipped": result.skipped_count,
                "failed": len(result.failures),
                "actor_id": actor.user_id,
            },
        )
        if affected:
            self._publish("attendance_changed", shift.shift_id, actor, action=f"{action}_all", affected=list(affected))
        return result

    @staticmethod
    def _log_transition(action: str, assignment: Assignment, actor: User) -> None:
        logger.info(
            "attendance_transition",
            extra={
                "action": action,
                "assignment_id": assignment.assignment_id,
                "shift_id": assignment.shift_id,
                "status": assignment.status.value,
                "entries": len(assignment.time_entries),
                "actor_id": actor.user_id,
            },
        )

    def _publish(self, kind: str, shift_id: int, actor: User, **detail) -> None:
        self._events.publish(StaffingEvent(kind=kind, shift_id=shift_id, actor_id=actor.user_id, detail=detail))
