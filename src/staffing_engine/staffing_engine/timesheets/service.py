from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..assignments.repository import AssignmentRepository
from ..common.datetime_utils import now_local
from ..common.events import EventBus, StaffingEvent
from ..common.locks import KeyedLocks
from ..core.enums import ShiftStatus
from ..core.exceptions import ConcurrentModification, NotFoundError, ValidationError
from ..permissions.resolver import AuthorizationResolver
from ..shifts.model import Shift
from ..shifts.repository import ShiftRepository
from ..users.model import User
from . import state_machine as machine
from .model import Timesheet, TimesheetEntry
from .repository import TimesheetRepository

logger = logging.getLogger("staffing_engine.timesheets")


class TimesheetService:
    """Drives a shift's timesheet through client and manager sign-off.

    Each transition is serialized per timesheet and saved as one
    compare-and-swap, so a racing caller either sees the new state
    (``InvalidTransition``) or loses the swap (``ConcurrentModification``).
    """

    def __init__(
        self,
        timesheets: TimesheetRepository,
        assignments: AssignmentRepository,
        shifts: ShiftRepository,
        resolver: AuthorizationResolver,
        *,
        locks: KeyedLocks | None = None,
        events: EventBus | None = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._timesheets = timesheets
        self._assignments = assignments
        self._shifts = shifts
        self._resolver = resolver
        self._locks = locks or KeyedLocks()
        self._events = events or EventBus()
        self._clock = clock

    def _shift(self, shift_id: int) -> Shift:
        shift = self._shifts.get_by_id(int(shift_id))
        if not shift:
            raise NotFoundError("Shift not found")
        return shift

    def _timesheet(self, timesheet_id: int) -> Timesheet:
        ts = self._timesheets.get_by_id(int(timesheet_id))
        if not ts:
            raise NotFoundError("Timesheet not found")
        return ts

    def get(self, timesheet_id: int) -> Timesheet:
        return self._timesheet(timesheet_id)

    def get_for_shift(self, shift_id: int) -> Optional[Timesheet]:
        return self._timesheets.get_for_shift(int(shift_id))

    def entries(self, timesheet_id: int) -> Sequence[TimesheetEntry]:
        return self._timesheets.list_entries(int(timesheet_id))

    def open_for_shift(self, *, actor: User, shift_id: int) -> Timesheet:
        """Return the shift's timesheet, creating it as a Draft the first time."""
        shift = self._shift(shift_id)
        self._resolver.require_manage(actor, shift, action="prepare this shift's timesheet")

        with self._locks.hold(("shift-timesheet", shift.shift_id)):
            existing = self._timesheets.get_for_shift(shift.shift_id)
            if existing:
                return existing
            ts = self._timesheets.create_draft(shift.shift_id)

        logger.info(
            "timesheet_opened",
            extra={"timesheet_id": ts.timesheet_id, "shift_id": shift.shift_id, "actor_id": actor.user_id},
        )
        return ts

    def submit(self, *, actor: User, timesheet_id: int) -> Timesheet:
        ts = self._timesheet(timesheet_id)
        shift = self._shift(ts.shift_id)
        self._resolver.require_manage(actor, shift, action="submit this timesheet")

        now = self._clock()
        updated = self._swap(
            timesheet_id,
            "submit",
            actor,
            lambda current: machine.submit(current, actor_id=actor.user_id, now=now),
            snapshot=lambda: self._snapshot_entries(shift.shift_id),
        )
        self._publish("document_snapshot_due", updated, actor, document="unsigned")
        return updated

    def approve_as_company(
        self,
        *,
        actor: User,
        timesheet_id: int,
        signature: Optional[str],
        notes: Optional[str] = None,
    ) -> Timesheet:
        ts = self._timesheet(timesheet_id)
        shift = self._shift(ts.shift_id)
        self._resolver.require_company_signoff(actor, shift, action="approve this timesheet for the company")

        now = self._clock()
        updated = self._swap(
            timesheet_id,
            "approve_company",
            actor,
            lambda current: machine.approve_as_company(
                current, signature=signature, actor_id=actor.user_id, now=now, notes=notes
            ),
        )
        self._publish("document_snapshot_due", updated, actor, document="signed")
        return updated

    def approve_as_manager(
        self,
        *,
        actor: User,
        timesheet_id: int,
        signature: Optional[str],
        notes: Optional[str] = None,
    ) -> Timesheet:
        self._timesheet(timesheet_id)
        self._resolver.require_admin_or_staff(actor, action="give final approval on timesheets")

        now = self._clock()
        updated = self._swap(
            timesheet_id,
            "approve_manager",
            actor,
            lambda current: machine.approve_as_manager(
                current, signature=signature, actor_id=actor.user_id, now=now, notes=notes
            ),
        )

        if self._shifts.update_status(updated.shift_id, status=ShiftStatus.COMPLETED):
            logger.info("shift_completed", extra={"shift_id": updated.shift_id, "actor_id": actor.user_id})
        self._publish("timesheet_completed", updated, actor)
        return updated

    def reject(self, *, actor: User, timesheet_id: int, reason: Optional[str]) -> Timesheet:
        ts = self._timesheet(timesheet_id)
        shift = self._shift(ts.shift_id)
        self._resolver.require_company_signoff(actor, shift, action="reject this timesheet")

        now = self._clock()
        updated = self._swap(
            timesheet_id,
            "reject",
            actor,
            lambda current: machine.reject(current, reason=reason, actor_id=actor.user_id, now=now),
        )
        self._publish("timesheet_rejected", updated, actor, reason=updated.rejection_reason)
        return updated

    def unlock(self, *, actor: User, timesheet_id: int, reason: Optional[str]) -> Timesheet:
        """Revert to Draft, discarding signatures, approvals and generated documents in one write."""
        self._timesheet(timesheet_id)
        self._resolver.require_admin_or_staff(actor, action="unlock timesheets")

        now = self._clock()
        updated = self._swap(
            timesheet_id,
            "unlock",
            actor,
            lambda current: machine.unlock(current, reason=reason, actor_id=actor.user_id, now=now),
        )
        self._publish("timesheet_unlocked", updated, actor, reason=updated.unlock_reason)
        return updated

    def record_documents(
        self,
        *,
        actor: User,
        timesheet_id: int,
        unsigned_ref: Optional[str] = None,
        signed_ref: Optional[str] = None,
    ) -> Timesheet:
        ts = self._timesheet(timesheet_id)
        shift = self._shift(ts.shift_id)
        self._resolver.require_manage(actor, shift, action="attach timesheet documents")

        return self._swap(
            timesheet_id,
            "record_documents",
            actor,
            lambda current: machine.attach_documents(current, unsigned_ref=unsigned_ref, signed_ref=signed_ref),
        )

    def _snapshot_entries(self, shift_id: int) -> list[TimesheetEntry]:
        assignments = self._assignments.list_for_shift(shift_id)
        if any(a.active_entry is not None for a in assignments):
            raise ValidationError("Some workers have not clocked out yet")

        snapshot = [
            TimesheetEntry(
                assignment_id=a.assignment_id,
                user_id=a.user_id,
                role_code=a.role_code,
                entry_number=e.entry_number,
                clock_in=e.clock_in,
                clock_out=e.clock_out,
            )
            for a in assignments
            for e in a.closed_entries
        ]
        if not snapshot:
            raise ValidationError("Cannot submit a timesheet without any completed time entries")
        return snapshot

    def _swap(
        self,
        timesheet_id: int,
        action: str,
        actor: User,
        apply: Callable[[Timesheet], Timesheet],
        *,
        snapshot: Optional[Callable[[], list[TimesheetEntry]]] = None,
    ) -> Timesheet:
        with self._locks.hold(("timesheet", int(timesheet_id))):
            current = self._timesheet(timesheet_id)
            updated = apply(current)
            machine.check_invariants(updated)
            entries = snapshot() if snapshot else None

            if not self._timesheets.compare_and_swap(updated, expected_version=current.version, entries=entries):
                logger.warning(
                    "timesheet_swap_conflict",
                    extra={"timesheet_id": current.timesheet_id, "action": action, "expected_version": current.version},
                )
                raise ConcurrentModification("Timesheet was modified by another request; reload and try again")

        updated = replace(updated, version=current.version + 1)
        logger.info(
            "timesheet_transition",
            extra={
                "timesheet_id": updated.timesheet_id,
                "shift_id": updated.shift_id,
                "action": action,
                "from_status": current.status.value,
                "to_status": updated.status.value,
                "actor_id": actor.user_id,
            },
        )
        return updated

    def _publish(self, kind: str, ts: Timesheet, actor: User, **detail) -> None:
        self._events.publish(
            StaffingEvent(
                kind=kind,
                shift_id=ts.shift_id,
                timesheet_id=ts.timesheet_id,
                actor_id=actor.user_id,
                detail={"status": ts.status.value, **detail},
            )
        )
