"""Staffing engine facade.

Composes the role catalog, fulfillment math, attendance and timesheet state
machines and the authorization resolver into the operations the rest of the
system calls. Errors from the underlying services propagate unchanged.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Sequence

from .assignments.model import Assignment, BulkResult, ShiftConflict
from .assignments.repository import AssignmentRepository
from .assignments.service import AttendanceService
from .assignments.state_machine import AttendanceStateMachine
from .common.datetime_utils import now_local
from .common.events import EventBus, StaffingEvent
from .common.locks import KeyedLocks
from .common.validators import require_non_negative_int
from .core.constants import DEFAULT_MIN_WORK_MINUTES, DEFAULT_REGULAR_HOURS_PER_DAY, MAX_TIME_ENTRIES
from .core.enums import PermissionType
from .core.exceptions import NotFoundError, ValidationError
from .fulfillment.calculator import ShiftFulfillment, WorkerNeeded, shift_fulfillment, workers_needed
from .hours.calculator.standard_calculator import StandardHoursCalculator
from .hours.service import HoursReportService, ShiftHours
from .permissions.model import CrewChiefPermission
from .permissions.repository import PermissionRepository
from .permissions.resolver import AuthorizationResolver
from .permissions.service import PermissionService
from .roles.catalog import BUILT_IN_CODES, RoleCatalog
from .roles.model import RoleDefinition
from .shifts.model import Shift
from .shifts.repository import ShiftRepository
from .timesheets.model import Timesheet, TimesheetEntry
from .timesheets.repository import TimesheetRepository
from .timesheets.service import TimesheetService
from .users.model import User
from .users.repository import UserRepository

logger = logging.getLogger("staffing_engine.engine")


class StaffingEngine:
    def __init__(
        self,
        *,
        shifts: ShiftRepository,
        users: UserRepository,
        assignments: AssignmentRepository,
        roles: RoleCatalog,
        resolver: AuthorizationResolver,
        attendance: AttendanceService,
        timesheets: TimesheetService,
        permissions: PermissionService,
        hours: HoursReportService,
        events: EventBus,
    ):
        self._shifts = shifts
        self._users = users
        self._assignments = assignments
        self._roles = roles
        self._resolver = resolver
        self._attendance = attendance
        self._timesheets = timesheets
        self._permissions = permissions
        self._hours = hours
        self.events = events

    def get_user(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError("User not found")
        return user

    def get_shift(self, shift_id: int) -> Shift:
        shift = self._shifts.get_by_id(int(shift_id))
        if not shift:
            raise NotFoundError("Shift not found")
        return shift

    def list_assignments(self, shift_id: int) -> Sequence[Assignment]:
        return self._assignments.list_for_shift(self.get_shift(shift_id).shift_id)

    # Roles

    def list_roles(self) -> Sequence[RoleDefinition]:
        return self._roles.list_in_order()

    def register_custom_role(
        self,
        *,
        actor: User,
        code: str,
        name: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> RoleDefinition:
        self._resolver.require_admin(actor, action="register roles")
        return self._roles.register(code, name, metadata)

    def remove_custom_role(self, *, actor: User, code: str) -> None:
        self._resolver.require_admin(actor, action="remove roles")
        self._roles.remove(code)

    # Staffing

    def assign_worker(self, *, actor: User, shift_id: int, user_id: int, role_code: str) -> Assignment:
        return self._attendance.assign_worker(actor=actor, shift_id=shift_id, user_id=user_id, role_code=role_code)

    def unassign_worker(self, *, actor: User, assignment_id: int) -> None:
        self._attendance.unassign_worker(actor=actor, assignment_id=assignment_id)

    def replace_assignment(self, *, actor: User, assignment_id: int, new_user_id: int, role_code: str) -> Assignment:
        return self._attendance.replace_assignment(
            actor=actor, assignment_id=assignment_id, new_user_id=new_user_id, role_code=role_code
        )

    def check_conflicts(self, shift_id: int, user_id: int) -> Sequence[ShiftConflict]:
        return self._attendance.check_conflicts(shift_id=shift_id, user_id=user_id)

    def compute_fulfillment(self, shift_id: int) -> ShiftFulfillment:
        shift = self.get_shift(shift_id)
        return shift_fulfillment(
            shift_id=shift.shift_id,
            requirements=shift.requirements,
            assignments=self._assignments.list_for_shift(shift.shift_id),
            role_names={r.code: r.name for r in self._roles.list_in_order()},
            role_codes=BUILT_IN_CODES,
        )

    def workers_needed(self, shift_id: int) -> tuple[Sequence[WorkerNeeded], int]:
        """Roles short of workers and the total shortfall."""
        needed = workers_needed(self.compute_fulfillment(shift_id))
        return needed, sum(n.needed for n in needed)

    def update_requirements(self, *, actor: User, shift_id: int, counts: Mapping[str, Any]) -> Shift:
        shift = self.get_shift(shift_id)
        self._resolver.require_manage(actor, shift, action="change this shift's requirements")

        updates: dict[str, int] = {}
        for raw_code, raw_value in counts.items():
            role = self._roles.resolve(raw_code)
            if role.code not in BUILT_IN_CODES:
                raise ValidationError(f"Requirements cannot be set for custom role {role.code}")
            updates[role.code] = require_non_negative_int(raw_value, f"Required {role.name}")

        requirements = {**shift.requirements, **updates}
        self._shifts.update_requirements(shift.shift_id, requirements)

        logger.info(
            "shift_requirements_updated",
            extra={"shift_id": shift.shift_id, "requirements": requirements, "actor_id": actor.user_id},
        )
        self.events.publish(
            StaffingEvent(
                kind="requirements_changed",
                shift_id=shift.shift_id,
                actor_id=actor.user_id,
                detail={"requirements": requirements},
            )
        )
        return self.get_shift(shift.shift_id)

    # Attendance

    def clock_in(self, *, actor: User, assignment_id: int, now: Optional[datetime] = None) -> Assignment:
        return self._attendance.clock_in(actor=actor, assignment_id=assignment_id, now=now)

    def clock_out(self, *, actor: User, assignment_id: int, now: Optional[datetime] = None) -> Assignment:
        return self._attendance.clock_out(actor=actor, assignment_id=assignment_id, now=now)

    def end_shift(self, *, actor: User, assignment_id: int, now: Optional[datetime] = None) -> Assignment:
        return self._attendance.end_shift(actor=actor, assignment_id=assignment_id, now=now)

    def mark_no_show(self, *, actor: User, assignment_id: int) -> Assignment:
        return self._attendance.mark_no_show(actor=actor, assignment_id=assignment_id)

    def start_break_all(self, *, actor: User, shift_id: int, now: Optional[datetime] = None) -> BulkResult:
        return self._attendance.start_break_all(actor=actor, shift_id=shift_id, now=now)

    def end_shift_all(self, *, actor: User, shift_id: int, now: Optional[datetime] = None) -> BulkResult:
        return self._attendance.end_shift_all(actor=actor, shift_id=shift_id, now=now)

    def shift_hours(self, shift_id: int) -> ShiftHours:
        shift = self.get_shift(shift_id)
        return self._hours.for_shift(shift.shift_id, self._assignments.list_for_shift(shift.shift_id))

    # Timesheets

    def get_timesheet(self, timesheet_id: int) -> Timesheet:
        return self._timesheets.get(timesheet_id)

    def timesheet_entries(self, timesheet_id: int) -> Sequence[TimesheetEntry]:
        return self._timesheets.entries(timesheet_id)

    def open_timesheet(self, *, actor: User, shift_id: int) -> Timesheet:
        return self._timesheets.open_for_shift(actor=actor, shift_id=shift_id)

    def submit_timesheet(self, *, actor: User, timesheet_id: int) -> Timesheet:
        return self._timesheets.submit(actor=actor, timesheet_id=timesheet_id)

    def approve_as_company(
        self, *, actor: User, timesheet_id: int, signature: Optional[str], notes: Optional[str] = None
    ) -> Timesheet:
        return self._timesheets.approve_as_company(
            actor=actor, timesheet_id=timesheet_id, signature=signature, notes=notes
        )

    def approve_as_manager(
        self, *, actor: User, timesheet_id: int, signature: Optional[str], notes: Optional[str] = None
    ) -> Timesheet:
        return self._timesheets.approve_as_manager(
            actor=actor, timesheet_id=timesheet_id, signature=signature, notes=notes
        )

    def reject_timesheet(self, *, actor: User, timesheet_id: int, reason: Optional[str]) -> Timesheet:
        return self._timesheets.reject(actor=actor, timesheet_id=timesheet_id, reason=reason)

    def unlock_timesheet(self, *, actor: User, timesheet_id: int, reason: Optional[str]) -> Timesheet:
        return self._timesheets.unlock(actor=actor, timesheet_id=timesheet_id, reason=reason)

    def record_documents(
        self,
        *,
        actor: User,
        timesheet_id: int,
        unsigned_ref: Optional[str] = None,
        signed_ref: Optional[str] = None,
    ) -> Timesheet:
        return self._timesheets.record_documents(
            actor=actor, timesheet_id=timesheet_id, unsigned_ref=unsigned_ref, signed_ref=signed_ref
        )

    # Delegation

    def grant_permission(
        self,
        *,
        actor: User,
        user_id: int,
        permission_type: PermissionType | str,
        target_id: int,
    ) -> CrewChiefPermission:
        return self._permissions.grant(actor=actor, user_id=user_id, permission_type=permission_type, target_id=target_id)

    def revoke_permission(self, *, actor: User, permission_id: int) -> None:
        self._permissions.revoke(actor=actor, permission_id=permission_id)

    def can_manage(self, user: User, shift_id: int) -> bool:
        return self._resolver.can_manage(user, self.get_shift(shift_id))

    def is_assigned_to_shift(self, user: User, shift_id: int) -> bool:
        return self._resolver.is_assigned_to_shift(user, self.get_shift(shift_id))


def build_engine(
    *,
    shifts: ShiftRepository,
    users: UserRepository,
    assignments: AssignmentRepository,
    timesheets: TimesheetRepository,
    permissions: PermissionRepository,
    roles: RoleCatalog | None = None,
    events: EventBus | None = None,
    clock: Callable[[], datetime] = now_local,
    max_entries: int = MAX_TIME_ENTRIES,
    min_work_minutes: int = DEFAULT_MIN_WORK_MINUTES,
    regular_hours_per_day: float = DEFAULT_REGULAR_HOURS_PER_DAY,
) -> StaffingEngine:
    roles = roles or RoleCatalog()
    events = events or EventBus()
    locks = KeyedLocks()
    resolver = AuthorizationResolver(assignments, permissions)

    attendance = AttendanceService(
        assignments,
        shifts,
        users,
        roles,
        resolver,
        state_machine=AttendanceStateMachine(max_entries=max_entries, min_work_minutes=min_work_minutes),
        locks=locks,
        events=events,
        clock=clock,
    )
    timesheet_service = TimesheetService(
        timesheets,
        assignments,
        shifts,
        resolver,
        locks=locks,
        events=events,
        clock=clock,
    )

    return StaffingEngine(
        shifts=shifts,
        users=users,
        assignments=assignments,
        roles=roles,
        resolver=resolver,
        attendance=attendance,
        timesheets=timesheet_service,
        permissions=PermissionService(permissions, users, shifts, resolver),
        hours=HoursReportService(calculator=StandardHoursCalculator(regular_hours_per_day=regular_hours_per_day)),
        events=events,
    )
