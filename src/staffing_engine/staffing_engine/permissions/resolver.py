"""Who may drive transitions on a shift.

Every mutating operation asks this one object instead of re-deriving role rules
at the call site.
"""

from __future__ import annotations

import logging

from ..assignments.repository import AssignmentRepository
from ..core.constants import CREW_CHIEF_ROLE_CODE
from ..core.enums import PermissionType, Role
from ..core.exceptions import AuthorizationError
from ..shifts.model import Shift
from ..users.model import User
from .repository import PermissionRepository

logger = logging.getLogger("staffing_engine.authorization")

MANAGEMENT_ROLES = frozenset({Role.ADMIN, Role.STAFF})


def permission_covers(permission_type: PermissionType, target_id: int, shift: Shift) -> bool:
    """True when the grant's scope (client ⊇ job ⊇ shift) contains ``shift``."""
    if permission_type == PermissionType.SHIFT:
        return target_id == shift.shift_id
    if permission_type == PermissionType.JOB:
        return target_id == shift.job_id
    if permission_type == PermissionType.CLIENT:
        return target_id == shift.company_id
    return False


class AuthorizationResolver:
    def __init__(self, assignments: AssignmentRepository, permissions: PermissionRepository):
        self._assignments = assignments
        self._permissions = permissions

    @staticmethod
    def is_admin_or_staff(user: User) -> bool:
        return user.is_active and user.role in MANAGEMENT_ROLES

    @staticmethod
    def is_company_user_for(user: User, shift: Shift) -> bool:
        return (
            user.is_active
            and user.role == Role.COMPANY_USER
            and user.company_id is not None
            and user.company_id == shift.company_id
        )

    def can_manage(self, user: User, shift: Shift) -> bool:
        if not user.is_active:
            return False
        if user.role in MANAGEMENT_ROLES:
            return True
        if user.role != Role.CREW_CHIEF:
            return False

        assignment = self._assignments.get_for_shift_and_user(shift_id=shift.shift_id, user_id=user.user_id)
        if assignment is not None and assignment.role_code == CREW_CHIEF_ROLE_CODE:
            return True

        return any(
            permission_covers(p.permission_type, p.target_id, shift)
            for p in self._permissions.list_for_user(user.user_id)
        )

    def is_assigned_to_shift(self, user: User, shift: Shift) -> bool:
        """Crew chief present on the shift in any role (signature eligibility)."""
        if not user.is_active or user.role != Role.CREW_CHIEF:
            return False
        return self._assignments.get_for_shift_and_user(shift_id=shift.shift_id, user_id=user.user_id) is not None

    def can_sign_off_for_company(self, user: User, shift: Shift) -> bool:
        """Client-side approval or rejection of the shift's timesheet."""
        return (
            self.is_admin_or_staff(user)
            or self.is_company_user_for(user, shift)
            or self.can_manage(user, shift)
            or self.is_assigned_to_shift(user, shift)
        )

    def require_manage(self, user: User, shift: Shift, *, action: str) -> None:
        if not self.can_manage(user, shift):
            self._deny(user, action, shift_id=shift.shift_id)

    def require_company_signoff(self, user: User, shift: Shift, *, action: str) -> None:
        if not self.can_sign_off_for_company(user, shift):
            self._deny(user, action, shift_id=shift.shift_id)

    def require_admin_or_staff(self, user: User, *, action: str) -> None:
        if not self.is_admin_or_staff(user):
            self._deny(user, action)

    def require_admin(self, user: User, *, action: str) -> None:
        if not (user.is_active and user.role == Role.ADMIN):
            self._deny(user, action)

    @staticmethod
    def _deny(user: User, action: str, *, shift_id: int | None = None) -> None:
        logger.warning(
            "authorization_denied",
            extra={"user_id": user.user_id, "user_role": user.role.value, "action": action, "shift_id": shift_id},
        )
        raise AuthorizationError(f"You do not have permission to {action}")
