from __future__ import annotations

import logging

from ..core.enums import PermissionType, Role
from ..core.exceptions import NotFoundError, ValidationError
from ..shifts.repository import ShiftRepository
from ..users.model import User
from ..users.repository import UserRepository
from .model import CrewChiefPermission
from .repository import PermissionRepository
from .resolver import AuthorizationResolver

logger = logging.getLogger("staffing_engine.permissions")


class PermissionService:
    """Grant and revoke crew chief delegations (Admin/Staff only)."""

    def __init__(
        self,
        permissions: PermissionRepository,
        users: UserRepository,
        shifts: ShiftRepository,
        resolver: AuthorizationResolver,
    ):
        self._permissions = permissions
        self._users = users
        self._shifts = shifts
        self._resolver = resolver

    def _target_exists(self, permission_type: PermissionType, target_id: int) -> bool:
        if permission_type == PermissionType.SHIFT:
            return self._shifts.get_by_id(target_id) is not None
        if permission_type == PermissionType.JOB:
            return self._shifts.get_job(target_id) is not None
        return self._shifts.company_exists(target_id)

    def grant(
        self,
        *,
        actor: User,
        user_id: int,
        permission_type: PermissionType | str,
        target_id: int,
    ) -> CrewChiefPermission:
        self._resolver.require_admin_or_staff(actor, action="grant crew chief permissions")

        try:
            permission_type = PermissionType(permission_type)
        except ValueError:
            raise ValidationError("Permission type must be one of: client, job, shift")

        grantee = self._users.get_by_id(int(user_id))
        if not grantee:
            raise NotFoundError("User not found")
        if grantee.role != Role.CREW_CHIEF or not grantee.is_active:
            raise ValidationError("Only active crew chiefs can receive delegated permissions")

        if not self._target_exists(permission_type, int(target_id)):
            raise NotFoundError(f"{permission_type.value.capitalize()} {target_id} not found")

        if self._permissions.find(user_id=grantee.user_id, permission_type=permission_type, target_id=int(target_id)):
            raise ValidationError("Permission already granted")

        permission_id = self._permissions.create(
            user_id=grantee.user_id,
            permission_type=permission_type,
            target_id=int(target_id),
            granted_by=actor.user_id,
        )
        logger.info(
            "crew_chief_permission_granted",
            extra={
                "permission_id": permission_id,
                "grantee_id": grantee.user_id,
                "permission_type": permission_type.value,
                "target_id": int(target_id),
                "actor_id": actor.user_id,
            },
        )
        return CrewChiefPermission(
            permission_id=permission_id,
            user_id=grantee.user_id,
            permission_type=permission_type,
            target_id=int(target_id),
            granted_by=actor.user_id,
        )

    def revoke(self, *, actor: User, permission_id: int) -> None:
        self._resolver.require_admin_or_staff(actor, action="revoke crew chief permissions")

        if not self._permissions.delete(int(permission_id)):
            raise NotFoundError("Permission not found")
        logger.info(
            "crew_chief_permission_revoked",
            extra={"permission_id": int(permission_id), "actor_id": actor.user_id},
        )

    def list_for_user(self, *, actor: User, user_id: int):
        self._resolver.require_admin_or_staff(actor, action="view crew chief permissions")
        return self._permissions.list_for_user(int(user_id))
