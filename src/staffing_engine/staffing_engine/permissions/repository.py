from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import PermissionType
from .model import CrewChiefPermission


class PermissionRepository(Protocol):
    def list_for_user(self, user_id: int) -> Sequence[CrewChiefPermission]:
        raise NotImplementedError

    def get_by_id(self, permission_id: int) -> Optional[CrewChiefPermission]:
        raise NotImplementedError

    def find(self, *, user_id: int, permission_type: PermissionType, target_id: int) -> Optional[CrewChiefPermission]:
        raise NotImplementedError

    def create(
        self,
        *,
        user_id: int,
        permission_type: PermissionType,
        target_id: int,
        granted_by: int,
    ) -> int:
        raise NotImplementedError

    def delete(self, permission_id: int) -> bool:
        raise NotImplementedError
