from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import PermissionType


@dataclass(frozen=True)
class CrewChiefPermission:
    """Delegation grant: lets a crew chief manage every shift under ``target_id``.

    The target is a company (client), a job or a single shift depending on
    ``permission_type``.
    """

    permission_id: int
    user_id: int
    permission_type: PermissionType
    target_id: int
    granted_by: Optional[int] = None
    created_at: Optional[datetime] = None
