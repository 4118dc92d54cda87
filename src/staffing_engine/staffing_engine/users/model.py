from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: User.

    ``company_id`` is only meaningful for company (client) users.
    """

    user_id: int
    name: str
    email: str
    role: Role
    company_id: Optional[int] = None
    is_active: bool = True
