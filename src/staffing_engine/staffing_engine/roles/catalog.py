from __future__ import annotations

import logging
import re
import threading
from typing import Any, Optional, Sequence

from ..common.validators import require_non_empty
from ..core.exceptions import DuplicateRoleCode, RoleNotFound, ValidationError
from .model import RoleDefinition

logger = logging.getLogger("staffing_engine.roles")

_CODE_PATTERN = re.compile(r"^[A-Z]{2,4}$")

# Display order: crew chief first, general labor last.
BUILT_IN_ROLES: tuple[RoleDefinition, ...] = (
    RoleDefinition(code="CC", name="Crew Chief", color="purple", built_in=True),
    RoleDefinition(code="RG", name="Rigger", color="red", built_in=True),
    RoleDefinition(code="RFO", name="Reach Fork Operator", color="yellow", built_in=True),
    RoleDefinition(code="FO", name="Fork Operator", color="green", built_in=True),
    RoleDefinition(code="SH", name="Stage Hand", color="blue", built_in=True),
    RoleDefinition(code="GL", name="General Labor", color="gray", built_in=True),
)

BUILT_IN_CODES: tuple[str, ...] = tuple(r.code for r in BUILT_IN_ROLES)


class RoleCatalog:
    """Process-wide registry of role codes.

    The six built-in codes are seeded on construction and can never be removed or
    redefined. Custom codes are 2-4 uppercase letters.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._roles: dict[str, RoleDefinition] = {r.code: r for r in BUILT_IN_ROLES}

    def resolve(self, code: str) -> RoleDefinition:
        with self._lock:
            role = self._roles.get((code or "").strip().upper())
        if role is None:
            raise RoleNotFound(f"Unknown role code: {code!r}")
        return role

    def find(self, code: str) -> Optional[RoleDefinition]:
        with self._lock:
            return self._roles.get((code or "").strip().upper())

    def contains(self, code: str) -> bool:
        return self.find(code) is not None

    def list_in_order(self) -> Sequence[RoleDefinition]:
        """Built-ins in display order, then custom roles in registration order."""
        with self._lock:
            return list(self._roles.values())

    def register(
        self,
        code: str,
        name: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> RoleDefinition:
        code = (code or "").strip()
        if not _CODE_PATTERN.match(code):
            raise ValidationError("Role code must be 2-4 uppercase letters")
        name = require_non_empty(name, "Role name")
        metadata = dict(metadata or {})

        role = RoleDefinition(
            code=code,
            name=name,
            color=str(metadata.pop("color", "gray")),
            built_in=False,
            metadata=metadata,
        )
        with self._lock:
            if code in self._roles:
                raise DuplicateRoleCode(f"Role code {code} is already registered")
            self._roles[code] = role

        logger.info("role_registered", extra={"role_code": code, "role_name": name})
        return role

    def remove(self, code: str) -> None:
        normalized = (code or "").strip().upper()
        with self._lock:
            role = self._roles.get(normalized)
            if role is None:
                raise RoleNotFound(f"Unknown role code: {code!r}")
            if role.built_in:
                raise ValidationError(f"Built-in role {role.code} cannot be removed")
            del self._roles[role.code]

        logger.info("role_removed", extra={"role_code": role.code})
