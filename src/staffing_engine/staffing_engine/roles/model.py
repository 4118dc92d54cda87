from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class RoleDefinition:
    """Display metadata for a worker role code.

    Has no effect on state transitions; staffing math only needs the code.
    """

    code: str
    name: str
    color: str = "gray"
    built_in: bool = False
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)
