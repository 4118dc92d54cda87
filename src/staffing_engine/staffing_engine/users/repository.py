from __future__ import annotations

from typing import Optional, Protocol

from .model import User


class UserRepository(Protocol):
    """Repository interface for User.

    Services depend on this protocol, never on a concrete database class.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError
