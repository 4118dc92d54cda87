from __future__ import annotations

from typing import Any, Optional, Sequence

from ..core.enums import PermissionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import CrewChiefPermission
from .repository import PermissionRepository

_COLUMNS = "permission_id, user_id, permission_type, target_id, granted_by, created_at"


def _row_to_permission(r: dict[str, Any]) -> CrewChiefPermission:
    return CrewChiefPermission(
        permission_id=int(r["permission_id"]),
        user_id=int(r["user_id"]),
        permission_type=PermissionType(r["permission_type"]),
        target_id=int(r["target_id"]),
        granted_by=int(r["granted_by"]) if r.get("granted_by") is not None else None,
        created_at=r.get("created_at"),
    )


class MySQLPermissionRepository(PermissionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_user(self, user_id: int) -> Sequence[CrewChiefPermission]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM crew_chief_permissions WHERE user_id=%s ORDER BY permission_id",
                (int(user_id),),
            )
            return [_row_to_permission(r) for r in fetchall(cur)]

    def get_by_id(self, permission_id: int) -> Optional[CrewChiefPermission]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM crew_chief_permissions WHERE permission_id=%s",
                (int(permission_id),),
            )
            r = fetchone(cur)
            return _row_to_permission(r) if r else None

    def find(self, *, user_id: int, permission_type: PermissionType, target_id: int) -> Optional[CrewChiefPermission]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM crew_chief_permissions
                WHERE user_id=%s AND permission_type=%s AND target_id=%s
                """,
                (int(user_id), permission_type.value, int(target_id)),
            )
            r = fetchone(cur)
            return _row_to_permission(r) if r else None

    def create(self, *, user_id: int, permission_type: PermissionType, target_id: int, granted_by: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO crew_chief_permissions(user_id, permission_type, target_id, granted_by)
                VALUES(%s,%s,%s,%s)
                """,
                (int(user_id), permission_type.value, int(target_id), int(granted_by)),
            )
            return int(cur.lastrowid)

    def delete(self, permission_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM crew_chief_permissions WHERE permission_id=%s", (int(permission_id),))
            return cur.rowcount > 0
