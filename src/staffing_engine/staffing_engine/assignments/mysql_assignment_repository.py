from __future__ import annotations

from collections import defaultdict
from typing import Any, Optional, Sequence

import mysql.connector

from ..core.enums import WorkerStatus
from ..core.exceptions import ConcurrentModification, ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, placeholders
from .model import Assignment, TimeEntry
from .repository import AssignmentRepository


def _row_to_entry(r: dict[str, Any]) -> TimeEntry:
    return TimeEntry(
        entry_id=int(r["entry_id"]),
        entry_number=int(r["entry_number"]),
        clock_in=r["clock_in"],
        clock_out=r.get("clock_out"),
        break_start=r.get("break_start"),
        break_end=r.get("break_end"),
    )


class MySQLAssignmentRepository(AssignmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _load(self, cur, where: str, params: tuple) -> list[Assignment]:
        cur.execute(
            f"""
            SELECT assignment_id, shift_id, user_id, role_code, status, version
            FROM assigned_personnel
            WHERE {where}
            ORDER BY assignment_id
            """,
            params,
        )
        rows = fetchall(cur)
        if not rows:
            return []

        ids = [int(r["assignment_id"]) for r in rows]
        cur.execute(
            f"""
            SELECT entry_id, assignment_id, entry_number, clock_in, clock_out, break_start, break_end
            FROM time_entries
            WHERE assignment_id IN ({placeholders(len(ids))})
            ORDER BY assignment_id, entry_number
            """,
            tuple(ids),
        )
        entries: dict[int, list[TimeEntry]] = defaultdict(list)
        for e in fetchall(cur):
            entries[int(e["assignment_id"])].append(_row_to_entry(e))

        return [
            Assignment(
                assignment_id=int(r["assignment_id"]),
                shift_id=int(r["shift_id"]),
                user_id=int(r["user_id"]),
                role_code=r["role_code"],
                status=WorkerStatus(r["status"]),
                time_entries=tuple(entries.get(int(r["assignment_id"]), ())),
                version=int(r["version"]),
            )
            for r in rows
        ]

    def get_by_id(self, assignment_id: int) -> Optional[Assignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            found = self._load(cur, "assignment_id=%s", (int(assignment_id),))
            return found[0] if found else None

    def get_for_shift_and_user(self, *, shift_id: int, user_id: int) -> Optional[Assignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            found = self._load(cur, "shift_id=%s AND user_id=%s", (int(shift_id), int(user_id)))
            return found[0] if found else None

    def list_for_shift(self, shift_id: int) -> Sequence[Assignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._load(cur, "shift_id=%s", (int(shift_id),))

    def list_for_user(self, user_id: int) -> Sequence[Assignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._load(cur, "user_id=%s", (int(user_id),))

    def create(self, *, shift_id: int, user_id: int, role_code: str) -> Optional[Assignment]:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO assigned_personnel(shift_id, user_id, role_code, status, version)
                    VALUES(%s,%s,%s,%s,0)
                    """,
                    (int(shift_id), int(user_id), role_code, WorkerStatus.NOT_STARTED.value),
                )
                assignment_id = int(cur.lastrowid)
        except mysql.connector.IntegrityError:
            # UNIQUE(shift_id, user_id)
            return None

        return Assignment(
            assignment_id=assignment_id,
            shift_id=int(shift_id),
            user_id=int(user_id),
            role_code=role_code,
        )

    def delete_if_no_entries(self, assignment_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                DELETE FROM assigned_personnel
                WHERE assignment_id=%s
                  AND NOT EXISTS (SELECT 1 FROM time_entries te WHERE te.assignment_id=%s)
                """,
                (int(assignment_id), int(assignment_id)),
            )
            return cur.rowcount > 0

    def replace_worker(self, assignment: Assignment, *, expected_version: int) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    UPDATE assigned_personnel
                    SET user_id=%s, role_code=%s, status=%s, version=version+1
                    WHERE assignment_id=%s AND version=%s
                      AND NOT EXISTS (SELECT 1 FROM time_entries te WHERE te.assignment_id=%s)
                    """,
                    (
                        int(assignment.user_id),
                        assignment.role_code,
                        assignment.status.value,
                        int(assignment.assignment_id),
                        int(expected_version),
                        int(assignment.assignment_id),
                    ),
                )
                return cur.rowcount > 0
        except mysql.connector.IntegrityError:
            # UNIQUE(shift_id, user_id)
            raise ValidationError("Worker is already assigned to this shift")

    def save(self, assignment: Assignment, *, expected_version: int) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    UPDATE assigned_personnel
                    SET status=%s, version=version+1
                    WHERE assignment_id=%s AND version=%s
                    """,
                    (assignment.status.value, int(assignment.assignment_id), int(expected_version)),
                )
                if cur.rowcount == 0:
                    # Roll back: nothing of this save may land.
                    raise ConcurrentModification("Assignment was modified concurrently")

                for e in assignment.time_entries:
                    cur.execute(
                        """
                        INSERT INTO time_entries(assignment_id, entry_number, clock_in, clock_out, break_start, break_end)
                        VALUES(%s,%s,%s,%s,%s,%s)
                        ON DUPLICATE KEY UPDATE
                            clock_out=VALUES(clock_out),
                            break_start=VALUES(break_start),
                            break_end=VALUES(break_end)
                        """,
                        (
                            int(assignment.assignment_id),
                            int(e.entry_number),
                            e.clock_in,
                            e.clock_out,
                            e.break_start,
                            e.break_end,
                        ),
                    )
        except ConcurrentModification:
            return False
        return True
