from __future__ import annotations

from typing import Any, Optional, Sequence

from ..core.enums import TimesheetStatus
from ..core.exceptions import ConcurrentModification
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Timesheet, TimesheetEntry
from .repository import TimesheetRepository

# Every mutable column; a compare-and-swap writes all of them in one UPDATE.
_MUTABLE_COLUMNS = (
    "status",
    "company_signature",
    "manager_signature",
    "unsigned_document_ref",
    "signed_document_ref",
    "rejection_reason",
    "submitted_by",
    "submitted_at",
    "company_approved_by",
    "company_approved_at",
    "company_notes",
    "manager_approved_by",
    "manager_approved_at",
    "manager_notes",
    "rejected_by",
    "rejected_at",
    "unlocked_by",
    "unlocked_at",
    "unlock_reason",
)

_SELECT = "SELECT timesheet_id, shift_id, version, " + ", ".join(_MUTABLE_COLUMNS) + " FROM timesheets"


def _row_to_timesheet(r: dict[str, Any]) -> Timesheet:
    values = {col: r.get(col) for col in _MUTABLE_COLUMNS}
    values["status"] = TimesheetStatus(r["status"])
    return Timesheet(
        timesheet_id=int(r["timesheet_id"]),
        shift_id=int(r["shift_id"]),
        version=int(r["version"]),
        **values,
    )


def _column_value(ts: Timesheet, col: str):
    value = getattr(ts, col)
    return value.value if isinstance(value, TimesheetStatus) else value


class MySQLTimesheetRepository(TimesheetRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, timesheet_id: int) -> Optional[Timesheet]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE timesheet_id=%s", (int(timesheet_id),))
            r = fetchone(cur)
            return _row_to_timesheet(r) if r else None

    def get_for_shift(self, shift_id: int) -> Optional[Timesheet]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE shift_id=%s", (int(shift_id),))
            r = fetchone(cur)
            return _row_to_timesheet(r) if r else None

    def create_draft(self, shift_id: int) -> Timesheet:
        with db_cursor(self._conn_factory) as (_, cur):
            # UNIQUE(shift_id): a concurrent create leaves the first row in place.
            cur.execute(
                "INSERT IGNORE INTO timesheets(shift_id, status, version) VALUES(%s,%s,0)",
                (int(shift_id), TimesheetStatus.DRAFT.value),
            )
            cur.execute(f"{_SELECT} WHERE shift_id=%s", (int(shift_id),))
            return _row_to_timesheet(fetchone(cur))

    def list_entries(self, timesheet_id: int) -> Sequence[TimesheetEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT assignment_id, user_id, role_code, entry_number, clock_in, clock_out
                FROM timesheet_entries
                WHERE timesheet_id=%s
                ORDER BY user_id, entry_number
                """,
                (int(timesheet_id),),
            )
            return [
                TimesheetEntry(
                    assignment_id=int(r["assignment_id"]),
                    user_id=int(r["user_id"]),
                    role_code=r["role_code"],
                    entry_number=int(r["entry_number"]),
                    clock_in=r["clock_in"],
                    clock_out=r.get("clock_out"),
                )
                for r in fetchall(cur)
            ]

    def compare_and_swap(
        self,
        timesheet: Timesheet,
        *,
        expected_version: int,
        entries: Optional[Sequence[TimesheetEntry]] = None,
    ) -> bool:
        assignments = ", ".join(f"{col}=%s" for col in _MUTABLE_COLUMNS)
        params = tuple(_column_value(timesheet, col) for col in _MUTABLE_COLUMNS)
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    f"""
                    UPDATE timesheets
                    SET {assignments}, version=version+1
                    WHERE timesheet_id=%s AND version=%s
                    """,
                    params + (int(timesheet.timesheet_id), int(expected_version)),
                )
                if cur.rowcount == 0:
                    raise ConcurrentModification("Timesheet was modified concurrently")

                if entries is not None:
                    cur.execute("DELETE FROM timesheet_entries WHERE timesheet_id=%s", (int(timesheet.timesheet_id),))
                    for e in entries:
                        cur.execute(
                            """
                            INSERT INTO timesheet_entries(
                                timesheet_id, assignment_id, user_id, role_code, entry_number, clock_in, clock_out
                            )
                            VALUES(%s,%s,%s,%s,%s,%s,%s)
                            """,
                            (
                                int(timesheet.timesheet_id),
                                int(e.assignment_id),
                                int(e.user_id),
                                e.role_code,
                                int(e.entry_number),
                                e.clock_in,
                                e.clock_out,
                            ),
                        )
        except ConcurrentModification:
            return False
        return True
