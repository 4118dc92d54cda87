from __future__ import annotations

from typing import Any, Mapping, Optional

from ..core.enums import ShiftStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, placeholders
from .model import Job, Shift
from .repository import ShiftRepository

# role code -> column holding its required head count
REQUIREMENT_COLUMNS: dict[str, str] = {
    "CC": "required_crew_chiefs",
    "SH": "required_stagehands",
    "FO": "required_fork_operators",
    "RFO": "required_reach_fork_operators",
    "RG": "required_riggers",
    "GL": "required_general_laborers",
}

_SHIFT_COLUMNS = """
    s.shift_id, s.job_id, j.company_id, s.work_date, s.start_time, s.end_time, s.status, s.location,
    s.required_crew_chiefs, s.required_stagehands, s.required_fork_operators,
    s.required_reach_fork_operators, s.required_riggers, s.required_general_laborers
"""


def _row_to_shift(r: dict[str, Any]) -> Shift:
    return Shift(
        shift_id=int(r["shift_id"]),
        job_id=int(r["job_id"]),
        company_id=int(r["company_id"]),
        work_date=r["work_date"],
        start_time=r["start_time"],
        end_time=r["end_time"],
        status=ShiftStatus(r["status"]),
        location=r.get("location"),
        requirements={code: int(r.get(col) or 0) for code, col in REQUIREMENT_COLUMNS.items()},
    )


class MySQLShiftRepository(ShiftRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, shift_id: int) -> Optional[Shift]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SHIFT_COLUMNS}
                FROM shifts s
                JOIN jobs j ON j.job_id = s.job_id
                WHERE s.shift_id=%s
                """,
                (int(shift_id),),
            )
            r = fetchone(cur)
            return _row_to_shift(r) if r else None

    def get_job(self, job_id: int) -> Optional[Job]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT job_id, company_id, name FROM jobs WHERE job_id=%s", (int(job_id),))
            r = fetchone(cur)
            if not r:
                return None
            return Job(job_id=int(r["job_id"]), company_id=int(r["company_id"]), name=r["name"])

    def company_exists(self, company_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT 1 AS ok FROM companies WHERE company_id=%s", (int(company_id),))
            return fetchone(cur) is not None

    def update_status(self, shift_id: int, *, status: ShiftStatus, only_from: tuple[ShiftStatus, ...] = ()) -> bool:
        sql = "UPDATE shifts SET status=%s WHERE shift_id=%s"
        params: list[object] = [status.value, int(shift_id)]
        if only_from:
            sql += f" AND status IN ({placeholders(len(only_from))})"
            params.extend(s.value for s in only_from)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return cur.rowcount > 0

    def update_requirements(self, shift_id: int, requirements: Mapping[str, int]) -> bool:
        assignments = [f"{REQUIREMENT_COLUMNS[code]}=%s" for code in requirements]
        if not assignments:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"UPDATE shifts SET {', '.join(assignments)} WHERE shift_id=%s",
                (*[int(v) for v in requirements.values()], int(shift_id)),
            )
            return cur.rowcount > 0
