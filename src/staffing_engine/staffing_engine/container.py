from __future__ import annotations

from dataclasses import dataclass

from .assignments.mysql_assignment_repository import MySQLAssignmentRepository
from .common.events import EventBus
from .core.constants import DEFAULT_MIN_WORK_MINUTES, DEFAULT_REGULAR_HOURS_PER_DAY
from .database.connection import DBConfig, DatabaseConnection
from .engine import StaffingEngine, build_engine
from .permissions.mysql_permission_repository import MySQLPermissionRepository
from .roles.catalog import RoleCatalog
from .shifts.mysql_shift_repository import MySQLShiftRepository
from .timesheets.mysql_timesheet_repository import MySQLTimesheetRepository
from .users.mysql_user_repository import MySQLUserRepository


@dataclass(frozen=True)
class Container:
    engine: StaffingEngine
    events: EventBus
    conn: DatabaseConnection | None = None


def build_container(
    *,
    db_config: dict,
    regular_hours_per_day: float = DEFAULT_REGULAR_HOURS_PER_DAY,
    min_work_minutes: int = DEFAULT_MIN_WORK_MINUTES,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))

    roles = RoleCatalog()
    events = EventBus()
    engine = build_engine(
        shifts=MySQLShiftRepository(conn),
        users=MySQLUserRepository(conn),
        assignments=MySQLAssignmentRepository(conn),
        timesheets=MySQLTimesheetRepository(conn),
        permissions=MySQLPermissionRepository(conn),
        roles=roles,
        events=events,
        min_work_minutes=min_work_minutes,
        regular_hours_per_day=regular_hours_per_day,
    )
    return Container(engine=engine, events=events, conn=conn)
