from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime, timedelta

import pytest

from src.staffing_engine.staffing_engine.assignments.model import Assignment
from src.staffing_engine.staffing_engine.common.events import EventBus
from src.staffing_engine.staffing_engine.core.enums import PermissionType, Role, ShiftStatus
from src.staffing_engine.staffing_engine.core.exceptions import ValidationError
from src.staffing_engine.staffing_engine.engine import build_engine
from src.staffing_engine.staffing_engine.permissions.model import CrewChiefPermission
from src.staffing_engine.staffing_engine.roles.catalog import RoleCatalog
from src.staffing_engine.staffing_engine.shifts.model import Job, Shift
from src.staffing_engine.staffing_engine.timesheets.model import Timesheet
from src.staffing_engine.staffing_engine.users.model import User

COMPANY_ID = 30
OTHER_COMPANY_ID = 31
JOB_ID = 20
SHIFT_ID = 10


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeShiftRepo:
    def __init__(self):
        self._lock = threading.Lock()
        self.shifts: dict[int, Shift] = {}
        self.jobs: dict[int, Job] = {}
        self.companies: set[int] = set()

    def add_job(self, job: Job) -> None:
        self.jobs[job.job_id] = job
        self.companies.add(job.company_id)

    def add_shift(self, shift: Shift) -> None:
        self.shifts[shift.shift_id] = shift

    def get_by_id(self, shift_id):
        return self.shifts.get(int(shift_id))

    def get_job(self, job_id):
        return self.jobs.get(int(job_id))

    def company_exists(self, company_id):
        return int(company_id) in self.companies

    def update_status(self, shift_id, *, status, only_from=()):
        with self._lock:
            shift = self.shifts.get(int(shift_id))
            if not shift or (only_from and shift.status not in only_from):
                return False
            self.shifts[shift.shift_id] = replace(shift, status=status)
            return True

    def update_requirements(self, shift_id, requirements):
        with self._lock:
            shift = self.shifts.get(int(shift_id))
            if not shift:
                return False
            self.shifts[shift.shift_id] = replace(shift, requirements=dict(requirements))
            return True


class FakeUserRepo:
    def __init__(self, users=()):
        self.users = {u.user_id: u for u in users}

    def get_by_id(self, user_id):
        return self.users.get(int(user_id))


class FakeAssignmentRepo:
    """In-memory store with the same compare-and-swap contract as the MySQL repository.

    ``before_save`` (if set) runs once just before the version check, which lets
    a test slip a competing write in between read and save.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._next_id = 100
        self.rows: dict[int, Assignment] = {}
        self.before_save = None

    def get_by_id(self, assignment_id):
        with self._lock:
            return self.rows.get(int(assignment_id))

    def get_for_shift_and_user(self, *, shift_id, user_id):
        with self._lock:
            for a in self.rows.values():
                if a.shift_id == int(shift_id) and a.user_id == int(user_id):
                    return a
            return None

    def list_for_shift(self, shift_id):
        with self._lock:
            return sorted((a for a in self.rows.values() if a.shift_id == int(shift_id)), key=lambda a: a.assignment_id)

    def create(self, *, shift_id, user_id, role_code):
        with self._lock:
            if any(a.shift_id == shift_id and a.user_id == user_id for a in self.rows.values()):
                return None
            assignment = Assignment(
                assignment_id=self._next_id,
                shift_id=int(shift_id),
                user_id=int(user_id),
                role_code=role_code,
            )
            self._next_id += 1
            self.rows[assignment.assignment_id] = assignment
            return assignment

    def list_for_user(self, user_id):
        with self._lock:
            return sorted((a for a in self.rows.values() if a.user_id == int(user_id)), key=lambda a: a.assignment_id)

    def delete_if_no_entries(self, assignment_id):
        with self._lock:
            a = self.rows.get(int(assignment_id))
            if not a or a.time_entries:
                return False
            del self.rows[a.assignment_id]
            return True

    def replace_worker(self, assignment, *, expected_version):
        if self.before_save:
            hook, self.before_save = self.before_save, None
            hook(assignment)
        with self._lock:
            stored = self.rows.get(assignment.assignment_id)
            if not stored or stored.version != expected_version or stored.time_entries:
                return False
            if any(
                a.shift_id == stored.shift_id and a.user_id == assignment.user_id and a.assignment_id != stored.assignment_id
                for a in self.rows.values()
            ):
                raise ValidationError("Worker is already assigned to this shift")
            self.rows[assignment.assignment_id] = replace(assignment, version=expected_version + 1)
            return True

    def save(self, assignment, *, expected_version):
        if self.before_save:
            hook, self.before_save = self.before_save, None
            hook(assignment)
        with self._lock:
            stored = self.rows.get(assignment.assignment_id)
            if not stored or stored.version != expected_version:
                return False
            self.rows[assignment.assignment_id] = replace(assignment, version=expected_version + 1)
            return True


class FakePermissionRepo:
    def __init__(self):
        self._next_id = 1
        self.rows: dict[int, CrewChiefPermission] = {}

    def add(self, *, user_id, permission_type, target_id):
        pid = self.create(user_id=user_id, permission_type=permission_type, target_id=target_id, granted_by=1)
        return self.rows[pid]

    def list_for_user(self, user_id):
        return [p for p in self.rows.values() if p.user_id == int(user_id)]

    def get_by_id(self, permission_id):
        return self.rows.get(int(permission_id))

    def find(self, *, user_id, permission_type, target_id):
        for p in self.rows.values():
            if (p.user_id, p.permission_type, p.target_id) == (user_id, permission_type, target_id):
                return p
        return None

    def create(self, *, user_id, permission_type, target_id, granted_by):
        pid = self._next_id
        self._next_id += 1
        self.rows[pid] = CrewChiefPermission(
            permission_id=pid,
            user_id=int(user_id),
            permission_type=PermissionType(permission_type),
            target_id=int(target_id),
            granted_by=granted_by,
            created_at=datetime(2025, 6, 1, 9, 0),
        )
        return pid

    def delete(self, permission_id):
        return self.rows.pop(int(permission_id), None) is not None


class FakeTimesheetRepo:
    """``fail_next_swap`` raises inside the swap, before anything is stored (a crashed write)."""

    def __init__(self):
        self._lock = threading.Lock()
        self._next_id = 500
        self.rows: dict[int, Timesheet] = {}
        self.entries: dict[int, list] = {}
        self.fail_next_swap = False
        self.before_swap = None

    def get_by_id(self, timesheet_id):
        with self._lock:
            return self.rows.get(int(timesheet_id))

    def get_for_shift(self, shift_id):
        with self._lock:
            for ts in self.rows.values():
                if ts.shift_id == int(shift_id):
                    return ts
            return None

    def create_draft(self, shift_id):
        with self._lock:
            for ts in self.rows.values():
                if ts.shift_id == int(shift_id):
                    return ts
            ts = Timesheet(timesheet_id=self._next_id, shift_id=int(shift_id))
            self._next_id += 1
            self.rows[ts.timesheet_id] = ts
            self.entries[ts.timesheet_id] = []
            return ts

    def put(self, ts: Timesheet) -> Timesheet:
        with self._lock:
            self.rows[ts.timesheet_id] = ts
            self.entries.setdefault(ts.timesheet_id, [])
            return ts

    def list_entries(self, timesheet_id):
        with self._lock:
            return list(self.entries.get(int(timesheet_id), []))

    def compare_and_swap(self, timesheet, *, expected_version, entries=None):
        if self.before_swap:
            hook, self.before_swap = self.before_swap, None
            hook(timesheet)
        with self._lock:
            if self.fail_next_swap:
                self.fail_next_swap = False
                raise RuntimeError("connection lost during write")
            stored = self.rows.get(timesheet.timesheet_id)
            if not stored or stored.version != expected_version:
                return False
            self.rows[timesheet.timesheet_id] = replace(timesheet, version=expected_version + 1)
            if entries is not None:
                self.entries[timesheet.timesheet_id] = list(entries)
            return True


@pytest.fixture
def fixed_now():
    return datetime(2025, 6, 14, 8, 0, 0)


@pytest.fixture
def clock(fixed_now):
    return FakeClock(fixed_now)


@pytest.fixture
def users():
    return {
        "admin": User(user_id=1, name="Ada Admin", email="admin@example.com", role=Role.ADMIN),
        "staff": User(user_id=2, name="Stan Staff", email="staff@example.com", role=Role.STAFF),
        "chief": User(user_id=3, name="Casey Chief", email="chief@example.com", role=Role.CREW_CHIEF),
        "worker": User(user_id=4, name="Sam Hand", email="sam@example.com", role=Role.EMPLOYEE),
        "worker2": User(user_id=5, name="Jo Lift", email="jo@example.com", role=Role.EMPLOYEE),
        "client": User(
            user_id=6, name="Cleo Client", email="cleo@example.com", role=Role.COMPANY_USER, company_id=COMPANY_ID
        ),
        "other_client": User(
            user_id=7, name="Otto Other", email="otto@example.com", role=Role.COMPANY_USER, company_id=OTHER_COMPANY_ID
        ),
        "chief2": User(user_id=8, name="Kim Chief", email="kim@example.com", role=Role.CREW_CHIEF),
        "inactive_admin": User(
            user_id=9, name="Old Admin", email="old@example.com", role=Role.ADMIN, is_active=False
        ),
        "worker3": User(user_id=10, name="Lee Rig", email="lee@example.com", role=Role.EMPLOYEE),
    }


@pytest.fixture
def shift_repo():
    repo = FakeShiftRepo()
    repo.add_job(Job(job_id=JOB_ID, company_id=COMPANY_ID, name="Arena Load-In"))
    repo.add_job(Job(job_id=21, company_id=COMPANY_ID, name="Arena Load-Out"))
    repo.add_job(Job(job_id=22, company_id=OTHER_COMPANY_ID, name="Expo Build"))

    def make(shift_id, job_id, company_id, **kw):
        return Shift(
            shift_id=shift_id,
            job_id=job_id,
            company_id=company_id,
            work_date=date(2025, 6, 14),
            start_time=datetime(2025, 6, 14, 7, 0),
            end_time=datetime(2025, 6, 14, 17, 0),
            **kw,
        )

    repo.add_shift(make(SHIFT_ID, JOB_ID, COMPANY_ID, status=ShiftStatus.ACTIVE, requirements={"CC": 1, "SH": 4}))
    repo.add_shift(make(11, JOB_ID, COMPANY_ID))
    repo.add_shift(make(12, 21, COMPANY_ID))
    repo.add_shift(make(13, 22, OTHER_COMPANY_ID))
    repo.add_shift(make(14, JOB_ID, COMPANY_ID, status=ShiftStatus.CANCELLED))
    return repo


@pytest.fixture
def user_repo(users):
    return FakeUserRepo(users.values())


@pytest.fixture
def assignment_repo():
    return FakeAssignmentRepo()


@pytest.fixture
def permission_repo():
    return FakePermissionRepo()


@pytest.fixture
def timesheet_repo():
    return FakeTimesheetRepo()


@pytest.fixture
def events():
    return EventBus()


@pytest.fixture
def published(events):
    received = []
    events.subscribe(received.append)
    return received


@pytest.fixture
def engine(shift_repo, user_repo, assignment_repo, timesheet_repo, permission_repo, events, published, clock):
    return build_engine(
        shifts=shift_repo,
        users=user_repo,
        assignments=assignment_repo,
        timesheets=timesheet_repo,
        permissions=permission_repo,
        roles=RoleCatalog(),
        events=events,
        clock=clock,
    )


@pytest.fixture
def crew(engine, users):
    """Shift 10 staffed with the crew chief (CC) and two stage hands (SH)."""
    admin = users["admin"]
    return {
        "chief": engine.assign_worker(actor=admin, shift_id=SHIFT_ID, user_id=users["chief"].user_id, role_code="CC"),
        "worker": engine.assign_worker(actor=admin, shift_id=SHIFT_ID, user_id=users["worker"].user_id, role_code="SH"),
        "worker2": engine.assign_worker(
            actor=admin, shift_id=SHIFT_ID, user_id=users["worker2"].user_id, role_code="SH"
        ),
    }


@pytest.fixture
def worked_shift(engine, users, crew, clock):
    """Every crew member clocked in at 08:00 and ended at 12:00."""
    admin = users["admin"]
    for a in crew.values():
        engine.clock_in(actor=admin, assignment_id=a.assignment_id)
    clock.advance(hours=4)
    engine.end_shift_all(actor=admin, shift_id=SHIFT_ID)
    return crew


@pytest.fixture
def pending_timesheet(engine, users, worked_shift):
    admin = users["admin"]
    ts = engine.open_timesheet(actor=admin, shift_id=SHIFT_ID)
    return engine.submit_timesheet(actor=admin, timesheet_id=ts.timesheet_id)


@pytest.fixture
def completed_timesheet(engine, users, pending_timesheet):
    admin = users["admin"]
    engine.approve_as_company(
        actor=users["client"], timesheet_id=pending_timesheet.timesheet_id, signature="data:image/png;base64,CLIENT"
    )
    return engine.approve_as_manager(
        actor=admin, timesheet_id=pending_timesheet.timesheet_id, signature="data:image/png;base64,MANAGER"
    )

