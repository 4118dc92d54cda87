from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Static user role used for authorization."""

    ADMIN = "Admin"
    STAFF = "Staff"
    CREW_CHIEF = "CrewChief"
    EMPLOYEE = "Employee"
    COMPANY_USER = "CompanyUser"


class ShiftStatus(str, Enum):
    PENDING = "Pending"
    ACTIVE = "Active"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class WorkerStatus(str, Enum):
    """Attendance state of one assignment.

    CLOCKED_OUT doubles as "on break": the worker may clock in again.
    """

    NOT_STARTED = "NotStarted"
    CLOCKED_IN = "ClockedIn"
    CLOCKED_OUT = "ClockedOut"
    SHIFT_ENDED = "ShiftEnded"
    NO_SHOW = "NoShow"

    @property
    def is_terminal(self) -> bool:
        return self in {WorkerStatus.SHIFT_ENDED, WorkerStatus.NO_SHOW}


class TimesheetStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING_COMPANY_APPROVAL = "PENDING_COMPANY_APPROVAL"
    PENDING_MANAGER_APPROVAL = "PENDING_MANAGER_APPROVAL"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"


class PermissionType(str, Enum):
    """Scope of a crew chief delegation grant."""

    CLIENT = "client"
    JOB = "job"
    SHIFT = "shift"


class FulfillmentBand(str, Enum):
    CRITICAL = "Critical"
    LOW = "Low"
    GOOD = "Good"
    FULL = "Full"
    OVERSTAFFED = "Overstaffed"

    @property
    def rank(self) -> int:
        return _BAND_RANK[self]


_BAND_RANK = {
    FulfillmentBand.CRITICAL: 0,
    FulfillmentBand.LOW: 1,
    FulfillmentBand.GOOD: 2,
    FulfillmentBand.FULL: 3,
    FulfillmentBand.OVERSTAFFED: 4,
}
