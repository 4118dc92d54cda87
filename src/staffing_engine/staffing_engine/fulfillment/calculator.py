"""Staffing fulfillment math.

Pure functions: identical input always yields identical output, nothing is read
from or written to storage.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from ..core.constants import LOW_FULFILLMENT_RATIO
from ..core.enums import FulfillmentBand, WorkerStatus
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class Fulfillment:
    required: int
    assigned: int
    ratio: float
    band: FulfillmentBand


@dataclass(frozen=True)
class RoleFulfillment:
    role_code: str
    role_name: str
    fulfillment: Fulfillment


@dataclass(frozen=True)
class WorkerNeeded:
    role_code: str
    role_name: str
    required: int
    assigned: int
    needed: int


@dataclass(frozen=True)
class ShiftFulfillment:
    shift_id: int
    roles: Sequence[RoleFulfillment]
    overall: Fulfillment

    def band_for(self, role_code: str) -> FulfillmentBand:
        for r in self.roles:
            if r.role_code == role_code:
                return r.fulfillment.band
        raise KeyError(role_code)


def fulfillment(required: int, assigned: int) -> Fulfillment:
    if required < 0 or assigned < 0:
        raise ValidationError("Worker counts must be non-negative")

    if required == 0:
        # Nothing needed: any head count is fine.
        return Fulfillment(required=0, assigned=assigned, ratio=1.0, band=FulfillmentBand.FULL)

    if assigned == 0:
        band = FulfillmentBand.CRITICAL
    elif assigned < LOW_FULFILLMENT_RATIO * required:
        band = FulfillmentBand.LOW
    elif assigned < required:
        band = FulfillmentBand.GOOD
    elif assigned == required:
        band = FulfillmentBand.FULL
    else:
        band = FulfillmentBand.OVERSTAFFED

    return Fulfillment(required=required, assigned=assigned, ratio=assigned / required, band=band)


def count_assigned(assignments: Iterable, role_code: str) -> int:
    """Assignments holding ``role_code``; no-shows do not count as staffed."""
    return sum(1 for a in assignments if a.role_code == role_code and a.status != WorkerStatus.NO_SHOW)


def shift_fulfillment(
    *,
    shift_id: int,
    requirements: Mapping[str, int],
    assignments: Sequence,
    role_names: Mapping[str, str],
    role_codes: Sequence[str],
) -> ShiftFulfillment:
    """Per-role bands plus the aggregate band summed over ``role_codes``."""

    roles: list[RoleFulfillment] = []
    total_required = 0
    total_assigned = 0

    for code in role_codes:
        required = int(requirements.get(code, 0))
        assigned = count_assigned(assignments, code)
        total_required += required
        total_assigned += assigned
        roles.append(
            RoleFulfillment(
                role_code=code,
                role_name=role_names.get(code, code),
                fulfillment=fulfillment(required, assigned),
            )
        )

    return ShiftFulfillment(
        shift_id=shift_id,
        roles=roles,
        overall=fulfillment(total_required, total_assigned),
    )


def workers_needed(result: ShiftFulfillment) -> list[WorkerNeeded]:
    """Roles that still need workers, in the order they were computed."""
    out: list[WorkerNeeded] = []
    for r in result.roles:
        f = r.fulfillment
        needed = max(0, f.required - f.assigned)
        if needed > 0:
            out.append(
                WorkerNeeded(
                    role_code=r.role_code,
                    role_name=r.role_name,
                    required=f.required,
                    assigned=f.assigned,
                    needed=needed,
                )
            )
    return out
