"""Timesheet approval lifecycle.

Draft -> PendingCompanyApproval -> PendingManagerApproval -> Completed
PendingCompanyApproval | PendingManagerApproval -> Rejected -> PendingCompanyApproval
any non-Draft -> Draft (unlock)

Transitions are pure and return a new Timesheet. ``check_invariants`` holds the
fixed table of which fields may be set in each status.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional

from ..common.validators import optional_text, require_non_empty
from ..core.enums import TimesheetStatus
from ..core.exceptions import EmptyReason, InvalidTransition, MissingSignature, ValidationError
from .model import Timesheet

PENDING_STATUSES = frozenset({TimesheetStatus.PENDING_COMPANY_APPROVAL, TimesheetStatus.PENDING_MANAGER_APPROVAL})

# status -> (company_signature, manager_signature, rejection_reason, signed_document)
# True = must be set, False = must be null, None = optional
FIELD_TABLE: dict[TimesheetStatus, tuple[Optional[bool], Optional[bool], Optional[bool], Optional[bool]]] = {
    TimesheetStatus.DRAFT: (False, False, False, False),
    TimesheetStatus.PENDING_COMPANY_APPROVAL: (False, False, False, False),
    TimesheetStatus.PENDING_MANAGER_APPROVAL: (True, False, False, None),
    TimesheetStatus.COMPLETED: (True, True, False, None),
    TimesheetStatus.REJECTED: (None, False, True, None),
}

_CHECKED_FIELDS = ("company_signature", "manager_signature", "rejection_reason", "signed_document_ref")


def _require_status(ts: Timesheet, allowed, action: str) -> None:
    if ts.status not in allowed:
        raise InvalidTransition(f"Cannot {action} a timesheet that is {ts.status.value}")


def submit(ts: Timesheet, *, actor_id: int, now: datetime) -> Timesheet:
    """Draft or Rejected -> PendingCompanyApproval; a resubmission starts a fresh approval round."""
    _require_status(ts, (TimesheetStatus.DRAFT, TimesheetStatus.REJECTED), "submit")
    return replace(
        ts,
        status=TimesheetStatus.PENDING_COMPANY_APPROVAL,
        company_signature=None,
        manager_signature=None,
        signed_document_ref=None,
        rejection_reason=None,
        submitted_by=actor_id,
        submitted_at=now,
        company_approved_by=None,
        company_approved_at=None,
        company_notes=None,
        manager_approved_by=None,
        manager_approved_at=None,
        manager_notes=None,
    )


def approve_as_company(
    ts: Timesheet,
    *,
    signature: Optional[str],
    actor_id: int,
    now: datetime,
    notes: Optional[str] = None,
) -> Timesheet:
    _require_status(ts, (TimesheetStatus.PENDING_COMPANY_APPROVAL,), "approve as company")
    signature = require_non_empty(signature, "Company signature", error=MissingSignature)
    return replace(
        ts,
        status=TimesheetStatus.PENDING_MANAGER_APPROVAL,
        company_signature=signature,
        company_approved_by=actor_id,
        company_approved_at=now,
        company_notes=optional_text(notes, "Company notes"),
    )


def approve_as_manager(
    ts: Timesheet,
    *,
    signature: Optional[str],
    actor_id: int,
    now: datetime,
    notes: Optional[str] = None,
) -> Timesheet:
    _require_status(ts, (TimesheetStatus.PENDING_MANAGER_APPROVAL,), "approve as manager")
    if not ts.company_signature:
        raise InvalidTransition("Company approval is required before manager approval")
    signature = require_non_empty(signature, "Manager signature", error=MissingSignature)
    return replace(
        ts,
        status=TimesheetStatus.COMPLETED,
        manager_signature=signature,
        manager_approved_by=actor_id,
        manager_approved_at=now,
        manager_notes=optional_text(notes, "Manager notes"),
    )


def reject(ts: Timesheet, *, reason: Optional[str], actor_id: int, now: datetime) -> Timesheet:
    """Signatures collected so far stay visible for audit."""
    _require_status(ts, PENDING_STATUSES, "reject")
    reason = require_non_empty(reason, "Rejection reason", error=EmptyReason)
    return replace(
        ts,
        status=TimesheetStatus.REJECTED,
        rejection_reason=reason,
        rejected_by=actor_id,
        rejected_at=now,
    )


def unlock(ts: Timesheet, *, reason: Optional[str], actor_id: int, now: datetime) -> Timesheet:
    if ts.status == TimesheetStatus.DRAFT:
        raise InvalidTransition("Timesheet is already a draft")
    reason = require_non_empty(reason, "Unlock reason", error=EmptyReason)
    return replace(
        ts,
        status=TimesheetStatus.DRAFT,
        company_signature=None,
        manager_signature=None,
        unsigned_document_ref=None,
        signed_document_ref=None,
        rejection_reason=None,
        company_approved_by=None,
        company_approved_at=None,
        company_notes=None,
        manager_approved_by=None,
        manager_approved_at=None,
        manager_notes=None,
        unlocked_by=actor_id,
        unlocked_at=now,
        unlock_reason=reason,
    )


def attach_documents(
    ts: Timesheet,
    *,
    unsigned_ref: Optional[str] = None,
    signed_ref: Optional[str] = None,
) -> Timesheet:
    if ts.status == TimesheetStatus.DRAFT:
        raise InvalidTransition("Documents cannot be attached to a draft timesheet")
    unsigned_ref = optional_text(unsigned_ref, "Unsigned document reference")
    signed_ref = optional_text(signed_ref, "Signed document reference")
    if unsigned_ref is None and signed_ref is None:
        raise ValidationError("At least one document reference is required")
    if signed_ref is not None and not ts.company_signature:
        raise InvalidTransition("A signed document requires the company signature")

    return replace(
        ts,
        unsigned_document_ref=unsigned_ref if unsigned_ref is not None else ts.unsigned_document_ref,
        signed_document_ref=signed_ref if signed_ref is not None else ts.signed_document_ref,
    )


def check_invariants(ts: Timesheet) -> None:
    """Raise ValidationError when a field is set (or missing) for the timesheet's status."""

    rules = FIELD_TABLE[ts.status]
    for field_name, rule in zip(_CHECKED_FIELDS, rules):
        if rule is None:
            continue
        present = bool(getattr(ts, field_name))
        if present != rule:
            state = "set" if rule else "empty"
            raise ValidationError(f"{field_name} must be {state} when status is {ts.status.value}")
    if ts.status == TimesheetStatus.DRAFT and ts.unsigned_document_ref:
        raise ValidationError("unsigned_document_ref must be empty when status is Draft")
