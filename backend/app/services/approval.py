from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from app.core.exceptions import ApprovalStateError
from app.models.schedule import ApprovalStatus, Schedule
from app.models.user import APPROVER_ROLES, User


@dataclass(frozen=True)
class InitialState:
    is_active: bool
    approval_status: ApprovalStatus | None


def initial_state(*, requires_approval: bool, creator: User, auto_approve_for_approvers: bool) -> InitialState:
    """Decide how a freshly created slot enters the lifecycle."""
    if not requires_approval:
        return InitialState(is_active=True, approval_status=None)
    if auto_approve_for_approvers and creator.role in APPROVER_ROLES:
        return InitialState(is_active=True, approval_status=ApprovalStatus.auto_approved)
    return InitialState(is_active=False, approval_status=ApprovalStatus.pending)


def ensure_pending(slot: Schedule) -> None:
    if not slot.requires_approval:
        raise ApprovalStateError(
            "Schedule does not require approval",
            details={"schedule_id": slot.id},
        )
    if slot.approval_status != ApprovalStatus.pending:
        current = slot.approval_status.value if slot.approval_status else None
        raise ApprovalStateError(
            f"Schedule is not pending approval (current status: {current})",
            details={"schedule_id": slot.id, "approval_status": current},
        )


def _record_review(slot: Schedule, reviewer: User, notes: str | None) -> None:
    slot.approved_by_id = reviewer.id
    slot.approval_date = datetime.now(timezone.utc)
    slot.approval_notes = notes
    slot.updated_by_id = reviewer.id


def approve(slot: Schedule, reviewer: User, notes: str | None = None) -> Schedule:
    ensure_pending(slot)
    slot.approval_status = ApprovalStatus.approved
    slot.is_active = True
    _record_review(slot, reviewer, notes)
    return slot


def reject(slot: Schedule, reviewer: User, notes: str | None = None) -> Schedule:
    ensure_pending(slot)
    slot.approval_status = ApprovalStatus.rejected
    slot.is_active = False
    _record_review(slot, reviewer, notes)
    return slot
