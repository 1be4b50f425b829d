"""Payment Verification — adjudicate a submitted payment exactly once per submission cycle.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Only payment_status == submitted (and status != dropped) can be adjudicated
    - A repeat of the already-recorded outcome is a benign REPLAY, never a second effect
    - An idempotency key is bound to one (enrollment, action) pair forever

Design Decisions:
    - evaluate_verification_request returns a decision enum instead of a bool:
      the shell branches on ADJUDICATE vs REPLAY, errors are raised
    - Audit fields merged into the lifecycle Transition so both are applied
      in the same write
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from academy.core.domain_types import (
    EnrollmentStatus, PaymentStatus, ReservationPolicy, VerificationAction,
)
from academy.core.enrollment_lifecycle import Transition, plan_verification_outcome
from academy.core.errors import (
    ErrorContext, IdempotencyKeyConflictError, InvalidStateError,
    NotPendingVerificationError, RequestValidationFailure,
)
from academy.core.repository_protocols import (
    EnrollmentLike, VerificationRecordLike,
)


MAX_NOTES_LENGTH: int = 2000

_OUTCOME_OF_ACTION = {
    VerificationAction.VERIFY: PaymentStatus.VERIFIED,
    VerificationAction.REJECT: PaymentStatus.REJECTED,
}


class VerificationDecision(str, Enum):
    ADJUDICATE = "adjudicate"
    REPLAY = "replay"


def matches_prior_outcome(
    enrollment: EnrollmentLike, action: VerificationAction,
) -> bool:
    """True if the enrollment already carries the outcome this action produces."""
    return enrollment.payment_status == _OUTCOME_OF_ACTION[action]


def evaluate_verification_request(
    enrollment: EnrollmentLike, action: VerificationAction,
) -> VerificationDecision:
    """Decide whether a verify/reject request applies, replays, or fails."""
    ctx = ErrorContext(
        enrollment_id=str(enrollment.id), batch_id=str(enrollment.batch_id),
    )
    if enrollment.payment_status == PaymentStatus.SUBMITTED:
        if enrollment.status == EnrollmentStatus.DROPPED:
            raise InvalidStateError(
                f"{action.value} payment", "enrollment is dropped", ctx,
            )
        return VerificationDecision.ADJUDICATE

    if matches_prior_outcome(enrollment, action):
        return VerificationDecision.REPLAY

    raise NotPendingVerificationError(enrollment.payment_status, ctx)


def check_idempotent_replay(
    record: VerificationRecordLike | None,
    enrollment_id: UUID,
    action: VerificationAction,
) -> bool:
    """True if record is a prior identical request. Raises on key reuse."""
    if record is None:
        return False
    if record.enrollment_id != enrollment_id or record.action != action:
        raise IdempotencyKeyConflictError(
            record.idempotency_key,
            ErrorContext(enrollment_id=str(enrollment_id)),
        )
    return True


def normalize_notes(notes: str | None) -> str | None:
    if notes is None:
        return None
    notes = notes.strip()
    if len(notes) > MAX_NOTES_LENGTH:
        raise RequestValidationFailure(
            f"Notes exceed {MAX_NOTES_LENGTH} characters", "notes",
        )
    return notes or None


def plan_adjudication(
    action: VerificationAction,
    administrator_id: UUID,
    notes: str | None,
    now: datetime,
    policy: ReservationPolicy,
) -> Transition:
    """Audit fields + lifecycle outcome as one Transition."""
    outcome = plan_verification_outcome(action, policy)
    changes = {
        "verified_by": administrator_id,
        "verification_date": now,
        "notes": normalize_notes(notes),
        **outcome.changes,
    }
    return Transition(
        event=outcome.event, changes=changes, capacity=outcome.capacity,
    )
