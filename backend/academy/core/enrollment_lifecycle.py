"""Enrollment Lifecycle — named transitions of the pending → enrolled → dropped machine.

Invariants:
    - All planners are PURE: they return a Transition, they never mutate the enrollment
    - Shell applies Transition.changes and the capacity effect in ONE transaction
    - dropped is terminal; enrolled never returns to pending
    - Rejection leaves status untouched and never releases a seat
    - Capacity effects follow core/capacity.SEAT_HOLDING_STATUSES for the policy

Design Decisions:
    - One planner per trigger (create, submit, verification outcome, cancel, drop):
      every state change has exactly one documented trigger and effect
    - Transition.changes stores enum .value strings: String columns stay plain str
"""

from dataclasses import dataclass, field
from datetime import datetime

from academy.core.capacity import holds_seat
from academy.core.domain_types import (
    CapacityEffect, EnrollmentStatus, PaymentStatus, ReservationPolicy,
    VerificationAction,
)
from academy.core.errors import (
    ErrorContext, InvalidStateError, RequestValidationFailure,
)
from academy.core.repository_protocols import EnrollmentLike


MAX_PROOF_LENGTH: int = 5000


@dataclass(frozen=True)
class Transition:
    """Field changes plus the capacity effect a trigger requires."""
    event: str
    changes: dict[str, object] = field(default_factory=dict)
    capacity: CapacityEffect = CapacityEffect.NONE


def _ctx(enrollment: EnrollmentLike) -> ErrorContext:
    return ErrorContext(
        enrollment_id=str(enrollment.id), batch_id=str(enrollment.batch_id),
    )


def plan_creation(policy: ReservationPolicy) -> Transition:
    """Initial state. A seat is reserved now only under reserve-on-create."""
    capacity = (
        CapacityEffect.RESERVE
        if policy == ReservationPolicy.RESERVE_ON_CREATE
        else CapacityEffect.NONE
    )
    return Transition(
        event="enrollment_created",
        changes={
            "status": EnrollmentStatus.PENDING.value,
            "payment_status": PaymentStatus.PENDING.value,
        },
        capacity=capacity,
    )


def plan_payment_submission(
    enrollment: EnrollmentLike, proof: str, now: datetime,
) -> Transition:
    """Student submits (or, after a rejection, resubmits) payment proof."""
    if enrollment.status == EnrollmentStatus.DROPPED:
        raise InvalidStateError(
            "submit payment proof", "enrollment is dropped", _ctx(enrollment),
        )
    if enrollment.payment_status not in (
        PaymentStatus.PENDING, PaymentStatus.REJECTED,
    ):
        raise InvalidStateError(
            "submit payment proof",
            f"payment_status is {enrollment.payment_status}",
            _ctx(enrollment),
        )

    proof = (proof or "").strip()
    if not proof:
        raise RequestValidationFailure(
            "Payment proof cannot be empty", "payment_proof", _ctx(enrollment),
        )
    if len(proof) > MAX_PROOF_LENGTH:
        raise RequestValidationFailure(
            f"Payment proof exceeds {MAX_PROOF_LENGTH} characters",
            "payment_proof", _ctx(enrollment),
        )

    changes: dict[str, object] = {
        "payment_status": PaymentStatus.SUBMITTED.value,
        "payment_proof": proof,
        "payment_submitted_date": now,
    }
    event = "payment_submitted"
    if enrollment.payment_status == PaymentStatus.REJECTED:
        # New review cycle: previous adjudication no longer applies
        changes["verified_by"] = None
        changes["verification_date"] = None
        event = "payment_resubmitted"
    return Transition(event=event, changes=changes)


def plan_verification_outcome(
    action: VerificationAction, policy: ReservationPolicy,
) -> Transition:
    """React to an administrative decision. Caller has checked the precondition."""
    if action == VerificationAction.VERIFY:
        capacity = (
            CapacityEffect.RESERVE
            if policy == ReservationPolicy.RESERVE_ON_VERIFY
            else CapacityEffect.NONE
        )
        return Transition(
            event="payment_verified",
            changes={
                "payment_status": PaymentStatus.VERIFIED.value,
                "status": EnrollmentStatus.ENROLLED.value,
            },
            capacity=capacity,
        )
    return Transition(
        event="payment_rejected",
        changes={"payment_status": PaymentStatus.REJECTED.value},
    )


def _release_if_held(
    enrollment: EnrollmentLike, policy: ReservationPolicy,
) -> CapacityEffect:
    if holds_seat(enrollment.status, policy):
        return CapacityEffect.RELEASE
    return CapacityEffect.NONE


def plan_cancellation(
    enrollment: EnrollmentLike, policy: ReservationPolicy,
) -> Transition:
    """Student abandons a pending enrollment before payment is under review."""
    if enrollment.status != EnrollmentStatus.PENDING:
        raise InvalidStateError(
            "cancel enrollment", f"status is {enrollment.status}",
            _ctx(enrollment),
        )
    if enrollment.payment_status == PaymentStatus.SUBMITTED:
        raise InvalidStateError(
            "cancel enrollment", "payment is under review", _ctx(enrollment),
        )
    return Transition(
        event="enrollment_cancelled",
        changes={"status": EnrollmentStatus.DROPPED.value},
        capacity=_release_if_held(enrollment, policy),
    )


def plan_drop(
    enrollment: EnrollmentLike, policy: ReservationPolicy,
) -> Transition:
    """Administrative removal from pending or enrolled."""
    if enrollment.status == EnrollmentStatus.DROPPED:
        raise InvalidStateError(
            "drop enrollment", "enrollment is already dropped", _ctx(enrollment),
        )
    return Transition(
        event="enrollment_dropped",
        changes={"status": EnrollmentStatus.DROPPED.value},
        capacity=_release_if_held(enrollment, policy),
    )
