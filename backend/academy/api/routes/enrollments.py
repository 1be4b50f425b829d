"""Enrollment Routes — student enrollment, payment proof, verification and listings.

Invariants:
    - Every endpoint requires an Actor (X-Actor-Id / X-Actor-Role)
    - verify-payment is the only entry to payment adjudication; verified_by must
      be the acting administrator
    - Replayed verifications answer 200 with Idempotent-Replayed: true
    - Static paths declared before /{enrollment_id}

Design Decisions:
    - Writes go through EnrollmentWorkflow (own transaction per call); reads use
      the request-scoped get_db session
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends, Header, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from academy.api.dependencies import get_actor, get_enrollment_workflow
from academy.config import get_settings
from academy.core.access import require_admin, require_self_or_admin
from academy.core.domain_types import Actor, EnrollmentStatus, PaymentStatus
from academy.core.errors import ErrorContext, ForbiddenActionError
from academy.core.review_sla import ReviewSlaPolicy
from academy.infrastructure.database import get_db
from academy.schemas.catalog import AvailableBatchResponse
from academy.schemas.enrollment import (
    EnrollRequest, EnrollmentDetailResponse, EnrollmentResponse,
    PaymentProofRequest, ReviewQueueItem, VerifyPaymentRequest,
)
from academy.services.catalog_queries import CatalogQueries
from academy.services.enrollment_ledger import EnrollmentLedger, to_record
from academy.services.enrollment_workflow import EnrollmentWorkflow
from academy.services.review_queue import build_review_queue

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/enrollments", tags=["enrollments"])


# ─── Listings ───────────────────────────────────────────────────

@router.get("", response_model=list[EnrollmentDetailResponse])
async def list_enrollments(
    status_filter: EnrollmentStatus | None = Query(None, alias="status"),
    payment_status: PaymentStatus | None = Query(None),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """All enrollments with student, course and batch display fields."""
    require_admin(actor, "list enrollments")
    return await EnrollmentLedger(db).list_details(
        status_filter.value if status_filter else None,
        payment_status.value if payment_status else None,
    )


@router.get("/available-batches", response_model=list[AvailableBatchResponse])
async def list_available_batches(
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogQueries(db).list_available_batches()


@router.get("/student/{student_id}", response_model=list[EnrollmentDetailResponse])
async def list_student_enrollments(
    student_id: UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    require_self_or_admin(actor, student_id, "view enrollments")
    return await EnrollmentLedger(db).list_for_student(student_id)


@router.get("/review-queue", response_model=list[ReviewQueueItem])
async def review_queue(
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """Submitted payments, oldest first, flagged when past the review SLA."""
    require_admin(actor, "view the review queue")
    policy = ReviewSlaPolicy.from_hours(get_settings().review_sla_hours)
    return await build_review_queue(db, datetime.now(timezone.utc), policy)


# ─── Commands ───────────────────────────────────────────────────

@router.post(
    "/enroll", response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def enroll(
    body: EnrollRequest,
    actor: Actor = Depends(get_actor),
    workflow: EnrollmentWorkflow = Depends(get_enrollment_workflow),
):
    return await workflow.enroll(actor, body.student_id, body.batch_id)


@router.post("/submit-payment-proof", response_model=EnrollmentResponse)
async def submit_payment_proof(
    body: PaymentProofRequest,
    actor: Actor = Depends(get_actor),
    workflow: EnrollmentWorkflow = Depends(get_enrollment_workflow),
):
    return await workflow.submit_payment_proof(
        actor, body.enrollment_id, body.payment_proof,
    )


@router.post("/verify-payment", response_model=EnrollmentResponse)
async def verify_payment(
    body: VerifyPaymentRequest,
    response: Response,
    idempotency_key: str | None = Header(None, alias="Idempotency-Key"),
    actor: Actor = Depends(get_actor),
    workflow: EnrollmentWorkflow = Depends(get_enrollment_workflow),
):
    """Verify or reject a submitted payment. Header key wins over body key."""
    if body.verified_by != actor.id:
        raise ForbiddenActionError(
            "verify on behalf of another administrator",
            ErrorContext(
                actor_id=str(actor.id), enrollment_id=str(body.enrollment_id),
            ),
        )
    outcome = await workflow.verify_or_reject(
        actor, body.enrollment_id, body.action, body.notes,
        idempotency_key or body.idempotency_key,
    )
    if outcome.replayed:
        response.headers["Idempotent-Replayed"] = "true"
    return outcome.record


@router.post("/{enrollment_id}/cancel", response_model=EnrollmentResponse)
async def cancel_enrollment(
    enrollment_id: UUID,
    actor: Actor = Depends(get_actor),
    workflow: EnrollmentWorkflow = Depends(get_enrollment_workflow),
):
    return await workflow.cancel(actor, enrollment_id)


@router.post("/{enrollment_id}/drop", response_model=EnrollmentResponse)
async def drop_enrollment(
    enrollment_id: UUID,
    actor: Actor = Depends(get_actor),
    workflow: EnrollmentWorkflow = Depends(get_enrollment_workflow),
):
    return await workflow.drop(actor, enrollment_id)


# ─── Single enrollment ──────────────────────────────────────────

@router.get("/{enrollment_id}", response_model=EnrollmentResponse)
async def get_enrollment(
    enrollment_id: UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    enrollment = await EnrollmentLedger(db).get(enrollment_id)
    require_self_or_admin(actor, enrollment.student_id, "view enrollment")
    return to_record(enrollment)
