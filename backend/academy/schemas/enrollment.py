"""Enrollment Schemas — request bodies and enrollment views for the REST API.

Invariants:
    - payment_proof: stripped, non-empty, at most MAX_PROOF_LENGTH chars
    - VerifyPaymentRequest.action is exactly "verify" or "reject"
    - Responses mirror services.enrollment_ledger.to_record (same keys)

Design Decisions:
    - Literal type for action over str enum: Pydantic handles validation natively
    - idempotency_key accepted in the body as a fallback for clients that
      cannot set the Idempotency-Key header
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from academy.core.enrollment_lifecycle import MAX_PROOF_LENGTH
from academy.core.payment_verification import MAX_NOTES_LENGTH


class EnrollRequest(BaseModel):
    student_id: UUID
    batch_id: UUID


class PaymentProofRequest(BaseModel):
    """Proof submission — a reference, receipt text or document URL."""
    enrollment_id: UUID
    payment_proof: str = Field(min_length=1, max_length=MAX_PROOF_LENGTH)

    @field_validator("payment_proof")
    @classmethod
    def strip_proof(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("payment_proof cannot be empty or whitespace")
        return v


class VerifyPaymentRequest(BaseModel):
    enrollment_id: UUID
    verified_by: UUID
    action: Literal["verify", "reject"]
    notes: str | None = Field(None, max_length=MAX_NOTES_LENGTH)
    idempotency_key: str | None = Field(None, min_length=1, max_length=128)


class EnrollmentResponse(BaseModel):
    id: UUID
    student_id: UUID
    batch_id: UUID
    status: str
    payment_status: str
    payment_proof: str | None = None
    payment_submitted_date: datetime | None = None
    verified_by: UUID | None = None
    verification_date: datetime | None = None
    notes: str | None = None
    enrolled_date: datetime


class EnrollmentDetailResponse(EnrollmentResponse):
    """Enrollment with the joined display fields of the admin listing."""
    student_name: str
    email: str
    phone_number: str | None = None
    batch_name: str
    course_id: UUID
    course_name: str
    price: str | None = None
    verified_by_name: str | None = None


class ReviewQueueItem(EnrollmentResponse):
    overdue: bool = False
