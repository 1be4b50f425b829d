"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Pure rules read entities only through these structural types

Design Decisions:
    - Protocol over ABC: ORM models satisfy them structurally, and tests can
      pass plain dataclasses without a database
    - Status fields typed as str: String columns hold enum values, and the
      str Enums in domain_types compare equal to them
"""

from datetime import datetime
from typing import Protocol
from uuid import UUID


class EnrollmentLike(Protocol):
    """Structural contract for Enrollment rows consumed by core rules."""
    id: UUID
    student_id: UUID
    batch_id: UUID
    status: str
    payment_status: str
    payment_submitted_date: datetime | None
    verified_by: UUID | None
    verification_date: datetime | None
    notes: str | None


class BatchLike(Protocol):
    """Structural contract for Batch rows consumed by core rules."""
    id: UUID
    max_students: int
    current_students: int
    status: str


class VerificationRecordLike(Protocol):
    """Structural contract for stored idempotency records."""
    idempotency_key: str
    enrollment_id: UUID
    action: str
    response: dict
