"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - EnrollmentId, BatchId, CourseId, UserId wrap UUIDs
    - All valid states encoded as Enums — no raw string matching in rules
    - Actor is always passed explicitly; nothing reads identity from ambient state

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: compare equal to the plain strings stored in String columns,
      and serialize to JSON without custom encoders
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

EnrollmentId = NewType("EnrollmentId", UUID)
BatchId = NewType("BatchId", UUID)
CourseId = NewType("CourseId", UUID)
UserId = NewType("UserId", UUID)


# ─── Enums ───────────────────────────────────────────────────────

class EnrollmentStatus(str, Enum):
    """Enrollment lifecycle — dropped is terminal."""
    PENDING = "pending"
    ENROLLED = "enrolled"
    DROPPED = "dropped"


class PaymentStatus(str, Enum):
    """Payment verification cycle — rejected may be resubmitted."""
    PENDING = "pending"
    SUBMITTED = "submitted"
    VERIFIED = "verified"
    REJECTED = "rejected"


class VerificationAction(str, Enum):
    """Administrative decision on a submitted payment."""
    VERIFY = "verify"
    REJECT = "reject"


class BatchStatus(str, Enum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"


class CourseStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DRAFT = "draft"


class ActorRole(str, Enum):
    ADMIN = "admin"
    INSTRUCTOR = "instructor"
    STUDENT = "student"


class ReservationPolicy(str, Enum):
    """When a seat is taken from Batch.current_students.

    RESERVE_ON_CREATE matches the portal's observed behaviour (seat held while
    pending); RESERVE_ON_VERIFY only commits a seat once payment is verified.
    """
    RESERVE_ON_CREATE = "reserve_on_create"
    RESERVE_ON_VERIFY = "reserve_on_verify"


class CapacityEffect(str, Enum):
    """What a transition asks the Capacity Manager to do."""
    RESERVE = "reserve"
    RELEASE = "release"
    NONE = "none"


# Batches that still accept or run students (plain values: usable in SQL IN too)
ACTIVE_BATCH_STATUSES = frozenset(
    {BatchStatus.UPCOMING.value, BatchStatus.ONGOING.value},
)


@dataclass(frozen=True)
class Actor:
    """Already-authenticated caller identity."""
    id: UserId
    role: ActorRole

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN
