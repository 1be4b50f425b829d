"""Review SLA — optional timeout policy for payments awaiting administrative review.

Invariants:
    - Purely advisory: flags overdue submissions, never transitions an enrollment
    - Disabled (None policy) means nothing is ever overdue
    - Naive datetimes (SQLite) are treated as UTC

Design Decisions:
    - Kept apart from core/enrollment_lifecycle: the transition rules do not
      depend on time, so an SLA can change without touching them
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from academy.core.domain_types import PaymentStatus
from academy.core.repository_protocols import EnrollmentLike


@dataclass(frozen=True)
class ReviewSlaPolicy:
    max_wait: timedelta

    @classmethod
    def from_hours(cls, hours: int | None) -> "ReviewSlaPolicy | None":
        if hours is None or hours <= 0:
            return None
        return cls(max_wait=timedelta(hours=hours))


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_overdue(
    enrollment: EnrollmentLike, now: datetime, policy: ReviewSlaPolicy | None,
) -> bool:
    if policy is None:
        return False
    if enrollment.payment_status != PaymentStatus.SUBMITTED:
        return False
    if enrollment.payment_submitted_date is None:
        return False
    waited = _as_utc(now) - _as_utc(enrollment.payment_submitted_date)
    return waited > policy.max_wait

