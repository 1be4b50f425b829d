"""Capacity Rules — which enrollments hold a seat, and how many seats are left.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Seat-holding statuses depend on the ReservationPolicy and nothing else
    - For every batch: current_students == seats held <= max_students

Design Decisions:
    - Policy table as a dict of frozensets: one place to read both semantics
    - occupancy_report returns a plain dict (not an exception): a drift is a
      finding for an operator, not a failed request
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID

from academy.core.domain_types import EnrollmentStatus, ReservationPolicy
from academy.core.repository_protocols import BatchLike


SEAT_HOLDING_STATUSES: dict[ReservationPolicy, frozenset[EnrollmentStatus]] = {
    ReservationPolicy.RESERVE_ON_CREATE: frozenset(
        {EnrollmentStatus.PENDING, EnrollmentStatus.ENROLLED},
    ),
    ReservationPolicy.RESERVE_ON_VERIFY: frozenset({EnrollmentStatus.ENROLLED}),
}


@dataclass(frozen=True)
class ReservationToken:
    """Proof that one seat of a batch was taken for a new or verified enrollment."""
    batch_id: UUID
    reserved_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


def holds_seat(status: str, policy: ReservationPolicy) -> bool:
    """True if an enrollment in this status occupies a seat under the policy."""
    return EnrollmentStatus(status) in SEAT_HOLDING_STATUSES[policy]


def expected_occupancy(
    statuses: Iterable[str], policy: ReservationPolicy,
) -> int:
    """Count of seat-holding enrollments — what current_students must equal."""
    return sum(1 for s in statuses if holds_seat(s, policy))


def available_spots(batch: BatchLike) -> int:
    """Free seats, floored at 0."""
    return max(batch.max_students - batch.current_students, 0)


def has_capacity(batch: BatchLike) -> bool:
    return batch.current_students < batch.max_students


def occupancy_report(
    batch: BatchLike, statuses: Iterable[str], policy: ReservationPolicy,
) -> dict:
    """Compare the stored counter with a full recount. Pure — no mutation."""
    expected = expected_occupancy(statuses, policy)
    return {
        "batch_id": str(batch.id),
        "policy": policy.value,
        "max_students": batch.max_students,
        "current_students": batch.current_students,
        "expected_students": expected,
        "drift": batch.current_students - expected,
        "consistent": (
            batch.current_students == expected
            and expected <= batch.max_students
        ),
    }
