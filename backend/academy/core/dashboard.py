"""Dashboard Aggregator — pure enrollment summary for the admin dashboard.

Invariants:
    - summarize() is recomputable at any time from current rows; it keeps no state
    - apply_*_change() folds one row change into a summary; folding every change
      from empty must equal summarize() over the final rows
    - Counts never go negative
    - pending_verifications counts submitted proofs on non-dropped enrollments,
      the same rows the review queue lists

Design Decisions:
    - Frozen dataclass over ad hoc dicts: named, typed fields
    - Pure function, not a method on a model: stats are presentation, not state
"""

from collections.abc import Iterable
from dataclasses import dataclass, replace

from academy.core.domain_types import (
    ACTIVE_BATCH_STATUSES, EnrollmentStatus, PaymentStatus,
)

# (status, payment_status) of one enrollment row
EnrollmentState = tuple[str, str]


@dataclass(frozen=True)
class DashboardSummary:
    total_enrollments: int = 0
    pending_verifications: int = 0
    verified_enrollments: int = 0
    active_batches: int = 0

    def to_dict(self) -> dict:
        return {
            "total_enrollments": self.total_enrollments,
            "pending_verifications": self.pending_verifications,
            "verified_enrollments": self.verified_enrollments,
            "active_batches": self.active_batches,
        }


def _is_active_batch(status: str | None) -> bool:
    return status is not None and status in ACTIVE_BATCH_STATUSES


def awaits_review(state: EnrollmentState) -> bool:
    """Submitted proof on an enrollment an administrator can still act on."""
    status, payment_status = state
    return (
        payment_status == PaymentStatus.SUBMITTED
        and status != EnrollmentStatus.DROPPED
    )


def summarize(
    enrollments: Iterable[EnrollmentState], batch_statuses: Iterable[str],
) -> DashboardSummary:
    """Full recount from enrollment states and batch statuses."""
    total = pending = verified = 0
    for state in enrollments:
        total += 1
        pending += awaits_review(state)
        verified += state[1] == PaymentStatus.VERIFIED
    active = sum(1 for s in batch_statuses if _is_active_batch(s))
    return DashboardSummary(
        total_enrollments=total,
        pending_verifications=pending,
        verified_enrollments=verified,
        active_batches=active,
    )


def apply_enrollment_change(
    summary: DashboardSummary,
    before: EnrollmentState | None,
    after: EnrollmentState | None,
) -> DashboardSummary:
    """Fold one enrollment state change (None = row absent)."""
    total = summary.total_enrollments
    pending = summary.pending_verifications
    verified = summary.verified_enrollments

    if before is not None:
        total -= 1
        pending -= awaits_review(before)
        verified -= before[1] == PaymentStatus.VERIFIED
    if after is not None:
        total += 1
        pending += awaits_review(after)
        verified += after[1] == PaymentStatus.VERIFIED

    return replace(
        summary,
        total_enrollments=max(total, 0),
        pending_verifications=max(pending, 0),
        verified_enrollments=max(verified, 0),
    )


def apply_batch_change(
    summary: DashboardSummary, before: str | None, after: str | None,
) -> DashboardSummary:
    """Fold one batch status change (None = row absent)."""
    active = (
        summary.active_batches
        - _is_active_batch(before)
        + _is_active_batch(after)
    )
    return replace(summary, active_batches=max(active, 0))
