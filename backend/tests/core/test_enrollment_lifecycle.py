"""Enrollment Lifecycle — verifies each named transition and its capacity effect.

Tests:
    - Creation reserves only under reserve-on-create
    - Submission allowed from pending/rejected; resubmission clears the old adjudication
    - Verification outcome: verify enrolls, reject leaves status untouched
    - Cancel and drop release a seat exactly when one is held
"""

from datetime import datetime, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest

from academy.core.domain_types import (
    CapacityEffect, ReservationPolicy, VerificationAction,
)
from academy.core.enrollment_lifecycle import (
    MAX_PROOF_LENGTH, plan_cancellation, plan_creation, plan_drop,
    plan_payment_submission, plan_verification_outcome,
)
from academy.core.errors import InvalidStateError, RequestValidationFailure

ON_CREATE = ReservationPolicy.RESERVE_ON_CREATE
ON_VERIFY = ReservationPolicy.RESERVE_ON_VERIFY
NOW = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


def _enrollment(status="pending", payment_status="pending", **kw):
    return SimpleNamespace(
        id=uuid4(), batch_id=uuid4(), status=status,
        payment_status=payment_status, payment_submitted_date=None, **kw,
    )


# ─── Creation ────────────────────────────────────────────────────

def test_creation_starts_pending_and_reserves_on_create():
    t = plan_creation(ON_CREATE)
    assert t.changes == {"status": "pending", "payment_status": "pending"}
    assert t.capacity == CapacityEffect.RESERVE
    assert t.event == "enrollment_created"


def test_creation_does_not_reserve_on_verify():
    assert plan_creation(ON_VERIFY).capacity == CapacityEffect.NONE


# ─── Payment submission ─────────────────────────────────────────

def test_submission_sets_proof_and_date():
    t = plan_payment_submission(_enrollment(), "  TXN-4411  ", NOW)
    assert t.changes["payment_status"] == "submitted"
    assert t.changes["payment_proof"] == "TXN-4411"
    assert t.changes["payment_submitted_date"] == NOW
    assert t.capacity == CapacityEffect.NONE
    assert "verified_by" not in t.changes


def test_resubmission_after_rejection_clears_adjudication():
    t = plan_payment_submission(
        _enrollment(payment_status="rejected"), "second receipt", NOW,
    )
    assert t.event == "payment_resubmitted"
    assert t.changes["verified_by"] is None
    assert t.changes["verification_date"] is None
    assert "notes" not in t.changes


@pytest.mark.parametrize("payment_status", ["submitted", "verified"])
def test_submission_refused_outside_pending_or_rejected(payment_status):
    with pytest.raises(InvalidStateError):
        plan_payment_submission(
            _enrollment(payment_status=payment_status), "proof", NOW,
        )


def test_submission_refused_when_dropped():
    with pytest.raises(InvalidStateError):
        plan_payment_submission(_enrollment(status="dropped"), "proof", NOW)


def test_blank_proof_is_a_validation_failure():
    with pytest.raises(RequestValidationFailure) as exc:
        plan_payment_submission(_enrollment(), "   ", NOW)
    assert exc.value.field == "payment_proof"
    assert exc.value.http_status == 400


def test_oversized_proof_is_a_validation_failure():
    with pytest.raises(RequestValidationFailure):
        plan_payment_submission(_enrollment(), "x" * (MAX_PROOF_LENGTH + 1), NOW)


# ─── Verification outcome ───────────────────────────────────────

def test_verify_enrolls_without_capacity_change_on_create():
    t = plan_verification_outcome(VerificationAction.VERIFY, ON_CREATE)
    assert t.changes == {"payment_status": "verified", "status": "enrolled"}
    assert t.capacity == CapacityEffect.NONE


def test_verify_reserves_on_verify():
    t = plan_verification_outcome(VerificationAction.VERIFY, ON_VERIFY)
    assert t.capacity == CapacityEffect.RESERVE


@pytest.mark.parametrize("policy", [ON_CREATE, ON_VERIFY])
def test_reject_never_touches_status_or_capacity(policy):
    t = plan_verification_outcome(VerificationAction.REJECT, policy)
    assert t.changes == {"payment_status": "rejected"}
    assert t.capacity == CapacityEffect.NONE


# ─── Cancel / drop ──────────────────────────────────────────────

def test_cancel_pending_releases_seat_on_create():
    t = plan_cancellation(_enrollment(), ON_CREATE)
    assert t.changes == {"status": "dropped"}
    assert t.capacity == CapacityEffect.RELEASE


def test_cancel_pending_holds_no_seat_on_verify():
    assert plan_cancellation(_enrollment(), ON_VERIFY).capacity == CapacityEffect.NONE


def test_cancel_refused_while_payment_under_review():
    with pytest.raises(InvalidStateError):
        plan_cancellation(_enrollment(payment_status="submitted"), ON_CREATE)


def test_cancel_refused_once_enrolled():
    with pytest.raises(InvalidStateError):
        plan_cancellation(
            _enrollment(status="enrolled", payment_status="verified"), ON_CREATE,
        )


@pytest.mark.parametrize("policy", [ON_CREATE, ON_VERIFY])
def test_drop_enrolled_releases_seat(policy):
    t = plan_drop(_enrollment(status="enrolled", payment_status="verified"), policy)
    assert t.capacity == CapacityEffect.RELEASE
    assert t.event == "enrollment_dropped"


def test_drop_is_terminal():
    with pytest.raises(InvalidStateError) as exc:
        plan_drop(_enrollment(status="dropped"), ON_CREATE)
    assert exc.value.code == "INVALID_STATE"


def test_planners_do_not_mutate_the_enrollment():
    e = _enrollment()
    plan_payment_submission(e, "proof", NOW)
    plan_drop(e, ON_CREATE)
    assert e.status == "pending"
    assert e.payment_status == "pending"
