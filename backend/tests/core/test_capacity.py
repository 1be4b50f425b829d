"""Capacity Rules — verifies seat-holding statuses per policy and the drift report."""

from types import SimpleNamespace
from uuid import uuid4

from academy.core.capacity import (
    available_spots, expected_occupancy, has_capacity, holds_seat,
    occupancy_report,
)
from academy.core.domain_types import ReservationPolicy

ON_CREATE = ReservationPolicy.RESERVE_ON_CREATE
ON_VERIFY = ReservationPolicy.RESERVE_ON_VERIFY


def _batch(max_students=3, current_students=0):
    return SimpleNamespace(
        id=uuid4(), max_students=max_students,
        current_students=current_students, status="upcoming",
    )


def test_pending_holds_seat_only_on_create():
    assert holds_seat("pending", ON_CREATE)
    assert not holds_seat("pending", ON_VERIFY)


def test_enrolled_holds_seat_under_both_policies():
    assert holds_seat("enrolled", ON_CREATE)
    assert holds_seat("enrolled", ON_VERIFY)


def test_dropped_never_holds_seat():
    assert not holds_seat("dropped", ON_CREATE)
    assert not holds_seat("dropped", ON_VERIFY)


def test_expected_occupancy_counts_per_policy():
    statuses = ["pending", "enrolled", "dropped", "pending"]
    assert expected_occupancy(statuses, ON_CREATE) == 3
    assert expected_occupancy(statuses, ON_VERIFY) == 1


def test_available_spots_floors_at_zero():
    assert available_spots(_batch(3, 1)) == 2
    assert available_spots(_batch(3, 3)) == 0
    assert available_spots(_batch(2, 5)) == 0


def test_has_capacity():
    assert has_capacity(_batch(1, 0))
    assert not has_capacity(_batch(1, 1))


def test_occupancy_report_consistent():
    report = occupancy_report(_batch(3, 2), ["pending", "enrolled"], ON_CREATE)
    assert report["consistent"] is True
    assert report["drift"] == 0
    assert report["policy"] == "reserve_on_create"


def test_occupancy_report_detects_drift():
    report = occupancy_report(_batch(3, 3), ["enrolled", "dropped"], ON_CREATE)
    assert report["consistent"] is False
    assert report["expected_students"] == 1
    assert report["drift"] == 2
