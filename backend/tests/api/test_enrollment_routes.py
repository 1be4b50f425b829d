"""Enrollment Routes — verifies HTTP status codes, envelopes and idempotency headers.

Invariants:
    - POST /enroll returns 201; full batch returns 409 NO_SEATS_AVAILABLE
    - verify-payment requires Idempotency-Key; replays carry Idempotent-Replayed: true
    - Missing actor headers → 401; wrong actor → 403; bad body → 400
"""

from uuid import uuid4

BASE = "/api/v1/enrollments"


async def _enroll(client, headers, actor, batch_id):
    return await client.post(
        f"{BASE}/enroll",
        json={"student_id": str(actor.id), "batch_id": str(batch_id)},
        headers=headers(actor),
    )


async def _submitted(client, headers, cat, actor=None):
    actor = actor or cat.students[0]
    eid = (await _enroll(client, headers, actor, cat.batch_id)).json()["id"]
    res = await client.post(
        f"{BASE}/submit-payment-proof",
        json={"enrollment_id": eid, "payment_proof": "UPI ref 55102"},
        headers=headers(actor),
    )
    assert res.status_code == 200
    return eid


def _verify_body(cat, eid, action="verify", **extra):
    return {
        "enrollment_id": eid,
        "verified_by": str(cat.admin.id),
        "action": action,
        **extra,
    }


# ─── Enroll ─────────────────────────────────────────────────────

async def test_enroll_returns_201(client, seed_catalog, headers):
    cat = await seed_catalog()
    res = await _enroll(client, headers, cat.students[0], cat.batch_id)
    assert res.status_code == 201
    body = res.json()
    assert body["status"] == "pending"
    assert body["payment_status"] == "pending"


async def test_full_batch_returns_409(client, seed_catalog, headers):
    cat = await seed_catalog(max_students=1)
    a, b = cat.students
    assert (await _enroll(client, headers, a, cat.batch_id)).status_code == 201

    res = await _enroll(client, headers, b, cat.batch_id)
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "NO_SEATS_AVAILABLE"
    assert res.json()["error"]["context"]["batch_id"] == str(cat.batch_id)


async def test_duplicate_enrollment_returns_409(client, seed_catalog, headers):
    cat = await seed_catalog(max_students=3)
    student = cat.students[0]
    await _enroll(client, headers, student, cat.batch_id)
    res = await _enroll(client, headers, student, cat.batch_id)
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "DUPLICATE_ENROLLMENT"


async def test_missing_actor_returns_401(client, seed_catalog):
    cat = await seed_catalog()
    res = await client.post(
        f"{BASE}/enroll",
        json={"student_id": str(cat.students[0].id), "batch_id": str(cat.batch_id)},
    )
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "ACTOR_REQUIRED"


async def test_malformed_actor_returns_401(client):
    res = await client.get(
        f"{BASE}/review-queue",
        headers={"X-Actor-Id": "not-a-uuid", "X-Actor-Role": "admin"},
    )
    assert res.status_code == 401


async def test_enroll_other_student_returns_403(client, seed_catalog, headers):
    cat = await seed_catalog()
    a, b = cat.students
    res = await client.post(
        f"{BASE}/enroll",
        json={"student_id": str(b.id), "batch_id": str(cat.batch_id)},
        headers=headers(a),
    )
    assert res.status_code == 403


async def test_invalid_body_returns_400(client, seed_catalog, headers):
    cat = await seed_catalog()
    res = await client.post(
        f"{BASE}/enroll",
        json={"student_id": "nope"},
        headers=headers(cat.students[0]),
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_unknown_batch_returns_404(client, seed_catalog, headers):
    cat = await seed_catalog()
    res = await _enroll(client, headers, cat.students[0], uuid4())
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


# ─── Payment proof ──────────────────────────────────────────────

async def test_blank_proof_returns_400(client, seed_catalog, headers):
    cat = await seed_catalog()
    student = cat.students[0]
    eid = (await _enroll(client, headers, student, cat.batch_id)).json()["id"]
    res = await client.post(
        f"{BASE}/submit-payment-proof",
        json={"enrollment_id": eid, "payment_proof": "   "},
        headers=headers(student),
    )
    assert res.status_code == 400


async def test_resubmit_while_under_review_returns_409(client, seed_catalog, headers):
    cat = await seed_catalog()
    eid = await _submitted(client, headers, cat)
    res = await client.post(
        f"{BASE}/submit-payment-proof",
        json={"enrollment_id": eid, "payment_proof": "again"},
        headers=headers(cat.students[0]),
    )
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "INVALID_STATE"


# ─── Verify payment ─────────────────────────────────────────────

async def test_verify_payment(client, seed_catalog, headers):
    cat = await seed_catalog()
    eid = await _submitted(client, headers, cat)

    res = await client.post(
        f"{BASE}/verify-payment",
        json=_verify_body(cat, eid, notes="Matched bank statement"),
        headers={**headers(cat.admin), "Idempotency-Key": "k-verify-1"},
    )

    assert res.status_code == 200
    body = res.json()
    assert body["payment_status"] == "verified"
    assert body["status"] == "enrolled"
    assert body["verified_by"] == str(cat.admin.id)
    assert "Idempotent-Replayed" not in res.headers


async def test_verify_replay_sets_header(client, seed_catalog, headers):
    cat = await seed_catalog()
    eid = await _submitted(client, headers, cat)
    request = dict(
        json=_verify_body(cat, eid),
        headers={**headers(cat.admin), "Idempotency-Key": "k-replay"},
    )

    first = await client.post(f"{BASE}/verify-payment", **request)
    second = await client.post(f"{BASE}/verify-payment", **request)

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.headers["Idempotent-Replayed"] == "true"
    assert second.json() == first.json()


async def test_body_idempotency_key_accepted(client, seed_catalog, headers):
    cat = await seed_catalog()
    eid = await _submitted(client, headers, cat)
    res = await client.post(
        f"{BASE}/verify-payment",
        json=_verify_body(cat, eid, action="reject", idempotency_key="k-body"),
        headers=headers(cat.admin),
    )
    assert res.status_code == 200
    assert res.json()["payment_status"] == "rejected"
    assert res.json()["status"] == "pending"


async def test_key_reused_for_other_action_returns_409(client, seed_catalog, headers):
    cat = await seed_catalog()
    eid = await _submitted(client, headers, cat)
    admin_headers = {**headers(cat.admin), "Idempotency-Key": "k-reuse"}
    await client.post(
        f"{BASE}/verify-payment", json=_verify_body(cat, eid), headers=admin_headers,
    )
    res = await client.post(
        f"{BASE}/verify-payment",
        json=_verify_body(cat, eid, action="reject"),
        headers=admin_headers,
    )
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "IDEMPOTENCY_KEY_CONFLICT"


async def test_reject_after_verify_returns_409(client, seed_catalog, headers):
    cat = await seed_catalog()
    eid = await _submitted(client, headers, cat)
    await client.post(
        f"{BASE}/verify-payment",
        json=_verify_body(cat, eid),
        headers={**headers(cat.admin), "Idempotency-Key": "k-a"},
    )
    res = await client.post(
        f"{BASE}/verify-payment",
        json=_verify_body(cat, eid, action="reject"),
        headers={**headers(cat.admin), "Idempotency-Key": "k-b"},
    )
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "NOT_PENDING_VERIFICATION"


async def test_verify_without_key_returns_400(client, seed_catalog, headers):
    cat = await seed_catalog()
    eid = await _submitted(client, headers, cat)
    res = await client.post(
        f"{BASE}/verify-payment", json=_verify_body(cat, eid), headers=headers(cat.admin),
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_verified_by_must_be_acting_admin(client, seed_catalog, headers):
    cat = await seed_catalog()
    eid = await _submitted(client, headers, cat)
    body = _verify_body(cat, eid)
    body["verified_by"] = str(uuid4())
    res = await client.post(
        f"{BASE}/verify-payment",
        json=body,
        headers={**headers(cat.admin), "Idempotency-Key": "k-other"},
    )
    assert res.status_code == 403


async def test_student_cannot_verify(client, seed_catalog, headers):
    cat = await seed_catalog()
    student = cat.students[0]
    eid = await _submitted(client, headers, cat)
    body = _verify_body(cat, eid)
    body["verified_by"] = str(student.id)
    res = await client.post(
        f"{BASE}/verify-payment",
        json=body,
        headers={**headers(student), "Idempotency-Key": "k-student"},
    )
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "FORBIDDEN"


async def test_unknown_action_returns_400(client, seed_catalog, headers):
    cat = await seed_catalog()
    eid = await _submitted(client, headers, cat)
    res = await client.post(
        f"{BASE}/verify-payment",
        json=_verify_body(cat, eid, action="approve"),
        headers={**headers(cat.admin), "Idempotency-Key": "k-approve"},
    )
    assert res.status_code == 400


# ─── Cancel / drop ──────────────────────────────────────────────

async def test_cancel_and_drop(client, seed_catalog, headers):
    cat = await seed_catalog(max_students=2)
    a, b = cat.students
    ea = (await _enroll(client, headers, a, cat.batch_id)).json()["id"]
    eb = (await _enroll(client, headers, b, cat.batch_id)).json()["id"]

    cancelled = await client.post(f"{BASE}/{ea}/cancel", headers=headers(a))
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "dropped"

    forbidden = await client.post(f"{BASE}/{eb}/drop", headers=headers(b))
    assert forbidden.status_code == 403

    dropped = await client.post(f"{BASE}/{eb}/drop", headers=headers(cat.admin))
    assert dropped.status_code == 200
    assert dropped.json()["status"] == "dropped"

    again = await client.post(f"{BASE}/{eb}/drop", headers=headers(cat.admin))
    assert again.status_code == 409


# ─── Reads ──────────────────────────────────────────────────────

async def test_get_enrollment_owner_or_admin(client, seed_catalog, headers):
    cat = await seed_catalog()
    a, b = cat.students
    eid = (await _enroll(client, headers, a, cat.batch_id)).json()["id"]

    assert (await client.get(f"{BASE}/{eid}", headers=headers(a))).status_code == 200
    assert (await client.get(f"{BASE}/{eid}", headers=headers(cat.admin))).status_code == 200
    assert (await client.get(f"{BASE}/{eid}", headers=headers(b))).status_code == 403


async def test_get_unknown_enrollment_returns_404(client, seed_catalog, headers):
    cat = await seed_catalog()
    res = await client.get(f"{BASE}/{uuid4()}", headers=headers(cat.admin))
    assert res.status_code == 404


async def test_admin_listing_has_joined_fields(client, seed_catalog, headers):
    cat = await seed_catalog()
    eid = await _submitted(client, headers, cat)
    await client.post(
        f"{BASE}/verify-payment",
        json=_verify_body(cat, eid),
        headers={**headers(cat.admin), "Idempotency-Key": "k-list"},
    )

    res = await client.get(BASE, headers=headers(cat.admin))

    assert res.status_code == 200
    [row] = res.json()
    assert row["student_name"] == "Student 0"
    assert row["phone_number"] == "555-0100"
    assert row["course_name"] == "Python Foundations"
    assert row["batch_name"] == "Evening cohort"
    assert row["price"] == "199.00"
    assert row["verified_by_name"] == "Ada Admin"


async def test_admin_listing_filters(client, seed_catalog, headers):
    cat = await seed_catalog(max_students=2)
    a, b = cat.students
    await _enroll(client, headers, a, cat.batch_id)
    await _submitted(client, headers, cat, actor=b)

    res = await client.get(
        BASE, params={"payment_status": "submitted"}, headers=headers(cat.admin),
    )
    assert [r["student_id"] for r in res.json()] == [str(b.id)]

    bad = await client.get(BASE, params={"status": "archived"}, headers=headers(cat.admin))
    assert bad.status_code == 400


async def test_student_cannot_list_all(client, seed_catalog, headers):
    cat = await seed_catalog()
    res = await client.get(BASE, headers=headers(cat.students[0]))
    assert res.status_code == 403


async def test_student_lists_own_enrollments(client, seed_catalog, headers):
    cat = await seed_catalog(max_students=2)
    a, b = cat.students
    await _enroll(client, headers, a, cat.batch_id)
    await _enroll(client, headers, b, cat.batch_id)

    res = await client.get(f"{BASE}/student/{a.id}", headers=headers(a))
    assert res.status_code == 200
    assert [r["student_id"] for r in res.json()] == [str(a.id)]

    other = await client.get(f"{BASE}/student/{b.id}", headers=headers(a))
    assert other.status_code == 403


async def test_available_batches(client, seed_catalog, headers):
    cat = await seed_catalog(max_students=3, with_instructor=True)
    await seed_catalog(batch_status="completed")
    await _enroll(client, headers, cat.students[0], cat.batch_id)

    res = await client.get(f"{BASE}/available-batches", headers=headers(cat.students[1]))

    assert res.status_code == 200
    [batch] = res.json()
    assert batch["id"] == str(cat.batch_id)
    assert batch["available_spots"] == 2
    assert batch["instructor_name"] == "Ian Instructor"
    assert batch["course_name"] == "Python Foundations"


async def test_review_queue(client, seed_catalog, headers):
    cat = await seed_catalog(max_students=2)
    a, b = cat.students
    first = await _submitted(client, headers, cat, actor=a)
    second = await _submitted(client, headers, cat, actor=b)

    res = await client.get(f"{BASE}/review-queue", headers=headers(cat.admin))

    assert res.status_code == 200
    assert [r["id"] for r in res.json()] == [first, second]
    assert all(r["overdue"] is False for r in res.json())

    denied = await client.get(f"{BASE}/review-queue", headers=headers(a))
    assert denied.status_code == 403
