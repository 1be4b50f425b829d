"""Enrollment Ledger — persistence and read models for Enrollment rows.

Invariants:
    - Authoritative store of seat claims; rows are never deleted
    - get(for_update=True) takes a row lock on PostgreSQL (no-op on SQLite,
      where the version column still catches concurrent writers)
    - to_record() output is JSON-safe and is what idempotent replays return
    - insert() maps a violation of the open-enrollment unique index to
      DuplicateEnrollmentError; insert_verification_record() maps a taken
      idempotency key to IdempotencyKeyConflictError

Design Decisions:
    - Joined listings built in one SELECT with an aliased verifier User, not
      per-row relationship loads
    - Records are plain dicts: the same shape whether fresh or replayed
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from academy.core.domain_types import (
    ActorRole, EnrollmentStatus, PaymentStatus,
)
from academy.core.errors import (
    DuplicateEnrollmentError, ErrorContext, IdempotencyKeyConflictError,
    ResourceNotFoundError,
)
from academy.models.batch import Batch
from academy.models.course import Course
from academy.models.enrollment import OPEN_ENROLLMENT_INDEX, Enrollment
from academy.models.user import User
from academy.models.verification_record import VerificationRecord


# PostgreSQL names the violated index; SQLite lists the columns instead
_OPEN_ENROLLMENT_COLUMNS = "enrollments.student_id, enrollments.batch_id"
_IDEMPOTENCY_KEY_INDEX = "verification_requests_idempotency_key"
_IDEMPOTENCY_KEY_COLUMNS = "verification_requests.idempotency_key"


def _violates(error: IntegrityError, index_name: str, columns: str) -> bool:
    message = str(error.orig)
    return index_name in message or columns in message


def _iso(value) -> str | None:
    return value.isoformat() if value is not None else None


def _str(value) -> str | None:
    return str(value) if value is not None else None


def to_record(enrollment: Enrollment) -> dict:
    """JSON-safe snapshot of an enrollment."""
    return {
        "id": str(enrollment.id),
        "student_id": str(enrollment.student_id),
        "batch_id": str(enrollment.batch_id),
        "status": enrollment.status,
        "payment_status": enrollment.payment_status,
        "payment_proof": enrollment.payment_proof,
        "payment_submitted_date": _iso(enrollment.payment_submitted_date),
        "verified_by": _str(enrollment.verified_by),
        "verification_date": _iso(enrollment.verification_date),
        "notes": enrollment.notes,
        "enrolled_date": _iso(enrollment.enrolled_date),
    }


class EnrollmentLedger:
    """Enrollment reads and writes, bound to one session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, enrollment_id: UUID, for_update: bool = False) -> Enrollment:
        query = (
            select(Enrollment)
            .where(Enrollment.id == enrollment_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        enrollment = (await self.db.execute(query)).scalar_one_or_none()
        if enrollment is None:
            raise ResourceNotFoundError(
                "Enrollment", str(enrollment_id),
                ErrorContext(enrollment_id=str(enrollment_id)),
            )
        return enrollment

    async def get_student(self, student_id: UUID) -> User:
        user = await self.db.get(User, student_id)
        if user is None or user.role != ActorRole.STUDENT:
            raise ResourceNotFoundError("Student", str(student_id))
        return user

    async def find_open(self, student_id: UUID, batch_id: UUID) -> Enrollment | None:
        """Non-dropped enrollment of this student in this batch, if any."""
        result = await self.db.execute(
            select(Enrollment).where(
                Enrollment.student_id == student_id,
                Enrollment.batch_id == batch_id,
                Enrollment.status != EnrollmentStatus.DROPPED.value,
            ),
        )
        return result.scalars().first()

    async def insert(self, enrollment: Enrollment) -> None:
        """Add and flush a new enrollment; a second open one for the pair is a duplicate."""
        ctx = ErrorContext(
            batch_id=str(enrollment.batch_id), actor_id=str(enrollment.student_id),
        )
        self.db.add(enrollment)
        try:
            await self.db.flush()
        except IntegrityError as e:
            if not _violates(e, OPEN_ENROLLMENT_INDEX, _OPEN_ENROLLMENT_COLUMNS):
                raise
            raise DuplicateEnrollmentError(context=ctx) from e

    async def get_verification_record(self, key: str) -> VerificationRecord | None:
        result = await self.db.execute(
            select(VerificationRecord).where(
                VerificationRecord.idempotency_key == key,
            ),
        )
        return result.scalar_one_or_none()

    async def insert_verification_record(self, record: VerificationRecord) -> None:
        """Add and flush; a key taken by a concurrent request is a key conflict."""
        key = record.idempotency_key
        ctx = ErrorContext(enrollment_id=str(record.enrollment_id))
        self.db.add(record)
        try:
            await self.db.flush()
        except IntegrityError as e:
            if not _violates(e, _IDEMPOTENCY_KEY_INDEX, _IDEMPOTENCY_KEY_COLUMNS):
                raise
            raise IdempotencyKeyConflictError(key, ctx) from e

    # ─── Read models ────────────────────────────────────────────

    def _detail_query(self):
        verifier = aliased(User)
        return (
            select(
                Enrollment,
                User.name, User.email, User.phone_number,
                Batch.name, Course.id, Course.name, Course.price,
                verifier.name,
            )
            .join(User, Enrollment.student_id == User.id)
            .join(Batch, Enrollment.batch_id == Batch.id)
            .join(Course, Batch.course_id == Course.id)
            .outerjoin(verifier, Enrollment.verified_by == verifier.id)
        )

    @staticmethod
    def _detail_row(row) -> dict:
        (
            enrollment, student_name, email, phone_number,
            batch_name, course_id, course_name, price, verified_by_name,
        ) = row
        return {
            **to_record(enrollment),
            "student_name": student_name,
            "email": email,
            "phone_number": phone_number,
            "batch_name": batch_name,
            "course_id": str(course_id),
            "course_name": course_name,
            "price": _str(price),
            "verified_by_name": verified_by_name,
        }

    async def list_details(
        self, status: str | None = None, payment_status: str | None = None,
    ) -> list[dict]:
        query = self._detail_query().order_by(Enrollment.enrolled_date.desc())
        if status:
            query = query.where(Enrollment.status == status)
        if payment_status:
            query = query.where(Enrollment.payment_status == payment_status)
        rows = (await self.db.execute(query)).all()
        return [self._detail_row(r) for r in rows]

    async def list_for_student(self, student_id: UUID) -> list[dict]:
        query = (
            self._detail_query()
            .where(Enrollment.student_id == student_id)
            .order_by(Enrollment.enrolled_date.desc())
        )
        rows = (await self.db.execute(query)).all()
        return [self._detail_row(r) for r in rows]

    async def list_awaiting_review(self) -> list[Enrollment]:
        """Submitted payments, oldest submission first."""
        result = await self.db.execute(
            select(Enrollment)
            .where(
                Enrollment.payment_status == PaymentStatus.SUBMITTED.value,
                Enrollment.status != EnrollmentStatus.DROPPED.value,
            )
            .order_by(Enrollment.payment_submitted_date.asc()),
        )
        return list(result.scalars().all())
