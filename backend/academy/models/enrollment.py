"""Enrollment ORM — a student's claim on a seat, with its payment verification fields.

Invariants:
    - Never hard-deleted; only transitioned to status = dropped
    - status in {pending, enrolled, dropped}; payment_status in
      {pending, submitted, verified, rejected}
    - version increments on every UPDATE; a stale write raises StaleDataError,
      mapped to ConcurrencyError at the session boundary

Design Decisions:
    - version_id_col (optimistic) plus SELECT ... FOR UPDATE (pessimistic, on
      PostgreSQL) serialize operations on one enrollment
    - Composite index (batch_id, status): occupancy recounts scan one batch
    - Partial unique index on (student_id, batch_id) for non-dropped rows: at
      most one open enrollment per student per batch, even under concurrent inserts
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from academy.db.base import Base


OPEN_ENROLLMENT_INDEX = "uq_enrollments_open_student_batch"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Enrollment(Base):
    __tablename__ = "enrollments"
    __table_args__ = (
        Index("ix_enrollments_batch_status", "batch_id", "status"),
        Index("ix_enrollments_student_batch", "student_id", "batch_id"),
        Index(
            OPEN_ENROLLMENT_INDEX, "student_id", "batch_id",
            unique=True,
            postgresql_where=text("status <> 'dropped'"),
            sqlite_where=text("status <> 'dropped'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False,
    )
    batch_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("batches.id"), nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending",
    )
    payment_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", index=True,
    )
    payment_proof: Mapped[str | None] = mapped_column(Text, nullable=True)
    payment_submitted_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    verified_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=True,
    )
    verification_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    enrolled_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
        onupdate=_utcnow,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    student: Mapped["User"] = relationship(
        "User", foreign_keys=[student_id], lazy="selectin",
    )
    verifier: Mapped["User"] = relationship(
        "User", foreign_keys=[verified_by], lazy="selectin",
    )
    batch: Mapped["Batch"] = relationship("Batch", lazy="selectin")
