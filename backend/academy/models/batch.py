"""Batch ORM — a scheduled offering of a Course with a fixed seat capacity.

Invariants:
    - max_students >= 1 and 0 <= current_students <= max_students (CHECK constraints)
    - current_students is written ONLY by services/capacity_manager.py
    - current_students equals the count of seat-holding enrollments for the
      configured ReservationPolicy

Design Decisions:
    - Bounds duplicated as CHECK constraints: the database refuses an
      overbooking even if a code path bypasses the conditional UPDATE
"""

import uuid
from datetime import date, datetime, time, timezone

from sqlalchemy import (
    CheckConstraint, Date, DateTime, ForeignKey, Integer, String, Time,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from academy.db.base import Base


class Batch(Base):
    __tablename__ = "batches"
    __table_args__ = (
        CheckConstraint("max_students >= 1", name="ck_batches_max_students_positive"),
        CheckConstraint("current_students >= 0", name="ck_batches_current_students_nonnegative"),
        CheckConstraint(
            "current_students <= max_students",
            name="ck_batches_current_lte_max",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    course_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("courses.id"), nullable=False, index=True,
    )
    instructor_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=True,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    start_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    end_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    max_students: Mapped[int] = mapped_column(Integer, nullable=False)
    current_students: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="upcoming",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    course: Mapped["Course"] = relationship(
        "Course", back_populates="batches", lazy="selectin",
    )
    instructor: Mapped["User"] = relationship(
        "User", lazy="selectin",
    )
