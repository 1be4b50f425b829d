"""Catalog Queries — read-only listings of courses and batches.

Invariants:
    - The enrollment core never writes courses or batches here
    - available_spots is derived from the stored counter (floor 0), never stored
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from academy.core.capacity import available_spots
from academy.core.domain_types import ACTIVE_BATCH_STATUSES
from academy.models.batch import Batch
from academy.models.course import Course
from academy.models.user import User


def _iso(value) -> str | None:
    return value.isoformat() if value is not None else None


def course_record(course: Course) -> dict:
    return {
        "id": str(course.id),
        "name": course.name,
        "description": course.description,
        "duration": course.duration,
        "price": str(course.price),
        "status": course.status,
    }


def batch_record(batch: Batch) -> dict:
    return {
        "id": str(batch.id),
        "course_id": str(batch.course_id),
        "instructor_id": str(batch.instructor_id) if batch.instructor_id else None,
        "name": batch.name,
        "start_date": _iso(batch.start_date),
        "end_date": _iso(batch.end_date),
        "start_time": _iso(batch.start_time),
        "end_time": _iso(batch.end_time),
        "max_students": batch.max_students,
        "current_students": batch.current_students,
        "status": batch.status,
    }


class CatalogQueries:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_courses(self, status: str | None = None) -> list[dict]:
        query = select(Course).order_by(Course.name)
        if status:
            query = query.where(Course.status == status)
        courses = (await self.db.execute(query)).scalars().all()
        return [course_record(c) for c in courses]

    async def list_batches(self, course_id=None) -> list[dict]:
        query = select(Batch).order_by(Batch.start_date, Batch.name)
        if course_id:
            query = query.where(Batch.course_id == course_id)
        batches = (await self.db.execute(query)).scalars().all()
        return [batch_record(b) for b in batches]

    async def list_available_batches(self) -> list[dict]:
        """Upcoming and ongoing batches, with seats left and display names."""
        instructor = aliased(User)
        rows = (await self.db.execute(
            select(Batch, Course.name, Course.price, instructor.name)
            .join(Course, Batch.course_id == Course.id)
            .outerjoin(instructor, Batch.instructor_id == instructor.id)
            .where(Batch.status.in_(sorted(ACTIVE_BATCH_STATUSES)))
            .order_by(Batch.start_date, Batch.name),
        )).all()
        return [
            {
                **batch_record(batch),
                "available_spots": available_spots(batch),
                "course_name": course_name,
                "price": str(price),
                "instructor_name": instructor_name,
            }
            for batch, course_name, price, instructor_name in rows
        ]
