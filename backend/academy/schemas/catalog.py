"""Catalog Schemas — course and batch views, plus the capacity drift report."""

from datetime import date, time
from uuid import UUID

from pydantic import BaseModel


class CourseResponse(BaseModel):
    id: UUID
    name: str
    description: str | None = None
    duration: str | None = None
    price: str
    status: str


class BatchResponse(BaseModel):
    id: UUID
    course_id: UUID
    instructor_id: UUID | None = None
    name: str
    start_date: date | None = None
    end_date: date | None = None
    start_time: time | None = None
    end_time: time | None = None
    max_students: int
    current_students: int
    status: str


class AvailableBatchResponse(BatchResponse):
    available_spots: int
    course_name: str
    price: str
    instructor_name: str | None = None


class OccupancyReportResponse(BaseModel):
    """Stored counter vs recount; drift != 0 means the counter needs reconcile."""
    batch_id: UUID
    policy: str
    max_students: int
    current_students: int
    expected_students: int
    drift: int
    consistent: bool
