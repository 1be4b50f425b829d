"""Catalog Routes — courses, batches and administrative capacity checks.

Invariants:
    - Course and batch listings are read-only
    - reconcile is the only endpoint that rewrites current_students, and it
      does so through CapacityManager inside run_in_transaction
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academy.api.dependencies import get_actor
from academy.config import Settings, get_settings
from academy.core.access import require_admin
from academy.core.domain_types import Actor, CourseStatus
from academy.infrastructure.database import (
    SessionFactory, get_db, get_session_factory,
)
from academy.schemas.catalog import (
    BatchResponse, CourseResponse, OccupancyReportResponse,
)
from academy.services.capacity_manager import CapacityManager
from academy.services.catalog_queries import CatalogQueries
from academy.services.transaction import run_in_transaction

router = APIRouter(prefix="/api/v1", tags=["catalog"])


@router.get("/courses", response_model=list[CourseResponse])
async def list_courses(
    status_filter: CourseStatus | None = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogQueries(db).list_courses(
        status_filter.value if status_filter else None,
    )


@router.get("/batches", response_model=list[BatchResponse])
async def list_batches(
    course_id: UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await CatalogQueries(db).list_batches(course_id)


@router.get("/batches/{batch_id}/occupancy", response_model=OccupancyReportResponse)
async def batch_occupancy(
    batch_id: UUID,
    actor: Actor = Depends(get_actor),
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
):
    """Stored seat counter vs recount of seat-holding enrollments."""
    require_admin(actor, "inspect batch occupancy")
    return await CapacityManager(db).occupancy(
        batch_id, settings.reservation_policy,
    )


@router.post("/batches/{batch_id}/reconcile", response_model=OccupancyReportResponse)
async def reconcile_batch(
    batch_id: UUID,
    actor: Actor = Depends(get_actor),
    settings: Settings = Depends(get_settings),
    session_factory: SessionFactory = Depends(get_session_factory),
):
    """Rewrite current_students from the recount. Returns the report before the fix."""
    require_admin(actor, "reconcile batch capacity")

    async def work(db: AsyncSession) -> dict:
        return await CapacityManager(db).reconcile(
            batch_id, settings.reservation_policy,
        )

    return await run_in_transaction(
        session_factory, work, operation="reconcile_batch",
    )
