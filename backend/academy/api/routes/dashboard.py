"""Dashboard Routes — administrator enrollment summary."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from academy.api.dependencies import get_actor
from academy.core.access import require_admin
from academy.core.domain_types import Actor
from academy.infrastructure.database import get_db
from academy.schemas.dashboard import DashboardSummaryResponse
from academy.services.dashboard_service import DashboardService

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


@router.get("/enrollments", response_model=DashboardSummaryResponse)
async def enrollment_summary(
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    """Totals, payments awaiting review, verified enrollments, active batches."""
    require_admin(actor, "view the enrollment dashboard")
    summary = await DashboardService(db).summary()
    return summary.to_dict()
