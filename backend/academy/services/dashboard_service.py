"""Dashboard Service — enrollment summary for administrators, from SQL aggregates.

Invariants:
    - Read-only: never writes a row
    - summary() (SQL COUNT/SUM) and recount() (pure summarize over rows) must agree

Design Decisions:
    - Aggregates in the database: the dashboard never loads enrollment rows
    - recount() kept for consistency checks and tests of the pure fold
"""

from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.dashboard import DashboardSummary, summarize
from academy.core.domain_types import (
    ACTIVE_BATCH_STATUSES, EnrollmentStatus, PaymentStatus,
)
from academy.models.batch import Batch
from academy.models.enrollment import Enrollment


class DashboardService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def summary(self) -> DashboardSummary:
        enrollment_counts = (await self.db.execute(
            select(
                func.count(Enrollment.id),
                func.sum(case(
                    (
                        and_(
                            Enrollment.payment_status == PaymentStatus.SUBMITTED.value,
                            Enrollment.status != EnrollmentStatus.DROPPED.value,
                        ),
                        1,
                    ),
                    else_=0,
                )),
                func.sum(case(
                    (Enrollment.payment_status == PaymentStatus.VERIFIED.value, 1),
                    else_=0,
                )),
            ),
        )).one()
        active_batches = (await self.db.execute(
            select(func.count(Batch.id)).where(
                Batch.status.in_(sorted(ACTIVE_BATCH_STATUSES)),
            ),
        )).scalar_one()

        total, pending, verified = enrollment_counts
        return DashboardSummary(
            total_enrollments=total or 0,
            pending_verifications=pending or 0,
            verified_enrollments=verified or 0,
            active_batches=active_batches or 0,
        )

    async def recount(self) -> DashboardSummary:
        """Full recount through the pure aggregator."""
        enrollments = (
            await self.db.execute(
                select(Enrollment.status, Enrollment.payment_status),
            )
        ).tuples().all()
        batch_statuses = (
            await self.db.execute(select(Batch.status))
        ).scalars().all()
        return summarize(enrollments, batch_statuses)
