"""Review Queue — submitted payments awaiting an administrator, oldest first."""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.review_sla import ReviewSlaPolicy, is_overdue
from academy.services.enrollment_ledger import EnrollmentLedger, to_record


async def build_review_queue(
    db: AsyncSession, now: datetime, policy: ReviewSlaPolicy | None,
) -> list[dict]:
    enrollments = await EnrollmentLedger(db).list_awaiting_review()
    return [
        {**to_record(e), "overdue": is_overdue(e, now, policy)}
        for e in enrollments
    ]
