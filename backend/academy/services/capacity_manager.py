"""Capacity Manager — the only writer of Batch.current_students.

Invariants:
    - reserve() is ONE conditional UPDATE (current_students < max_students):
      linearizable, two concurrent reserves can never both take the last seat
    - release() is ONE conditional UPDATE with floor 0
    - Never commits: the caller's transaction decides, so a reserve and the
      enrollment that pays for it commit together
    - reconcile() rewrites the counter from a full recount; no other module
      writes the column

Design Decisions:
    - synchronize_session=False on the UPDATEs plus populate_existing on reads:
      the counter is never trusted from a stale identity map
    - Zero matched rows are disambiguated afterwards (missing batch vs full batch)
"""

import logging
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.capacity import (
    ReservationToken, SEAT_HOLDING_STATUSES, has_capacity, occupancy_report,
)
from academy.core.domain_types import CapacityEffect, ReservationPolicy
from academy.core.errors import (
    CapacityExceededError, ErrorContext, NoSeatsAvailableError,
    ResourceNotFoundError,
)
from academy.models.batch import Batch
from academy.models.enrollment import Enrollment

logger = logging.getLogger(__name__)


class CapacityManager:
    """Seat accounting for batches, bound to one transaction's session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_batch(self, batch_id: UUID, for_update: bool = False) -> Batch:
        query = (
            select(Batch)
            .where(Batch.id == batch_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        batch = (await self.db.execute(query)).scalar_one_or_none()
        if batch is None:
            raise ResourceNotFoundError(
                "Batch", str(batch_id), ErrorContext(batch_id=str(batch_id)),
            )
        return batch

    async def reserve(self, batch_id: UUID) -> ReservationToken:
        """Take one seat or raise CapacityExceededError."""
        result = await self.db.execute(
            update(Batch)
            .where(
                Batch.id == batch_id,
                Batch.current_students < Batch.max_students,
            )
            .values(current_students=Batch.current_students + 1)
            .execution_options(synchronize_session=False),
        )
        if result.rowcount == 0:
            batch = await self.get_batch(batch_id)
            logger.warning(
                "Seat reservation refused: batch full",
                extra={"batch_id": batch_id, "error_code": "CAPACITY_EXCEEDED"},
            )
            raise CapacityExceededError(str(batch_id), batch.max_students)

        logger.info("Seat reserved", extra={"batch_id": batch_id})
        return ReservationToken(batch_id=batch_id)

    async def release(self, batch_id: UUID) -> None:
        """Give one seat back. Floor 0: releasing an empty batch is a logged no-op."""
        result = await self.db.execute(
            update(Batch)
            .where(Batch.id == batch_id, Batch.current_students > 0)
            .values(current_students=Batch.current_students - 1)
            .execution_options(synchronize_session=False),
        )
        if result.rowcount == 0:
            await self.get_batch(batch_id)
            logger.warning(
                "Seat release on empty batch ignored",
                extra={"batch_id": batch_id},
            )
            return
        logger.info("Seat released", extra={"batch_id": batch_id})

    async def ensure_available(self, batch_id: UUID) -> Batch:
        """Advisory check used when creation does not reserve (reserve-on-verify)."""
        batch = await self.get_batch(batch_id)
        if not has_capacity(batch):
            raise NoSeatsAvailableError(str(batch_id), batch.max_students)
        return batch

    async def apply(
        self, effect: CapacityEffect, batch_id: UUID,
    ) -> ReservationToken | None:
        if effect == CapacityEffect.RESERVE:
            return await self.reserve(batch_id)
        if effect == CapacityEffect.RELEASE:
            await self.release(batch_id)
        return None

    async def _seat_holding_count(
        self, batch_id: UUID, policy: ReservationPolicy,
    ) -> int:
        statuses = [s.value for s in SEAT_HOLDING_STATUSES[policy]]
        result = await self.db.execute(
            select(func.count(Enrollment.id)).where(
                Enrollment.batch_id == batch_id,
                Enrollment.status.in_(statuses),
            ),
        )
        return result.scalar_one()

    async def occupancy(self, batch_id: UUID, policy: ReservationPolicy) -> dict:
        """Drift report: stored counter vs recount of seat-holding enrollments."""
        batch = await self.get_batch(batch_id)
        statuses = (
            await self.db.execute(
                select(Enrollment.status).where(Enrollment.batch_id == batch_id),
            )
        ).scalars().all()
        return occupancy_report(batch, statuses, policy)

    async def reconcile(self, batch_id: UUID, policy: ReservationPolicy) -> dict:
        """Rewrite current_students from the recount. Returns the pre-fix report."""
        batch = await self.get_batch(batch_id, for_update=True)
        expected = await self._seat_holding_count(batch_id, policy)
        report = await self.occupancy(batch_id, policy)
        written = min(expected, batch.max_students)
        if expected > batch.max_students:
            logger.error(
                f"Batch overbooked: {expected} seat-holding enrollments for "
                f"{batch.max_students} seats; counter capped, drift remains",
                extra={"batch_id": batch_id, "policy": policy.value},
            )
        if batch.current_students != written:
            await self.db.execute(
                update(Batch)
                .where(Batch.id == batch_id)
                .values(current_students=written)
                .execution_options(synchronize_session=False),
            )
            logger.warning(
                f"Capacity drift corrected: {batch.current_students} -> {written}",
                extra={"batch_id": batch_id, "policy": policy.value},
            )
        return report
