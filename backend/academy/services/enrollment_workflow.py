"""Enrollment Workflow — lifecycle + payment verification orchestrated over the ledger and capacity.

Invariants:
    - Each public operation is ONE transaction: enrollment fields, the capacity
      effect and any VerificationRecord commit together or not at all
    - Actor is an explicit parameter; authorization checked before any write
    - The enrollment row is loaded FOR UPDATE before it is planned against
    - Only CapacityManager touches Batch.current_students
    - Verification replays (idempotency key or matching prior outcome) have no effects
    - At most one non-dropped enrollment per (student, batch): checked under
      the batch row lock, enforced by a partial unique index

Design Decisions:
    - Impureim sandwich: load (IO) → plan (pure core) → apply (IO)
    - clock injected: transitions are stamped with one "now" per operation,
      and tests can pin time
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from academy.config import Settings
from academy.core.access import require_admin, require_self_or_admin
from academy.core.domain_types import (
    Actor, BatchStatus, CapacityEffect, ReservationPolicy, VerificationAction,
)
from academy.core.enrollment_lifecycle import (
    Transition, plan_cancellation, plan_creation, plan_drop,
    plan_payment_submission,
)
from academy.core.errors import (
    CapacityExceededError, DuplicateEnrollmentError, ErrorContext,
    InvalidStateError, NoSeatsAvailableError, RequestValidationFailure,
)
from academy.core.payment_verification import (
    VerificationDecision, check_idempotent_replay,
    evaluate_verification_request, plan_adjudication,
)
from academy.infrastructure.database import SessionFactory
from academy.models.enrollment import Enrollment
from academy.models.verification_record import VerificationRecord
from academy.services.capacity_manager import CapacityManager
from academy.services.enrollment_ledger import EnrollmentLedger, to_record
from academy.services.transaction import RetryPolicy, run_in_transaction

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class VerificationOutcome:
    """Result of verify_or_reject; replayed means no effect was applied this time."""
    record: dict
    replayed: bool = False


class EnrollmentWorkflow:
    """Student- and administrator-facing enrollment operations."""

    def __init__(
        self,
        session_factory: SessionFactory,
        policy: ReservationPolicy = ReservationPolicy.RESERVE_ON_CREATE,
        retry: RetryPolicy | None = None,
        require_idempotency_key: bool = True,
        clock: Clock = _utcnow,
    ):
        self.session_factory = session_factory
        self.policy = policy
        self.retry = retry or RetryPolicy()
        self.require_idempotency_key = require_idempotency_key
        self.clock = clock

    @classmethod
    def from_settings(
        cls, session_factory: SessionFactory, settings: Settings,
    ) -> "EnrollmentWorkflow":
        return cls(
            session_factory,
            policy=settings.reservation_policy,
            retry=RetryPolicy(
                max_retries=settings.storage_max_retries,
                base_delay_ms=settings.storage_base_delay_ms,
                max_delay_ms=settings.storage_max_delay_ms,
            ),
            require_idempotency_key=settings.require_idempotency_key,
        )

    # ─── Student-facing ─────────────────────────────────────────

    async def enroll(self, actor: Actor, student_id: UUID, batch_id: UUID) -> dict:
        """Create a pending enrollment, reserving a seat under reserve-on-create."""
        require_self_or_admin(actor, student_id, "enroll this student")

        async def work(db: AsyncSession) -> dict:
            ledger, capacity = EnrollmentLedger(db), CapacityManager(db)
            await ledger.get_student(student_id)
            # Row lock serializes concurrent enrolls in this batch on PostgreSQL
            batch = await capacity.get_batch(batch_id, for_update=True)
            if batch.status == BatchStatus.COMPLETED:
                raise InvalidStateError(
                    "enroll in batch", "batch is completed",
                    ErrorContext(batch_id=str(batch_id)),
                )
            existing = await ledger.find_open(student_id, batch_id)
            if existing is not None:
                raise DuplicateEnrollmentError(str(existing.id))

            transition = plan_creation(self.policy)
            if transition.capacity == CapacityEffect.RESERVE:
                try:
                    await capacity.reserve(batch_id)
                except CapacityExceededError as e:
                    raise NoSeatsAvailableError(
                        str(batch_id), e.max_students,
                    ) from e
            else:
                await capacity.ensure_available(batch_id)

            enrollment = Enrollment(
                student_id=student_id, batch_id=batch_id,
                enrolled_date=self.clock(),
                **transition.changes,
            )
            await ledger.insert(enrollment)
            self._log(transition, enrollment, actor)
            return to_record(enrollment)

        return await self._run(work, "enroll")

    async def submit_payment_proof(
        self, actor: Actor, enrollment_id: UUID, proof: str,
    ) -> dict:
        """pending|rejected → submitted."""
        async def work(db: AsyncSession) -> dict:
            ledger = EnrollmentLedger(db)
            enrollment = await ledger.get(enrollment_id, for_update=True)
            require_self_or_admin(
                actor, enrollment.student_id, "submit payment proof",
            )
            transition = plan_payment_submission(enrollment, proof, self.clock())
            self._apply(enrollment, transition)
            await db.flush()
            self._log(transition, enrollment, actor)
            return to_record(enrollment)

        return await self._run(work, "submit_payment_proof")

    async def cancel(self, actor: Actor, enrollment_id: UUID) -> dict:
        """Student abandons a pending enrollment; any held seat is released."""
        async def work(db: AsyncSession) -> dict:
            ledger, capacity = EnrollmentLedger(db), CapacityManager(db)
            enrollment = await ledger.get(enrollment_id, for_update=True)
            require_self_or_admin(actor, enrollment.student_id, "cancel enrollment")
            transition = plan_cancellation(enrollment, self.policy)
            await capacity.apply(transition.capacity, enrollment.batch_id)
            self._apply(enrollment, transition)
            await db.flush()
            self._log(transition, enrollment, actor)
            return to_record(enrollment)

        return await self._run(work, "cancel")

    # ─── Administrator-facing ───────────────────────────────────

    async def drop(self, actor: Actor, enrollment_id: UUID) -> dict:
        """Administrative removal; releases the seat if one was held."""
        require_admin(actor, "drop enrollments")

        async def work(db: AsyncSession) -> dict:
            ledger, capacity = EnrollmentLedger(db), CapacityManager(db)
            enrollment = await ledger.get(enrollment_id, for_update=True)
            transition = plan_drop(enrollment, self.policy)
            await capacity.apply(transition.capacity, enrollment.batch_id)
            self._apply(enrollment, transition)
            await db.flush()
            self._log(transition, enrollment, actor)
            return to_record(enrollment)

        return await self._run(work, "drop")

    async def verify_or_reject(
        self,
        actor: Actor,
        enrollment_id: UUID,
        action: VerificationAction | str,
        notes: str | None = None,
        idempotency_key: str | None = None,
    ) -> VerificationOutcome:
        """Adjudicate a submitted payment exactly once."""
        require_admin(actor, "verify payments")
        action = VerificationAction(action)
        if not idempotency_key and self.require_idempotency_key:
            raise RequestValidationFailure(
                "Idempotency-Key is required for payment verification",
                "idempotency_key",
                ErrorContext(enrollment_id=str(enrollment_id)),
            )

        async def work(db: AsyncSession) -> VerificationOutcome:
            ledger, capacity = EnrollmentLedger(db), CapacityManager(db)
            enrollment = await ledger.get(enrollment_id, for_update=True)

            if idempotency_key:
                previous = await ledger.get_verification_record(idempotency_key)
                if check_idempotent_replay(previous, enrollment_id, action):
                    logger.info(
                        "Verification replayed from idempotency record",
                        extra={
                            "enrollment_id": enrollment_id,
                            "idempotency_key": idempotency_key,
                            "actor_id": actor.id,
                        },
                    )
                    return VerificationOutcome(previous.response, replayed=True)

            decision = evaluate_verification_request(enrollment, action)
            if decision == VerificationDecision.REPLAY:
                logger.info(
                    f"Verification repeat of recorded outcome ({action.value}) ignored",
                    extra={"enrollment_id": enrollment_id, "actor_id": actor.id},
                )
                return VerificationOutcome(to_record(enrollment), replayed=True)

            transition = plan_adjudication(
                action, actor.id, notes, self.clock(), self.policy,
            )
            await capacity.apply(transition.capacity, enrollment.batch_id)
            self._apply(enrollment, transition)
            await db.flush()
            record = to_record(enrollment)

            if idempotency_key:
                await ledger.insert_verification_record(VerificationRecord(
                    idempotency_key=idempotency_key,
                    enrollment_id=enrollment.id,
                    administrator_id=actor.id,
                    action=action.value,
                    notes=enrollment.notes,
                    response=record,
                ))

            self._log(transition, enrollment, actor)
            return VerificationOutcome(record)

        return await self._run(work, "verify_or_reject")

    # ─── Helpers ────────────────────────────────────────────────

    async def _run(self, work, operation: str):
        return await run_in_transaction(
            self.session_factory, work, self.retry, operation,
        )

    @staticmethod
    def _apply(enrollment: Enrollment, transition: Transition) -> None:
        for name, value in transition.changes.items():
            setattr(enrollment, name, value)

    def _log(self, transition: Transition, enrollment: Enrollment, actor: Actor) -> None:
        logger.info(
            f"Enrollment transition: {transition.event}",
            extra={
                "event": transition.event,
                "enrollment_id": enrollment.id,
                "batch_id": enrollment.batch_id,
                "actor_id": actor.id,
                "policy": self.policy.value,
            },
        )
