"""Transaction Runner — one unit of work per commit, bounded retry on transient storage failures.

Invariants:
    - work(db) runs inside ONE session; commit happens here, never inside work
    - Only StorageFailureError with transient=True is retried; domain errors
      and ConcurrencyError propagate on the first occurrence
    - A retry re-runs the whole unit with a fresh session: capacity changes are
      never partially applied
    - Max max_retries retries with exponential backoff and ±25% jitter

Design Decisions:
    - Retry at the transaction boundary, not per statement: a reserve and the
      enrollment insert it pays for must succeed or fail together
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from academy.core.errors import StorageFailureError
from academy.infrastructure.database import SessionFactory

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay_ms: int = 50
    max_delay_ms: int = 2_000

    def backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter (milliseconds)."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311


async def run_in_transaction(
    session_factory: SessionFactory,
    work: Callable[[AsyncSession], Awaitable[T]],
    retry: RetryPolicy | None = None,
    operation: str = "transaction",
) -> T:
    """Run work(db) and commit; retry the whole unit on transient storage failure."""
    retry = retry or RetryPolicy()
    for attempt in range(retry.max_retries + 1):
        try:
            async with session_factory() as db:
                result = await work(db)
                await db.commit()
                return result
        except StorageFailureError as e:
            if not e.transient or attempt >= retry.max_retries:
                logger.error(
                    f"{operation} failed after {attempt + 1} attempt(s): {e.message}",
                    extra={"error_code": e.code, "attempt": attempt + 1},
                )
                raise
            delay = retry.backoff(attempt)
            logger.warning(
                f"{operation}: transient storage failure, retry after {delay}ms",
                extra={"error_code": e.code, "attempt": attempt + 1},
            )
            await asyncio.sleep(delay / 1000)
    raise RuntimeError("unreachable")  # pragma: no cover
