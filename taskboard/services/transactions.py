"""Transaction Runner — one atomic unit of work per ledger operation, with bounded retry.

Invariants:
    - work(db) runs inside session.begin(): commit on success, rollback on any exception
    - Only StoreFailureError with retryable=True is retried (serialization
      failure, deadlock, lock timeout) — validation and not-found errors never are
    - After max_retries a still-transient failure surfaces as ConcurrencyConflictError
      (chained to the store error); non-retryable failures surface unchanged
    - lock_partitions() takes row locks in ascending id order (no lock-order deadlocks)

Design Decisions:
    - Retry wraps the whole transaction, not single statements: a conflicting
      transaction must re-read the partition it lost the race on
    - Exponential backoff with ±25% jitter: concurrent losers do not retry in lockstep
    - SELECT ... FOR UPDATE on partition rows scopes the write set per partition;
      SQLite ignores FOR UPDATE and relies on BEGIN IMMEDIATE (infrastructure/database.py)
"""

import asyncio
import logging
import random
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Protocol, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.errors import ConcurrencyConflictError, StoreFailureError
from taskboard.models.partition import Partition

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreLike(Protocol):
    """Anything that hands out auto-rollback sessions (DatabaseSessionManager)."""
    def session(self) -> AbstractAsyncContextManager[AsyncSession]: ...


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry-on-conflict settings."""
    max_retries: int = 3
    base_delay_ms: int = 20
    max_delay_ms: int = 1000

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("retry delays must be >= 0")

    def backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311


async def run_in_transaction(
    store: StoreLike,
    operation: str,
    work: Callable[[AsyncSession], Awaitable[T]],
    policy: RetryPolicy = RetryPolicy(),
) -> T:
    """Run work(db) atomically, retrying transient store conflicts."""
    for attempt in range(policy.max_retries + 1):
        try:
            async with store.session() as db:
                async with db.begin():
                    return await work(db)
        except StoreFailureError as e:
            if not e.retryable or attempt >= policy.max_retries:
                logger.error(
                    f"{operation} failed: {e.message}",
                    extra={
                        "operation": operation,
                        "error_code": e.code,
                        "attempt": attempt + 1,
                        "retryable": e.retryable,
                    },
                )
                if e.retryable and not isinstance(e, ConcurrencyConflictError):
                    raise ConcurrencyConflictError(
                        f"{operation} still conflicting after "
                        f"{policy.max_retries} retries",
                        e.context,
                    ) from e
                raise
            delay = policy.backoff(attempt)
            logger.warning(
                f"{operation} hit a transient conflict, retry after {delay}ms",
                extra={
                    "operation": operation,
                    "error_code": e.code,
                    "attempt": attempt + 1,
                    "delay_ms": delay,
                    "retryable": True,
                },
            )
            await asyncio.sleep(delay / 1000)
    raise AssertionError("unreachable")  # max_retries >= 0: the loop runs at least once


async def lock_partitions(
    db: AsyncSession, partition_ids: Iterable[int],
) -> set[int]:
    """Lock the given partition rows; returns the ids that exist."""
    ordered = sorted(set(partition_ids))
    if not ordered:
        return set()
    result = await db.execute(
        select(Partition.id)
        .where(Partition.id.in_(ordered))
        .order_by(Partition.id)
        .with_for_update(),
    )
    return set(result.scalars().all())
