"""Partition Catalog — create, list, rename, and delete partitions.

Invariants:
    - Titles validated and stripped before persistence
    - Deleting a partition deletes its items in the same transaction; the
      invariant holds trivially for the (now empty) partition
    - Every operation runs through run_in_transaction (same rollback/retry rules
      as the ledger)

Design Decisions:
    - Deletion locks the partition row first: an in-flight ledger operation on
      the same partition finishes (or waits) before the cascade runs
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.errors import ErrorContext, NotFoundError
from taskboard.core.records import PartitionRecord
from taskboard.core.validate_entities import (
    check_partition_ref,
    normalize_title,
    require_valid,
    validate_partition_payload,
)
from taskboard.models.partition import Partition
from taskboard.services.transactions import (
    RetryPolicy, StoreLike, lock_partitions, run_in_transaction,
)

logger = logging.getLogger(__name__)


def partition_record(partition: Partition) -> PartitionRecord:
    return PartitionRecord(
        id=partition.id,
        title=partition.title,
        created_at=partition.created_at,
        updated_at=partition.updated_at,
    )


class PartitionCatalog:
    """Partition CRUD over a transactional store."""

    def __init__(self, store: StoreLike, policy: RetryPolicy = RetryPolicy()):
        self._store = store
        self._policy = policy

    async def _get_or_404(
        self, db: AsyncSession, partition_id: int, ctx: ErrorContext,
    ) -> Partition:
        partition = await db.get(Partition, partition_id)
        if partition is None:
            raise NotFoundError("Partition", partition_id, ctx)
        return partition

    async def create_partition(self, title: str) -> PartitionRecord:
        ctx = ErrorContext(operation="create_partition")
        require_valid(validate_partition_payload(title), ctx)

        async def work(db: AsyncSession) -> PartitionRecord:
            partition = Partition(title=normalize_title(title))
            db.add(partition)
            await db.flush()
            return partition_record(partition)

        record = await run_in_transaction(
            self._store, "create_partition", work, self._policy,
        )
        logger.info(
            "Partition created",
            extra={"operation": "create_partition", "partition_id": record.id},
        )
        return record

    async def list_partitions(self) -> list[PartitionRecord]:
        async def work(db: AsyncSession) -> list[PartitionRecord]:
            result = await db.execute(select(Partition).order_by(Partition.id))
            return [partition_record(p) for p in result.scalars().all()]

        return await run_in_transaction(
            self._store, "list_partitions", work, self._policy,
        )

    async def get_partition(self, partition_id: int) -> PartitionRecord:
        ctx = ErrorContext(operation="get_partition")
        require_valid(check_partition_ref(partition_id), ctx)
        ctx.partition_id = partition_id

        async def work(db: AsyncSession) -> PartitionRecord:
            return partition_record(await self._get_or_404(db, partition_id, ctx))

        return await run_in_transaction(
            self._store, "get_partition", work, self._policy,
        )

    async def rename_partition(
        self, partition_id: int, title: str,
    ) -> PartitionRecord:
        ctx = ErrorContext(operation="rename_partition")
        require_valid(
            check_partition_ref(partition_id) + validate_partition_payload(title),
            ctx,
        )
        ctx.partition_id = partition_id

        async def work(db: AsyncSession) -> PartitionRecord:
            partition = await self._get_or_404(db, partition_id, ctx)
            partition.title = normalize_title(title)
            await db.flush()
            return partition_record(partition)

        return await run_in_transaction(
            self._store, "rename_partition", work, self._policy,
        )

    async def delete_partition(self, partition_id: int) -> None:
        """Delete the partition and cascade to all of its items."""
        ctx = ErrorContext(operation="delete_partition")
        require_valid(check_partition_ref(partition_id), ctx)
        ctx.partition_id = partition_id

        async def work(db: AsyncSession) -> int:
            if partition_id not in await lock_partitions(db, [partition_id]):
                raise NotFoundError("Partition", partition_id, ctx)
            partition = await self._get_or_404(db, partition_id, ctx)
            removed = len(partition.items)
            await db.delete(partition)
            await db.flush()
            return removed

        removed = await run_in_transaction(
            self._store, "delete_partition", work, self._policy,
        )
        logger.info(
            f"Partition deleted with {removed} item(s)",
            extra={"operation": "delete_partition", "partition_id": partition_id},
        )
