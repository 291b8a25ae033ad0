"""Position Ledger — create, delete, swap, move, and relocate items without breaking density.

Invariants:
    - Positions within a partition are {0, ..., n-1} before and after every operation
    - Each public mutation is ONE transaction (services/transactions.py): a failure
      at any statement rolls back every shift already issued
    - Partition rows touched by a mutation are locked before any position is read
    - Input is re-validated here even though the routes already validated it
    - Items are re-read after locking: a concurrent relocate/delete that committed
      while we waited is detected, never overwritten

Design Decisions:
    - Bulk shifts are single UPDATE ... SET position = position +/- 1 statements
      (plans from core/position_rules.py) with synchronize_session=False:
      no loaded instance ever sits inside a shifted range
    - Swap exchanges raw positions across partitions unless
      strict_same_partition_swap is on
    - Relocate does not clamp an explicit target position against the target
      count: a position past the tail leaves a trailing gap
    - Relocate re-densifies the whole source partition (not just the tail):
      it doubles as repair for any prior drift
"""

import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.core.errors import (
    ConcurrencyConflictError, ErrorContext, InvalidArgumentError, NotFoundError,
)
from taskboard.core.position_rules import (
    ShiftPlan,
    check_insert_position,
    check_move_target,
    densify,
    plan_insert,
    plan_move,
    plan_remove,
    resolve_insert_position,
)
from taskboard.core.records import ItemRecord
from taskboard.core.validate_entities import (
    check_identifier,
    check_partition_ref,
    normalize_title,
    require_valid,
    validate_item_create,
    validate_item_rename,
    validate_move,
    validate_relocate,
    validate_swap,
)
from taskboard.models.item import Item
from taskboard.models.partition import Partition
from taskboard.services.transactions import (
    RetryPolicy, StoreLike, lock_partitions, run_in_transaction,
)

logger = logging.getLogger(__name__)


def item_record(item: Item) -> ItemRecord:
    return ItemRecord(
        id=item.id,
        title=item.title,
        position=item.position,
        partition_id=item.partition_id,
        created_at=item.created_at,
        updated_at=item.updated_at,
    )


# ─── Statement helpers ───────────────────────────────────────────

async def _count_items(db: AsyncSession, partition_id: int) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(Item)
        .where(Item.partition_id == partition_id),
    )
    return result.scalar_one()


async def _apply_shift(
    db: AsyncSession, partition_id: int, plan: ShiftPlan,
) -> None:
    """Shift positions in [plan.low, plan.high] of one partition by plan.delta."""
    stmt = (
        update(Item)
        .where(Item.partition_id == partition_id)
        .where(Item.position >= plan.low)
    )
    if plan.high is not None:
        stmt = stmt.where(Item.position <= plan.high)
    await db.execute(
        stmt.values(position=Item.position + plan.delta)
        .execution_options(synchronize_session=False),
    )


async def _densify_partition(db: AsyncSession, partition_id: int) -> int:
    """Renumber a partition to 0..k-1 in current order. Returns rows changed."""
    result = await db.execute(
        select(Item.id, Item.position)
        .where(Item.partition_id == partition_id)
        .order_by(Item.position, Item.id),
    )
    changes = densify(result.tuples().all())
    for item_id, position in changes:
        await db.execute(
            update(Item)
            .where(Item.id == item_id)
            .values(position=position)
            .execution_options(synchronize_session=False),
        )
    return len(changes)


async def _fetch_items(
    db: AsyncSession, item_ids: list[int],
) -> dict[int, Item]:
    result = await db.execute(
        select(Item)
        .where(Item.id.in_(set(item_ids)))
        .execution_options(populate_existing=True),
    )
    return {item.id: item for item in result.scalars().all()}


async def _lock_items(
    db: AsyncSession,
    item_ids: list[int],
    ctx: ErrorContext,
    extra_partitions: tuple[int, ...] = (),
) -> tuple[dict[int, Item], set[int]]:
    """Load items, lock their partitions (plus extras), and re-read the items.

    Returns the locked items and the set of locked partition ids that exist.
    """
    found = await _fetch_items(db, item_ids)
    for item_id in item_ids:
        if item_id not in found:
            raise NotFoundError("Item", item_id, ctx)
    seen_in = {item_id: item.partition_id for item_id, item in found.items()}

    locked = await lock_partitions(
        db, set(seen_in.values()) | set(extra_partitions),
    )

    current = await _fetch_items(db, item_ids)
    for item_id in item_ids:
        if item_id not in current:
            raise NotFoundError("Item", item_id, ctx)
        if current[item_id].partition_id != seen_in[item_id]:
            raise ConcurrencyConflictError(
                f"Item {item_id} changed partition during the operation", ctx,
            )
    return current, locked


class PositionLedger:
    """Invariant-preserving item operations over a transactional store."""

    def __init__(
        self,
        store: StoreLike,
        policy: RetryPolicy = RetryPolicy(),
        strict_same_partition_swap: bool = False,
    ):
        self._store = store
        self._policy = policy
        self._strict_swap = strict_same_partition_swap

    async def _transact(self, operation, work):
        return await run_in_transaction(
            self._store, operation, work, self._policy,
        )

    # ─── Mutations ───────────────────────────────────────────────

    async def create_item(
        self, title: str, partition_id: int, position: int | None = None,
    ) -> ItemRecord:
        """Insert at position (shifting successors up) or append at the tail."""
        ctx = ErrorContext(operation="create_item")
        require_valid(validate_item_create(title, position, partition_id), ctx)
        ctx.partition_id = partition_id
        clean_title = normalize_title(title)

        async def work(db: AsyncSession) -> ItemRecord:
            if partition_id not in await lock_partitions(db, [partition_id]):
                raise NotFoundError("Partition", partition_id, ctx)
            count = await _count_items(db, partition_id)
            require_valid(check_insert_position(position, count), ctx)
            insert_at = resolve_insert_position(position, count)
            if insert_at < count:
                await _apply_shift(db, partition_id, plan_insert(insert_at))
            item = Item(
                title=clean_title, position=insert_at,
                partition_id=partition_id,
            )
            db.add(item)
            await db.flush()
            return item_record(item)

        record = await self._transact("create_item", work)
        logger.info(
            f"Item created at position {record.position}",
            extra={
                "operation": "create_item",
                "item_id": record.id,
                "partition_id": partition_id,
            },
        )
        return record

    async def delete_item(self, item_id: int) -> None:
        """Delete the item and close the gap it leaves in its partition."""
        ctx = ErrorContext(operation="delete_item")
        require_valid(check_identifier(item_id, "Item ID"), ctx)
        ctx.item_id = item_id

        async def work(db: AsyncSession) -> int:
            items, _ = await _lock_items(db, [item_id], ctx)
            item = items[item_id]
            partition_id, removed_at = item.partition_id, item.position
            await db.delete(item)
            await db.flush()
            await _apply_shift(db, partition_id, plan_remove(removed_at))
            return partition_id

        partition_id = await self._transact("delete_item", work)
        logger.info(
            "Item deleted",
            extra={
                "operation": "delete_item",
                "item_id": item_id,
                "partition_id": partition_id,
            },
        )

    async def swap_positions(self, item_id_a: int, item_id_b: int) -> None:
        """Exchange the stored positions of two items."""
        ctx = ErrorContext(operation="swap_positions")
        require_valid(validate_swap(item_id_a, item_id_b), ctx)

        async def work(db: AsyncSession) -> None:
            items, _ = await _lock_items(db, [item_id_a, item_id_b], ctx)
            a, b = items[item_id_a], items[item_id_b]
            if self._strict_swap and a.partition_id != b.partition_id:
                raise InvalidArgumentError(
                    "Items must belong to the same partition to swap", context=ctx,
                )
            if a is b:
                return
            a.position, b.position = b.position, a.position
            await db.flush()

        await self._transact("swap_positions", work)
        logger.info(
            f"Swapped positions of items {item_id_a} and {item_id_b}",
            extra={"operation": "swap_positions"},
        )

    async def move_within_partition(
        self, item_id: int, new_position: int,
    ) -> None:
        """Remove the item from its dense range and reinsert it at new_position."""
        ctx = ErrorContext(operation="move_within_partition")
        require_valid(validate_move(item_id, new_position), ctx)
        ctx.item_id = item_id

        async def work(db: AsyncSession) -> bool:
            items, _ = await _lock_items(db, [item_id], ctx)
            item = items[item_id]
            ctx.partition_id = item.partition_id
            count = await _count_items(db, item.partition_id)
            require_valid(check_move_target(new_position, count), ctx)
            plan = plan_move(item.position, new_position)
            if plan is None:
                return False
            await _apply_shift(db, item.partition_id, plan)
            item.position = new_position
            await db.flush()
            return True

        moved = await self._transact("move_within_partition", work)
        if moved:
            logger.info(
                f"Item moved to position {new_position}",
                extra={
                    "operation": "move_within_partition",
                    "item_id": item_id,
                    "partition_id": ctx.partition_id,
                },
            )

    async def relocate_to_partition(
        self,
        item_id: int,
        target_partition_id: int,
        target_position: int | None = None,
    ) -> ItemRecord:
        """Move the item to another partition; the source re-densifies."""
        ctx = ErrorContext(operation="relocate_to_partition")
        require_valid(
            validate_relocate(item_id, target_partition_id, target_position),
            ctx,
        )
        ctx.item_id = item_id
        ctx.partition_id = target_partition_id

        async def work(db: AsyncSession) -> ItemRecord:
            items, locked = await _lock_items(
                db, [item_id], ctx, extra_partitions=(target_partition_id,),
            )
            item = items[item_id]
            if target_partition_id not in locked:
                raise NotFoundError("Partition", target_partition_id, ctx)
            source_id = item.partition_id
            if source_id == target_partition_id:
                raise InvalidArgumentError(
                    "Item is already in this partition", context=ctx,
                )

            if target_position is None:
                final_position = await _count_items(db, target_partition_id)
            else:
                final_position = target_position
                await _apply_shift(
                    db, target_partition_id, plan_insert(final_position),
                )

            item.partition_id = target_partition_id
            item.position = final_position
            await db.flush()
            await _densify_partition(db, source_id)
            return item_record(item)

        record = await self._transact("relocate_to_partition", work)
        logger.info(
            f"Item relocated to position {record.position}",
            extra={
                "operation": "relocate_to_partition",
                "item_id": item_id,
                "partition_id": target_partition_id,
            },
        )
        return record

    async def rename_item(self, item_id: int, title: str) -> ItemRecord:
        """Change the title only; position and partition go through move/relocate."""
        ctx = ErrorContext(operation="rename_item")
        require_valid(
            check_identifier(item_id, "Item ID") + validate_item_rename(title),
            ctx,
        )
        ctx.item_id = item_id
        clean_title = normalize_title(title)

        async def work(db: AsyncSession) -> ItemRecord:
            item = await db.get(Item, item_id)
            if item is None:
                raise NotFoundError("Item", item_id, ctx)
            item.title = clean_title
            await db.flush()
            return item_record(item)

        return await self._transact("rename_item", work)

    # ─── Reads ───────────────────────────────────────────────────

    async def get_item(self, item_id: int) -> ItemRecord:
        ctx = ErrorContext(operation="get_item")
        require_valid(check_identifier(item_id, "Item ID"), ctx)
        ctx.item_id = item_id

        async def work(db: AsyncSession) -> ItemRecord:
            item = await db.get(Item, item_id)
            if item is None:
                raise NotFoundError("Item", item_id, ctx)
            return item_record(item)

        return await self._transact("get_item", work)

    async def list_items(self) -> list[ItemRecord]:
        """All items, grouped by partition and ordered by position."""
        async def work(db: AsyncSession) -> list[ItemRecord]:
            result = await db.execute(
                select(Item).order_by(Item.partition_id, Item.position, Item.id),
            )
            return [item_record(i) for i in result.scalars().all()]

        return await self._transact("list_items", work)

    async def list_partition_items(
        self, partition_id: int,
    ) -> list[ItemRecord]:
        ctx = ErrorContext(operation="list_partition_items")
        require_valid(check_partition_ref(partition_id), ctx)
        ctx.partition_id = partition_id

        async def work(db: AsyncSession) -> list[ItemRecord]:
            exists = await db.execute(
                select(Partition.id).where(Partition.id == partition_id),
            )
            if exists.scalar_one_or_none() is None:
                raise NotFoundError("Partition", partition_id, ctx)
            result = await db.execute(
                select(Item)
                .where(Item.partition_id == partition_id)
                .order_by(Item.position, Item.id),
            )
            return [item_record(i) for i in result.scalars().all()]

        return await self._transact("list_partition_items", work)
