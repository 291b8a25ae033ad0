"""Position Ledger — integration tests against a real SQLite store.

Invariants:
    - After every operation each partition's positions are {0, ..., n-1}
    - Failed operations leave the store exactly as before

Tests cover:
    - CreateItem: append, insert-before-tail, tail insert, out-of-range, missing partition
    - DeleteItem: gap closing, other partitions untouched, missing item
    - SwapPositions: exchange, idempotence, cross-partition (lenient and strict)
    - MoveWithinPartition: earlier, later, identity no-op, out-of-range
    - RelocateToPartition: append, explicit position, trailing gap, round-trip
    - Density holds across a long deterministic sequence of mixed operations
    - A failure after shifts were issued rolls the whole operation back
    - Ids and positions past the store INTEGER are rejected before any query
    - Long titles and UTC timestamps survive a write-then-read round-trip
"""

import random

import pytest

import taskboard.services.position_ledger as ledger_module
from taskboard.core.errors import (
    InvalidArgumentError, NotFoundError, StoreFailureError,
)
from taskboard.core.position_rules import is_dense
from taskboard.core.validate_entities import MAX_STORE_INT


# ─── CreateItem ──────────────────────────────────────────────────

async def test_create_appends_at_tail(board, layout):
    assert await layout(board.p1.id) == {"A": 0, "B": 1, "C": 2}


async def test_create_returns_record_with_stripped_title(ledger, board):
    record = await ledger.create_item("  Review PR  ", board.p2.id)
    assert record.title == "Review PR"
    assert record.position == 0
    assert record.partition_id == board.p2.id
    assert record.id > 0
    assert record.to_json()["partitionId"] == board.p2.id


async def test_create_at_position_shifts_successors(ledger, board, layout):
    await ledger.create_item("D", board.p1.id, position=1)
    assert await layout(board.p1.id) == {"A": 0, "D": 1, "B": 2, "C": 3}


async def test_create_at_zero_shifts_everything(ledger, board, layout):
    await ledger.create_item("Z", board.p1.id, position=0)
    assert await layout(board.p1.id) == {"Z": 0, "A": 1, "B": 2, "C": 3}


async def test_create_at_count_appends(ledger, board, layout):
    await ledger.create_item("D", board.p1.id, position=3)
    assert await layout(board.p1.id) == {"A": 0, "B": 1, "C": 2, "D": 3}


async def test_create_past_tail_rejected_without_writes(ledger, board, layout):
    with pytest.raises(InvalidArgumentError, match="between 0 and 3"):
        await ledger.create_item("D", board.p1.id, position=4)
    assert await layout(board.p1.id) == {"A": 0, "B": 1, "C": 2}


async def test_create_in_missing_partition(ledger):
    with pytest.raises(NotFoundError, match="Partition '999' not found"):
        await ledger.create_item("Orphan", 999)


async def test_create_aggregates_validation_errors(ledger):
    with pytest.raises(InvalidArgumentError) as exc:
        await ledger.create_item("   ", -1, position=-5)
    assert len(exc.value.violations) == 3


# ─── DeleteItem ──────────────────────────────────────────────────

async def test_delete_middle_renumbers_remaining(ledger, board, layout):
    await ledger.delete_item(board.b.id)
    assert await layout(board.p1.id) == {"A": 0, "C": 1}


async def test_delete_head_renumbers_remaining(ledger, board, layout):
    await ledger.delete_item(board.a.id)
    assert await layout(board.p1.id) == {"B": 0, "C": 1}


async def test_delete_leaves_other_partitions_untouched(ledger, board, layout):
    await ledger.create_item("X", board.p2.id)
    await ledger.create_item("Y", board.p2.id)
    await ledger.delete_item(board.a.id)
    assert await layout(board.p2.id) == {"X": 0, "Y": 1}


async def test_delete_missing_item(ledger, board):
    with pytest.raises(NotFoundError, match="Item '404' not found"):
        await ledger.delete_item(404)


async def test_delete_rejects_non_positive_id(ledger):
    with pytest.raises(InvalidArgumentError):
        await ledger.delete_item(0)


# ─── SwapPositions ───────────────────────────────────────────────

async def test_swap_exchanges_positions(ledger, board, layout):
    await ledger.swap_positions(board.a.id, board.c.id)
    assert await layout(board.p1.id) == {"C": 0, "B": 1, "A": 2}


async def test_swap_twice_restores(ledger, board, layout):
    await ledger.swap_positions(board.a.id, board.b.id)
    await ledger.swap_positions(board.a.id, board.b.id)
    assert await layout(board.p1.id) == {"A": 0, "B": 1, "C": 2}


async def test_swap_with_itself_is_noop(ledger, board, layout):
    await ledger.swap_positions(board.b.id, board.b.id)
    assert await layout(board.p1.id) == {"A": 0, "B": 1, "C": 2}


async def test_swap_names_missing_item(ledger, board):
    with pytest.raises(NotFoundError, match="Item '777' not found"):
        await ledger.swap_positions(board.a.id, 777)


async def test_swap_across_partitions_exchanges_raw_positions(
    ledger, board, layout,
):
    x = await ledger.create_item("X", board.p2.id)
    await ledger.swap_positions(board.c.id, x.id)
    assert await layout(board.p1.id) == {"A": 0, "B": 1, "C": 0}
    assert await layout(board.p2.id) == {"X": 2}


async def test_strict_swap_rejects_cross_partition(
    strict_ledger, ledger, board, layout,
):
    x = await ledger.create_item("X", board.p2.id)
    with pytest.raises(InvalidArgumentError, match="same partition"):
        await strict_ledger.swap_positions(board.c.id, x.id)
    assert await layout(board.p1.id) == {"A": 0, "B": 1, "C": 2}


async def test_strict_swap_allows_same_partition(strict_ledger, board, layout):
    await strict_ledger.swap_positions(board.a.id, board.b.id)
    assert await layout(board.p1.id) == {"B": 0, "A": 1, "C": 2}


# ─── MoveWithinPartition ─────────────────────────────────────────

async def test_move_last_to_first(ledger, board, layout):
    await ledger.move_within_partition(board.c.id, 0)
    assert await layout(board.p1.id) == {"C": 0, "A": 1, "B": 2}


async def test_move_first_to_last(ledger, board, layout):
    await ledger.move_within_partition(board.a.id, 2)
    assert await layout(board.p1.id) == {"B": 0, "C": 1, "A": 2}


async def test_move_to_current_position_touches_nothing(ledger, board, layout):
    before = await ledger.list_partition_items(board.p1.id)
    await ledger.move_within_partition(board.b.id, 1)
    after = await ledger.list_partition_items(board.p1.id)
    assert before == after


async def test_move_out_of_range_rejected(ledger, board, layout):
    with pytest.raises(InvalidArgumentError, match="less than 3"):
        await ledger.move_within_partition(board.a.id, 3)
    assert await layout(board.p1.id) == {"A": 0, "B": 1, "C": 2}


async def test_move_missing_item(ledger):
    with pytest.raises(NotFoundError):
        await ledger.move_within_partition(12345, 0)


# ─── RelocateToPartition ─────────────────────────────────────────

async def test_relocate_to_empty_partition(ledger, board, layout):
    record = await ledger.relocate_to_partition(board.a.id, board.p2.id)
    assert record.partition_id == board.p2.id
    assert record.position == 0
    assert await layout(board.p2.id) == {"A": 0}
    assert await layout(board.p1.id) == {"B": 0, "C": 1}


async def test_relocate_appends_to_non_empty_target(ledger, board, layout):
    await ledger.create_item("X", board.p2.id)
    record = await ledger.relocate_to_partition(board.b.id, board.p2.id)
    assert record.position == 1
    assert await layout(board.p2.id) == {"X": 0, "B": 1}
    assert await layout(board.p1.id) == {"A": 0, "C": 1}


async def test_relocate_to_explicit_position_shifts_target(
    ledger, board, layout,
):
    await ledger.create_item("X", board.p2.id)
    await ledger.create_item("Y", board.p2.id)
    await ledger.relocate_to_partition(board.c.id, board.p2.id, 0)
    assert await layout(board.p2.id) == {"C": 0, "X": 1, "Y": 2}
    assert await layout(board.p1.id) == {"A": 0, "B": 1}


async def test_relocate_past_target_tail_is_not_clamped(ledger, board, layout):
    record = await ledger.relocate_to_partition(board.a.id, board.p2.id, 5)
    assert record.position == 5
    assert await layout(board.p2.id) == {"A": 5}
    assert await layout(board.p1.id) == {"B": 0, "C": 1}


async def test_relocate_to_same_partition_rejected(ledger, board):
    with pytest.raises(InvalidArgumentError, match="already in this partition"):
        await ledger.relocate_to_partition(board.a.id, board.p1.id)


async def test_relocate_to_missing_partition(ledger, board, layout):
    with pytest.raises(NotFoundError, match="Partition '999' not found"):
        await ledger.relocate_to_partition(board.a.id, 999)
    assert await layout(board.p1.id) == {"A": 0, "B": 1, "C": 2}


async def test_relocate_missing_item(ledger, board):
    with pytest.raises(NotFoundError, match="Item '999' not found"):
        await ledger.relocate_to_partition(999, board.p2.id)


async def test_relocate_round_trip_preserves_identity(ledger, board, layout):
    await ledger.relocate_to_partition(board.a.id, board.p2.id)
    assert await layout(board.p1.id) == {"B": 0, "C": 1}

    back = await ledger.relocate_to_partition(board.a.id, board.p1.id)
    assert back.id == board.a.id
    assert back.title == "A"
    assert await layout(board.p1.id) == {"B": 0, "C": 1, "A": 2}
    assert await layout(board.p2.id) == {}


# ─── Rename / reads ──────────────────────────────────────────────

async def test_rename_keeps_position(ledger, board):
    record = await ledger.rename_item(board.b.id, "  Renamed ")
    assert record.title == "Renamed"
    assert record.position == 1
    assert (await ledger.get_item(board.b.id)).title == "Renamed"


async def test_get_missing_item(ledger):
    with pytest.raises(NotFoundError):
        await ledger.get_item(31337)


async def test_list_items_ordered_by_partition_then_position(ledger, board):
    await ledger.create_item("X", board.p2.id)
    await ledger.move_within_partition(board.c.id, 0)
    titles = [r.title for r in await ledger.list_items()]
    assert titles == ["C", "A", "B", "X"]


async def test_list_items_of_missing_partition(ledger):
    with pytest.raises(NotFoundError):
        await ledger.list_partition_items(999)


# ─── Density under mixed operations ──────────────────────────────

async def test_density_holds_across_mixed_operations(ledger, catalog):
    rng = random.Random(7)
    partitions = [
        (await catalog.create_partition(f"P{i}")).id for i in range(3)
    ]
    for n in range(6):
        await ledger.create_item(f"seed-{n}", partitions[n % 3])

    for step in range(60):
        items = await ledger.list_items()
        op = rng.choice(["create", "delete", "move", "relocate", "swap"])
        if op == "create" or not items:
            pid = rng.choice(partitions)
            count = len(await ledger.list_partition_items(pid))
            await ledger.create_item(
                f"step-{step}", pid, rng.choice([None, rng.randint(0, count)]),
            )
        elif op == "delete":
            await ledger.delete_item(rng.choice(items).id)
        elif op == "move":
            item = rng.choice(items)
            count = len(await ledger.list_partition_items(item.partition_id))
            await ledger.move_within_partition(item.id, rng.randrange(count))
        elif op == "relocate":
            item = rng.choice(items)
            target = rng.choice([p for p in partitions if p != item.partition_id])
            await ledger.relocate_to_partition(item.id, target)
        else:
            item = rng.choice(items)
            peers = await ledger.list_partition_items(item.partition_id)
            await ledger.swap_positions(item.id, rng.choice(peers).id)

        for pid in partitions:
            positions = [
                r.position for r in await ledger.list_partition_items(pid)
            ]
            assert is_dense(positions), (step, op, pid, positions)


# ─── Atomicity ───────────────────────────────────────────────────

async def test_failure_after_shift_rolls_back_everything(
    ledger, board, layout, monkeypatch,
):
    async def _boom(db, partition_id):
        raise StoreFailureError("disk I/O error", "execute")

    await ledger.create_item("X", board.p2.id)
    monkeypatch.setattr(ledger_module, "_densify_partition", _boom)

    with pytest.raises(StoreFailureError):
        await ledger.relocate_to_partition(board.a.id, board.p2.id, 0)

    assert await layout(board.p1.id) == {"A": 0, "B": 1, "C": 2}
    assert await layout(board.p2.id) == {"X": 0}


# ─── Store limits ────────────────────────────────────────────────

async def test_delete_id_past_store_integer_rejected(ledger, board, layout):
    with pytest.raises(InvalidArgumentError, match="at most 2147483647"):
        await ledger.delete_item(2**63)
    assert await layout(board.p1.id) == {"A": 0, "B": 1, "C": 2}


async def test_delete_id_at_store_ceiling_is_not_found(ledger):
    with pytest.raises(NotFoundError):
        await ledger.delete_item(MAX_STORE_INT)


async def test_relocate_position_past_store_integer_rejected(
    ledger, board, layout,
):
    with pytest.raises(InvalidArgumentError, match="targetPosition"):
        await ledger.relocate_to_partition(board.a.id, board.p2.id, 2**63)
    assert await layout(board.p1.id) == {"A": 0, "B": 1, "C": 2}
    assert await layout(board.p2.id) == {}


async def test_long_title_round_trips(ledger, board):
    title = "Refactor " + "x" * 990
    record = await ledger.create_item(title, board.p2.id)
    assert (await ledger.get_item(record.id)).title == title


async def test_timestamps_identical_on_write_and_read(ledger, board):
    fetched = await ledger.get_item(board.a.id)
    assert fetched == board.a
    assert fetched.created_at.utcoffset().total_seconds() == 0
    assert fetched.to_json()["createdAt"] == board.a.to_json()["createdAt"]


async def test_rename_updates_timestamp_as_utc(ledger, board):
    renamed = await ledger.rename_item(board.a.id, "A2")
    fetched = await ledger.get_item(board.a.id)
    assert fetched.updated_at == renamed.updated_at
    assert fetched.updated_at >= board.a.updated_at
    assert fetched.to_json()["updatedAt"].endswith("+00:00")
