"""Item Routes — HTTP surface of the position ledger.

Invariants:
    - Every handler validates with core/validate_entities.py before calling the ledger
    - Handlers hold no state and contain no ordering logic
    - Fixed paths (/reorder, /move, /partition/...) registered before /{item_id}

Design Decisions:
    - Ledger injected via Depends(get_ledger): swapped for a test double in tests
    - Response bodies are record.to_json() — camelCase keys are the public contract
"""

from fastapi import APIRouter, Depends, status

from taskboard.api.dependencies import get_ledger
from taskboard.core.ledger_protocols import LedgerLike
from taskboard.core.validate_entities import (
    check_identifier,
    check_partition_ref,
    require_valid,
    validate_item_create,
    validate_item_rename,
    validate_move,
    validate_relocate,
    validate_swap,
)
from taskboard.schemas.item import (
    ItemCreate, ItemRename, MoveRequest, RelocateRequest, SwapRequest,
)

router = APIRouter(prefix="/items", tags=["items"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_item(
    body: ItemCreate, ledger: LedgerLike = Depends(get_ledger),
):
    """Create an item at an explicit position or at the tail."""
    require_valid(
        validate_item_create(body.title, body.position, body.partition_id),
    )
    record = await ledger.create_item(
        body.title, body.partition_id, body.position,
    )
    return record.to_json()


@router.get("")
async def list_items(ledger: LedgerLike = Depends(get_ledger)):
    return [r.to_json() for r in await ledger.list_items()]


@router.post("/reorder")
async def swap_items(
    body: SwapRequest, ledger: LedgerLike = Depends(get_ledger),
):
    """Swap the positions of two items."""
    require_valid(validate_swap(body.item_id_a, body.item_id_b))
    await ledger.swap_positions(body.item_id_a, body.item_id_b)
    return {"message": "Items reordered successfully"}


@router.post("/move")
async def relocate_item(
    body: RelocateRequest, ledger: LedgerLike = Depends(get_ledger),
):
    """Move an item to a different partition."""
    require_valid(validate_relocate(
        body.item_id, body.target_partition_id, body.target_position,
    ))
    record = await ledger.relocate_to_partition(
        body.item_id, body.target_partition_id, body.target_position,
    )
    return record.to_json()


@router.get("/partition/{partition_id}")
async def list_partition_items(
    partition_id: int, ledger: LedgerLike = Depends(get_ledger),
):
    """Items of one partition, ordered by position."""
    require_valid(check_partition_ref(partition_id))
    return [
        r.to_json() for r in await ledger.list_partition_items(partition_id)
    ]


@router.put("/{item_id}/reorder-position")
async def move_item(
    item_id: int, body: MoveRequest, ledger: LedgerLike = Depends(get_ledger),
):
    """Change an item's position within its partition."""
    require_valid(validate_move(item_id, body.new_position))
    await ledger.move_within_partition(item_id, body.new_position)
    return {"message": "Item position updated successfully"}


@router.get("/{item_id}")
async def get_item(item_id: int, ledger: LedgerLike = Depends(get_ledger)):
    require_valid(check_identifier(item_id, "Item ID"))
    return (await ledger.get_item(item_id)).to_json()


@router.put("/{item_id}")
async def rename_item(
    item_id: int, body: ItemRename, ledger: LedgerLike = Depends(get_ledger),
):
    """Rename an item. Position changes go through /reorder-position or /move."""
    require_valid(
        check_identifier(item_id, "Item ID") + validate_item_rename(body.title),
    )
    return (await ledger.rename_item(item_id, body.title)).to_json()


@router.delete("/{item_id}")
async def delete_item(item_id: int, ledger: LedgerLike = Depends(get_ledger)):
    """Delete an item; the rest of its partition closes the gap."""
    require_valid(check_identifier(item_id, "Item ID"))
    await ledger.delete_item(item_id)
    return {"message": "Item deleted successfully"}
