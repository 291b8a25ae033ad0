"""Item Schemas — JSON bodies for item creation, rename, reorder, and relocation.

Invariants:
    - Field types are Any: wrong types reach validate_entities and are reported
      alongside every other violation instead of as a separate 422 shape
    - Aliases match the public camelCase keys; snake_case accepted too

Design Decisions:
    - Optional position fields default to None: None means "append" to the ledger
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ItemCreate(_Body):
    title: Any = None
    position: Any = None
    partition_id: Any = Field(None, alias="partitionId")


class ItemRename(_Body):
    title: Any = None


class SwapRequest(_Body):
    item_id_a: Any = Field(None, alias="itemIdA")
    item_id_b: Any = Field(None, alias="itemIdB")


class MoveRequest(_Body):
    new_position: Any = Field(None, alias="newPosition")


class RelocateRequest(_Body):
    item_id: Any = Field(None, alias="itemId")
    target_partition_id: Any = Field(None, alias="targetPartitionId")
    target_position: Any = Field(None, alias="targetPosition")
