"""Boundary Protocols — contracts between the routes and the ledger.

Invariants:
    - Routes depend on these Protocols, never on the concrete service classes
    - Implementations provided via FastAPI dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, test doubles need no inheritance
    - Async in Protocol: implementations do IO; pure rules in core stay sync
"""

from typing import Protocol

from taskboard.core.domain_types import ItemId, PartitionId, Position
from taskboard.core.records import ItemRecord, PartitionRecord


class LedgerLike(Protocol):
    """Contract for item ordering operations — implemented by PositionLedger."""
    async def create_item(
        self, title: str, partition_id: PartitionId,
        position: Position | None = None,
    ) -> ItemRecord: ...
    async def delete_item(self, item_id: ItemId) -> None: ...
    async def swap_positions(
        self, item_id_a: ItemId, item_id_b: ItemId,
    ) -> None: ...
    async def move_within_partition(
        self, item_id: ItemId, new_position: Position,
    ) -> None: ...
    async def relocate_to_partition(
        self, item_id: ItemId, target_partition_id: PartitionId,
        target_position: Position | None = None,
    ) -> ItemRecord: ...
    async def rename_item(self, item_id: ItemId, title: str) -> ItemRecord: ...
    async def get_item(self, item_id: ItemId) -> ItemRecord: ...
    async def list_items(self) -> list[ItemRecord]: ...
    async def list_partition_items(
        self, partition_id: PartitionId,
    ) -> list[ItemRecord]: ...


class CatalogLike(Protocol):
    """Contract for partition CRUD — implemented by PartitionCatalog."""
    async def create_partition(self, title: str) -> PartitionRecord: ...
    async def list_partitions(self) -> list[PartitionRecord]: ...
    async def get_partition(
        self, partition_id: PartitionId,
    ) -> PartitionRecord: ...
    async def rename_partition(
        self, partition_id: PartitionId, title: str,
    ) -> PartitionRecord: ...
    async def delete_partition(self, partition_id: PartitionId) -> None: ...
