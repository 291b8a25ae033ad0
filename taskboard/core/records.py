"""Entity Records — plain data returned by the ledger and catalog.

Invariants:
    - Records are frozen: a record is a snapshot taken inside the transaction
    - to_json() keys are camelCase and stable (public API contract)

Design Decisions:
    - Records instead of ORM objects at the boundary: callers never touch a
      detached SQLAlchemy instance or trigger lazy loads
"""

from dataclasses import dataclass
from datetime import datetime

from taskboard.core.domain_types import ItemId, PartitionId, Position


@dataclass(frozen=True)
class PartitionRecord:
    id: PartitionId
    title: str
    created_at: datetime
    updated_at: datetime

    def to_json(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class ItemRecord:
    id: ItemId
    title: str
    position: Position
    partition_id: PartitionId
    created_at: datetime
    updated_at: datetime

    def to_json(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "position": self.position,
            "partitionId": self.partition_id,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }
