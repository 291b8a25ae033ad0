"""Item ORM — an entry ("task") in exactly one partition, carrying an order key.

Invariants:
    - Always belongs to a Partition (partition_id FK, ON DELETE CASCADE)
    - position >= 0; within one partition positions are {0, ..., n-1}
      (maintained by services/position_ledger.py, not by a constraint)

Design Decisions:
    - Non-unique index on (partition_id, position): bulk "position = position + 1"
      updates would trip a per-row unique check mid-statement; the ledger owns
      uniqueness instead
    - Created and repositioned only through the ledger
    - title is unbounded Text: any title the validator accepts can be stored
"""

from datetime import datetime, timezone

from sqlalchemy import Integer, Text, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskboard.db.base import Base, UTCDateTime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Item(Base):
    """Item entity — ordered within its partition."""
    __tablename__ = "items"
    __table_args__ = (
        Index("ix_items_partition_position", "partition_id", "position"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    partition_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("partitions.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False,
        default=_utcnow, onupdate=_utcnow,
    )

    partition: Mapped["Partition"] = relationship(
        "Partition", back_populates="items",
    )
