"""Partition ORM — a named grouping ("board") that owns an ordered set of items.

Invariants:
    - id is an autoincrement integer primary key
    - title is non-nullable unbounded Text, stored stripped
    - Timestamps are aware UTC on read and write (UTCDateTime)
    - Deleting a partition deletes its items (ORM cascade + FK ON DELETE CASCADE)

Design Decisions:
    - lazy="selectin" on items: async sessions cannot lazy-load, and the ORM
      cascade on delete needs the children loaded
    - No ordering among partitions: listing sorts by id
"""

from datetime import datetime, timezone

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskboard.db.base import Base, UTCDateTime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Partition(Base):
    """Partition aggregate — owns its items' dense position range."""
    __tablename__ = "partitions"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False,
        default=_utcnow, onupdate=_utcnow,
    )

    items: Mapped[list["Item"]] = relationship(
        "Item", back_populates="partition",
        cascade="all, delete-orphan", lazy="selectin",
        order_by="Item.position",
    )
