"""ORM Models — SQLAlchemy declarative models for partitions and items.

Invariants:
    - All models inherit from Base (db/base.py)
    - Partition is the aggregate root; items scoped by partition_id

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from taskboard.models.partition import Partition  # noqa: F401
from taskboard.models.item import Item  # noqa: F401
