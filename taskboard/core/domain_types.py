"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - PartitionId, ItemId wrap store-assigned positive integers
    - Position is a zero-based order key, dense within one partition

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
"""

from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

PartitionId = NewType("PartitionId", int)
ItemId = NewType("ItemId", int)


# ─── Value Types ─────────────────────────────────────────────────

Position = NewType("Position", int)   # 0..n-1 within a partition
