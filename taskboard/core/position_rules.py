"""Position Rules — pure arithmetic behind every ledger reordering.

Invariants:
    - Positions within one partition are exactly {0, ..., n-1}
    - Every function is PURE: the ledger turns plans into UPDATE statements
    - A ShiftPlan covers the closed range [low, high]; high=None means unbounded

Design Decisions:
    - Plans as frozen dataclasses over ad-hoc tuples: the shell reads plan.low,
      plan.high, plan.delta instead of remembering tuple order
    - Move = remove from dense list + reinsert at target index, expressed as one
      bulk shift of the intervening range
"""

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class ShiftPlan:
    """Shift every position in [low, high] by delta."""
    low: int
    high: int | None
    delta: int

    def covers(self, position: int) -> bool:
        if position < self.low:
            return False
        return self.high is None or position <= self.high


def resolve_insert_position(requested: int | None, count: int) -> int:
    """Explicit position wins; None appends at the tail."""
    return count if requested is None else requested


def check_insert_position(requested: int | None, count: int) -> list[str]:
    """Insert accepts 0..count inclusive (count == append)."""
    if requested is not None and requested > count:
        return [f"Position must be between 0 and {count}"]
    return []


def check_move_target(new_position: int, count: int) -> list[str]:
    """Move accepts 0..count-1: the item already occupies one slot."""
    if new_position >= count:
        return [f"newPosition must be less than {count}"]
    return []


def plan_insert(position: int) -> ShiftPlan:
    """Open a slot at position: successors move up by one."""
    return ShiftPlan(low=position, high=None, delta=1)


def plan_remove(position: int) -> ShiftPlan:
    """Close the gap left at position: successors move down by one."""
    return ShiftPlan(low=position + 1, high=None, delta=-1)


def plan_move(old_position: int, new_position: int) -> ShiftPlan | None:
    """Shift the range between old and new. None when nothing moves."""
    if new_position == old_position:
        return None
    if new_position < old_position:
        return ShiftPlan(low=new_position, high=old_position - 1, delta=1)
    return ShiftPlan(low=old_position + 1, high=new_position, delta=-1)


def densify(ordered: Iterable[tuple[int, int]]) -> list[tuple[int, int]]:
    """Renumber (id, position) pairs already sorted by position to 0..k-1.

    Returns only the pairs whose position changes, as (id, new_position).
    """
    return [
        (item_id, index)
        for index, (item_id, position) in enumerate(ordered)
        if position != index
    ]


def is_dense(positions: Iterable[int]) -> bool:
    """True when positions are exactly {0, ..., n-1}."""
    ordered = sorted(positions)
    return ordered == list(range(len(ordered)))
