"""Entity Validation — pure structural checks for partition and item payloads.

Invariants:
    - Every check is PURE: returns a list of violation messages, never raises
    - Checks aggregate: a payload with three problems yields three messages
    - require_valid() is the single place that turns violations into InvalidArgumentError
    - bool is rejected wherever an integer is expected (bool subclasses int)
    - Ids and positions above MAX_STORE_INT are rejected here: they can never
      name a stored row and the INTEGER columns cannot hold them

Design Decisions:
    - Messages over exceptions: routes report every problem at once
      (ADR: one round-trip per fix, not one per field)
    - Shared by routes and ledger: the ledger re-runs the same checks before it writes
"""

from typing import Any

from taskboard.core.errors import ErrorContext, InvalidArgumentError


TITLE_MESSAGE = "Title must be a non-empty string"
PARTITION_MESSAGE = "Partition ID must be a positive integer"

# INTEGER columns are 32-bit signed on PostgreSQL
MAX_STORE_INT = 2**31 - 1


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _too_large(label: str) -> list[str]:
    return [f"{label} must be at most {MAX_STORE_INT}"]


# ─── Field checks ────────────────────────────────────────────────

def check_title(value: Any) -> list[str]:
    """Title must be a string that is non-empty once stripped."""
    if not isinstance(value, str) or not value.strip():
        return [TITLE_MESSAGE]
    return []


def check_position(value: Any, label: str = "Position") -> list[str]:
    if not _is_int(value) or value < 0:
        return [f"{label} must be a non-negative integer"]
    if value > MAX_STORE_INT:
        return _too_large(label)
    return []


def check_identifier(value: Any, label: str) -> list[str]:
    """Store-assigned ids are positive integers."""
    if not _is_int(value) or value <= 0:
        return [f"{label} must be a positive integer"]
    if value > MAX_STORE_INT:
        return _too_large(label)
    return []


def check_partition_ref(value: Any) -> list[str]:
    if not _is_int(value) or value <= 0:
        return [PARTITION_MESSAGE]
    if value > MAX_STORE_INT:
        return _too_large("Partition ID")
    return []


def normalize_title(value: str) -> str:
    """The stripped form is what gets persisted."""
    return value.strip()


# ─── Payload checks ──────────────────────────────────────────────

def validate_partition_payload(title: Any) -> list[str]:
    return check_title(title)


def validate_item_create(
    title: Any, position: Any, partition_id: Any,
) -> list[str]:
    """Item creation: position is optional (None means append)."""
    errors = check_title(title)
    if position is not None:
        errors += check_position(position)
    errors += check_partition_ref(partition_id)
    return errors


def validate_item_rename(title: Any) -> list[str]:
    return check_title(title)


def validate_swap(item_id_a: Any, item_id_b: Any) -> list[str]:
    return (
        check_identifier(item_id_a, "itemIdA")
        + check_identifier(item_id_b, "itemIdB")
    )


def validate_move(item_id: Any, new_position: Any) -> list[str]:
    return (
        check_identifier(item_id, "Item ID")
        + check_position(new_position, "newPosition")
    )


def validate_relocate(
    item_id: Any, target_partition_id: Any, target_position: Any,
) -> list[str]:
    errors = check_identifier(item_id, "itemId")
    errors += check_identifier(target_partition_id, "targetPartitionId")
    if target_position is not None:
        errors += check_position(target_position, "targetPosition")
    return errors


# ─── Enforcement ─────────────────────────────────────────────────

def require_valid(
    errors: list[str], context: ErrorContext | None = None,
) -> None:
    """Raise a single InvalidArgumentError carrying every violation."""
    if errors:
        raise InvalidArgumentError(", ".join(errors), errors, context)
