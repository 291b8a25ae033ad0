"""Route Dependencies — build the ledger and catalog for each request.

Invariants:
    - Routes receive LedgerLike / CatalogLike, never construct services themselves
    - Retry and swap-strictness settings flow from Settings, not from call sites

Design Decisions:
    - Plain dependency functions: tests swap them via app.dependency_overrides
"""

from fastapi import Depends

from taskboard.config import Settings, get_settings
from taskboard.core.ledger_protocols import CatalogLike, LedgerLike
from taskboard.infrastructure.database import (
    DatabaseSessionManager, get_db_manager,
)
from taskboard.services.partition_catalog import PartitionCatalog
from taskboard.services.position_ledger import PositionLedger
from taskboard.services.transactions import RetryPolicy


def retry_policy(settings: Settings) -> RetryPolicy:
    return RetryPolicy(
        max_retries=settings.ledger_max_retries,
        base_delay_ms=settings.ledger_retry_base_delay_ms,
        max_delay_ms=settings.ledger_retry_max_delay_ms,
    )


def get_ledger(
    store: DatabaseSessionManager = Depends(get_db_manager),
) -> LedgerLike:
    settings = get_settings()
    return PositionLedger(
        store,
        retry_policy(settings),
        strict_same_partition_swap=settings.strict_same_partition_swap,
    )


def get_catalog(
    store: DatabaseSessionManager = Depends(get_db_manager),
) -> CatalogLike:
    return PartitionCatalog(store, retry_policy(get_settings()))
