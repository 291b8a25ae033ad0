"""Root conftest — shared fixtures: per-test SQLite store, ledger, catalog, HTTP client.

Invariants:
    - Every test gets a fresh file-backed SQLite database (tmp_path)
    - The engine is built by create_store_engine, so tests run with the same
      foreign-key and BEGIN IMMEDIATE setup as production SQLite
    - get_db_manager dependency overridden so routes use the test store

Design Decisions:
    - File-backed over :memory:: concurrent transactions need separate
      connections, and an in-memory database lives on a single connection
    - Retry delays near zero: conflict tests stay fast
"""

import os

# Ensure tests never touch a real database
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")

import pytest
from types import SimpleNamespace
from httpx import ASGITransport, AsyncClient

import taskboard.infrastructure.database as db_module
import taskboard.models  # noqa: F401
from taskboard.db.base import Base
from taskboard.infrastructure.database import (
    DatabaseSessionManager, create_store_engine, get_db_manager,
)
from taskboard.main import app
from taskboard.services.partition_catalog import PartitionCatalog
from taskboard.services.position_ledger import PositionLedger
from taskboard.services.transactions import RetryPolicy


FAST_RETRY = RetryPolicy(max_retries=5, base_delay_ms=1, max_delay_ms=10)


@pytest.fixture
async def test_engine(tmp_path):
    engine = create_store_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'taskboard.db'}",
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(test_engine):
    return DatabaseSessionManager.from_engine(test_engine)


@pytest.fixture
def ledger(store):
    return PositionLedger(store, FAST_RETRY)


@pytest.fixture
def strict_ledger(store):
    return PositionLedger(store, FAST_RETRY, strict_same_partition_swap=True)


@pytest.fixture
def catalog(store):
    return PartitionCatalog(store, FAST_RETRY)


@pytest.fixture
async def board(catalog, ledger):
    """Partition P1 with A(0), B(1), C(2); empty partition P2."""
    p1 = await catalog.create_partition("To Do")
    p2 = await catalog.create_partition("Done")
    a = await ledger.create_item("A", p1.id)
    b = await ledger.create_item("B", p1.id)
    c = await ledger.create_item("C", p1.id)
    return SimpleNamespace(p1=p1, p2=p2, a=a, b=b, c=c)


@pytest.fixture
def layout(ledger):
    """Async helper: {title: position} for one partition."""
    async def _layout(partition_id: int) -> dict[str, int]:
        items = await ledger.list_partition_items(partition_id)
        return {item.title: item.position for item in items}
    return _layout


@pytest.fixture
async def client(store):
    """FastAPI test client with the store dependency overridden."""
    app.dependency_overrides[get_db_manager] = lambda: store

    original_manager = db_module.db_manager
    db_module.db_manager = store

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
