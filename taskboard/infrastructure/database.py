"""Database Session Manager — async connection pool with automatic rollback and health checks.

Invariants:
    - Every session auto-rolls-back on exception (no partial commits leak)
    - All SQLAlchemy exceptions mapped to StoreFailureError (core/errors.py)
    - Transient conflicts (serialization failure, deadlock, SQLite lock) are
      flagged retryable; everything else is not
    - SQLite connections enforce foreign keys and take the write lock at BEGIN

Design Decisions:
    - Singleton db_manager initialized on startup: FastAPI lifespan manages lifecycle
      (ADR: no global import side effects)
    - expire_on_commit=False: records are built after commit without reloading
    - BEGIN IMMEDIATE on SQLite: readers that later write would otherwise
      deadlock on lock upgrade; taking the lock up front serializes writers
      the same way row locks do on PostgreSQL
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.exc import (
    IntegrityError, OperationalError, DBAPIError, SQLAlchemyError,
)

from taskboard.core.errors import StoreFailureError

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected
_RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})


def is_transient_conflict(error: Exception) -> bool:
    """True for errors a fresh transaction may succeed on."""
    orig = getattr(error, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        code = (
            getattr(candidate, "sqlstate", None)
            or getattr(candidate, "pgcode", None)
        )
        if code in _RETRYABLE_SQLSTATES:
            return True
    return "database is locked" in str(orig or error).lower()


def _enable_sqlite_write_locking(engine: AsyncEngine) -> None:
    """Foreign keys on, and every transaction opens with BEGIN IMMEDIATE."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # stop the driver from emitting its own deferred BEGIN
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_store_engine(
    database_url: str,
    pool_size: int = 20,
    max_overflow: int = 10,
    isolation_level: str | None = None,
) -> AsyncEngine:
    """Create the async engine for the configured backend."""
    if database_url.startswith("sqlite"):
        engine = create_async_engine(database_url)
        _enable_sqlite_write_locking(engine)
        return engine
    options = {"isolation_level": isolation_level} if isolation_level else {}
    return create_async_engine(
        database_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
        pool_recycle=3600,
        **options,
    )


class DatabaseSessionManager:
    """Manages async database sessions with pooling, rollback, and health checks."""

    def __init__(
        self,
        database_url: str,
        pool_size: int = 20,
        max_overflow: int = 10,
        isolation_level: str | None = None,
    ):
        self.engine = create_store_engine(
            database_url, pool_size, max_overflow, isolation_level,
        )
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_engine(cls, engine: AsyncEngine) -> "DatabaseSessionManager":
        """Wrap an existing engine (tests, scripts)."""
        manager = cls.__new__(cls)
        manager.engine = engine
        manager._session_factory = async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False,
        )
        return manager

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide session with auto-rollback on exception."""
        session = self._session_factory()
        try:
            yield session
        except IntegrityError as e:
            await session.rollback()
            logger.error(f"DB integrity error: {e}")
            raise StoreFailureError(
                "Integrity constraint violated", "commit",
            ) from e
        except OperationalError as e:
            await session.rollback()
            retryable = is_transient_conflict(e)
            log = logger.warning if retryable else logger.error
            log(f"DB operational error: {e}")
            raise StoreFailureError(
                "Connection or operational error", "execute", retryable,
            ) from e
        except DBAPIError as e:
            await session.rollback()
            retryable = is_transient_conflict(e)
            log = logger.warning if retryable else logger.error
            log(f"DB driver error: {e}")
            raise StoreFailureError(
                "Database driver error", "query", retryable,
            ) from e
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"SQLAlchemy error: {e}")
            raise StoreFailureError("Database operation failed", "unknown") from e
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """Check database connectivity (for readiness probes)."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"DB health check failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


# Singleton (initialized on startup)
db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs):
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)


def get_db_manager() -> DatabaseSessionManager:
    """FastAPI dependency for the store used by the ledger and catalog."""
    if not db_manager:
        raise RuntimeError("Database not initialized")
    return db_manager
