"""Database Session Manager — async connection pool, rollback, and conflict retries.

Invariants:
    - Every session auto-rolls-back on exception (no partial commits leak)
    - Connection pool uses pool_pre_ping for stale connection detection
    - Serialization failures and deadlocks map to ConcurrencyError; every other
      SQLAlchemy exception maps to DatabaseError (core/errors.py)
    - run_in_transaction retries ConcurrencyError with a FRESH session each attempt

Design Decisions:
    - Singleton db_manager initialized by bootstrap(): no global import side effects
    - expire_on_commit=False: results handed back after commit stay readable
    - Isolation level set on the engine so every membership write is serializable
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.exc import (
    IntegrityError, OperationalError, DBAPIError, SQLAlchemyError,
)
from sqlalchemy import text

from housing_draw.core.errors import ConcurrencyError, DatabaseError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# serialization_failure, deadlock_detected
_RETRYABLE_SQLSTATES = {"40001", "40P01"}


def is_retryable(exc: DBAPIError) -> bool:
    """True for conflicts a fresh transaction can resolve."""
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _RETRYABLE_SQLSTATES:
        return True
    # sqlite reports writer contention as OperationalError("database is locked")
    return isinstance(exc, OperationalError) and "database is locked" in str(exc)


class DatabaseSessionManager:
    """Manages async database sessions with pooling, rollback, and health checks."""

    def __init__(
        self,
        database_url: str,
        pool_size: int = 20,
        max_overflow: int = 10,
        isolation_level: str | None = None,
    ):
        engine_kwargs: dict = {"pool_pre_ping": True, "pool_recycle": 3600}
        if not database_url.startswith("sqlite"):
            engine_kwargs.update(pool_size=pool_size, max_overflow=max_overflow)
        if isolation_level:
            engine_kwargs["isolation_level"] = isolation_level
        self.engine = create_async_engine(database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide session with auto-rollback on exception."""
        session = self._session_factory()
        try:
            yield session
        except IntegrityError as e:
            await session.rollback()
            logger.warning(f"DB integrity conflict: {e}")
            raise ConcurrencyError("Integrity constraint violated by a concurrent write")
        except DBAPIError as e:
            await session.rollback()
            if is_retryable(e):
                logger.warning(f"DB serialization conflict: {e}")
                raise ConcurrencyError("Transaction conflicted with a concurrent write")
            if isinstance(e, OperationalError):
                logger.error(f"DB operational error: {e}")
                raise DatabaseError("Connection or operational error", "execute")
            logger.error(f"DB driver error: {e}")
            raise DatabaseError("Database driver error", "query")
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"SQLAlchemy error: {e}")
            raise DatabaseError("Database operation failed", "unknown")
        except BaseException:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def run_in_transaction(
        self,
        operation: Callable[[AsyncSession], Awaitable[T]],
        max_attempts: int = 3,
    ) -> T:
        """Run operation(session); retry the whole operation on ConcurrencyError."""
        attempt = 1
        while True:
            try:
                async with self.session() as db:
                    return await operation(db)
            except ConcurrencyError:
                if attempt >= max_attempts:
                    logger.error(
                        "Transaction failed after retries",
                        extra={"attempt": attempt, "error_code": "CONCURRENCY_CONFLICT"},
                    )
                    raise
                logger.warning(
                    "Retrying transaction after conflict", extra={"attempt": attempt},
                )
                attempt += 1

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


# Singleton (initialized by bootstrap)
db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)
    return db_manager


def get_db_manager() -> DatabaseSessionManager:
    if not db_manager:
        raise RuntimeError("Database not initialized")
    return db_manager
