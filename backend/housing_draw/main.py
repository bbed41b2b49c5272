"""Engine entry point — wires settings, logging and the database for a host process.

Invariants:
    - bootstrap() is called once per process, before any transact() call
    - transact() runs a whole operation in one session and retries it on
      ConcurrencyError up to settings.transaction_max_attempts

Example:
    bootstrap()
    result = await transact(
        lambda db: GroupService(db).accept(membership_id),
    )
"""

import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from housing_draw.config import Settings, get_settings
from housing_draw.infrastructure.database import (
    DatabaseSessionManager, get_db_manager, init_db,
)
from housing_draw.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)

T = TypeVar("T")


def bootstrap(settings: Settings | None = None) -> DatabaseSessionManager:
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        isolation_level=settings.database_isolation_level,
    )
    logger.info("Housing draw engine started")
    return manager


async def transact(
    operation: Callable[[AsyncSession], Awaitable[T]],
    settings: Settings | None = None,
) -> T:
    settings = settings or get_settings()
    return await get_db_manager().run_in_transaction(
        operation, max_attempts=settings.transaction_max_attempts,
    )
