"""Unit of Work — runs one engine operation as exactly one transaction.

Invariants:
    - Success commits once, after every cascade step has been flushed
    - A failed result after any flush rolls back: no partial unit is ever committed
    - A failed result before any flush ends the transaction with commit, which only
      releases row locks (nothing was written) and keeps loaded rows unexpired
    - After a rollback every row still in the session is re-read from the database,
      so objects returned by earlier operations stay readable without lazy IO
    - MembershipRejectedError raised from a nested stage becomes a failed result
    - IntegrityError (a unique index lost a race) becomes ConcurrencyError so the
      session manager can retry the whole operation
"""

import logging
from typing import Awaitable, Callable

from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError, InvalidRequestError
from sqlalchemy.ext.asyncio import AsyncSession

from housing_draw.core.errors import (
    ConcurrencyError, HousingDrawError, MembershipRejectedError,
)
from housing_draw.core.results import OperationResult

logger = logging.getLogger(__name__)


class UnitOfWork:
    """Transaction boundary shared by the services built on one session."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.wrote = False

    async def flush(self) -> None:
        self.wrote = True
        await self.db.flush()

    async def run(
        self, operation: Callable[..., Awaitable[OperationResult]], *args, **kwargs,
    ) -> OperationResult:
        self.wrote = False
        try:
            result = await operation(*args, **kwargs)
        except MembershipRejectedError as e:
            await self.rollback()
            logger.info(
                "Unit of work rolled back", extra={"errors": e.errors},
            )
            return OperationResult.failed(e.errors)
        except IntegrityError as e:
            await self.rollback()
            logger.warning(f"Unique index conflict: {e.orig}")
            raise ConcurrencyError(
                "Membership write conflicted with a concurrent write",
            ) from e
        except HousingDrawError:
            await self.rollback()
            raise
        except Exception:
            await self.db.rollback()
            raise

        if result.success or not self.wrote:
            await self.db.commit()
        else:
            await self.rollback()
        return result

    async def rollback(self) -> None:
        """Roll back, then reload the rows the rollback expired."""
        await self.db.rollback()
        for row in list(self.db.identity_map.values()):
            if not inspect(row).expired_attributes:
                continue
            try:
                await self.db.refresh(row)
            except InvalidRequestError:
                # deleted by a concurrent transaction
                self.db.expunge(row)
        await self.db.commit()
