"""Draw Service — trusted lifecycle operations over a whole draw.

Invariants:
    - teardown is the ONLY caller of the force-destroy path
    - Forced destroys still maintain counters and invoke cleanup; they skip validation,
      so locked memberships are removed too
    - Users and suites outlive the draw: they are detached, not deleted
"""

import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from housing_draw.core.errors import ErrorContext, ResourceNotFoundError
from housing_draw.core.repository_protocols import GroupCleanupHook
from housing_draw.core.results import OperationResult
from housing_draw.models.draw import Draw
from housing_draw.models.group import Group
from housing_draw.models.membership import Membership
from housing_draw.models.suite import Suite
from housing_draw.models.user import User
from housing_draw.services.membership_service import MembershipService

logger = logging.getLogger(__name__)


class DrawService:

    def __init__(self, db: AsyncSession, cleanup: GroupCleanupHook | None = None):
        self.db = db
        self.memberships = MembershipService(db, cleanup)
        self.uow = self.memberships.uow

    async def teardown(self, draw_id: UUID) -> OperationResult:
        """Delete a draw with all of its groups and memberships."""
        return await self.uow.run(self._teardown, draw_id)

    async def _teardown(self, draw_id: UUID) -> OperationResult:
        draw = await self.db.get(Draw, draw_id)
        if draw is None:
            raise ResourceNotFoundError(
                "Draw", str(draw_id), ErrorContext(draw_id=str(draw_id)),
            )

        groups = (await self.db.execute(
            select(Group).where(Group.draw_id == draw_id),
        )).scalars().all()
        for group in groups:
            membership_ids = (await self.db.execute(
                select(Membership.id).where(Membership.group_id == group.id),
            )).scalars().all()
            for membership_id in membership_ids:
                await self.memberships.stage_destroy(membership_id, force=True)
            await self.db.delete(group)
        await self.uow.flush()

        await self.db.execute(
            update(User).where(User.draw_id == draw_id).values(draw_id=None),
        )
        await self.db.execute(
            update(Suite).where(Suite.draw_id == draw_id).values(draw_id=None),
        )
        await self.db.delete(draw)
        await self.uow.flush()
        logger.info(
            "Draw torn down",
            extra={"draw_id": draw_id},
        )
        return OperationResult.ok()
