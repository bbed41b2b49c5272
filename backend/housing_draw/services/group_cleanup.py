"""Group Cleanup — default post-destroy reconciliation for a group.

Invariants:
    - Idempotent: running it after the engine has already applied a transition is a no-op
    - Recounts accepted and locked rows from the table, never from the cached counter
    - Repairs a drifted memberships_count before recomputing status
    - A missing group is ignored (it may be mid-teardown)
"""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from housing_draw.core.domain_types import GroupStatus, MembershipStatus
from housing_draw.core.group_status import next_group_status
from housing_draw.models.group import Group
from housing_draw.models.membership import Membership

logger = logging.getLogger(__name__)


class GroupCleanup:
    """Best-effort status and counter reconciliation, run inside the caller's transaction."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def __call__(self, group_id: UUID) -> None:
        group = await self.db.get(Group, group_id)
        if group is None:
            return

        accepted = await self._count(group_id, Membership.status == MembershipStatus.ACCEPTED.value)
        locked = await self._count(group_id, Membership.locked.is_(True))

        if accepted != group.memberships_count:
            logger.warning(
                f"Repairing memberships_count {group.memberships_count} -> {accepted}",
                extra={"group_id": group_id},
            )
            group.memberships_count = accepted

        new_status = next_group_status(
            GroupStatus(group.status), group.size, accepted, locked,
        )
        if new_status:
            logger.info(
                "Cleanup moved group status",
                extra={"group_id": group_id, "transition": f"{group.status}->{new_status.value}"},
            )
            group.status = new_status.value
        await self.db.flush()

    async def _count(self, group_id: UUID, condition) -> int:
        count = await self.db.scalar(
            select(func.count())
            .select_from(Membership)
            .where(Membership.group_id == group_id)
            .where(condition),
        )
        return count or 0
