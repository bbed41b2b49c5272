"""Group Service — group lifecycle operations built on the membership engine.

Invariants:
    - Each public method is one transaction; membership effects go through
      MembershipService stages on the SAME unit of work
    - A group is created together with its leader's accepted membership, or not at all
    - finalizing and suite assignment are inputs from suite selection; this service
      only records them
    - lock_memberships locks through the normal update path, so the last lock
      moves the group to locked
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from housing_draw.core.domain_types import (
    AT_CAPACITY_STATUSES, GroupStatus, MembershipStatus,
)
from housing_draw.core.enforce_membership import USER_MISSING
from housing_draw.core.errors import (
    ErrorContext, MembershipRejectedError, ResourceNotFoundError,
)
from housing_draw.core.repository_protocols import GroupCleanupHook
from housing_draw.core.results import OperationResult
from housing_draw.models.draw import Draw
from housing_draw.models.group import Group
from housing_draw.models.membership import Membership
from housing_draw.models.suite import Suite
from housing_draw.models.user import User
from housing_draw.schemas.group import GroupCreate
from housing_draw.schemas.membership import MembershipCreate, MembershipUpdate
from housing_draw.services.membership_service import MembershipService

logger = logging.getLogger(__name__)

SIZE_TOO_SMALL = "Size must be at least 1"
DRAW_MISSING = "Draw must exist"
NOT_FULL = "Only full groups can begin suite selection"
NOT_FINALIZING = "Suites can only be assigned to finalizing groups"
SUITE_MISSING = "Suite must exist"
SUITE_TAKEN = "Suite is already assigned to another group"


class GroupService:
    """Create, fill, finalize, lock and disband groups."""

    def __init__(self, db: AsyncSession, cleanup: GroupCleanupHook | None = None):
        self.db = db
        self.memberships = MembershipService(db, cleanup)
        self.uow = self.memberships.uow

    async def get(self, group_id: UUID) -> Group:
        result = await self.db.execute(
            select(Group)
            .where(Group.id == group_id)
            .execution_options(populate_existing=True),
        )
        group = result.scalar_one_or_none()
        if group is None:
            raise ResourceNotFoundError(
                "Group", str(group_id), ErrorContext(group_id=str(group_id)),
            )
        return group

    # ─── Membership shortcuts ──────────────────────────────────

    async def add_member(self, group_id: UUID, user_id: UUID) -> OperationResult:
        """Directly add an accepted member (leader or admin action)."""
        return await self.memberships.create(MembershipCreate(
            group_id=group_id, user_id=user_id, status=MembershipStatus.ACCEPTED,
        ))

    async def invite(self, group_id: UUID, user_id: UUID) -> OperationResult:
        return await self.memberships.create(MembershipCreate(
            group_id=group_id, user_id=user_id, status=MembershipStatus.INVITED,
        ))

    async def request(self, group_id: UUID, user_id: UUID) -> OperationResult:
        return await self.memberships.create(MembershipCreate(
            group_id=group_id, user_id=user_id, status=MembershipStatus.REQUESTED,
        ))

    async def accept(self, membership_id: UUID) -> OperationResult:
        """Accept an invitation or approve a request."""
        return await self.memberships.update(
            membership_id, MembershipUpdate(status=MembershipStatus.ACCEPTED),
        )

    # ─── Lifecycle ─────────────────────────────────────────────

    async def create_group(self, data: GroupCreate) -> OperationResult:
        return await self.uow.run(self._create_group, data)

    async def start_finalizing(self, group_id: UUID) -> OperationResult:
        return await self.uow.run(self._start_finalizing, group_id)

    async def assign_suite(self, group_id: UUID, suite_id: UUID) -> OperationResult:
        return await self.uow.run(self._assign_suite, group_id, suite_id)

    async def lock_memberships(self, group_id: UUID) -> OperationResult:
        return await self.uow.run(self._lock_memberships, group_id)

    async def disband(self, group_id: UUID) -> OperationResult:
        return await self.uow.run(self._disband, group_id)

    # ─── Stages ────────────────────────────────────────────────

    async def _create_group(self, data: GroupCreate) -> OperationResult:
        errors = []
        if data.size < 1:
            errors.append(SIZE_TOO_SMALL)
        if await self.db.get(Draw, data.draw_id) is None:
            errors.append(DRAW_MISSING)
        if await self.db.get(User, data.leader_id) is None:
            errors.append(USER_MISSING)
        if errors:
            return OperationResult.failed(errors)

        group = Group(
            draw_id=data.draw_id,
            leader_id=data.leader_id,
            size=data.size,
            status=GroupStatus.OPEN.value,
            memberships_count=0,
        )
        self.db.add(group)
        await self.uow.flush()

        result = await self.memberships.stage_create(MembershipCreate(
            group_id=group.id,
            user_id=data.leader_id,
            status=MembershipStatus.ACCEPTED,
        ))
        if not result.success:
            raise MembershipRejectedError(result.errors)

        logger.info(
            "Group created",
            extra={"group_id": group.id, "draw_id": data.draw_id, "user_id": data.leader_id},
        )
        return OperationResult.ok(group)

    async def _start_finalizing(self, group_id: UUID) -> OperationResult:
        group = await self._lock(group_id)
        if GroupStatus(group.status) not in AT_CAPACITY_STATUSES:
            return OperationResult.failed([NOT_FULL], record=group)
        group.status = GroupStatus.FINALIZING.value
        await self.uow.flush()
        logger.info("Group entered suite selection", extra={"group_id": group.id})
        return OperationResult.ok(group)

    async def _assign_suite(self, group_id: UUID, suite_id: UUID) -> OperationResult:
        group = await self._lock(group_id)
        if group.status != GroupStatus.FINALIZING.value:
            return OperationResult.failed([NOT_FINALIZING], record=group)
        if await self.db.get(Suite, suite_id) is None:
            return OperationResult.failed([SUITE_MISSING], record=group)
        holder = await self.db.scalar(
            select(Group.id)
            .where(Group.suite_id == suite_id)
            .where(Group.id != group.id),
        )
        if holder is not None:
            return OperationResult.failed([SUITE_TAKEN], record=group)

        group.suite_id = suite_id
        await self.uow.flush()
        logger.info("Suite assigned", extra={"group_id": group.id})
        return OperationResult.ok(group)

    async def _lock_memberships(self, group_id: UUID) -> OperationResult:
        group = await self._lock(group_id)
        result = await self.db.execute(
            select(Membership.id)
            .where(Membership.group_id == group.id)
            .where(Membership.status == MembershipStatus.ACCEPTED.value)
            .where(Membership.locked.is_(False))
            .order_by(Membership.created_at),
        )
        for membership_id in result.scalars().all():
            locked = await self.memberships.stage_update(membership_id, {"locked": True})
            if not locked.success:
                raise MembershipRejectedError(
                    locked.errors, ErrorContext(group_id=str(group.id)),
                )
        return OperationResult.ok(group)

    async def _disband(self, group_id: UUID) -> OperationResult:
        group = await self._lock(group_id)
        result = await self.db.execute(
            select(Membership.id).where(Membership.group_id == group.id),
        )
        for membership_id in result.scalars().all():
            destroyed = await self.memberships.stage_destroy(membership_id)
            if not destroyed.success:
                raise MembershipRejectedError(
                    destroyed.errors, ErrorContext(group_id=str(group.id)),
                )
        await self.db.delete(group)
        await self.uow.flush()
        logger.info("Group disbanded", extra={"group_id": group_id})
        return OperationResult.ok()

    async def _lock(self, group_id: UUID) -> Group:
        result = await self.db.execute(
            select(Group)
            .where(Group.id == group_id)
            .with_for_update()
            .execution_options(populate_existing=True),
        )
        group = result.scalar_one_or_none()
        if group is None:
            raise ResourceNotFoundError(
                "Group", str(group_id), ErrorContext(group_id=str(group_id)),
            )
        return group
