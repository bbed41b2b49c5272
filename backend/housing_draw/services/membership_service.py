"""Membership Service — the transactional shell around the membership rules.

Invariants:
    - Locks are taken in one order: user row, group row, membership row
    - Snapshots are read AFTER locking, inside the writing transaction
    - Pipeline per write: validate -> write row -> counter -> group status -> cascade
    - Every destroy, cascaded or not, goes through stage_destroy and calls cleanup once
    - The triggering row is flushed before its cascade runs; the unit commits once
    - A cascade locks all of its groups in id order before destroying; the triggering
      group is already held, so two opposing cascades can still deadlock and are
      resolved by the session manager's retry on SQLSTATE 40P01
    - Reading a membership that is gone raises ResourceNotFoundError

Design Decisions:
    - SELECT ... FOR UPDATE with populate_existing: the identity map is refreshed
      from the locked row, never trusted across transactions
"""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from housing_draw.core.enforce_membership import GROUP_MISSING, USER_MISSING
from housing_draw.core.errors import (
    ErrorContext, MembershipRejectedError, ResourceNotFoundError,
)
from housing_draw.core.membership_change import (
    MembershipChange, plan_create, plan_destroy, plan_effects, plan_update,
)
from housing_draw.core.repository_protocols import GroupCleanupHook
from housing_draw.core.results import OperationResult
from housing_draw.core.snapshots import (
    GroupSnapshot, MembershipSnapshot, UserSnapshot,
)
from housing_draw.models.group import Group
from housing_draw.models.membership import Membership
from housing_draw.models.user import User
from housing_draw.schemas.membership import MembershipCreate, MembershipUpdate
from housing_draw.services.group_cleanup import GroupCleanup
from housing_draw.services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class MembershipService:
    """Create, update and destroy memberships with their cascading effects."""

    def __init__(
        self,
        db: AsyncSession,
        cleanup: GroupCleanupHook | None = None,
        uow: UnitOfWork | None = None,
    ):
        self.db = db
        self.uow = uow or UnitOfWork(db)
        self.cleanup = cleanup or GroupCleanup(db)

    # ─── Reads ──────────────────────────────────────────────────

    async def get(self, membership_id: UUID) -> Membership:
        membership = await self._find(membership_id)
        if membership is None:
            raise ResourceNotFoundError(
                "Membership", str(membership_id),
                ErrorContext(membership_id=str(membership_id)),
            )
        return membership

    async def list_for_group(self, group_id: UUID) -> list[Membership]:
        result = await self.db.execute(
            select(Membership)
            .where(Membership.group_id == group_id)
            .order_by(Membership.created_at)
            .execution_options(populate_existing=True),
        )
        return list(result.scalars().all())

    async def list_for_user(self, user_id: UUID) -> list[Membership]:
        result = await self.db.execute(
            select(Membership)
            .where(Membership.user_id == user_id)
            .order_by(Membership.created_at)
            .execution_options(populate_existing=True),
        )
        return list(result.scalars().all())

    # ─── Writes (one transaction each) ─────────────────────────

    async def create(self, data: MembershipCreate) -> OperationResult:
        return await self.uow.run(self.stage_create, data)

    async def update(
        self, membership_id: UUID, data: MembershipUpdate,
    ) -> OperationResult:
        return await self.uow.run(self.stage_update, membership_id, data.changes())

    async def destroy(self, membership_id: UUID) -> OperationResult:
        return await self.uow.run(self.stage_destroy, membership_id)

    async def force_destroy(self, membership_id: UUID) -> OperationResult:
        """Trusted lifecycle path: skips validation, keeps counter and status exact."""
        return await self.uow.run(self.stage_destroy, membership_id, force=True)

    # ─── Stages (caller's transaction) ─────────────────────────

    async def stage_create(self, data: MembershipCreate) -> OperationResult:
        user = await self._lock_user(data.user_id)
        group = await self._lock_group(data.group_id)
        missing = [
            msg for row, msg in ((group, GROUP_MISSING), (user, USER_MISSING))
            if row is None
        ]
        if missing:
            return self._rejected(missing, group_id=data.group_id, user_id=data.user_id)

        candidate = MembershipSnapshot(
            id=None, user_id=user.id, group_id=group.id,
            status=data.status, locked=data.locked,
        )
        change = plan_create(
            candidate,
            UserSnapshot.from_row(user),
            await self._group_snapshot(group),
            await self._draw_memberships(user),
        )
        if not change.ok:
            return self._rejected(change.errors, group_id=group.id, user_id=user.id)

        membership = Membership(
            group_id=group.id,
            user_id=user.id,
            status=data.status.value,
            locked=data.locked,
        )
        self.db.add(membership)
        await self.uow.flush()
        await self._apply(group, change)
        logger.info(
            "Membership created",
            extra={
                "membership_id": membership.id, "group_id": group.id,
                "user_id": user.id,
            },
        )
        await self._cascade(change)
        return OperationResult.ok(membership)

    async def stage_update(self, membership_id: UUID, changes: dict) -> OperationResult:
        current = await self.get(membership_id)
        user = await self._lock_user(current.user_id)
        group = await self._lock_group(current.group_id)
        membership = await self._lock_membership(membership_id)

        change = plan_update(
            MembershipSnapshot.from_row(membership),
            changes,
            await self._group_snapshot(group),
            await self._draw_memberships(user),
        )
        if not change.ok:
            return self._rejected(
                change.errors, record=membership,
                membership_id=membership.id, group_id=group.id,
            )

        membership.status = change.after.status.value
        membership.locked = change.after.locked
        await self.uow.flush()
        await self._apply(group, change)
        logger.info(
            "Membership updated",
            extra={
                "membership_id": membership.id, "group_id": group.id,
                "user_id": user.id,
            },
        )
        await self._cascade(change)
        return OperationResult.ok(membership)

    async def stage_destroy(
        self, membership_id: UUID, force: bool = False,
    ) -> OperationResult:
        current = await self.get(membership_id)
        await self._lock_user(current.user_id)
        group = await self._lock_group(current.group_id)
        membership = await self._lock_membership(membership_id)

        before = MembershipSnapshot.from_row(membership)
        snapshot = await self._group_snapshot(group)
        change = (
            plan_effects(before, None, snapshot) if force
            else plan_destroy(before, snapshot)
        )
        if not change.ok:
            return self._rejected(
                change.errors, record=membership,
                membership_id=membership.id, group_id=group.id,
            )

        await self.db.delete(membership)
        await self.uow.flush()
        await self._apply(group, change)
        await self.cleanup(group.id)
        logger.info(
            "Membership destroyed",
            extra={
                "membership_id": before.id, "group_id": group.id,
                "user_id": before.user_id,
            },
        )
        return OperationResult.ok()

    # ─── Pipeline steps ────────────────────────────────────────

    async def _apply(self, group: Group, change: MembershipChange) -> None:
        """Counter maintenance and group status, on the locked group row."""
        if change.counter_delta:
            group.memberships_count += change.counter_delta
        if change.status_transition:
            group.status = change.status_transition.current.value
            logger.info(
                "Group status changed",
                extra={
                    "group_id": group.id,
                    "transition": (
                        f"{change.status_transition.previous.value}"
                        f"->{change.status_transition.current.value}"
                    ),
                },
            )
        await self.uow.flush()

    async def _cascade(self, change: MembershipChange) -> None:
        """Destroy competing pending memberships; any failure aborts the unit."""
        if not change.cascade:
            return
        await self._lock_groups_of(change.cascade)
        for membership_id in change.cascade:
            if await self._find(membership_id) is None:
                continue
            result = await self.stage_destroy(membership_id)
            if not result.success:
                raise MembershipRejectedError(
                    result.errors, ErrorContext(membership_id=str(membership_id)),
                )

    def _rejected(self, errors, record=None, **ids) -> OperationResult:
        logger.info(
            "Membership write rejected", extra={"errors": list(errors), **ids},
        )
        return OperationResult.failed(errors, record=record)

    # ─── Queries ───────────────────────────────────────────────

    async def _find(self, membership_id: UUID) -> Membership | None:
        result = await self.db.execute(
            select(Membership)
            .where(Membership.id == membership_id)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def _lock_user(self, user_id: UUID) -> User | None:
        result = await self.db.execute(
            select(User)
            .where(User.id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def _lock_group(self, group_id: UUID) -> Group | None:
        result = await self.db.execute(
            select(Group)
            .where(Group.id == group_id)
            .with_for_update()
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def _lock_groups_of(self, membership_ids) -> None:
        """Lock the groups of several memberships at once, in id order."""
        group_ids = select(Membership.group_id).where(Membership.id.in_(membership_ids))
        await self.db.execute(
            select(Group.id)
            .where(Group.id.in_(group_ids))
            .order_by(Group.id)
            .with_for_update(),
        )

    async def _lock_membership(self, membership_id: UUID) -> Membership:
        result = await self.db.execute(
            select(Membership)
            .where(Membership.id == membership_id)
            .with_for_update()
            .execution_options(populate_existing=True),
        )
        membership = result.scalar_one_or_none()
        if membership is None:
            raise ResourceNotFoundError(
                "Membership", str(membership_id),
                ErrorContext(membership_id=str(membership_id)),
            )
        return membership

    async def _group_snapshot(self, group: Group) -> GroupSnapshot:
        locked_count = await self.db.scalar(
            select(func.count())
            .select_from(Membership)
            .where(Membership.group_id == group.id)
            .where(Membership.locked.is_(True)),
        )
        return GroupSnapshot.from_row(group, locked_count=locked_count or 0)

    async def _draw_memberships(self, user: User) -> list[MembershipSnapshot]:
        """The user's memberships in their own draw."""
        query = (
            select(Membership)
            .join(Group, Group.id == Membership.group_id)
            .where(Membership.user_id == user.id)
            .order_by(Membership.created_at)
        )
        if user.draw_id is not None:
            query = query.where(Group.draw_id == user.draw_id)
        result = await self.db.execute(query)
        return [MembershipSnapshot.from_row(m) for m in result.scalars().all()]
