"""Unit of Work — one transaction per operation, rows stay readable after failure.

Invariants:
    - A failed unit leaves no partial write and no expired rows behind
    - A lost unique-index race surfaces as ConcurrencyError and is retried
"""

from uuid import uuid4

import pytest

from housing_draw.core.errors import ConcurrencyError, ResourceNotFoundError
from housing_draw.core.results import OperationResult
from housing_draw.db.base import Base
from housing_draw.infrastructure.database import DatabaseSessionManager
from housing_draw.models.draw import Draw
from housing_draw.models.user import User
from housing_draw.schemas.group import GroupCreate
from housing_draw.schemas.membership import MembershipCreate
from housing_draw.services.group_service import GroupService
from housing_draw.services.membership_service import MembershipService
from housing_draw.services.unit_of_work import UnitOfWork


ALREADY_ACCEPTED = "User already has an accepted membership in this draw"


async def _without_draw_memberships(self, user):
    return []


# ─── Commit and rollback ─────────────────────────────────────────

async def test_failed_result_after_flush_rolls_back(make_group, test_db):
    group = await make_group(size=3)
    uow = UnitOfWork(test_db)

    async def _bump():
        group.memberships_count = 7
        await uow.flush()
        return OperationResult.failed(["Cannot edit locked membership"])

    result = await uow.run(_bump)

    assert result.errors == ["Cannot edit locked membership"]
    assert group.memberships_count == 1
    assert group.status == "open"


async def test_failed_result_without_writes_commits(make_group, test_db):
    group = await make_group(size=3)
    uow = UnitOfWork(test_db)

    async def _reject():
        return OperationResult.failed(["Cannot join a group that is not open"])

    result = await uow.run(_reject)

    assert not result.success
    assert not uow.wrote
    assert group.memberships_count == 1


async def test_not_found_keeps_loaded_rows_readable(memberships, make_group):
    group = await make_group(size=3)

    with pytest.raises(ResourceNotFoundError):
        await memberships.destroy(uuid4())

    assert group.status == "open"
    assert group.memberships_count == 1


# ─── Unique index races ──────────────────────────────────────────

async def test_unique_index_race_raises_concurrency_error(
    memberships, make_group, monkeypatch,
):
    first = await make_group(size=2)
    second = await make_group(size=2)
    monkeypatch.setattr(
        MembershipService, "_draw_memberships", _without_draw_memberships,
    )

    with pytest.raises(ConcurrencyError):
        await memberships.create(
            MembershipCreate(group_id=second.id, user_id=first.leader_id),
        )

    assert len(await memberships.list_for_user(first.leader_id)) == 1
    assert second.memberships_count == 1
    assert second.status == "open"


@pytest.fixture
async def manager():
    m = DatabaseSessionManager("sqlite+aiosqlite:///:memory:")
    async with m.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield m
    await m.dispose()


async def _seed_two_groups(manager):
    async with manager.session() as db:
        draw = Draw(name="Fall 2026")
        db.add(draw)
        await db.flush()
        leaders = [
            User(username=f"leader{n}", intent="on_campus", draw_id=draw.id)
            for n in range(2)
        ]
        db.add_all(leaders)
        await db.commit()

        groups = GroupService(db)
        created = [
            await groups.create_group(
                GroupCreate(draw_id=draw.id, leader_id=leader.id, size=2),
            )
            for leader in leaders
        ]
        return leaders[0].id, created[1].record.id


async def test_run_in_transaction_retries_lost_race(manager, monkeypatch):
    leader_id, other_group_id = await _seed_two_groups(manager)
    attempts = []
    draw_memberships = MembershipService._draw_memberships

    async def _blind_first_attempt(self, user):
        attempts.append(user.id)
        if len(attempts) == 1:
            return []
        return await draw_memberships(self, user)

    monkeypatch.setattr(
        MembershipService, "_draw_memberships", _blind_first_attempt,
    )

    result = await manager.run_in_transaction(
        lambda db: MembershipService(db).create(
            MembershipCreate(group_id=other_group_id, user_id=leader_id),
        ),
        max_attempts=3,
    )

    assert len(attempts) == 2
    assert result.errors == [ALREADY_ACCEPTED]
