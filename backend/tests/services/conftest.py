"""Service test fixtures — async in-memory DB and draw/student/group factories.

Invariants:
    - Every test gets a fresh in-memory SQLite database with the full schema
    - Services and fixtures share ONE session, as a request handler would
    - cleanup_spy records every cleanup call and still runs the default GroupCleanup
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)

import housing_draw.models  # noqa: F401
from housing_draw.core.domain_types import HousingIntent
from housing_draw.db.base import Base
from housing_draw.models.draw import Draw
from housing_draw.models.suite import Suite
from housing_draw.models.user import User
from housing_draw.schemas.group import GroupCreate
from housing_draw.services.draw_service import DrawService
from housing_draw.services.group_cleanup import GroupCleanup
from housing_draw.services.group_service import GroupService
from housing_draw.services.membership_service import MembershipService


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


class CleanupSpy:
    """Records group ids passed to cleanup, then runs the real reconciliation."""

    def __init__(self, db):
        self.calls = []
        self._inner = GroupCleanup(db)

    async def __call__(self, group_id):
        self.calls.append(group_id)
        await self._inner(group_id)


@pytest.fixture
def cleanup_spy(test_db):
    return CleanupSpy(test_db)


@pytest.fixture
def memberships(test_db, cleanup_spy):
    return MembershipService(test_db, cleanup_spy)


@pytest.fixture
def groups(test_db, cleanup_spy):
    return GroupService(test_db, cleanup_spy)


@pytest.fixture
def draws(test_db, cleanup_spy):
    return DrawService(test_db, cleanup_spy)


@pytest.fixture
async def draw(test_db):
    draw = Draw(name="Spring 2026")
    test_db.add(draw)
    await test_db.commit()
    return draw


@pytest.fixture
def make_student(test_db, draw):
    """Factory: an on-campus student in the draw unless told otherwise."""
    counter = {"n": 0}

    async def _make(intent=HousingIntent.ON_CAMPUS, draw_id=...):
        counter["n"] += 1
        user = User(
            username=f"student{counter['n']}",
            intent=intent.value,
            draw_id=draw.id if draw_id is ... else draw_id,
        )
        test_db.add(user)
        await test_db.commit()
        return user

    return _make


@pytest.fixture
def make_group(groups, make_student, draw):
    """Factory: an open group led by a fresh (or given) student."""

    async def _make(size=2, leader=None):
        leader = leader or await make_student()
        result = await groups.create_group(
            GroupCreate(draw_id=draw.id, leader_id=leader.id, size=size),
        )
        assert result.success, result.errors
        return result.record

    return _make


@pytest.fixture
def make_full_group(groups, make_group, make_student):
    """Factory: a closed group with `size` accepted members."""

    async def _make(size=2):
        group = await make_group(size=size)
        for _ in range(size - 1):
            member = await make_student()
            result = await groups.add_member(group.id, member.id)
            assert result.success, result.errors
        return group

    return _make


@pytest.fixture
async def suite(test_db, draw):
    suite = Suite(number="101", size=2, draw_id=draw.id)
    test_db.add(suite)
    await test_db.commit()
    return suite
