"""Group Cleanup — recount, repair and a transition only when one is still due."""

from uuid import uuid4

from housing_draw.services.group_cleanup import GroupCleanup


async def test_cleanup_repairs_drifted_counter(make_full_group, test_db):
    group = await make_full_group(size=2)
    group.memberships_count = 5
    await test_db.flush()

    await GroupCleanup(test_db)(group.id)

    assert group.memberships_count == 2
    assert group.status == "closed"


async def test_cleanup_reopens_group_after_drift(make_group, test_db):
    group = await make_group(size=2)
    group.memberships_count = 2
    group.status = "full"
    await test_db.flush()

    await GroupCleanup(test_db)(group.id)

    assert group.memberships_count == 1
    assert group.status == "open"


async def test_cleanup_is_idempotent(make_group, test_db):
    group = await make_group(size=3)
    cleanup = GroupCleanup(test_db)

    await cleanup(group.id)
    await cleanup(group.id)

    assert group.status == "open"
    assert group.memberships_count == 1


async def test_cleanup_ignores_missing_group(test_db):
    await GroupCleanup(test_db)(uuid4())
