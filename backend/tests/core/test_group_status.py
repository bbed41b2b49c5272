"""Group Status Controller — transitions derived from counts and locks."""

from housing_draw.core.domain_types import GroupStatus
from housing_draw.core.group_status import next_group_status


def test_open_group_closes_when_count_reaches_size():
    assert next_group_status(GroupStatus.OPEN, 2, 2, 0) is GroupStatus.CLOSED


def test_open_group_below_size_stays_open():
    assert next_group_status(GroupStatus.OPEN, 2, 1, 0) is None


def test_closed_group_reopens_below_size():
    assert next_group_status(GroupStatus.CLOSED, 2, 1, 0) is GroupStatus.OPEN


def test_full_group_reopens_below_size():
    assert next_group_status(GroupStatus.FULL, 3, 2, 0) is GroupStatus.OPEN


def test_closed_group_at_size_stays_closed():
    assert next_group_status(GroupStatus.CLOSED, 2, 2, 0) is None


def test_finalizing_locks_when_every_member_locked():
    assert next_group_status(GroupStatus.FINALIZING, 2, 2, 2) is GroupStatus.LOCKED


def test_finalizing_stays_while_a_member_is_unlocked():
    assert next_group_status(GroupStatus.FINALIZING, 2, 2, 1) is None


def test_finalizing_never_reopens():
    assert next_group_status(GroupStatus.FINALIZING, 2, 1, 0) is None


def test_locked_is_terminal():
    assert next_group_status(GroupStatus.LOCKED, 2, 0, 0) is None
