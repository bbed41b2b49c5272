"""Group Status Controller — derives group lifecycle from counts and lock signals.

Invariants:
    - PURE: returns the next status or None when no transition is due
    - open -> closed when the accepted count reaches size
    - closed|full -> open when the accepted count drops below size
    - finalizing -> locked when accepted == locked == size
    - finalizing and locked are never left through this function
"""

from housing_draw.core.domain_types import AT_CAPACITY_STATUSES, GroupStatus


def next_group_status(
    status: GroupStatus, size: int, accepted_count: int, locked_count: int,
) -> GroupStatus | None:
    if status is GroupStatus.OPEN and accepted_count >= size:
        return GroupStatus.CLOSED
    if status in AT_CAPACITY_STATUSES and accepted_count < size:
        return GroupStatus.OPEN
    if (
        status is GroupStatus.FINALIZING
        and accepted_count == size
        and locked_count == accepted_count
    ):
        return GroupStatus.LOCKED
    return None
