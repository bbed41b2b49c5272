"""Counter Maintenance — delta for a group's cached accepted-member count.

Invariants:
    - PURE: the delta depends only on the before/after snapshots
    - before=None is a create, after=None is a destroy
    - Result is always -1, 0 or +1
"""

from housing_draw.core.snapshots import MembershipSnapshot


def counter_delta(
    before: MembershipSnapshot | None, after: MembershipSnapshot | None,
) -> int:
    """Change to apply to group.memberships_count for this write."""
    was_accepted = before is not None and before.accepted
    is_accepted = after is not None and after.accepted
    return int(is_accepted) - int(was_accepted)
