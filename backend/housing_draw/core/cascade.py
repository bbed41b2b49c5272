"""Cascade Reconciliation — which competing memberships an acceptance invalidates.

Invariants:
    - PURE: plans the cascade, never performs it
    - Fires only when a membership becomes accepted (create or update)
    - Only requested/invited rows of the same user are listed; the trigger is never listed
    - user_memberships must already be scoped to the user's draw
"""

from collections.abc import Iterable
from uuid import UUID

from housing_draw.core.domain_types import PENDING_STATUSES
from housing_draw.core.snapshots import MembershipSnapshot


def became_accepted(
    before: MembershipSnapshot | None, after: MembershipSnapshot | None,
) -> bool:
    return (
        after is not None
        and after.accepted
        and (before is None or not before.accepted)
    )


def plan_cascade(
    before: MembershipSnapshot | None,
    after: MembershipSnapshot | None,
    user_memberships: Iterable[MembershipSnapshot],
) -> tuple[UUID, ...]:
    """Ids of the user's pending memberships to destroy, in the order given."""
    if not became_accepted(before, after):
        return ()
    return tuple(
        m.id for m in user_memberships
        if m.id is not None
        and m.id != after.id
        and m.status in PENDING_STATUSES
    )
