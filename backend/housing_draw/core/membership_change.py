"""Membership Change Planning — one write in, the complete unit of work out.

Invariants:
    - PURE: (before, after, group snapshot, user's draw memberships) -> MembershipChange
    - A change with errors carries no effects (delta 0, no transition, empty cascade)
    - Status transition is computed from the POST-write counts, never the pre-write ones
    - The shell applies the plan in one transaction: row write, counter, status,
      then the cascade (each cascade item is re-planned through plan_destroy)

Design Decisions:
    - plan_effects is exported separately so the trusted force path can skip
      validation without skipping counter/status maintenance
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from housing_draw.core.cascade import plan_cascade
from housing_draw.core.domain_types import GroupStatus
from housing_draw.core.enforce_membership import (
    validate_create, validate_destroy, validate_update,
)
from housing_draw.core.group_status import next_group_status
from housing_draw.core.membership_counter import counter_delta
from housing_draw.core.snapshots import (
    GroupSnapshot, MembershipSnapshot, UserSnapshot,
)


@dataclass(frozen=True)
class StatusTransition:
    previous: GroupStatus
    current: GroupStatus


@dataclass(frozen=True)
class MembershipChange:
    """Everything a single membership write implies."""
    before: MembershipSnapshot | None
    after: MembershipSnapshot | None
    errors: tuple[str, ...] = ()
    counter_delta: int = 0
    status_transition: StatusTransition | None = None
    cascade: tuple[UUID, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors


def plan_effects(
    before: MembershipSnapshot | None,
    after: MembershipSnapshot | None,
    group: GroupSnapshot,
    user_memberships: Iterable[MembershipSnapshot] = (),
) -> MembershipChange:
    """Counter delta, status transition and cascade list for an accepted write."""
    delta = counter_delta(before, after)
    locked_delta = int(bool(after and after.locked)) - int(bool(before and before.locked))
    new_status = next_group_status(
        group.status,
        group.size,
        group.memberships_count + delta,
        group.locked_count + locked_delta,
    )
    transition = (
        StatusTransition(group.status, new_status) if new_status else None
    )
    return MembershipChange(
        before=before,
        after=after,
        counter_delta=delta,
        status_transition=transition,
        cascade=plan_cascade(before, after, user_memberships),
    )


def plan_create(
    candidate: MembershipSnapshot,
    user: UserSnapshot,
    group: GroupSnapshot,
    user_memberships: Iterable[MembershipSnapshot],
) -> MembershipChange:
    existing = tuple(user_memberships)
    errors = validate_create(candidate, user, group, existing)
    if errors:
        return MembershipChange(None, candidate, errors=tuple(errors))
    return plan_effects(None, candidate, group, existing)


def plan_update(
    before: MembershipSnapshot,
    changes: Mapping[str, Any],
    group: GroupSnapshot,
    user_memberships: Iterable[MembershipSnapshot],
) -> MembershipChange:
    existing = tuple(user_memberships)
    errors = validate_update(before, changes, group, existing)
    if errors:
        return MembershipChange(before, None, errors=tuple(errors))
    return plan_effects(before, before.with_changes(changes), group, existing)


def plan_destroy(
    before: MembershipSnapshot, group: GroupSnapshot,
) -> MembershipChange:
    errors = validate_destroy(before)
    if errors:
        return MembershipChange(before, None, errors=tuple(errors))
    return plan_effects(before, None, group)
