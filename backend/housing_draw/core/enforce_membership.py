"""Membership Validation Enforcement — per-record invariants and immutability rules.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Each check returns a record-level message on violation, None on success
    - Composite validators return every violated message (empty list = valid)
    - A persisted locked row yields ONLY the locked-row message, even for no-op changes
    - Messages below are externally observed; change them only with callers

Design Decisions:
    - Separated from membership_change: this module answers "is the row legal",
      the planner answers "what else must happen" (counter, status, cascade)
"""

from collections.abc import Iterable, Mapping
from typing import Any

from housing_draw.core.domain_types import (
    GroupStatus, HousingIntent, UPDATABLE_MEMBERSHIP_FIELDS,
)
from housing_draw.core.snapshots import (
    GroupSnapshot, MembershipSnapshot, UserSnapshot,
)


CHANGED_ASSOCIATION = "Cannot change group or user associated with this membership"
CHANGED_ACCEPTED_STATUS = "Cannot change membership status after acceptance"
EDIT_LOCKED = "Cannot edit locked membership"
DESTROY_LOCKED = "Cannot destroy locked membership"

GROUP_MISSING = "Group must exist"
USER_MISSING = "User must exist"
DUPLICATE_MEMBERSHIP = "User already has a membership in this group"
DRAW_MISMATCH = "User and group must belong to the same draw"
GROUP_NOT_OPEN = "Cannot join a group that is not open"
NOT_ON_CAMPUS = "User must intend to live on campus to join a group"
ALREADY_ACCEPTED = "User already has an accepted membership in this draw"
ACCEPT_IN_CLOSED_GROUP = "Cannot accept a membership in a group that is not open"
INVALID_LOCK = "Locked memberships must be accepted and belong to a finalizing group"
STATUS_BLANK = "Status can't be blank"
LOCKED_BLANK = "Locked must be true or false"


# --- Single-invariant checks ------------------------------------------------

def check_unique_in_group(
    candidate: MembershipSnapshot, user_memberships: Iterable[MembershipSnapshot],
) -> str | None:
    """Invariant 1: one membership per (user, group)."""
    for other in user_memberships:
        if other.id != candidate.id and other.group_id == candidate.group_id:
            return DUPLICATE_MEMBERSHIP
    return None


def check_same_draw(user: UserSnapshot, group: GroupSnapshot) -> str | None:
    """Invariant 2: user and group share a draw."""
    if user.draw_id is None or user.draw_id != group.draw_id:
        return DRAW_MISMATCH
    return None


def check_group_open(group: GroupSnapshot) -> str | None:
    """Invariant 6: memberships are only created against open groups."""
    if group.status is not GroupStatus.OPEN:
        return GROUP_NOT_OPEN
    return None


def check_on_campus(user: UserSnapshot) -> str | None:
    """Invariant 9."""
    if user.intent is not HousingIntent.ON_CAMPUS:
        return NOT_ON_CAMPUS
    return None


def check_single_acceptance(
    candidate: MembershipSnapshot, user_memberships: Iterable[MembershipSnapshot],
) -> str | None:
    """Invariant 5: at most one accepted membership per user in the draw."""
    if not candidate.accepted:
        return None
    for other in user_memberships:
        if other.id != candidate.id and other.accepted:
            return ALREADY_ACCEPTED
    return None


def check_lock(candidate: MembershipSnapshot, group: GroupSnapshot) -> str | None:
    """Invariant 7: checked on every save, not only on transition."""
    if candidate.locked and not (
        candidate.accepted and group.status is GroupStatus.FINALIZING
    ):
        return INVALID_LOCK
    return None


def check_unknown_fields(changes: Mapping[str, Any]) -> list[str]:
    return [
        f"Unknown membership attribute: {name}"
        for name in sorted(changes)
        if name not in UPDATABLE_MEMBERSHIP_FIELDS
    ]


def check_present(changes: Mapping[str, Any]) -> list[str]:
    """status and locked are NOT NULL columns; an explicit None is a blank value."""
    blank = {"status": STATUS_BLANK, "locked": LOCKED_BLANK}
    return [msg for name, msg in blank.items() if name in changes and changes[name] is None]


# --- Composite validators ---------------------------------------------------

def validate_create(
    candidate: MembershipSnapshot,
    user: UserSnapshot,
    group: GroupSnapshot,
    user_memberships: Iterable[MembershipSnapshot],
) -> list[str]:
    """Validate a new membership row before it is inserted."""
    existing = list(user_memberships)
    errors = [
        check_unique_in_group(candidate, existing),
        check_same_draw(user, group),
        check_group_open(group),
        check_on_campus(user),
        check_single_acceptance(candidate, existing),
        check_lock(candidate, group),
    ]
    return [e for e in errors if e]


def validate_update(
    before: MembershipSnapshot,
    changes: Mapping[str, Any],
    group: GroupSnapshot,
    user_memberships: Iterable[MembershipSnapshot],
) -> list[str]:
    """Diff the committed row against requested changes."""
    if before.locked:
        return [EDIT_LOCKED]

    errors = check_unknown_fields(changes) + check_present(changes)
    if errors:
        return errors

    after = before.with_changes(changes)
    if after.group_id != before.group_id or after.user_id != before.user_id:
        errors.append(CHANGED_ASSOCIATION)
    if before.accepted and after.status is not before.status:
        errors.append(CHANGED_ACCEPTED_STATUS)

    if after.accepted and not before.accepted:
        if group.status is not GroupStatus.OPEN:
            errors.append(ACCEPT_IN_CLOSED_GROUP)
        error = check_single_acceptance(after, user_memberships)
        if error:
            errors.append(error)

    error = check_lock(after, group)
    if error:
        errors.append(error)
    return errors


def validate_destroy(before: MembershipSnapshot) -> list[str]:
    """Invariant 8: locked rows are never destroyed through the normal path."""
    if before.locked:
        return [DESTROY_LOCKED]
    return []

