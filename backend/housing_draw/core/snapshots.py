"""Snapshots — immutable views of committed rows fed to the pure rules.

Invariants:
    - Snapshots are frozen; a proposed change is a new snapshot (with_changes)
    - with_changes never coerces None; blank values are rejected by the validator
    - A MembershipSnapshot with id=None is a row that does not exist yet
    - GroupSnapshot.locked_count is read in the same transaction as the group row
"""

from dataclasses import dataclass, replace
from typing import Any
from uuid import UUID

from housing_draw.core.domain_types import (
    GroupStatus, HousingIntent, MembershipStatus, UPDATABLE_MEMBERSHIP_FIELDS,
)
from housing_draw.core.repository_protocols import (
    GroupLike, MembershipLike, UserLike,
)


@dataclass(frozen=True)
class UserSnapshot:
    id: UUID
    draw_id: UUID | None
    intent: HousingIntent

    @classmethod
    def from_row(cls, user: UserLike) -> "UserSnapshot":
        return cls(
            id=user.id, draw_id=user.draw_id, intent=HousingIntent(user.intent),
        )


@dataclass(frozen=True)
class GroupSnapshot:
    id: UUID
    draw_id: UUID
    size: int
    status: GroupStatus
    memberships_count: int
    locked_count: int = 0

    @classmethod
    def from_row(cls, group: GroupLike, locked_count: int = 0) -> "GroupSnapshot":
        return cls(
            id=group.id,
            draw_id=group.draw_id,
            size=group.size,
            status=GroupStatus(group.status),
            memberships_count=group.memberships_count,
            locked_count=locked_count,
        )


@dataclass(frozen=True)
class MembershipSnapshot:
    id: UUID | None
    user_id: UUID
    group_id: UUID
    status: MembershipStatus = MembershipStatus.REQUESTED
    locked: bool = False

    @classmethod
    def from_row(cls, membership: MembershipLike) -> "MembershipSnapshot":
        return cls(
            id=membership.id,
            user_id=membership.user_id,
            group_id=membership.group_id,
            status=MembershipStatus(membership.status),
            locked=bool(membership.locked),
        )

    @property
    def accepted(self) -> bool:
        return self.status is MembershipStatus.ACCEPTED

    def with_changes(self, changes: dict[str, Any]) -> "MembershipSnapshot":
        """Apply known field changes; unknown keys are the validator's concern."""
        known = {k: v for k, v in changes.items() if k in UPDATABLE_MEMBERSHIP_FIELDS}
        if known.get("status") is not None:
            known["status"] = MembershipStatus(known["status"])
        if known.get("locked") is not None:
            known["locked"] = bool(known["locked"])
        return replace(self, **known)

