"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - ORM rows are read through the *Like protocols, never by concrete class
    - The group cleanup collaborator is injected, not resolved from the Group model

Design Decisions:
    - Protocol over ABC: structural subtyping, ORM models satisfy these without inheritance
"""

from typing import Protocol
from uuid import UUID


class UserLike(Protocol):
    """Structural contract for the user side of a membership."""
    id: UUID
    draw_id: UUID | None
    intent: str


class GroupLike(Protocol):
    """Structural contract for the group side of a membership."""
    id: UUID
    draw_id: UUID
    size: int
    status: str
    memberships_count: int


class MembershipLike(Protocol):
    """Structural contract for a persisted membership row."""
    id: UUID
    user_id: UUID
    group_id: UUID
    status: str
    locked: bool


class GroupCleanupHook(Protocol):
    """Post-destroy collaborator, invoked once per destroyed membership.

    Runs inside the destroying transaction. Return value is ignored.
    """
    async def __call__(self, group_id: UUID) -> None: ...
