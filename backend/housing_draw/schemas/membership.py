"""Membership Schemas — Pydantic models for engine inputs.

Invariants:
    - MembershipCreate.status defaults to accepted (a direct add); invitations and
      requests set their status explicitly. locked defaults to false
    - MembershipUpdate.changes() returns ONLY the fields the caller set, extras included,
      so the validator sees unknown attributes and explicit None values
"""

from uuid import UUID

from pydantic import BaseModel, ConfigDict

from housing_draw.core.domain_types import MembershipStatus


class MembershipCreate(BaseModel):
    group_id: UUID
    user_id: UUID
    status: MembershipStatus = MembershipStatus.ACCEPTED
    locked: bool = False


class MembershipUpdate(BaseModel):
    """Partial update. Unset fields are left alone."""
    model_config = ConfigDict(extra="allow")

    status: MembershipStatus | None = None
    locked: bool | None = None
    group_id: UUID | None = None
    user_id: UUID | None = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)
