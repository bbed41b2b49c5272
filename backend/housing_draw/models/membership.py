"""Membership ORM — one user's commitment to one group.

Invariants:
    - (group_id, user_id) unique
    - At most one accepted row per user (partial unique index); a user is in one draw,
      so this is the "one accepted membership per draw" rule at the storage level
    - status stores a MembershipStatus value and defaults to accepted; locked defaults to false

Design Decisions:
    - No ORM relationships: every read goes through explicit, lockable queries in
      services/membership_service.py so the identity map never serves a stale collection
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, String, DateTime, ForeignKey, Index, UniqueConstraint, text,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from housing_draw.core.domain_types import MembershipStatus
from housing_draw.db.base import Base


class Membership(Base):
    __tablename__ = "memberships"
    __table_args__ = (
        UniqueConstraint("group_id", "user_id", name="uq_memberships_group_user"),
        Index(
            "uq_memberships_accepted_user", "user_id", unique=True,
            postgresql_where=text("status = 'accepted'"),
            sqlite_where=text("status = 'accepted'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    group_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("groups.id"), nullable=False, index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MembershipStatus.ACCEPTED.value,
    )
    locked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
