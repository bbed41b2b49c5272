"""Group ORM — a self-formed applicant unit targeting a suite.

Invariants:
    - status stores a GroupStatus value; new groups start open
    - memberships_count == number of this group's accepted memberships
    - memberships_count and status are derived: only the membership engine writes them
    - suite_id is unique when set: a suite houses one group
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from housing_draw.core.domain_types import GroupStatus
from housing_draw.db.base import Base


class Group(Base):
    __tablename__ = "groups"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    draw_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("draws.id"), nullable=False, index=True,
    )
    leader_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False,
    )
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=GroupStatus.OPEN.value,
    )
    memberships_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    suite_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("suites.id"), nullable=True, unique=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def locked(self) -> bool:
        return self.status == GroupStatus.LOCKED.value
