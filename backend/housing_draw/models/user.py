"""User ORM — a student who may join groups within their draw.

Invariants:
    - username is unique
    - draw_id is nullable: a user belongs to at most one draw
    - intent stores a HousingIntent value; only on_campus users may hold memberships
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from housing_draw.core.domain_types import HousingIntent
from housing_draw.db.base import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    username: Mapped[str] = mapped_column(
        String(80), nullable=False, unique=True, index=True,
    )
    draw_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("draws.id"), nullable=True, index=True,
    )
    intent: Mapped[str] = mapped_column(
        String(20), nullable=False, default=HousingIntent.UNDECLARED.value,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
