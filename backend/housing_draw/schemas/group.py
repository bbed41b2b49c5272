"""Group Schemas — Pydantic models for group lifecycle inputs."""

from uuid import UUID

from pydantic import BaseModel


class GroupCreate(BaseModel):
    """Size is range-checked by the service so it surfaces as a record-level error."""
    draw_id: UUID
    leader_id: UUID
    size: int
