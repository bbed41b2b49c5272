"""Draw membership schema — draws, users, suites, groups, memberships.

Revision ID: 001_draw_membership
Revises: None
Create Date: 2026-10-18

The partial unique index on memberships(user_id) WHERE status = 'accepted'
backs the one-accepted-membership rule against concurrent writers.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_draw_membership"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "draws",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("username", sa.String(80), nullable=False, unique=True),
        sa.Column("draw_id", UUID(as_uuid=True), sa.ForeignKey("draws.id"), nullable=True),
        sa.Column("intent", sa.String(20), nullable=False, server_default="undeclared"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_users_username", "users", ["username"])
    op.create_index("ix_users_draw_id", "users", ["draw_id"])

    op.create_table(
        "suites",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("number", sa.String(20), nullable=False),
        sa.Column("size", sa.Integer, nullable=False),
        sa.Column("draw_id", UUID(as_uuid=True), sa.ForeignKey("draws.id"), nullable=True),
    )
    op.create_index("ix_suites_draw_id", "suites", ["draw_id"])

    op.create_table(
        "groups",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("draw_id", UUID(as_uuid=True), sa.ForeignKey("draws.id"), nullable=False),
        sa.Column("leader_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("size", sa.Integer, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="open"),
        sa.Column("memberships_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("suite_id", UUID(as_uuid=True), sa.ForeignKey("suites.id"), nullable=True, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_groups_draw_id", "groups", ["draw_id"])

    op.create_table(
        "memberships",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("group_id", UUID(as_uuid=True), sa.ForeignKey("groups.id"), nullable=False),
        sa.Column("user_id", UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="accepted"),
        sa.Column("locked", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("group_id", "user_id", name="uq_memberships_group_user"),
    )
    op.create_index("ix_memberships_group_id", "memberships", ["group_id"])
    op.create_index("ix_memberships_user_id", "memberships", ["user_id"])
    op.create_index(
        "uq_memberships_accepted_user", "memberships", ["user_id"],
        unique=True, postgresql_where=sa.text("status = 'accepted'"),
    )


def downgrade() -> None:
    op.drop_index("uq_memberships_accepted_user", table_name="memberships")
    op.drop_table("memberships")
    op.drop_table("groups")
    op.drop_table("suites")
    op.drop_table("users")
    op.drop_table("draws")
