"""create user_story table

Revision ID: 0001_create_user_story
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001_create_user_story"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "user_story",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("original_issue_key", sa.String(length=255), nullable=False),
        sa.Column(
            "complexity",
            sa.Enum(
                "simple",
                "moderate",
                "complex",
                name="story_complexity",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("embedding", sa.JSON(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("original_issue_key", name="uq_user_story_original_issue_key"),
    )


def downgrade() -> None:
    op.drop_table("user_story")
