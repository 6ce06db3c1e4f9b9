"""Registry metadata and actor runtime tables.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "channel",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("classification", sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_channel")),
        sa.UniqueConstraint("name", name=op.f("uq_channel_name")),
    )
    op.create_table(
        "default_channel",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("repository", sa.String(length=512), nullable=False),
        sa.Column("branch", sa.String(length=255), nullable=False),
        sa.Column("channel_id", sa.Integer(), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(
            ["channel_id"],
            ["channel.id"],
            name=op.f("fk_default_channel_channel_id_channel"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_default_channel")),
    )
    op.create_table(
        "subscription",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("channel_id", sa.Integer(), nullable=False),
        sa.Column("source_repository", sa.String(length=512), nullable=False),
        sa.Column("target_repository", sa.String(length=512), nullable=False),
        sa.Column("target_branch", sa.String(length=255), nullable=False),
        sa.Column("policy", sa.Text(), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("last_applied_build_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(
            ["channel_id"],
            ["channel.id"],
            name=op.f("fk_subscription_channel_id_channel"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_subscription")),
    )
    op.create_table(
        "build",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("repository", sa.String(length=512), nullable=False),
        sa.Column("branch", sa.String(length=255), nullable=False),
        sa.Column("commit", sa.String(length=64), nullable=False),
        sa.Column("build_number", sa.String(length=255), nullable=False),
        sa.Column("assets", sa.Text(), nullable=False),
        sa.Column("date_produced", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_build")),
    )
    op.create_table(
        "repository_branch",
        sa.Column("repository", sa.String(length=512), nullable=False),
        sa.Column("branch", sa.String(length=255), nullable=False),
        sa.Column("merge_policies", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("repository", "branch", name=op.f("pk_repository_branch")),
    )
    op.create_table(
        "repository_branch_update",
        sa.Column("repository", sa.String(length=512), nullable=False),
        sa.Column("branch", sa.String(length=255), nullable=False),
        sa.Column("action", sa.Text(), nullable=False),
        sa.Column("method", sa.String(length=255), nullable=False),
        sa.Column("arguments", sa.Text(), nullable=False),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint(
            "repository", "branch", name=op.f("pk_repository_branch_update")
        ),
    )
    op.create_table(
        "actor_state",
        sa.Column("actor_id", sa.String(length=1024), nullable=False),
        sa.Column("key", sa.String(length=255), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("actor_id", "key", name=op.f("pk_actor_state")),
    )
    op.create_table(
        "actor_reminder",
        sa.Column("actor_id", sa.String(length=1024), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("due_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("period_seconds", sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint("actor_id", "name", name=op.f("pk_actor_reminder")),
    )
    op.create_index(
        op.f("ix_actor_reminder_due_at"), "actor_reminder", ["due_at"], unique=False
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_actor_reminder_due_at"), table_name="actor_reminder")
    op.drop_table("actor_reminder")
    op.drop_table("actor_state")
    op.drop_table("repository_branch_update")
    op.drop_table("repository_branch")
    op.drop_table("build")
    op.drop_table("subscription")
    op.drop_table("default_channel")
    op.drop_table("channel")
