"""organization limits and counted domain tables

Revision ID: 0001_organization_limits
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0001_organization_limits"
down_revision = None
branch_labels = None
depends_on = None

_COUNTED_TABLES = {
    "team_members": [
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(length=50), server_default="member", nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ],
    "incidents": [
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=50), server_default="open", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ],
    "assets": [
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ],
    "runbooks": [
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ],
    "communication_templates": [
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    ],
}


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("license_type", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Every quota-governed table is scoped by organization_id and counted live.
    for table_name, columns in _COUNTED_TABLES.items():
        op.create_table(
            table_name,
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column(
                "organization_id",
                sa.Integer(),
                sa.ForeignKey("organizations.id"),
                nullable=False,
            ),
            *columns,
        )
        op.create_index(
            f"ix_{table_name}_organization_id", table_name, ["organization_id"], unique=False
        )

    # One limits row per organization; the unique constraint guards lazy creation.
    op.create_table(
        "organization_limits",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "organization_id",
            sa.Integer(),
            sa.ForeignKey("organizations.id"),
            nullable=False,
        ),
        sa.Column("max_users", sa.Integer(), nullable=True),
        sa.Column("current_users", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("max_storage_mb", sa.Integer(), nullable=False),
        sa.Column("current_storage_mb", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("max_incidents", sa.Integer(), nullable=True),
        sa.Column("max_assets", sa.Integer(), nullable=True),
        sa.Column("max_runbooks", sa.Integer(), nullable=True),
        sa.Column("max_templates", sa.Integer(), nullable=True),
        sa.Column("api_rate_limit", sa.Integer(), nullable=False),
        sa.Column("api_calls_this_hour", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("api_reset_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("custom_domains_allowed", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("whitelabeling_allowed", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("api_access_allowed", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("sso_allowed", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
        ),
        sa.UniqueConstraint("organization_id", name="uq_organization_limits_organization_id"),
        sa.CheckConstraint("current_storage_mb >= 0", name="ck_organization_limits_storage_nonneg"),
        sa.CheckConstraint("api_calls_this_hour >= 0", name="ck_organization_limits_api_calls_nonneg"),
    )


def downgrade() -> None:
    op.drop_table("organization_limits")
    for table_name in reversed(list(_COUNTED_TABLES)):
        op.drop_index(f"ix_{table_name}_organization_id", table_name=table_name)
        op.drop_table(table_name)
    op.drop_table("organizations")
