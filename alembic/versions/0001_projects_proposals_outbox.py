"""projects, proposals, metadata outbox

Revision ID: 0001_projects_proposals_outbox
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001_projects_proposals_outbox"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # projects
    op.create_table(
        "projects",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("schema", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_projects_created_at", "projects", ["created_at"])

    # proposals (no FK: deleting a project must not touch them)
    op.create_table(
        "proposals",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("filename", sa.String(length=512), nullable=False),
        sa.Column("original_file_key", sa.String(length=1024), nullable=False),
        sa.Column("processed_files_path", sa.String(length=1024), nullable=False, server_default=sa.text("''")),
        sa.Column("processed_files", postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("status", sa.String(length=32), nullable=False, server_default=sa.text("'uploaded'")),
        sa.Column("file_size", sa.BigInteger(), nullable=False, server_default=sa.text("0")),
        sa.Column("processing_task_id", sa.String(length=256), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("status IN ('uploaded', 'processing')", name="ck_proposals_status"),
    )
    op.create_index("ix_proposals_project_uploaded", "proposals", ["project_id", "uploaded_at"])

    # metadata_outbox
    op.create_table(
        "metadata_outbox",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("project_id", sa.Uuid(), nullable=False),
        sa.Column("operation", sa.String(length=16), nullable=False, server_default=sa.text("'upsert'")),
        sa.Column("payload", postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("operation IN ('upsert', 'delete')", name="ck_metadata_outbox_operation"),
    )
    op.create_index("ix_metadata_outbox_pending", "metadata_outbox", ["delivered_at", "created_at"])


def downgrade():
    op.drop_index("ix_metadata_outbox_pending", table_name="metadata_outbox")
    op.drop_table("metadata_outbox")
    op.drop_index("ix_proposals_project_uploaded", table_name="proposals")
    op.drop_table("proposals")
    op.drop_index("ix_projects_created_at", table_name="projects")
    op.drop_table("projects")
