"""init schema (users, notes, shares, attachments, activity log)

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _table_exists(table_name: str) -> bool:
    bind = op.get_bind()
    insp = inspect(bind)
    return table_name in insp.get_table_names()


def upgrade() -> None:
    if not _table_exists("users"):
        _ = op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("username", sa.String(length=64), nullable=False),
            sa.Column("password_hash", sa.String(length=255), nullable=False),
            sa.Column(
                "must_change_password", sa.Boolean(), nullable=False, server_default=sa.text("false")
            ),
            sa.Column("role", sa.String(length=20), nullable=False, server_default="USER"),
            sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        )
        op.create_index("ix_users_username", "users", ["username"], unique=True)
        op.create_index("ix_users_role", "users", ["role"], unique=False)
        op.create_index("ix_users_enabled", "users", ["enabled"], unique=False)
        op.create_index("ix_users_created_at", "users", ["created_at"], unique=False)

    if not _table_exists("notes"):
        _ = op.create_table(
            "notes",
            sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
            sa.Column("owner_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("title", sa.String(length=255), nullable=False),
            sa.Column("content", sa.Text(), nullable=False, server_default=sa.text("''")),
            sa.Column("archived", sa.Boolean(), nullable=False, server_default=sa.text("false")),
            sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        )
        op.create_index("ix_notes_owner_user_id", "notes", ["owner_user_id"], unique=False)
        op.create_index("ix_notes_archived", "notes", ["archived"], unique=False)
        op.create_index("ix_notes_created_at", "notes", ["created_at"], unique=False)
        op.create_index("ix_notes_updated_at", "notes", ["updated_at"], unique=False)

    if not _table_exists("note_shares"):
        _ = op.create_table(
            "note_shares",
            sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
            sa.Column("note_id", sa.String(length=36), sa.ForeignKey("notes.id"), nullable=False),
            sa.Column(
                "shared_with_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False
            ),
            sa.Column("shared_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("permission", sa.String(length=10), nullable=False, server_default="read"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint(
                "note_id",
                "shared_with_user_id",
                name="uq_note_shares_note_id_shared_with_user_id",
            ),
        )
        op.create_index("ix_note_shares_note_id", "note_shares", ["note_id"], unique=False)
        op.create_index(
            "ix_note_shares_shared_with_user_id",
            "note_shares",
            ["shared_with_user_id"],
            unique=False,
        )
        op.create_index(
            "ix_note_shares_shared_by_user_id", "note_shares", ["shared_by_user_id"], unique=False
        )
        op.create_index("ix_note_shares_created_at", "note_shares", ["created_at"], unique=False)

    if not _table_exists("note_attachments"):
        _ = op.create_table(
            "note_attachments",
            sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
            sa.Column("note_id", sa.String(length=36), sa.ForeignKey("notes.id"), nullable=False),
            sa.Column("filename", sa.String(length=255), nullable=False),
            sa.Column("content_type", sa.String(length=255), nullable=True),
            sa.Column("file_size", sa.Integer(), nullable=False, server_default=sa.text("0")),
            sa.Column("data", sa.LargeBinary(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        )
        op.create_index(
            "ix_note_attachments_note_id", "note_attachments", ["note_id"], unique=False
        )
        op.create_index(
            "ix_note_attachments_created_at", "note_attachments", ["created_at"], unique=False
        )

    if not _table_exists("activity_log"):
        _ = op.create_table(
            "activity_log",
            sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
            sa.Column("action", sa.String(length=50), nullable=False),
            sa.Column("entity_type", sa.String(length=50), nullable=False),
            sa.Column("entity_id", sa.String(length=64), nullable=True),
            sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index("ix_activity_log_user_id", "activity_log", ["user_id"], unique=False)
        op.create_index("ix_activity_log_created_at", "activity_log", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_table("activity_log")
    op.drop_table("note_attachments")
    op.drop_table("note_shares")
    op.drop_table("notes")
    op.drop_table("users")
