from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import Column, LargeBinary, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


NOTE_TITLE_MAX_LENGTH = 255
NOTE_CONTENT_MAX_LENGTH = 10000


class SharePermission(str, Enum):
    READ = "read"
    EDIT = "edit"


class VersionedRowBase(SQLModel):
    # Keep this module standalone to avoid import cycles with nota_backend.models.
    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now, index=True)
    # Optimistic lock counter, bumped by every conditional update.
    version: int = Field(default=1)


class Note(VersionedRowBase, table=True):
    __tablename__ = "notes"  # pyright: ignore[reportAssignmentType]

    id: str = Field(primary_key=True, min_length=1, max_length=36)
    owner_user_id: int = Field(index=True, foreign_key="users.id")

    title: str = Field(min_length=1, max_length=NOTE_TITLE_MAX_LENGTH)
    # Stored already sanitized; never sanitized on read.
    content: str = Field(default="", sa_column=Column(Text, nullable=False))

    # archived=False <=> archived_at is None
    archived: bool = Field(default=False, index=True)
    archived_at: Optional[datetime] = Field(default=None)
    due_date: Optional[datetime] = Field(default=None)


class NoteShare(SQLModel, table=True):
    __tablename__ = "note_shares"  # pyright: ignore[reportAssignmentType]

    __table_args__ = (
        UniqueConstraint(
            "note_id",
            "shared_with_user_id",
            name="uq_note_shares_note_id_shared_with_user_id",
        ),
    )

    id: str = Field(primary_key=True, min_length=1, max_length=36)
    note_id: str = Field(index=True, foreign_key="notes.id", min_length=1, max_length=36)

    shared_with_user_id: int = Field(index=True, foreign_key="users.id")
    shared_by_user_id: int = Field(index=True, foreign_key="users.id")
    permission: str = Field(default=SharePermission.READ.value, max_length=10)

    created_at: datetime = Field(default_factory=utc_now, index=True)


class NoteAttachment(SQLModel, table=True):
    __tablename__ = "note_attachments"  # pyright: ignore[reportAssignmentType]

    id: str = Field(primary_key=True, min_length=1, max_length=36)
    note_id: str = Field(index=True, foreign_key="notes.id", min_length=1, max_length=36)

    # Sanitized by nota_backend.upload_safety before insert.
    filename: str = Field(min_length=1, max_length=255)
    content_type: Optional[str] = Field(default=None, max_length=255)
    file_size: int = Field(default=0)
    data: bytes = Field(sa_column=Column(LargeBinary, nullable=False))

    created_at: datetime = Field(default_factory=utc_now, index=True)
    version: int = Field(default=1)
