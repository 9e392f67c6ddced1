# basedpyright: reportAssignmentType=false
# basedpyright: reportIncompatibleVariableOverride=false
# basedpyright: reportUnusedImport=false

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import Column, Text
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def assume_utc(dt: datetime | None) -> datetime | None:
    # SQLite may return naive datetimes even when the column was declared with timezone=True.
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


class UserRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class User(SQLModel, table=True):
    __tablename__ = "users"  # pyright: ignore[reportAssignmentType,reportIncompatibleVariableOverride]

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, unique=True, min_length=1, max_length=64)
    password_hash: str = Field(min_length=1, max_length=255)
    # Set at registration (generated initial password); cleared by a successful change.
    must_change_password: bool = Field(default=False)

    role: str = Field(default=UserRole.USER.value, max_length=20, index=True)
    enabled: bool = Field(default=True, index=True)

    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now)
    # Optimistic lock counter, bumped by every conditional update.
    version: int = Field(default=1)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


class ActivityLog(SQLModel, table=True):
    __tablename__ = "activity_log"  # pyright: ignore[reportAssignmentType,reportIncompatibleVariableOverride]

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True, foreign_key="users.id")

    action: str = Field(max_length=50)
    entity_type: str = Field(max_length=50)
    entity_id: Optional[str] = Field(default=None, max_length=64)
    description: str = Field(default="", sa_column=Column(Text, nullable=False))

    created_at: datetime = Field(default_factory=utc_now, index=True)


# Import notes models so Alembic sees them via `nota_backend.models`.
from . import models_notes as _models_notes  # noqa: E402,F401  # type: ignore
