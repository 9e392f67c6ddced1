from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from nota_backend.models_notes import SharePermission

_USERNAME_PATTERN = r"^[A-Za-z0-9_.-]+$"


class RegisterRequest(BaseModel):
    username: str = Field(min_length=1, max_length=64, pattern=_USERNAME_PATTERN)


class RegisterResponse(BaseModel):
    user_id: int
    username: str
    # Shown once; the user must change it on first login.
    initial_password: str


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=1, max_length=72)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    must_change_password: bool


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1, max_length=72)
    new_password: str = Field(min_length=1, max_length=72)
    confirm_password: str = Field(min_length=1, max_length=72)


class MeResponse(BaseModel):
    id: int
    username: str
    role: str
    must_change_password: bool


# Lengths are validated by notes_service so violations share one error shape.
class NoteCreateRequest(BaseModel):
    title: str
    content: str = ""
    due_date: datetime | None = None


class NoteUpdateRequest(BaseModel):
    title: str
    content: str = ""
    due_date: datetime | None = None
    expected_version: int | None = Field(default=None, ge=1)


class Note(BaseModel):
    id: str
    owner_user_id: int
    title: str
    content: str
    archived: bool
    archived_at: datetime | None = None
    due_date: datetime | None = None
    created_at: datetime
    updated_at: datetime
    version: int


class NoteList(BaseModel):
    items: list[Note] = Field(default_factory=list)


class ShareCreateRequest(BaseModel):
    username: str = Field(min_length=1, max_length=64)
    permission: str = SharePermission.READ.value


class Share(BaseModel):
    user_id: int
    username: str
    permission: SharePermission
    shared_at: datetime
    shared_by_user_id: int


class ShareList(BaseModel):
    items: list[Share] = Field(default_factory=list)


class Attachment(BaseModel):
    id: str
    note_id: str
    filename: str
    content_type: str | None = None
    file_size: int
    created_at: datetime


class AttachmentList(BaseModel):
    items: list[Attachment] = Field(default_factory=list)


class Activity(BaseModel):
    id: int
    action: str
    entity_type: str
    entity_id: str | None = None
    description: str
    created_at: datetime


class ActivityPage(BaseModel):
    items: list[Activity] = Field(default_factory=list)
    total: int
    page: int
    size: int


class SystemStatistics(BaseModel):
    total_users: int
    total_notes: int
    archived_notes: int
    total_shares: int


class UserStatistics(BaseModel):
    user_id: int
    username: str
    role: str
    enabled: bool
    total_notes: int
    archived_notes: int
    shares_granted: int


class UserStatisticsList(BaseModel):
    items: list[UserStatistics] = Field(default_factory=list)
