"""Per-note access resolution.

A user relates to a note as its owner, as a share recipient (read or edit),
or not at all. "Not at all" and "no such note" are both reported as `None`
so callers cannot tell an inaccessible note from a missing one.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from sqlmodel.ext.asyncio.session import AsyncSession

from nota_backend.models_notes import Note, SharePermission
from nota_backend.repositories import notes_repo, shares_repo


class AccessLevel(str, Enum):
    OWNER = "OWNER"
    EDIT = "EDIT"
    READ = "READ"


@dataclass(frozen=True)
class NoteAccess:
    note: Note
    level: AccessLevel

    @property
    def can_read(self) -> bool:
        return True

    @property
    def can_write(self) -> bool:
        return self.level in (AccessLevel.OWNER, AccessLevel.EDIT)

    @property
    def can_manage_sharing(self) -> bool:
        return self.level == AccessLevel.OWNER


async def resolve_access(
    session: AsyncSession, *, note_id: str, user_id: int, for_update: bool = False
) -> NoteAccess | None:
    # Archived notes stay resolvable; hiding them is a listing concern.
    note = await notes_repo.get_note(session, note_id=note_id, for_update=for_update)
    if note is None:
        return None

    if note.owner_user_id == user_id:
        return NoteAccess(note=note, level=AccessLevel.OWNER)

    share = await shares_repo.get_share(session, note_id=note_id, shared_with_user_id=user_id)
    if share is None:
        return None
    if share.permission == SharePermission.EDIT.value:
        return NoteAccess(note=note, level=AccessLevel.EDIT)
    return NoteAccess(note=note, level=AccessLevel.READ)


async def get_readable_note(session: AsyncSession, *, note_id: str, user_id: int) -> Note | None:
    access = await resolve_access(session, note_id=note_id, user_id=user_id)
    return access.note if access is not None else None


async def get_writable_note(
    session: AsyncSession, *, note_id: str, user_id: int, for_update: bool = False
) -> Note | None:
    access = await resolve_access(
        session, note_id=note_id, user_id=user_id, for_update=for_update
    )
    if access is None or not access.can_write:
        return None
    return access.note


async def get_owned_note(
    session: AsyncSession, *, note_id: str, user_id: int, for_update: bool = False
) -> Note | None:
    access = await resolve_access(
        session, note_id=note_id, user_id=user_id, for_update=for_update
    )
    if access is None or not access.can_manage_sharing:
        return None
    return access.note
