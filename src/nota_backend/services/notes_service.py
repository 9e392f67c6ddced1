from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum

from fastapi import HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession

from nota_backend import events
from nota_backend.content_sanitizer import sanitize_html
from nota_backend.db import transaction
from nota_backend.events import EventPublisher, get_event_publisher
from nota_backend.models import utc_now
from nota_backend.models_notes import NOTE_CONTENT_MAX_LENGTH, NOTE_TITLE_MAX_LENGTH, Note
from nota_backend.repositories import notes_repo
from nota_backend.services import access_service


class NoteScope(str, Enum):
    OWN = "own"
    ACCESSIBLE = "accessible"


class NoteSortField(str, Enum):
    TITLE = "title"
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


def _validation_error(message: str, **details: object) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"message": message, "details": details or None},
    )


def _conflict(current_version: int | None) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={"message": "conflict", "details": {"current_version": current_version}},
    )


def _clean_title(title: str | None) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise _validation_error("blank title")
    if len(cleaned) > NOTE_TITLE_MAX_LENGTH:
        raise _validation_error("title too long", max_length=NOTE_TITLE_MAX_LENGTH)
    return cleaned


def _clean_content(content: str | None) -> str:
    raw = content or ""
    # Length is checked on the raw input, before markup is stripped.
    if len(raw) > NOTE_CONTENT_MAX_LENGTH:
        raise _validation_error("content too long", max_length=NOTE_CONTENT_MAX_LENGTH)
    return sanitize_html(raw)


async def create_note(
    *,
    session: AsyncSession,
    owner_user_id: int,
    title: str,
    content: str | None,
    due_date: datetime | None = None,
    publisher: EventPublisher | None = None,
) -> Note:
    final_title = _clean_title(title)
    final_content = _clean_content(content)

    now = utc_now()
    note = Note(
        id=str(uuid.uuid4()),
        owner_user_id=owner_user_id,
        title=final_title,
        content=final_content,
        archived=False,
        archived_at=None,
        due_date=due_date,
        created_at=now,
        updated_at=now,
    )

    async with transaction(session):
        session.add(note)

    (publisher or get_event_publisher()).publish(
        events.create_note_event(user_id=owner_user_id, note_id=note.id, note_title=note.title)
    )
    return note


async def update_note(
    *,
    session: AsyncSession,
    note_id: str,
    acting_user_id: int,
    title: str,
    content: str | None,
    due_date: datetime | None = None,
    expected_version: int | None = None,
    publisher: EventPublisher | None = None,
) -> Note | None:
    """Replace title, content and due date of a note the user may write.

    Returns None when the note is missing or the user lacks write access.
    `expected_version` lets clients detect lost updates; without it the
    version read inside this transaction is used as the guard.
    """
    final_title = _clean_title(title)
    final_content = _clean_content(content)

    async with transaction(session):
        note = await access_service.get_writable_note(
            session, note_id=note_id, user_id=acting_user_id, for_update=True
        )
        if note is None:
            return None

        guard_version = note.version if expected_version is None else expected_version
        if guard_version != note.version:
            raise _conflict(note.version)

        updated = await notes_repo.update_note_versioned(
            session,
            note_id=note_id,
            expected_version=guard_version,
            values={
                "title": final_title,
                "content": final_content,
                "due_date": due_date,
                "updated_at": utc_now(),
            },
        )
        if not updated:
            current = await notes_repo.get_note(session, note_id=note_id)
            raise _conflict(current.version if current is not None else None)
        await session.refresh(note)

    (publisher or get_event_publisher()).publish(
        events.update_note_event(user_id=acting_user_id, note_id=note.id, note_title=note.title)
    )
    return note


async def archive_note(
    *,
    session: AsyncSession,
    note_id: str,
    acting_user_id: int,
    publisher: EventPublisher | None = None,
) -> bool:
    async with transaction(session):
        note = await access_service.get_owned_note(
            session, note_id=note_id, user_id=acting_user_id, for_update=True
        )
        if note is None:
            return False
        if note.archived:
            return True

        now = utc_now()
        updated = await notes_repo.update_note_versioned(
            session,
            note_id=note_id,
            expected_version=note.version,
            values={"archived": True, "archived_at": now, "updated_at": now},
        )
        if not updated:
            current = await notes_repo.get_note(session, note_id=note_id)
            raise _conflict(current.version if current is not None else None)
        await session.refresh(note)

    (publisher or get_event_publisher()).publish(
        events.archive_note_event(user_id=acting_user_id, note_id=note.id, note_title=note.title)
    )
    return True


async def find_accessible_by_id(
    *, session: AsyncSession, note_id: str, user_id: int
) -> Note | None:
    return await access_service.get_readable_note(session, note_id=note_id, user_id=user_id)


async def search_notes(
    *,
    session: AsyncSession,
    user_id: int,
    query: str | None,
    scope: NoteScope = NoteScope.OWN,
    sort_by: NoteSortField = NoteSortField.UPDATED_AT,
    sort_order: SortOrder = SortOrder.DESC,
) -> list[Note]:
    return await notes_repo.search_notes(
        session,
        user_id=user_id,
        query=query,
        include_shared=NoteScope(scope) == NoteScope.ACCESSIBLE,
        sort_by=NoteSortField(sort_by).value,
        descending=SortOrder(sort_order) == SortOrder.DESC,
    )


async def list_archived_notes(*, session: AsyncSession, user_id: int) -> list[Note]:
    return await notes_repo.list_archived_notes(session, owner_user_id=user_id)
