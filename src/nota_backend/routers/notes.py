from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from nota_backend.db import get_session
from nota_backend.deps import get_current_user, note_not_found, user_id_of
from nota_backend.models import User, assume_utc
from nota_backend.models_notes import Note
from nota_backend.schemas import Note as NoteSchema
from nota_backend.schemas import NoteCreateRequest, NoteList, NoteUpdateRequest
from nota_backend.schemas_common import OkResponse
from nota_backend.services import notes_service
from nota_backend.services.notes_service import NoteScope, NoteSortField, SortOrder

router = APIRouter(tags=["notes"])


def to_note_schema(note: Note) -> NoteSchema:
    return NoteSchema(
        id=note.id,
        owner_user_id=note.owner_user_id,
        title=note.title,
        content=note.content,
        archived=note.archived,
        archived_at=assume_utc(note.archived_at),
        due_date=assume_utc(note.due_date),
        created_at=assume_utc(note.created_at) or note.created_at,
        updated_at=assume_utc(note.updated_at) or note.updated_at,
        version=note.version,
    )


@router.post("/notes", response_model=NoteSchema, status_code=status.HTTP_201_CREATED)
async def create_note(
    payload: NoteCreateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> NoteSchema:
    note = await notes_service.create_note(
        session=session,
        owner_user_id=user_id_of(user),
        title=payload.title,
        content=payload.content,
        due_date=payload.due_date,
    )
    return to_note_schema(note)


@router.get("/notes", response_model=NoteList)
async def search_notes(
    q: Annotated[str | None, Query()] = None,
    scope: Annotated[NoteScope, Query()] = NoteScope.OWN,
    sort_by: Annotated[NoteSortField, Query()] = NoteSortField.UPDATED_AT,
    sort_order: Annotated[SortOrder, Query()] = SortOrder.DESC,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> NoteList:
    notes = await notes_service.search_notes(
        session=session,
        user_id=user_id_of(user),
        query=q,
        scope=scope,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return NoteList(items=[to_note_schema(n) for n in notes])


@router.get("/notes/archived", response_model=NoteList)
async def list_archived_notes(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> NoteList:
    notes = await notes_service.list_archived_notes(session=session, user_id=user_id_of(user))
    return NoteList(items=[to_note_schema(n) for n in notes])


@router.get("/notes/{note_id}", response_model=NoteSchema)
async def get_note(
    note_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> NoteSchema:
    note = await notes_service.find_accessible_by_id(
        session=session, note_id=note_id, user_id=user_id_of(user)
    )
    if note is None:
        raise note_not_found()
    return to_note_schema(note)


@router.put("/notes/{note_id}", response_model=NoteSchema)
async def update_note(
    note_id: str,
    payload: NoteUpdateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> NoteSchema:
    note = await notes_service.update_note(
        session=session,
        note_id=note_id,
        acting_user_id=user_id_of(user),
        title=payload.title,
        content=payload.content,
        due_date=payload.due_date,
        expected_version=payload.expected_version,
    )
    if note is None:
        raise note_not_found()
    return to_note_schema(note)


@router.post("/notes/{note_id}/archive", response_model=OkResponse)
async def archive_note(
    note_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> OkResponse:
    archived = await notes_service.archive_note(
        session=session, note_id=note_id, acting_user_id=user_id_of(user)
    )
    if not archived:
        raise note_not_found()
    return OkResponse()
