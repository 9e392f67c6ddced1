from __future__ import annotations

from typing import cast

from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from nota_backend.models_notes import NoteAttachment


async def get_attachment_for_note(
    session: AsyncSession, *, note_id: str, attachment_id: str
) -> NoteAttachment | None:
    stmt = (
        select(NoteAttachment)
        .where(NoteAttachment.note_id == note_id)
        .where(NoteAttachment.id == attachment_id)
    )
    return (await session.exec(stmt)).first()


async def list_attachments_for_note(session: AsyncSession, *, note_id: str) -> list[NoteAttachment]:
    stmt = (
        select(NoteAttachment)
        .where(NoteAttachment.note_id == note_id)
        .order_by(
            cast(ColumnElement[object], cast(object, NoteAttachment.created_at)).desc(),
            cast(ColumnElement[object], cast(object, NoteAttachment.id)).asc(),
        )
    )
    return list((await session.exec(stmt)).all())
