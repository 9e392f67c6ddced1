from __future__ import annotations

from typing import Any, cast

import sqlalchemy as sa
from sqlalchemy.engine import CursorResult
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import or_, select
from sqlmodel.ext.asyncio.session import AsyncSession

from nota_backend.models_notes import Note, NoteShare

SORTABLE_COLUMNS = ("title", "created_at", "updated_at")


def _not_archived() -> ColumnElement[bool]:
    return cast(ColumnElement[object], cast(object, Note.archived)).is_(False)


def _order_by(sort_by: str, descending: bool) -> list[Any]:
    if sort_by not in SORTABLE_COLUMNS:
        raise ValueError(f"unsupported sort column: {sort_by}")
    column = cast(ColumnElement[object], getattr(Note, sort_by))
    # Tie-break on id so equal sort keys come back in a stable order.
    return [
        column.desc() if descending else column.asc(),
        cast(ColumnElement[object], cast(object, Note.id)).asc(),
    ]


async def get_note(session: AsyncSession, *, note_id: str, for_update: bool = False) -> Note | None:
    stmt = select(Note).where(Note.id == note_id)
    if for_update:
        stmt = stmt.with_for_update()
    return (await session.exec(stmt)).first()


async def update_note_versioned(
    session: AsyncSession,
    *,
    note_id: str,
    expected_version: int,
    values: dict[str, Any],
) -> bool:
    """Conditional UPDATE guarded by the version counter.

    Returns False when no row matched, i.e. another writer got there first.
    """
    stmt = (
        sa.update(Note)
        .where(cast(ColumnElement[object], cast(object, Note.id)) == note_id)
        .where(cast(ColumnElement[object], cast(object, Note.version)) == expected_version)
        .values(**values, version=expected_version + 1)
        .execution_options(synchronize_session=False)
    )
    result = cast(CursorResult[Any], await session.execute(stmt))
    return result.rowcount == 1


async def search_notes(
    session: AsyncSession,
    *,
    user_id: int,
    query: str | None,
    include_shared: bool,
    sort_by: str,
    descending: bool,
) -> list[Note]:
    stmt = select(Note).where(_not_archived())

    if include_shared:
        shared_note_ids = select(NoteShare.note_id).where(NoteShare.shared_with_user_id == user_id)
        stmt = stmt.where(
            or_(
                Note.owner_user_id == user_id,
                cast(ColumnElement[object], cast(object, Note.id)).in_(shared_note_ids),
            )
        )
    else:
        stmt = stmt.where(Note.owner_user_id == user_id)

    needle = (query or "").strip().lower()
    if needle:
        stmt = stmt.where(
            or_(
                sa.func.lower(Note.title, type_=sa.String()).contains(needle, autoescape=True),
                sa.func.lower(Note.content, type_=sa.String()).contains(needle, autoescape=True),
            )
        )

    stmt = stmt.order_by(*_order_by(sort_by, descending))
    return list((await session.exec(stmt)).all())


async def list_shared_with_user(session: AsyncSession, *, user_id: int) -> list[Note]:
    stmt = (
        select(Note)
        .join(
            NoteShare,
            cast(ColumnElement[object], cast(object, NoteShare.note_id))
            == cast(ColumnElement[object], cast(object, Note.id)),
        )
        .where(NoteShare.shared_with_user_id == user_id)
        .where(_not_archived())
        .order_by(*_order_by("updated_at", True))
    )
    return list((await session.exec(stmt)).all())


async def list_archived_notes(session: AsyncSession, *, owner_user_id: int) -> list[Note]:
    stmt = (
        select(Note)
        .where(Note.owner_user_id == owner_user_id)
        .where(cast(ColumnElement[object], cast(object, Note.archived)).is_(True))
        .order_by(*_order_by("updated_at", True))
    )
    return list((await session.exec(stmt)).all())


async def count_notes(session: AsyncSession, *, archived: bool | None = None) -> int:
    stmt = select(sa.func.count()).select_from(Note)
    if archived is not None:
        stmt = stmt.where(cast(ColumnElement[object], cast(object, Note.archived)).is_(archived))
    return int((await session.exec(stmt)).one())


async def count_notes_by_owner(
    session: AsyncSession, *, archived: bool | None = None
) -> dict[int, int]:
    owner_col = cast(ColumnElement[object], cast(object, Note.owner_user_id))
    stmt = select(owner_col, sa.func.count()).select_from(Note).group_by(owner_col)
    if archived is not None:
        stmt = stmt.where(cast(ColumnElement[object], cast(object, Note.archived)).is_(archived))
    rows = (await session.exec(stmt)).all()
    return {int(cast(int, owner)): int(count) for owner, count in rows}
