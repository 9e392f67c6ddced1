from __future__ import annotations

from datetime import datetime
from typing import Any, cast

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import CursorResult
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from nota_backend.models import User
from nota_backend.models_notes import NoteShare


async def get_share(
    session: AsyncSession, *, note_id: str, shared_with_user_id: int
) -> NoteShare | None:
    stmt = (
        select(NoteShare)
        .where(NoteShare.note_id == note_id)
        .where(NoteShare.shared_with_user_id == shared_with_user_id)
    )
    return (await session.exec(stmt)).first()


async def insert_share_if_absent(
    session: AsyncSession,
    *,
    share_id: str,
    note_id: str,
    shared_with_user_id: int,
    shared_by_user_id: int,
    permission: str,
    created_at: datetime,
) -> bool:
    """Insert-or-ignore against uq_note_shares_note_id_shared_with_user_id.

    Single statement, so concurrent share attempts for the same (note, user)
    pair cannot both succeed. Returns False when a share already existed.
    """
    dialect_name = session.get_bind().dialect.name
    if dialect_name == "sqlite":
        insert = sqlite.insert
    elif dialect_name == "postgresql":
        insert = postgresql.insert
    else:
        raise RuntimeError(f"unsupported database dialect for share insert: {dialect_name}")

    stmt = (
        insert(NoteShare)
        .values(
            id=share_id,
            note_id=note_id,
            shared_with_user_id=shared_with_user_id,
            shared_by_user_id=shared_by_user_id,
            permission=permission,
            created_at=created_at,
        )
        .on_conflict_do_nothing(index_elements=["note_id", "shared_with_user_id"])
    )
    result = cast(CursorResult[Any], await session.execute(stmt))
    return result.rowcount == 1


async def delete_share(session: AsyncSession, *, note_id: str, shared_with_user_id: int) -> bool:
    stmt = (
        sa.delete(NoteShare)
        .where(cast(ColumnElement[object], cast(object, NoteShare.note_id)) == note_id)
        .where(
            cast(ColumnElement[object], cast(object, NoteShare.shared_with_user_id))
            == shared_with_user_id
        )
        .execution_options(synchronize_session=False)
    )
    result = cast(CursorResult[Any], await session.execute(stmt))
    return result.rowcount > 0


async def list_shares_with_users(
    session: AsyncSession, *, note_id: str
) -> list[tuple[NoteShare, User]]:
    stmt = (
        select(NoteShare, User)
        .join(
            User,
            cast(ColumnElement[object], cast(object, User.id))
            == cast(ColumnElement[object], cast(object, NoteShare.shared_with_user_id)),
        )
        .where(NoteShare.note_id == note_id)
        .order_by(
            cast(ColumnElement[object], cast(object, NoteShare.created_at)).asc(),
            cast(ColumnElement[object], cast(object, NoteShare.id)).asc(),
        )
    )
    return [(share, user) for share, user in (await session.exec(stmt)).all()]


async def count_shares(session: AsyncSession) -> int:
    stmt = select(sa.func.count()).select_from(NoteShare)
    return int((await session.exec(stmt)).one())


async def count_shares_by_granter(session: AsyncSession) -> dict[int, int]:
    granter_col = cast(ColumnElement[object], cast(object, NoteShare.shared_by_user_id))
    stmt = select(granter_col, sa.func.count()).select_from(NoteShare).group_by(granter_col)
    rows = (await session.exec(stmt)).all()
    return {int(cast(int, granter)): int(count) for granter, count in rows}
