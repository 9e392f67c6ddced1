from __future__ import annotations

from typing import Any, cast

import sqlalchemy as sa
from sqlalchemy.engine import CursorResult
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from nota_backend.models import User


async def get_user(session: AsyncSession, *, user_id: int) -> User | None:
    return (await session.exec(select(User).where(User.id == user_id))).first()


async def get_user_by_username(session: AsyncSession, *, username: str) -> User | None:
    return (await session.exec(select(User).where(User.username == username))).first()


async def list_users(session: AsyncSession) -> list[User]:
    stmt = select(User).order_by(cast(ColumnElement[object], cast(object, User.id)).asc())
    return list((await session.exec(stmt)).all())


async def count_users(session: AsyncSession) -> int:
    return int((await session.exec(select(sa.func.count()).select_from(User))).one())


async def update_user_versioned(
    session: AsyncSession,
    *,
    user_id: int,
    expected_version: int,
    values: dict[str, Any],
) -> bool:
    stmt = (
        sa.update(User)
        .where(cast(ColumnElement[object], cast(object, User.id)) == user_id)
        .where(cast(ColumnElement[object], cast(object, User.version)) == expected_version)
        .values(**values, version=expected_version + 1)
        .execution_options(synchronize_session=False)
    )
    result = cast(CursorResult[Any], await session.execute(stmt))
    return result.rowcount == 1
