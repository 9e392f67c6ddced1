from __future__ import annotations

from typing import cast

import sqlalchemy as sa
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from nota_backend.models import ActivityLog


async def list_for_user(
    session: AsyncSession, *, user_id: int, limit: int, offset: int = 0
) -> list[ActivityLog]:
    stmt = (
        select(ActivityLog)
        .where(ActivityLog.user_id == user_id)
        .order_by(
            cast(ColumnElement[object], cast(object, ActivityLog.created_at)).desc(),
            cast(ColumnElement[object], cast(object, ActivityLog.id)).desc(),
        )
        .limit(limit)
        .offset(offset)
    )
    return list((await session.exec(stmt)).all())


async def count_for_user(session: AsyncSession, *, user_id: int) -> int:
    stmt = select(sa.func.count()).select_from(ActivityLog).where(ActivityLog.user_id == user_id)
    return int((await session.exec(stmt)).one())
