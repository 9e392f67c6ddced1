from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from nota_backend.db import get_session
from nota_backend.deps import get_current_user, user_id_of
from nota_backend.models import ActivityLog, User, assume_utc
from nota_backend.schemas import Activity, ActivityPage
from nota_backend.services import activity_service

router = APIRouter(tags=["activity"])


def _to_schema(row: ActivityLog) -> Activity:
    return Activity(
        id=int(row.id or 0),
        action=row.action,
        entity_type=row.entity_type,
        entity_id=row.entity_id,
        description=row.description,
        created_at=assume_utc(row.created_at) or row.created_at,
    )


@router.get("/activity", response_model=ActivityPage)
async def list_activity(
    page: Annotated[int, Query(ge=0)] = 0,
    size: Annotated[int, Query(ge=1, le=activity_service.MAX_PAGE_SIZE)] = (
        activity_service.DEFAULT_RECENT_LIMIT
    ),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ActivityPage:
    items, total = await activity_service.get_activities_page(
        session=session, user_id=user_id_of(user), page=page, size=size
    )
    return ActivityPage(items=[_to_schema(r) for r in items], total=total, page=page, size=size)


@router.get("/activity/recent", response_model=list[Activity])
async def recent_activity(
    limit: Annotated[int, Query(ge=1, le=activity_service.MAX_PAGE_SIZE)] = (
        activity_service.DEFAULT_RECENT_LIMIT
    ),
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> list[Activity]:
    rows = await activity_service.get_recent_activities(
        session=session, user_id=user_id_of(user), limit=limit
    )
    return [_to_schema(r) for r in rows]
