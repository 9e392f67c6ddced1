from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession

from nota_backend.db import get_session
from nota_backend.deps import require_admin, user_id_of
from nota_backend.models import User
from nota_backend.schemas import SystemStatistics, UserStatistics, UserStatisticsList
from nota_backend.schemas_common import OkResponse
from nota_backend.services import admin_service

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/stats", response_model=SystemStatistics)
async def system_statistics(
    _admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> SystemStatistics:
    stats = await admin_service.get_system_statistics(session=session)
    return SystemStatistics(
        total_users=stats.total_users,
        total_notes=stats.total_notes,
        archived_notes=stats.archived_notes,
        total_shares=stats.total_shares,
    )


@router.get("/users", response_model=UserStatisticsList)
async def user_statistics(
    _admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> UserStatisticsList:
    rows = await admin_service.get_all_user_statistics(session=session)
    return UserStatisticsList(
        items=[
            UserStatistics(
                user_id=r.user_id,
                username=r.username,
                role=r.role,
                enabled=r.enabled,
                total_notes=r.total_notes,
                archived_notes=r.archived_notes,
                shares_granted=r.shares_granted,
            )
            for r in rows
        ]
    )


@router.post("/users/{user_id}/disable", response_model=OkResponse)
async def disable_user(
    user_id: int,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> OkResponse:
    ok = await admin_service.disable_user(
        session=session, admin_user_id=user_id_of(admin), user_id=user_id
    )
    if not ok:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="user not found")
    return OkResponse()


@router.post("/users/{user_id}/enable", response_model=OkResponse)
async def enable_user(
    user_id: int,
    admin: User = Depends(require_admin),
    session: AsyncSession = Depends(get_session),
) -> OkResponse:
    ok = await admin_service.enable_user(
        session=session, admin_user_id=user_id_of(admin), user_id=user_id
    )
    if not ok:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="user not found")
    return OkResponse()
