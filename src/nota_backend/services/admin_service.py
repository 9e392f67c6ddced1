from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession

from nota_backend import events
from nota_backend.db import transaction
from nota_backend.events import EventPublisher, get_event_publisher
from nota_backend.models import utc_now
from nota_backend.repositories import notes_repo, shares_repo, users_repo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SystemStatistics:
    total_users: int
    total_notes: int
    archived_notes: int
    total_shares: int


@dataclass(frozen=True)
class UserStatistics:
    user_id: int
    username: str
    role: str
    enabled: bool
    total_notes: int
    archived_notes: int
    shares_granted: int


async def get_system_statistics(*, session: AsyncSession) -> SystemStatistics:
    return SystemStatistics(
        total_users=await users_repo.count_users(session),
        total_notes=await notes_repo.count_notes(session),
        archived_notes=await notes_repo.count_notes(session, archived=True),
        total_shares=await shares_repo.count_shares(session),
    )


async def get_all_user_statistics(*, session: AsyncSession) -> list[UserStatistics]:
    users = await users_repo.list_users(session)
    totals = await notes_repo.count_notes_by_owner(session)
    archived = await notes_repo.count_notes_by_owner(session, archived=True)
    granted = await shares_repo.count_shares_by_granter(session)

    out: list[UserStatistics] = []
    for user in users:
        if user.id is None:
            continue
        out.append(
            UserStatistics(
                user_id=user.id,
                username=user.username,
                role=user.role,
                enabled=user.enabled,
                total_notes=totals.get(user.id, 0),
                archived_notes=archived.get(user.id, 0),
                shares_granted=granted.get(user.id, 0),
            )
        )
    return out


async def _set_enabled(*, session: AsyncSession, user_id: int, enabled: bool) -> bool:
    async with transaction(session):
        user = await users_repo.get_user(session, user_id=user_id)
        if user is None:
            return False
        if not enabled and user.is_admin:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"message": "admin accounts cannot be disabled", "details": None},
            )
        if user.enabled == enabled:
            return True

        updated = await users_repo.update_user_versioned(
            session,
            user_id=user_id,
            expected_version=user.version,
            values={"enabled": enabled, "updated_at": utc_now()},
        )
        if not updated:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"message": "conflict", "details": None},
            )
        await session.refresh(user)
    return True


async def disable_user(
    *,
    session: AsyncSession,
    admin_user_id: int,
    user_id: int,
    publisher: EventPublisher | None = None,
) -> bool:
    if not await _set_enabled(session=session, user_id=user_id, enabled=False):
        return False
    logger.info("user disabled id=%s by admin id=%s", user_id, admin_user_id)
    (publisher or get_event_publisher()).publish(
        events.user_disabled_event(admin_user_id=admin_user_id, target_user_id=user_id)
    )
    return True


async def enable_user(
    *,
    session: AsyncSession,
    admin_user_id: int,
    user_id: int,
    publisher: EventPublisher | None = None,
) -> bool:
    if not await _set_enabled(session=session, user_id=user_id, enabled=True):
        return False
    logger.info("user enabled id=%s by admin id=%s", user_id, admin_user_id)
    (publisher or get_event_publisher()).publish(
        events.user_enabled_event(admin_user_id=admin_user_id, target_user_id=user_id)
    )
    return True
