from __future__ import annotations

from sqlmodel.ext.asyncio.session import AsyncSession

from nota_backend.db import transaction
from nota_backend.events import DomainEvent
from nota_backend.models import ActivityLog
from nota_backend.repositories import activity_repo

DEFAULT_RECENT_LIMIT = 20
MAX_PAGE_SIZE = 100


async def log_activity(session: AsyncSession, *, event: DomainEvent) -> ActivityLog:
    row = ActivityLog(
        user_id=event.acting_user_id,
        action=event.kind.value,
        entity_type=event.entity_type.value,
        entity_id=event.entity_id,
        description=event.description,
        created_at=event.occurred_at,
    )
    async with transaction(session):
        session.add(row)
    return row


async def get_recent_activities(
    *, session: AsyncSession, user_id: int, limit: int = DEFAULT_RECENT_LIMIT
) -> list[ActivityLog]:
    limit = max(1, min(int(limit), MAX_PAGE_SIZE))
    return await activity_repo.list_for_user(session, user_id=user_id, limit=limit)


async def get_activities_page(
    *, session: AsyncSession, user_id: int, page: int = 0, size: int = DEFAULT_RECENT_LIMIT
) -> tuple[list[ActivityLog], int]:
    """Zero-based page of a user's activity, newest first, plus the total count."""
    size = max(1, min(int(size), MAX_PAGE_SIZE))
    page = max(0, int(page))
    items = await activity_repo.list_for_user(
        session, user_id=user_id, limit=size, offset=page * size
    )
    total = await activity_repo.count_for_user(session, user_id=user_id)
    return items, total
