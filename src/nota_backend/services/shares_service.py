from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from fastapi import HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession

from nota_backend import events
from nota_backend.db import transaction
from nota_backend.events import EventPublisher, get_event_publisher
from nota_backend.models import assume_utc, utc_now
from nota_backend.models_notes import Note, SharePermission
from nota_backend.repositories import notes_repo, shares_repo, users_repo
from nota_backend.services import access_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ShareInfo:
    user_id: int
    username: str
    permission: SharePermission
    shared_at: datetime
    shared_by_user_id: int


def parse_permission(value: str | SharePermission) -> SharePermission:
    if isinstance(value, SharePermission):
        return value
    try:
        return SharePermission((value or "").strip().lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "message": "invalid permission",
                "details": {"allowed": [p.value for p in SharePermission]},
            },
        ) from None


async def share_note(
    *,
    session: AsyncSession,
    note_id: str,
    acting_user_id: int,
    target_username: str,
    permission: str | SharePermission,
    publisher: EventPublisher | None = None,
) -> bool:
    """Grant `target_username` access to a note owned by the acting user.

    Returns False when the note is not owned by the acting user, the target
    does not exist, the target is the owner, or a share already exists.
    """
    perm = parse_permission(permission)

    async with transaction(session):
        note = await access_service.get_owned_note(
            session, note_id=note_id, user_id=acting_user_id
        )
        if note is None:
            return False

        target = await users_repo.get_user_by_username(
            session, username=(target_username or "").strip()
        )
        if target is None or target.id is None:
            return False
        if target.id == acting_user_id:
            return False

        inserted = await shares_repo.insert_share_if_absent(
            session,
            share_id=str(uuid.uuid4()),
            note_id=note_id,
            shared_with_user_id=target.id,
            shared_by_user_id=acting_user_id,
            permission=perm.value,
            created_at=utc_now(),
        )
        if not inserted:
            logger.info("share already exists note_id=%s user_id=%s", note_id, target.id)
            return False
        note_title = note.title
        target_name = target.username

    (publisher or get_event_publisher()).publish(
        events.share_note_event(
            user_id=acting_user_id,
            note_id=note_id,
            note_title=note_title,
            shared_with_username=target_name,
            permission=perm.value,
        )
    )
    return True


async def revoke_share(
    *,
    session: AsyncSession,
    note_id: str,
    target_user_id: int,
    acting_user_id: int,
    publisher: EventPublisher | None = None,
) -> bool:
    async with transaction(session):
        note = await access_service.get_owned_note(
            session, note_id=note_id, user_id=acting_user_id
        )
        if note is None:
            return False
        removed = await shares_repo.delete_share(
            session, note_id=note_id, shared_with_user_id=target_user_id
        )
        if not removed:
            return False
        note_title = note.title

    (publisher or get_event_publisher()).publish(
        events.revoke_share_note_event(
            user_id=acting_user_id,
            note_id=note_id,
            note_title=note_title,
            shared_with_user_id=target_user_id,
        )
    )
    return True


async def list_shares(
    *, session: AsyncSession, note_id: str, acting_user_id: int
) -> list[ShareInfo]:
    note = await access_service.get_owned_note(session, note_id=note_id, user_id=acting_user_id)
    if note is None:
        return []

    rows = await shares_repo.list_shares_with_users(session, note_id=note_id)
    return [
        ShareInfo(
            user_id=share.shared_with_user_id,
            username=user.username,
            permission=SharePermission(share.permission),
            shared_at=assume_utc(share.created_at) or share.created_at,
            shared_by_user_id=share.shared_by_user_id,
        )
        for share, user in rows
    ]


async def list_shared_with_me(*, session: AsyncSession, user_id: int) -> list[Note]:
    return await notes_repo.list_shared_with_user(session, user_id=user_id)
