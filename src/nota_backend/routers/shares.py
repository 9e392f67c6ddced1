from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession

from nota_backend.db import get_session
from nota_backend.deps import get_current_user, note_not_found, user_id_of
from nota_backend.models import User
from nota_backend.routers.notes import to_note_schema
from nota_backend.schemas import NoteList, Share, ShareCreateRequest, ShareList
from nota_backend.schemas_common import OkResponse
from nota_backend.services import access_service, shares_service

router = APIRouter(tags=["shares"])


@router.post(
    "/notes/{note_id}/shares", response_model=OkResponse, status_code=status.HTTP_201_CREATED
)
async def share_note(
    note_id: str,
    payload: ShareCreateRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> OkResponse:
    user_id = user_id_of(user)
    permission = shares_service.parse_permission(payload.permission)
    shared = await shares_service.share_note(
        session=session,
        note_id=note_id,
        acting_user_id=user_id,
        target_username=payload.username,
        permission=permission,
    )
    if shared:
        return OkResponse()

    # The service folds every rejection into False; only the owner learns why.
    if await access_service.get_owned_note(session, note_id=note_id, user_id=user_id) is None:
        raise note_not_found()
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={
            "message": "share rejected",
            "details": {"reason": "unknown user, self-share or already shared"},
        },
    )


@router.get("/notes/{note_id}/shares", response_model=ShareList)
async def list_shares(
    note_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> ShareList:
    user_id = user_id_of(user)
    if await access_service.get_owned_note(session, note_id=note_id, user_id=user_id) is None:
        raise note_not_found()
    shares = await shares_service.list_shares(
        session=session, note_id=note_id, acting_user_id=user_id
    )
    return ShareList(
        items=[
            Share(
                user_id=s.user_id,
                username=s.username,
                permission=s.permission,
                shared_at=s.shared_at,
                shared_by_user_id=s.shared_by_user_id,
            )
            for s in shares
        ]
    )


@router.delete("/notes/{note_id}/shares/{target_user_id}", response_model=OkResponse)
async def revoke_share(
    note_id: str,
    target_user_id: int,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> OkResponse:
    revoked = await shares_service.revoke_share(
        session=session,
        note_id=note_id,
        target_user_id=target_user_id,
        acting_user_id=user_id_of(user),
    )
    if not revoked:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="share not found")
    return OkResponse()


@router.get("/shared-with-me", response_model=NoteList)
async def list_shared_with_me(
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> NoteList:
    notes = await shares_service.list_shared_with_me(session=session, user_id=user_id_of(user))
    return NoteList(items=[to_note_schema(n) for n in notes])
