from __future__ import annotations

from typing import Annotated
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import Response
from sqlmodel.ext.asyncio.session import AsyncSession

from nota_backend.config import settings
from nota_backend.db import get_session
from nota_backend.deps import get_current_user, note_not_found, user_id_of
from nota_backend.models import User, assume_utc
from nota_backend.models_notes import NoteAttachment
from nota_backend.schemas import Attachment as AttachmentSchema
from nota_backend.schemas import AttachmentList
from nota_backend.schemas_common import OkResponse
from nota_backend.services import attachments_service

router = APIRouter(tags=["attachments"])


async def _read_upload_file_limited(*, file: UploadFile, max_bytes: int) -> bytes:
    # Read the file in chunks and hard-stop once size exceeds max_bytes.
    buf = bytearray()
    chunk_size = 1024 * 1024
    while True:
        chunk = await file.read(chunk_size)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_CONTENT_TOO_LARGE,
                detail={"message": "attachment too large", "details": {"reason": "FILE_TOO_LARGE"}},
            )
    return bytes(buf)


def _to_schema(row: NoteAttachment) -> AttachmentSchema:
    return AttachmentSchema(
        id=row.id,
        note_id=row.note_id,
        filename=row.filename,
        content_type=row.content_type,
        file_size=row.file_size,
        created_at=assume_utc(row.created_at) or row.created_at,
    )


@router.post(
    "/notes/{note_id}/attachments",
    response_model=AttachmentSchema,
    status_code=status.HTTP_201_CREATED,
)
async def upload_attachment(
    note_id: str,
    file: Annotated[UploadFile, File()],
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> AttachmentSchema:
    max_bytes = int(settings.http_upload_max_size_bytes)
    if max_bytes > 0:
        data = await _read_upload_file_limited(file=file, max_bytes=max_bytes)
    else:
        data = await file.read()

    row = await attachments_service.add_attachment(
        session=session,
        note_id=note_id,
        acting_user_id=user_id_of(user),
        filename=file.filename,
        content_type=file.content_type,
        data=data,
    )
    if row is None:
        raise note_not_found()
    return _to_schema(row)


@router.get("/notes/{note_id}/attachments", response_model=AttachmentList)
async def list_attachments(
    note_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> AttachmentList:
    rows = await attachments_service.list_attachments(
        session=session, note_id=note_id, user_id=user_id_of(user)
    )
    if rows is None:
        raise note_not_found()
    return AttachmentList(items=[_to_schema(r) for r in rows])


@router.get("/notes/{note_id}/attachments/{attachment_id}")
async def download_attachment(
    note_id: str,
    attachment_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> Response:
    row = await attachments_service.get_attachment(
        session=session, note_id=note_id, attachment_id=attachment_id, user_id=user_id_of(user)
    )
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="attachment not found")
    return Response(
        content=row.data,
        media_type=row.content_type or "application/octet-stream",
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(row.filename)}",
            "X-Content-Type-Options": "nosniff",
        },
    )


@router.delete("/notes/{note_id}/attachments/{attachment_id}", response_model=OkResponse)
async def delete_attachment(
    note_id: str,
    attachment_id: str,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> OkResponse:
    deleted = await attachments_service.delete_attachment(
        session=session,
        note_id=note_id,
        attachment_id=attachment_id,
        acting_user_id=user_id_of(user),
    )
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="attachment not found")
    return OkResponse()
