from __future__ import annotations

import uuid

from fastapi import HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession

from nota_backend import events
from nota_backend.db import transaction
from nota_backend.events import EventPublisher, get_event_publisher
from nota_backend.models import utc_now
from nota_backend.models_notes import NoteAttachment
from nota_backend.repositories import attachments_repo
from nota_backend.services import access_service
from nota_backend.upload_safety import (
    UploadedFile,
    UploadPolicy,
    UploadRejection,
    normalize_content_type,
    sanitize_filename,
    validate_upload,
)

_REJECTION_STATUS = {
    UploadRejection.EMPTY_FILE: status.HTTP_400_BAD_REQUEST,
    UploadRejection.FILE_TOO_LARGE: status.HTTP_413_CONTENT_TOO_LARGE,
    UploadRejection.INVALID_EXTENSION: status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    UploadRejection.CONTENT_TYPE_MISMATCH: status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
}


def _rejected(reason: UploadRejection) -> HTTPException:
    return HTTPException(
        status_code=_REJECTION_STATUS[reason],
        detail={"message": "upload rejected", "details": {"reason": reason.value}},
    )


async def add_attachment(
    *,
    session: AsyncSession,
    note_id: str,
    acting_user_id: int,
    filename: str | None,
    content_type: str | None,
    data: bytes,
    policy: UploadPolicy | None = None,
    publisher: EventPublisher | None = None,
) -> NoteAttachment | None:
    upload = UploadedFile(name=filename, declared_content_type=content_type, data=data)

    async with transaction(session):
        note = await access_service.get_writable_note(
            session, note_id=note_id, user_id=acting_user_id
        )
        if note is None:
            return None

        rejection = validate_upload(upload, policy)
        if rejection is not None:
            raise _rejected(rejection)

        attachment = NoteAttachment(
            id=str(uuid.uuid4()),
            note_id=note_id,
            filename=sanitize_filename(filename),
            content_type=normalize_content_type(content_type) or None,
            file_size=upload.size,
            data=data,
            created_at=utc_now(),
        )
        session.add(attachment)

    (publisher or get_event_publisher()).publish(
        events.upload_attachment_event(
            user_id=acting_user_id,
            note_id=note_id,
            attachment_id=attachment.id,
            filename=attachment.filename,
        )
    )
    return attachment


async def list_attachments(
    *, session: AsyncSession, note_id: str, user_id: int
) -> list[NoteAttachment] | None:
    note = await access_service.get_readable_note(session, note_id=note_id, user_id=user_id)
    if note is None:
        return None
    return await attachments_repo.list_attachments_for_note(session, note_id=note_id)


async def get_attachment(
    *,
    session: AsyncSession,
    note_id: str,
    attachment_id: str,
    user_id: int,
    publisher: EventPublisher | None = None,
) -> NoteAttachment | None:
    note = await access_service.get_readable_note(session, note_id=note_id, user_id=user_id)
    if note is None:
        return None
    attachment = await attachments_repo.get_attachment_for_note(
        session, note_id=note_id, attachment_id=attachment_id
    )
    if attachment is None:
        return None

    (publisher or get_event_publisher()).publish(
        events.download_attachment_event(
            user_id=user_id,
            note_id=note_id,
            attachment_id=attachment.id,
            filename=attachment.filename,
        )
    )
    return attachment


async def delete_attachment(
    *,
    session: AsyncSession,
    note_id: str,
    attachment_id: str,
    acting_user_id: int,
    publisher: EventPublisher | None = None,
) -> bool:
    async with transaction(session):
        note = await access_service.get_writable_note(
            session, note_id=note_id, user_id=acting_user_id
        )
        if note is None:
            return False
        attachment = await attachments_repo.get_attachment_for_note(
            session, note_id=note_id, attachment_id=attachment_id
        )
        if attachment is None:
            return False
        filename = attachment.filename
        await session.delete(attachment)

    (publisher or get_event_publisher()).publish(
        events.delete_attachment_event(
            user_id=acting_user_id,
            note_id=note_id,
            attachment_id=attachment_id,
            filename=filename,
        )
    )
    return True
