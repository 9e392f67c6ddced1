"""Domain events and the activity-log publisher.

Services publish after their transaction commits. Publishing is a
non-blocking handoff: the caller never waits for the activity-log write and
a failing or saturated consumer never affects the operation that emitted the
event. Failed writes are retried with backoff before the event is given up.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from nota_backend.config import settings
from nota_backend.db import session_scope
from nota_backend.models import utc_now

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    LOGIN = "LOGIN"
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    ARCHIVE = "ARCHIVE"
    SHARE = "SHARE"
    REVOKE_SHARE = "REVOKE_SHARE"
    UPLOAD = "UPLOAD"
    DELETE = "DELETE"
    DOWNLOAD = "DOWNLOAD"
    ENABLE = "ENABLE"
    DISABLE = "DISABLE"


class EntityType(str, Enum):
    USER = "USER"
    NOTE = "NOTE"
    ATTACHMENT = "ATTACHMENT"


@dataclass(frozen=True)
class DomainEvent:
    kind: EventKind
    acting_user_id: int
    entity_type: EntityType
    entity_id: str | None
    description: str
    occurred_at: datetime = field(default_factory=utc_now)


class EventPublisher(Protocol):
    def publish(self, event: DomainEvent) -> None: ...


def login_event(*, user_id: int) -> DomainEvent:
    return DomainEvent(EventKind.LOGIN, user_id, EntityType.USER, str(user_id), "User logged in")


def create_note_event(*, user_id: int, note_id: str, note_title: str) -> DomainEvent:
    return DomainEvent(
        EventKind.CREATE, user_id, EntityType.NOTE, note_id, f"Note created: '{note_title}'"
    )


def update_note_event(*, user_id: int, note_id: str, note_title: str) -> DomainEvent:
    return DomainEvent(
        EventKind.UPDATE, user_id, EntityType.NOTE, note_id, f"Note updated: '{note_title}'"
    )


def archive_note_event(*, user_id: int, note_id: str, note_title: str) -> DomainEvent:
    return DomainEvent(
        EventKind.ARCHIVE, user_id, EntityType.NOTE, note_id, f"Note archived: '{note_title}'"
    )


def share_note_event(
    *, user_id: int, note_id: str, note_title: str, shared_with_username: str, permission: str
) -> DomainEvent:
    return DomainEvent(
        EventKind.SHARE,
        user_id,
        EntityType.NOTE,
        note_id,
        f"Note shared: '{note_title}' with user '{shared_with_username}' ({permission})",
    )


def revoke_share_note_event(
    *, user_id: int, note_id: str, note_title: str, shared_with_user_id: int
) -> DomainEvent:
    return DomainEvent(
        EventKind.REVOKE_SHARE,
        user_id,
        EntityType.NOTE,
        note_id,
        f"Note share revoked: '{note_title}' for user id {shared_with_user_id}",
    )


def upload_attachment_event(
    *, user_id: int, note_id: str, attachment_id: str, filename: str
) -> DomainEvent:
    return DomainEvent(
        EventKind.UPLOAD,
        user_id,
        EntityType.ATTACHMENT,
        attachment_id,
        f"Attachment uploaded: '{filename}' to note {note_id}",
    )


def delete_attachment_event(
    *, user_id: int, note_id: str, attachment_id: str, filename: str
) -> DomainEvent:
    return DomainEvent(
        EventKind.DELETE,
        user_id,
        EntityType.ATTACHMENT,
        attachment_id,
        f"Attachment deleted: '{filename}' from note {note_id}",
    )


def download_attachment_event(
    *, user_id: int, note_id: str, attachment_id: str, filename: str
) -> DomainEvent:
    return DomainEvent(
        EventKind.DOWNLOAD,
        user_id,
        EntityType.ATTACHMENT,
        attachment_id,
        f"Attachment downloaded: '{filename}' from note {note_id}",
    )


def user_enabled_event(*, admin_user_id: int, target_user_id: int) -> DomainEvent:
    return DomainEvent(
        EventKind.ENABLE,
        admin_user_id,
        EntityType.USER,
        str(target_user_id),
        f"User enabled: id {target_user_id}",
    )


def user_disabled_event(*, admin_user_id: int, target_user_id: int) -> DomainEvent:
    return DomainEvent(
        EventKind.DISABLE,
        admin_user_id,
        EntityType.USER,
        str(target_user_id),
        f"User disabled: id {target_user_id}",
    )


def _log_retry(retry_state: RetryCallState) -> None:
    error = None
    if retry_state.outcome is not None and retry_state.outcome.failed:
        error = retry_state.outcome.exception()
    logger.warning(
        "retrying activity log write attempt=%s error=%r",
        retry_state.attempt_number,
        error,
    )


class ActivityLogPublisher:
    """Queue-backed publisher whose worker persists ActivityLog rows.

    `start()`/`stop()` are bound to the application lifespan. Events published
    while the worker is not running are dropped with a warning.
    """

    def __init__(
        self,
        *,
        max_queue_size: int | None = None,
        write_attempts: int | None = None,
        retry_wait: wait_base | None = None,
    ) -> None:
        self._max_queue_size = int(max_queue_size or settings.activity_log_queue_size)
        self._write_attempts = max(1, int(write_attempts or settings.activity_log_write_attempts))
        self._retry_wait = retry_wait or wait_exponential(multiplier=0.2, min=0.2, max=5)
        self._queue: asyncio.Queue[DomainEvent] | None = None
        self._worker: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self._max_queue_size)
        self._worker = asyncio.create_task(self._run(self._queue), name="activity-log-worker")

    async def stop(self) -> None:
        if self._worker is None:
            return
        await self.drain()
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        self._queue = None

    async def drain(self) -> None:
        if self._queue is not None and self.running:
            await self._queue.join()

    def publish(self, event: DomainEvent) -> None:
        if self._queue is None or not self.running:
            logger.warning(
                "activity log worker not running; dropping event kind=%s user_id=%s",
                event.kind.value,
                event.acting_user_id,
            )
            return
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(
                "activity log queue full; dropping event kind=%s user_id=%s",
                event.kind.value,
                event.acting_user_id,
            )

    async def _write(self, event: DomainEvent) -> None:
        # Imported lazily: services import this module for the event factories.
        from nota_backend.services import activity_service

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._write_attempts),
            wait=self._retry_wait,
            before_sleep=_log_retry,
            reraise=True,
        ):
            with attempt:
                async with session_scope() as session:
                    await activity_service.log_activity(session, event=event)

    async def _run(self, queue: asyncio.Queue[DomainEvent]) -> None:
        while True:
            event = await queue.get()
            try:
                await self._write(event)
            except Exception:
                # Activity logging must never break the request that emitted the event.
                logger.warning(
                    "activity log write failed after retries kind=%s user_id=%s",
                    event.kind.value,
                    event.acting_user_id,
                    exc_info=True,
                )
            finally:
                queue.task_done()


activity_publisher = ActivityLogPublisher()


def get_event_publisher() -> EventPublisher:
    return activity_publisher
