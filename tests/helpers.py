from __future__ import annotations

import httpx

from nota_backend.db import session_scope
from nota_backend.events import DomainEvent, EventKind
from nota_backend.models import User, UserRole
from nota_backend.security import hash_password


class RecordingPublisher:
    """In-memory EventPublisher for asserting on emitted events."""

    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    def publish(self, event: DomainEvent) -> None:
        self.events.append(event)

    def kinds(self) -> list[EventKind]:
        return [e.kind for e in self.events]


async def create_user(
    username: str,
    *,
    password: str | None = None,
    role: UserRole = UserRole.USER,
    enabled: bool = True,
) -> int:
    async with session_scope() as session:
        user = User(
            username=username,
            password_hash=hash_password(password) if password else "x",
            role=role.value,
            enabled=enabled,
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        assert user.id is not None
        return int(user.id)


def make_async_client() -> httpx.AsyncClient:
    from nota_backend.main import app

    transport = httpx.ASGITransport(app=app)
    return httpx.AsyncClient(transport=transport, base_url="http://test")
