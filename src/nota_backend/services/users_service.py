from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlmodel.ext.asyncio.session import AsyncSession

from nota_backend import events
from nota_backend.db import transaction
from nota_backend.events import EventPublisher, get_event_publisher
from nota_backend.models import User, UserRole, utc_now
from nota_backend.repositories import users_repo
from nota_backend.security import (
    generate_initial_password,
    hash_password,
    password_complexity_errors,
    verify_password,
)

logger = logging.getLogger(__name__)


class AuthenticationStatus(str, Enum):
    SUCCESS = "SUCCESS"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    USER_DISABLED = "USER_DISABLED"


@dataclass(frozen=True)
class AuthenticationResult:
    status: AuthenticationStatus
    user: User | None = None

    @property
    def ok(self) -> bool:
        return self.status == AuthenticationStatus.SUCCESS


def _username_taken() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={"message": "username already exists", "details": None},
    )


def _password_rejected(message: str, errors: list[str] | None = None) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"message": message, "details": {"errors": errors} if errors else None},
    )


async def register_user(*, session: AsyncSession, username: str) -> tuple[User, str]:
    """Create a regular user with a generated initial password.

    The plaintext password is returned once so it can be handed to the user;
    it must be changed on first use.
    """
    username = (username or "").strip()
    if not username:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": "blank username", "details": None},
        )
    initial_password = generate_initial_password()
    user = User(
        username=username,
        password_hash=hash_password(initial_password),
        must_change_password=True,
        role=UserRole.USER.value,
        enabled=True,
    )

    try:
        async with transaction(session):
            if await users_repo.get_user_by_username(session, username=username) is not None:
                raise _username_taken()
            session.add(user)
    except IntegrityError:
        # Lost a race with a concurrent registration of the same name.
        raise _username_taken() from None

    logger.info("registered user id=%s username=%s", user.id, user.username)
    return user, initial_password


async def authenticate(
    *,
    session: AsyncSession,
    username: str,
    password: str,
    publisher: EventPublisher | None = None,
) -> AuthenticationResult:
    user = await users_repo.get_user_by_username(session, username=(username or "").strip())
    if user is None or not verify_password(password or "", user.password_hash):
        return AuthenticationResult(AuthenticationStatus.INVALID_CREDENTIALS)
    if not user.enabled:
        return AuthenticationResult(AuthenticationStatus.USER_DISABLED, user)

    if user.id is not None:
        (publisher or get_event_publisher()).publish(events.login_event(user_id=user.id))
    return AuthenticationResult(AuthenticationStatus.SUCCESS, user)


async def change_password(
    *,
    session: AsyncSession,
    user_id: int,
    current_password: str,
    new_password: str,
    confirm_password: str,
) -> User:
    if new_password != confirm_password:
        raise _password_rejected("passwords do not match")
    errors = password_complexity_errors(new_password)
    if errors:
        raise _password_rejected("password too weak", errors)
    if new_password == current_password:
        raise _password_rejected("new password must differ from the current one")

    try:
        new_hash = hash_password(new_password)
    except ValueError as e:
        raise _password_rejected(str(e)) from None

    async with transaction(session):
        user = await users_repo.get_user(session, user_id=user_id)
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"message": "user not found", "details": None},
            )
        if not verify_password(current_password, user.password_hash):
            raise _password_rejected("current password is incorrect")

        updated = await users_repo.update_user_versioned(
            session,
            user_id=user_id,
            expected_version=user.version,
            values={
                "password_hash": new_hash,
                "must_change_password": False,
                "updated_at": utc_now(),
            },
        )
        if not updated:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"message": "conflict", "details": None},
            )
        await session.refresh(user)

    return user


async def ensure_admin_user(*, session: AsyncSession, username: str, password: str) -> User | None:
    """Create the bootstrap admin account if it does not exist yet.

    An existing account with that name is left untouched.
    """
    username = (username or "").strip()
    if not username or not password:
        return None

    async with transaction(session):
        existing = await users_repo.get_user_by_username(session, username=username)
        if existing is not None:
            if not existing.is_admin:
                logger.warning("bootstrap admin username %s belongs to a non-admin user", username)
            return existing

        user = User(
            username=username,
            password_hash=hash_password(password),
            must_change_password=False,
            role=UserRole.ADMIN.value,
            enabled=True,
        )
        session.add(user)

    logger.info("created bootstrap admin user %s", username)
    return user
