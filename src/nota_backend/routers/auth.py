from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession

from nota_backend.access_tokens import make_access_token
from nota_backend.db import get_session
from nota_backend.deps import get_current_user, user_id_of
from nota_backend.models import User
from nota_backend.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    MeResponse,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
)
from nota_backend.schemas_common import OkResponse
from nota_backend.services import users_service
from nota_backend.services.users_service import AuthenticationStatus

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_session),
) -> RegisterResponse:
    user, initial_password = await users_service.register_user(
        session=session, username=payload.username
    )
    return RegisterResponse(
        user_id=user_id_of(user), username=user.username, initial_password=initial_password
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_session),
) -> TokenResponse:
    result = await users_service.authenticate(
        session=session, username=payload.username, password=payload.password
    )
    if result.status == AuthenticationStatus.USER_DISABLED:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="user disabled")
    if not result.ok or result.user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid credentials")

    user = result.user
    return TokenResponse(
        access_token=make_access_token(user_id_of(user)),
        must_change_password=user.must_change_password,
    )


@router.get("/me", response_model=MeResponse)
async def me(user: User = Depends(get_current_user)) -> MeResponse:
    return MeResponse(
        id=user_id_of(user),
        username=user.username,
        role=user.role,
        must_change_password=user.must_change_password,
    )


@router.post("/change-password", response_model=OkResponse)
async def change_password(
    payload: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
) -> OkResponse:
    await users_service.change_password(
        session=session,
        user_id=user_id_of(user),
        current_password=payload.current_password,
        new_password=payload.new_password,
        confirm_password=payload.confirm_password,
    )
    return OkResponse()
