# chatroom/api/auth.py
from fastapi import APIRouter, Depends, status

from chatroom.api.dependencies import (
    get_current_user,
    get_security_service,
    get_user_interactor,
)
from chatroom.domain.enums import PresenceStatus
from chatroom.infrastructure import schemas
from chatroom.infrastructure.security import SecurityService
from chatroom.interactors.user_interactor import UserInteractor

router = APIRouter()


def issue_token(
    security_service: SecurityService, user: schemas.User
) -> schemas.AuthResponse:
    token, expires_at = security_service.create_access_token(user.id)
    return schemas.AuthResponse(token=token, expires_at=expires_at, user=user)


@router.post(
    "/register",
    response_model=schemas.AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_user(
    user: schemas.UserCreate,
    user_interactor: UserInteractor = Depends(get_user_interactor),
    security_service: SecurityService = Depends(get_security_service),
):
    new_user = await user_interactor.register(user)
    return issue_token(security_service, new_user)


@router.post("/login", response_model=schemas.AuthResponse)
async def login(
    credentials: schemas.LoginRequest,
    user_interactor: UserInteractor = Depends(get_user_interactor),
    security_service: SecurityService = Depends(get_security_service),
):
    user = await user_interactor.verify_credentials(
        credentials.email, credentials.password
    )
    user = await user_interactor.touch_presence(user.id)
    return issue_token(security_service, user)


@router.post("/logout", response_model=schemas.StatusMessage)
async def logout(
    user_interactor: UserInteractor = Depends(get_user_interactor),
    current_user: schemas.User = Depends(get_current_user),
):
    await user_interactor.set_presence(current_user.id, PresenceStatus.OFFLINE)
    return schemas.StatusMessage(message="Logged out successfully")
