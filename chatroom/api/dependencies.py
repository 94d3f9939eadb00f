# chatroom/api/dependencies.py
from typing import AsyncGenerator

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from chatroom.config import AppConfig
from chatroom.domain.exceptions import UnauthenticatedError
from chatroom.gateways.friendship_gateway import FriendshipGateway
from chatroom.gateways.membership_gateway import MembershipGateway
from chatroom.gateways.message_gateway import MessageGateway
from chatroom.gateways.room_gateway import RoomGateway
from chatroom.gateways.user_gateway import UserGateway
from chatroom.infrastructure import schemas
from chatroom.infrastructure.event_dispatcher import EventDispatcher, EventOutbox
from chatroom.infrastructure.security import SecurityService
from chatroom.infrastructure.uow import UnitOfWork
from chatroom.interactors.friendship_interactor import FriendshipInteractor
from chatroom.interactors.message_interactor import MessageInteractor
from chatroom.interactors.room_interactor import RoomInteractor
from chatroom.interactors.user_interactor import UserInteractor

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login", auto_error=False)


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_security_service(request: Request) -> SecurityService:
    return request.app.state.security_service


def get_event_dispatcher(request: Request) -> EventDispatcher:
    return request.app.state.event_dispatcher


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.database.session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_event_outbox(
    session: AsyncSession = Depends(get_session),
    event_dispatcher: EventDispatcher = Depends(get_event_dispatcher),
) -> AsyncGenerator[EventOutbox, None]:
    """Publish the request's events only after its changes are committed."""
    outbox = EventOutbox(event_dispatcher)
    yield outbox
    if outbox.pending:
        await session.commit()
        await outbox.flush()


async def get_uow() -> UnitOfWork:
    return UnitOfWork()


async def get_user_gateway(
    session: AsyncSession = Depends(get_session), uow: UnitOfWork = Depends(get_uow)
):
    return UserGateway(session, uow)


async def get_room_gateway(
    session: AsyncSession = Depends(get_session), uow: UnitOfWork = Depends(get_uow)
):
    return RoomGateway(session, uow)


async def get_membership_gateway(
    session: AsyncSession = Depends(get_session), uow: UnitOfWork = Depends(get_uow)
):
    return MembershipGateway(session, uow)


async def get_message_gateway(
    session: AsyncSession = Depends(get_session), uow: UnitOfWork = Depends(get_uow)
):
    return MessageGateway(session, uow)


async def get_friendship_gateway(
    session: AsyncSession = Depends(get_session), uow: UnitOfWork = Depends(get_uow)
):
    return FriendshipGateway(session, uow)


async def get_user_interactor(
    security_service: SecurityService = Depends(get_security_service),
    user_gateway: UserGateway = Depends(get_user_gateway),
):
    return UserInteractor(security_service, user_gateway)


async def get_room_interactor(
    security_service: SecurityService = Depends(get_security_service),
    room_gateway: RoomGateway = Depends(get_room_gateway),
    membership_gateway: MembershipGateway = Depends(get_membership_gateway),
    message_gateway: MessageGateway = Depends(get_message_gateway),
    user_gateway: UserGateway = Depends(get_user_gateway),
):
    return RoomInteractor(
        security_service, room_gateway, membership_gateway, message_gateway, user_gateway
    )


async def get_message_interactor(
    config: AppConfig = Depends(get_config),
    message_gateway: MessageGateway = Depends(get_message_gateway),
    room_gateway: RoomGateway = Depends(get_room_gateway),
    membership_gateway: MembershipGateway = Depends(get_membership_gateway),
    user_gateway: UserGateway = Depends(get_user_gateway),
):
    return MessageInteractor(
        message_gateway,
        room_gateway,
        membership_gateway,
        user_gateway,
        page_size=config.MESSAGE_PAGE_SIZE,
        page_max=config.MESSAGE_PAGE_MAX,
    )


async def get_friendship_interactor(
    friendship_gateway: FriendshipGateway = Depends(get_friendship_gateway),
    user_gateway: UserGateway = Depends(get_user_gateway),
):
    return FriendshipInteractor(friendship_gateway, user_gateway)


async def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    security_service: SecurityService = Depends(get_security_service),
    user_interactor: UserInteractor = Depends(get_user_interactor),
) -> schemas.User:
    """Resolve the bearer token to a user without touching any state."""
    if not token:
        raise UnauthenticatedError("Access token required")
    user_id = security_service.decode_access_token(token)
    if user_id is None:
        raise UnauthenticatedError("Invalid or expired token")
    user = await user_interactor.get_user(user_id)
    if user is None:
        raise UnauthenticatedError("Invalid or expired token")
    return user


async def get_present_user(
    current_user: schemas.User = Depends(get_current_user),
    user_interactor: UserInteractor = Depends(get_user_interactor),
) -> schemas.User:
    """Authenticate, then mark the caller online."""
    return await user_interactor.touch_presence(current_user.id)
