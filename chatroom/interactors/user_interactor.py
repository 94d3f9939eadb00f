# chatroom/interactors/user_interactor.py
import logging

from chatroom.domain.enums import PresenceStatus
from chatroom.domain.exceptions import (
    ConflictError,
    NotFoundError,
    UnauthenticatedError,
)
from chatroom.gateways.interfaces import IUserGateway
from chatroom.infrastructure import schemas
from chatroom.infrastructure.security import SecurityService
from chatroom.infrastructure.uow import UoWModel

logger = logging.getLogger(__name__)


class UserInteractor:
    def __init__(self, security_service: SecurityService, user_gateway: IUserGateway):
        self.security_service = security_service
        self.user_gateway = user_gateway

    async def get_user(self, user_id: int) -> schemas.User | None:
        user: UoWModel | None = await self.user_gateway.get_user(user_id)
        return schemas.User.model_validate(user._model) if user else None

    async def get_user_by_email(self, email: str) -> schemas.User | None:
        user: UoWModel | None = await self.user_gateway.get_by_email(email)
        return schemas.User.model_validate(user._model) if user else None

    async def get_profile(self, user_id: int) -> schemas.UserBasic:
        user: UoWModel | None = await self.user_gateway.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        return schemas.UserBasic.model_validate(user._model)

    async def register(self, user: schemas.UserCreate) -> schemas.User:
        if await self.user_gateway.get_by_email(user.email):
            raise ConflictError("User already exists")
        new_user: UoWModel | None = await self.user_gateway.create_user(
            user, self.security_service
        )
        if not new_user:
            raise ConflictError("User already exists")
        logger.info("Registered user %s", new_user.id)
        return schemas.User.model_validate(new_user._model)

    async def verify_credentials(self, email: str, password: str) -> schemas.User:
        """Return the user owning these credentials.

        Unknown email and wrong password are deliberately indistinguishable.
        """
        user: UoWModel | None = await self.user_gateway.get_by_email(email)
        if not user or not await self.user_gateway.verify_password(
            user, password, self.security_service
        ):
            logger.warning("Rejected login attempt")
            raise UnauthenticatedError("Invalid credentials")
        return schemas.User.model_validate(user._model)

    async def update_profile(
        self, user_id: int, user_update: schemas.UserUpdate
    ) -> schemas.User:
        user: UoWModel | None = await self.user_gateway.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        updated_user = await self.user_gateway.update_user(
            user, user_update, self.security_service
        )
        return schemas.User.model_validate(updated_user._model)

    async def set_presence(
        self, user_id: int, status: PresenceStatus
    ) -> schemas.User:
        user: UoWModel | None = await self.user_gateway.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        updated_user = await self.user_gateway.update_status(user, status.value)
        return schemas.User.model_validate(updated_user._model)

    async def touch_presence(self, user_id: int) -> schemas.User:
        return await self.set_presence(user_id, PresenceStatus.ONLINE)

    async def search_users(
        self, query: str, current_user_id: int
    ) -> list[schemas.UserBasic]:
        users: list[UoWModel] = await self.user_gateway.search_users(
            query, current_user_id
        )
        return [schemas.UserBasic.model_validate(user._model) for user in users]
