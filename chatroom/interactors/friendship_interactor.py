# chatroom/interactors/friendship_interactor.py
import logging

from chatroom.domain.enums import FriendshipStatus
from chatroom.domain.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
)
from chatroom.gateways.interfaces import IFriendshipGateway, IUserGateway
from chatroom.infrastructure import schemas
from chatroom.infrastructure.uow import UoWModel

logger = logging.getLogger(__name__)


class FriendshipInteractor:
    def __init__(
        self, friendship_gateway: IFriendshipGateway, user_gateway: IUserGateway
    ):
        self.friendship_gateway = friendship_gateway
        self.user_gateway = user_gateway

    async def send_request(
        self, addressee_id: int, user_id: int
    ) -> schemas.Friendship:
        if addressee_id == user_id:
            raise InvalidArgumentError("Cannot add yourself as friend")
        if not await self.user_gateway.get_user(addressee_id):
            raise NotFoundError("User not found")
        await self._ensure_no_active_friendship(user_id, addressee_id)
        friendship = await self.friendship_gateway.create_request(user_id, addressee_id)
        if friendship is None:
            # a concurrent request for the same pair won
            await self._ensure_no_active_friendship(user_id, addressee_id)
            raise ConflictError("Friend request already pending")
        logger.info("User %s sent a friend request to %s", user_id, addressee_id)
        return schemas.Friendship.model_validate(friendship._model)

    async def _ensure_no_active_friendship(self, user_id: int, other_id: int) -> None:
        existing = await self.friendship_gateway.find_active_between(user_id, other_id)
        if existing:
            if existing.status == FriendshipStatus.ACCEPTED.value:
                raise ConflictError("Already friends")
            raise ConflictError("Friend request already pending")

    async def _respond(
        self, request_id: int, user_id: int, status: FriendshipStatus
    ) -> schemas.Friendship:
        friendship: UoWModel | None = await self.friendship_gateway.get_request(
            request_id
        )
        if not friendship:
            raise NotFoundError("Friend request not found")
        if friendship.addressee_id != user_id:
            logger.warning(
                "User %s tried to answer friend request %s addressed to %s",
                user_id,
                request_id,
                friendship.addressee_id,
            )
            raise ForbiddenError("Only the addressee can answer a friend request")
        if friendship.status != FriendshipStatus.PENDING.value:
            raise InvalidStateError(f"Friend request already {friendship.status}")
        updated = await self.friendship_gateway.set_status(friendship, status.value)
        logger.info("Friend request %s %s", request_id, status.value)
        return schemas.Friendship.model_validate(updated._model)

    async def accept_request(self, request_id: int, user_id: int) -> schemas.Friendship:
        return await self._respond(request_id, user_id, FriendshipStatus.ACCEPTED)

    async def reject_request(self, request_id: int, user_id: int) -> schemas.Friendship:
        return await self._respond(request_id, user_id, FriendshipStatus.REJECTED)

    async def get_friends(self, user_id: int) -> list[schemas.UserBasic]:
        friends = await self.friendship_gateway.get_friends(user_id)
        return [schemas.UserBasic.model_validate(friend._model) for friend in friends]

    async def get_incoming_requests(self, user_id: int) -> list[schemas.FriendRequest]:
        requests = await self.friendship_gateway.get_incoming_requests(user_id)
        return [
            schemas.FriendRequest.model_validate(request._model) for request in requests
        ]
