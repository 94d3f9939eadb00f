# chatroom/interactors/room_interactor.py
import logging
from datetime import UTC, datetime

from chatroom.domain.enums import RoomRole
from chatroom.domain.exceptions import (
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
)
from chatroom.gateways.interfaces import (
    IMembershipGateway,
    IMessageGateway,
    IRoomGateway,
    IUserGateway,
)
from chatroom.infrastructure import schemas
from chatroom.infrastructure.models import as_utc
from chatroom.infrastructure.security import SecurityService
from chatroom.infrastructure.uow import UoWModel
from chatroom.interactors.message_interactor import present_message

logger = logging.getLogger(__name__)

INVITE_CODE_ATTEMPTS = 10


class RoomInteractor:
    def __init__(
        self,
        security_service: SecurityService,
        room_gateway: IRoomGateway,
        membership_gateway: IMembershipGateway,
        message_gateway: IMessageGateway,
        user_gateway: IUserGateway,
    ):
        self.security_service = security_service
        self.room_gateway = room_gateway
        self.membership_gateway = membership_gateway
        self.message_gateway = message_gateway
        self.user_gateway = user_gateway

    async def _new_invite_code(self) -> str:
        for _ in range(INVITE_CODE_ATTEMPTS):
            code = self.security_service.generate_invite_code()
            if not await self.room_gateway.invite_code_exists(code):
                return code
        raise InternalError("Could not allocate an invite code")

    async def _get_member_room(self, room_id: int, user_id: int) -> UoWModel:
        room = await self.room_gateway.get_room(room_id)
        if not room:
            raise NotFoundError("Room not found")
        if not await self.membership_gateway.is_member(room_id, user_id):
            logger.warning("User %s denied access to room %s", user_id, room_id)
            raise ForbiddenError("Not a member of this room")
        return room

    async def create_room(self, room: schemas.RoomCreate, user_id: int) -> schemas.Room:
        invite_code = await self._new_invite_code()
        new_room = await self.room_gateway.create_room(room, user_id, invite_code)
        logger.info("User %s created room %s", user_id, new_room.id)
        return schemas.Room.model_validate(new_room._model)

    async def get_room(self, room_id: int, user_id: int) -> schemas.Room:
        room = await self._get_member_room(room_id, user_id)
        return schemas.Room.model_validate(room._model)

    async def get_room_by_invite_code(self, invite_code: str) -> schemas.Room:
        room = await self.room_gateway.get_by_invite_code(invite_code)
        if not room:
            raise NotFoundError("Invalid invite code")
        return schemas.Room.model_validate(room._model)

    async def get_user_rooms(self, user_id: int) -> list[schemas.RoomSummary]:
        memberships = await self.membership_gateway.get_user_memberships(user_id)
        latest = await self.message_gateway.get_latest_room_messages(
            membership.room_id for membership in memberships
        )
        rooms = []
        for membership in memberships:
            last = latest.get(membership.room_id)
            unread = await self.message_gateway.count_unread_room_messages(
                membership.room_id, user_id, as_utc(membership.last_read_at)
            )
            room = schemas.Room.model_validate(membership.room)
            rooms.append(
                schemas.RoomSummary(
                    **room.model_dump(),
                    last_message=present_message(last, user_id) if last else None,
                    unread_count=unread,
                )
            )
        return rooms

    async def _join(self, room: UoWModel, user_id: int) -> schemas.JoinResult:
        if await self.membership_gateway.is_member(room.id, user_id):
            raise ConflictError("Already a member")
        await self.membership_gateway.add_member(room.id, user_id)
        logger.info("User %s joined room %s", user_id, room.id)
        return schemas.JoinResult(
            message="Joined room successfully",
            room=schemas.Room.model_validate(room._model),
        )

    async def join_room(self, room_id: int, user_id: int) -> schemas.JoinResult:
        room = await self.room_gateway.get_room(room_id)
        if not room:
            raise NotFoundError("Room not found")
        if room.is_private:
            logger.warning("User %s tried to join private room %s", user_id, room_id)
            raise ForbiddenError("Private rooms require an invite code")
        return await self._join(room, user_id)

    async def join_by_invite_code(
        self, invite_code: str, user_id: int
    ) -> schemas.JoinResult:
        room = await self.room_gateway.get_by_invite_code(invite_code)
        if not room:
            raise NotFoundError("Invalid invite code")
        return await self._join(room, user_id)

    async def regenerate_invite_code(
        self, room_id: int, user_id: int
    ) -> schemas.InviteCode:
        room = await self._get_member_room(room_id, user_id)
        invite_code = await self._new_invite_code()
        await self.room_gateway.set_invite_code(room, invite_code)
        logger.info("Invite code of room %s regenerated by user %s", room_id, user_id)
        return schemas.InviteCode(invite_code=invite_code)

    async def get_members(self, room_id: int, user_id: int) -> list[schemas.Member]:
        await self._get_member_room(room_id, user_id)
        members = await self.membership_gateway.get_members(room_id)
        return [schemas.Member.model_validate(member._model) for member in members]

    async def add_member_by_email(
        self, room_id: int, email: str, user_id: int
    ) -> schemas.Member:
        await self._get_member_room(room_id, user_id)
        user_to_add = await self.user_gateway.get_by_email(email)
        if not user_to_add:
            raise NotFoundError("User not found")
        if await self.membership_gateway.is_member(room_id, user_to_add.id):
            raise ConflictError("User is already a member")
        member = await self.membership_gateway.add_member(room_id, user_to_add.id)
        logger.info("User %s added user %s to room %s", user_id, user_to_add.id, room_id)
        return schemas.Member.model_validate(member._model)

    async def remove_member(
        self, room_id: int, member_id: int, user_id: int
    ) -> schemas.StatusMessage:
        await self._get_member_room(room_id, user_id)
        if member_id != user_id:
            actor = await self.membership_gateway.get_membership(room_id, user_id)
            if actor.role != RoomRole.ADMIN.value:
                logger.warning(
                    "User %s tried to remove user %s from room %s without admin role",
                    user_id,
                    member_id,
                    room_id,
                )
                raise ForbiddenError("Only admins can remove other members")
        if not await self.membership_gateway.remove_member(room_id, member_id):
            raise NotFoundError("Member not found")
        logger.info("User %s removed from room %s", member_id, room_id)
        if member_id == user_id:
            return schemas.StatusMessage(message="Left room successfully")
        return schemas.StatusMessage(message="Member removed successfully")

    async def mark_read(self, room_id: int, user_id: int) -> schemas.StatusMessage:
        await self._get_member_room(room_id, user_id)
        membership = await self.membership_gateway.get_membership(room_id, user_id)
        await self.membership_gateway.mark_read(membership, datetime.now(UTC))
        return schemas.StatusMessage(message="Room marked as read")
