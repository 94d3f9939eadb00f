# chatroom/interactors/message_interactor.py
import logging
from datetime import datetime

from chatroom.domain.enums import ConversationKind
from chatroom.domain.events import DELETED_PLACEHOLDER
from chatroom.domain.exceptions import (
    ForbiddenError,
    InvalidArgumentError,
    InvalidStateError,
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
from chatroom.infrastructure.uow import UoWModel

logger = logging.getLogger(__name__)


def present_message(message: UoWModel, viewer_id: int) -> schemas.Message:
    """Render a stored message for one viewer.

    Deleted messages keep their place in the conversation, but only the
    sender still sees what was sent.
    """
    result = schemas.Message.model_validate(message._model)
    if result.is_deleted and result.sender_id != viewer_id:
        result = result.model_copy(
            update={
                "content": DELETED_PLACEHOLDER,
                "file_name": None,
                "file_url": None,
                "file_size": None,
                "mime_type": None,
            }
        )
    return result


class MessageInteractor:
    def __init__(
        self,
        message_gateway: IMessageGateway,
        room_gateway: IRoomGateway,
        membership_gateway: IMembershipGateway,
        user_gateway: IUserGateway,
        page_size: int = 50,
        page_max: int = 200,
    ):
        self.message_gateway = message_gateway
        self.room_gateway = room_gateway
        self.membership_gateway = membership_gateway
        self.user_gateway = user_gateway
        self.page_size = page_size
        self.page_max = page_max

    def _limit(self, limit: int | None) -> int:
        if limit is None:
            return self.page_size
        if limit < 1:
            raise InvalidArgumentError("limit must be positive")
        return min(limit, self.page_max)

    async def _require_room_member(self, room_id: int, user_id: int) -> None:
        if not await self.room_gateway.get_room(room_id):
            raise NotFoundError("Room not found")
        if not await self.membership_gateway.is_member(room_id, user_id):
            logger.warning("User %s denied access to room %s", user_id, room_id)
            raise ForbiddenError("Not a member of this room")

    async def _require_partner(self, user_id: int, other_user_id: int) -> UoWModel:
        if other_user_id == user_id:
            raise InvalidArgumentError("Cannot message yourself")
        partner = await self.user_gateway.get_user(other_user_id)
        if not partner:
            raise NotFoundError("User not found")
        return partner

    async def _get_own_message(self, message_id: int, user_id: int, action: str):
        message = await self.message_gateway.get_message(message_id)
        if not message:
            raise NotFoundError("Message not found")
        if message.sender_id != user_id:
            logger.warning(
                "User %s tried to %s message %s they did not send",
                user_id,
                action,
                message_id,
            )
            raise ForbiddenError(f"You can only {action} your own messages")
        return message

    async def send_room_message(
        self, room_id: int, message: schemas.MessageCreate, user_id: int
    ) -> schemas.Message:
        await self._require_room_member(room_id, user_id)
        new_message = await self.message_gateway.create_message(
            message, user_id, room_id=room_id
        )
        return present_message(new_message, user_id)

    async def get_room_messages(
        self, room_id: int, user_id: int, limit: int | None = None
    ) -> list[schemas.Message]:
        await self._require_room_member(room_id, user_id)
        messages = await self.message_gateway.get_room_messages(
            room_id, self._limit(limit)
        )
        return [present_message(message, user_id) for message in messages]

    async def send_direct_message(
        self, recipient_id: int, message: schemas.MessageCreate, user_id: int
    ) -> schemas.Message:
        await self._require_partner(user_id, recipient_id)
        new_message = await self.message_gateway.create_message(
            message, user_id, recipient_id=recipient_id
        )
        return present_message(new_message, user_id)

    async def get_direct_messages(
        self, other_user_id: int, user_id: int, limit: int | None = None
    ) -> list[schemas.Message]:
        await self._require_partner(user_id, other_user_id)
        messages = await self.message_gateway.get_direct_messages(
            user_id, other_user_id, self._limit(limit)
        )
        return [present_message(message, user_id) for message in messages]

    async def edit_message(
        self, message_id: int, message_update: schemas.MessageUpdate, user_id: int
    ) -> schemas.Message:
        message = await self._get_own_message(message_id, user_id, "edit")
        if message.is_deleted:
            raise InvalidStateError("Cannot edit deleted message")
        edited = await self.message_gateway.edit_message(
            message, message_update.content
        )
        return present_message(edited, user_id)

    async def delete_message(self, message_id: int, user_id: int) -> schemas.Message:
        message = await self._get_own_message(message_id, user_id, "delete")
        if message.is_deleted:
            raise InvalidStateError("Message already deleted")
        deleted = await self.message_gateway.soft_delete_message(message)
        logger.info("User %s deleted message %s", user_id, message_id)
        return present_message(deleted, user_id)

    async def get_recent_chats(self, user_id: int) -> list[schemas.RecentChat]:
        """One entry per room the user belongs to and per direct-message
        partner, most recently active first.

        Rooms without messages count as active from the moment the user
        joined them.
        """
        chats: list[schemas.RecentChat] = []

        memberships = await self.membership_gateway.get_user_memberships(user_id)
        latest_in_rooms = await self.message_gateway.get_latest_room_messages(
            membership.room_id for membership in memberships
        )
        for membership in memberships:
            last = latest_in_rooms.get(membership.room_id)
            unread = await self.message_gateway.count_unread_room_messages(
                membership.room_id, user_id, as_utc(membership.last_read_at)
            )
            chats.append(
                schemas.RecentChat(
                    kind=ConversationKind.ROOM,
                    room=schemas.Room.model_validate(membership.room),
                    last_message=present_message(last, user_id) if last else None,
                    last_activity_at=_activity(last, membership.joined_at),
                    unread_count=unread,
                )
            )

        latest_direct = await self.message_gateway.get_latest_direct_messages(user_id)
        partners = await self.user_gateway.get_users_by_ids(latest_direct.keys())
        for partner in partners:
            last = latest_direct[partner.id]
            chats.append(
                schemas.RecentChat(
                    kind=ConversationKind.DIRECT,
                    user=schemas.UserBasic.model_validate(partner._model),
                    last_message=present_message(last, user_id),
                    last_activity_at=_activity(last, last.created_at),
                )
            )

        chats.sort(key=lambda chat: chat.last_activity_at, reverse=True)
        return chats


def _activity(last_message: UoWModel | None, fallback: datetime) -> datetime:
    if last_message is not None:
        return as_utc(last_message.created_at)
    return as_utc(fallback)
