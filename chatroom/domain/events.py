# chatroom/domain/events.py
from datetime import datetime

from pydantic import BaseModel

DELETED_PLACEHOLDER = "<This message has been deleted>"


class Event(BaseModel):
    pass


class SenderInfo(BaseModel):
    id: int
    display_name: str


class MessageEvent(Event):
    message_id: int
    room_id: int | None = None
    sender_id: int
    recipient_id: int | None = None
    content: str
    message_type: str
    created_at: datetime
    sender: SenderInfo
    is_deleted: bool

    @property
    def channel(self) -> str:
        if self.room_id is not None:
            return f"room:{self.room_id}"
        low, high = sorted((self.sender_id, self.recipient_id))
        return f"direct:{low}:{high}"


class MessageCreated(MessageEvent):
    pass


class MessageUpdated(MessageEvent):
    edited_at: datetime | None = None


class MessageDeleted(MessageEvent):
    pass


class FriendRequestUpdated(Event):
    request_id: int
    requester_id: int
    addressee_id: int
    status: str
