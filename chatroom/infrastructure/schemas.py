# chatroom/infrastructure/schemas.py
from datetime import datetime

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)

from chatroom.domain.enums import (
    ConversationKind,
    FriendshipStatus,
    MessageType,
    PresenceStatus,
    RoomRole,
)
from chatroom.infrastructure.models import as_utc


class OrmModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    @field_validator("*", mode="after")
    @classmethod
    def _utc_datetimes(cls, value):
        if isinstance(value, datetime):
            return as_utc(value)
        return value


class UserBasic(OrmModel):
    id: int
    display_name: str
    profile_picture: str | None = None
    status: PresenceStatus


class User(UserBasic):
    email: EmailStr
    status_message: str | None = None
    last_seen: datetime | None = None
    created_at: datetime


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    display_name: str = Field(..., min_length=1, max_length=100)

    @field_validator("display_name")
    @classmethod
    def _display_name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Display name is required")
        return value.strip()


class UserUpdate(BaseModel):
    display_name: str | None = Field(None, min_length=1, max_length=100)
    profile_picture: str | None = None
    status_message: str | None = Field(None, max_length=280)
    password: str | None = Field(None, min_length=6)

    model_config = ConfigDict(extra="forbid")


class PresenceUpdate(BaseModel):
    status: PresenceStatus


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class AuthResponse(BaseModel):
    token: str
    expires_at: datetime
    user: User


class RoomBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=500)
    is_private: bool = False


class RoomCreate(RoomBase):
    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Room name is required")
        return value.strip()


class Room(RoomBase, OrmModel):
    id: int
    invite_code: str | None = None
    created_by: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Member(OrmModel):
    id: int
    room_id: int
    user_id: int
    role: RoomRole
    joined_at: datetime
    user: UserBasic


class MemberAdd(BaseModel):
    email: EmailStr


class InviteCode(BaseModel):
    invite_code: str


class JoinResult(BaseModel):
    message: str
    room: Room


class MessageCreate(BaseModel):
    content: str = Field("", max_length=10000)
    message_type: MessageType | None = None
    file_name: str | None = None
    file_url: str | None = None
    file_size: int | None = Field(None, ge=0)
    mime_type: str | None = None

    @model_validator(mode="after")
    def _resolve_type(self) -> "MessageCreate":
        if self.file_url:
            if self.message_type is None or self.message_type == MessageType.TEXT:
                is_image = (self.mime_type or "").startswith("image/")
                self.message_type = MessageType.IMAGE if is_image else MessageType.FILE
        else:
            if self.message_type not in (None, MessageType.TEXT):
                raise ValueError("Attachment messages require a file_url")
            self.message_type = MessageType.TEXT
            if not self.content.strip():
                raise ValueError("Message content is required")
        return self


class MessageUpdate(BaseModel):
    content: str = Field(..., max_length=10000)

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Message content is required")
        return value


class Message(OrmModel):
    id: int
    content: str
    sender_id: int
    room_id: int | None = None
    recipient_id: int | None = None
    message_type: MessageType
    file_name: str | None = None
    file_url: str | None = None
    file_size: int | None = None
    mime_type: str | None = None
    is_edited: bool
    edited_at: datetime | None = None
    is_deleted: bool
    created_at: datetime
    sender: UserBasic


class RoomSummary(Room):
    last_message: Message | None = None
    unread_count: int = 0


class RecentChat(BaseModel):
    kind: ConversationKind
    room: Room | None = None
    user: UserBasic | None = None
    last_message: Message | None = None
    last_activity_at: datetime
    unread_count: int = 0


class Friendship(OrmModel):
    id: int
    requester_id: int
    addressee_id: int
    status: FriendshipStatus
    created_at: datetime


class FriendRequest(Friendship):
    requester: UserBasic


class StatusMessage(BaseModel):
    message: str
