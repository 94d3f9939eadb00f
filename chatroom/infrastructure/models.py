# chatroom/infrastructure/models.py
from datetime import UTC, datetime
from typing import Optional, List

from chatroom.domain.enums import (
    FriendshipStatus,
    MessageType,
    PresenceStatus,
    RoomRole,
)
from chatroom.infrastructure.database import Base
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    case,
)
from sqlalchemy.orm import relationship, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(UTC)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, index=True, autoincrement=True
    )
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String)
    display_name: Mapped[str] = mapped_column(String)
    profile_picture: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status_message: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, default=PresenceStatus.OFFLINE.value)
    last_seen: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    memberships: Mapped[List["RoomMember"]] = relationship(
        "RoomMember", back_populates="user", lazy="select"
    )


class Room(Base):
    __tablename__ = "rooms"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, index=True, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String)
    description: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    is_private: Mapped[bool] = mapped_column(Boolean, default=False)
    invite_code: Mapped[Optional[str]] = mapped_column(
        String, unique=True, index=True, nullable=True
    )
    created_by: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    members: Mapped[List["RoomMember"]] = relationship(
        "RoomMember", back_populates="room", lazy="select", cascade="all, delete-orphan"
    )


class RoomMember(Base):
    __tablename__ = "room_members"

    __table_args__ = (
        UniqueConstraint("room_id", "user_id", name="uq_room_members_room_user"),
        Index("ix_room_members_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, index=True, autoincrement=True
    )
    room_id: Mapped[int] = mapped_column(Integer, ForeignKey("rooms.id"), index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"))
    role: Mapped[str] = mapped_column(String, default=RoomRole.MEMBER.value)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    last_read_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    room: Mapped[Room] = relationship("Room", back_populates="members", lazy="joined")
    user: Mapped[User] = relationship(
        "User", back_populates="memberships", lazy="joined"
    )


class Message(Base):
    __tablename__ = "messages"

    __table_args__ = (
        CheckConstraint(
            "(room_id IS NULL) <> (recipient_id IS NULL)",
            name="ck_messages_single_target",
        ),
        Index("ix_messages_room_created", "room_id", "created_at"),
        Index("ix_messages_sender_recipient", "sender_id", "recipient_id"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, index=True, autoincrement=True
    )
    content: Mapped[str] = mapped_column(Text, default="")
    sender_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True)
    room_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("rooms.id"), nullable=True
    )
    recipient_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True, index=True
    )
    message_type: Mapped[str] = mapped_column(String, default=MessageType.TEXT.value)
    file_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    file_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    file_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    mime_type: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    is_edited: Mapped[bool] = mapped_column(Boolean, default=False)
    edited_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True
    )

    sender: Mapped[User] = relationship(
        "User",
        foreign_keys=[sender_id],
        lazy="joined",  # Many-to-one, always rendered with the message
    )


class Friendship(Base):
    __tablename__ = "friendships"

    __table_args__ = (
        CheckConstraint(
            "requester_id <> addressee_id", name="ck_friendships_not_self"
        ),
        Index("ix_friendships_pair", "requester_id", "addressee_id"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, index=True, autoincrement=True
    )
    requester_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"))
    addressee_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), index=True
    )
    status: Mapped[str] = mapped_column(
        String, default=FriendshipStatus.PENDING.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    requester: Mapped[User] = relationship(
        "User", foreign_keys=[requester_id], lazy="joined"
    )
    addressee: Mapped[User] = relationship(
        "User", foreign_keys=[addressee_id], lazy="joined"
    )


_ACTIVE_FRIENDSHIP = Friendship.status.in_(
    [FriendshipStatus.PENDING.value, FriendshipStatus.ACCEPTED.value]
)
_LOW_FIRST = Friendship.requester_id < Friendship.addressee_id

# At most one pending or accepted friendship per unordered pair of users.
Index(
    "uq_friendships_active_pair",
    case((_LOW_FIRST, Friendship.requester_id), else_=Friendship.addressee_id),
    case((_LOW_FIRST, Friendship.addressee_id), else_=Friendship.requester_id),
    unique=True,
    sqlite_where=_ACTIVE_FRIENDSHIP,
    postgresql_where=_ACTIVE_FRIENDSHIP,
)


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
