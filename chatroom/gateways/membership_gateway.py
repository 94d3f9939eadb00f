# chatroom/gateways/membership_gateway.py
import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from chatroom.domain.enums import RoomRole
from chatroom.gateways.interfaces import IMembershipGateway
from chatroom.infrastructure import models
from chatroom.infrastructure.data_mappers import RoomMemberMapper
from chatroom.infrastructure.uow import UnitOfWork, UoWModel

logger = logging.getLogger(__name__)


class MembershipGateway(IMembershipGateway):
    def __init__(self, session: AsyncSession, uow: UnitOfWork):
        self.session = session
        self.uow = uow
        uow.mappers[models.RoomMember] = RoomMemberMapper(session)

    async def get_membership(self, room_id: int, user_id: int) -> UoWModel | None:
        stmt = select(models.RoomMember).filter(
            models.RoomMember.room_id == room_id,
            models.RoomMember.user_id == user_id,
        )
        result = await self.session.execute(stmt)
        membership = result.scalar_one_or_none()
        return UoWModel(membership, self.uow) if membership else None

    async def is_member(self, room_id: int, user_id: int) -> bool:
        stmt = select(models.RoomMember.id).filter(
            models.RoomMember.room_id == room_id,
            models.RoomMember.user_id == user_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def add_member(
        self, room_id: int, user_id: int, role: str = RoomRole.MEMBER.value
    ) -> UoWModel:
        db_member = models.RoomMember(room_id=room_id, user_id=user_id, role=role)
        uow_member = self.uow.register_new(db_member)
        try:
            async with self.session.begin_nested():
                await self.uow.commit()
        except IntegrityError:
            # Lost a race against a concurrent join: the unique (room, user)
            # constraint already holds the row we wanted.
            self.uow.rollback()
            logger.info(
                "User %s already joined room %s concurrently", user_id, room_id
            )
            existing = await self.get_membership(room_id, user_id)
            if existing is None:
                raise
            return existing
        await self.session.refresh(db_member, attribute_names=["user"])
        return uow_member

    async def remove_member(self, room_id: int, user_id: int) -> bool:
        membership = await self.get_membership(room_id, user_id)
        if not membership:
            return False
        self.uow.register_deleted(membership)
        await self.uow.commit()
        return True

    async def get_members(self, room_id: int) -> list[UoWModel]:
        stmt = (
            select(models.RoomMember)
            .filter(models.RoomMember.room_id == room_id)
            .order_by(models.RoomMember.joined_at, models.RoomMember.id)
        )
        result = await self.session.execute(stmt)
        members = result.scalars().all()
        return [UoWModel(member, self.uow) for member in members]

    async def get_user_memberships(self, user_id: int) -> list[UoWModel]:
        stmt = (
            select(models.RoomMember)
            .filter(models.RoomMember.user_id == user_id)
            .order_by(models.RoomMember.joined_at, models.RoomMember.id)
        )
        result = await self.session.execute(stmt)
        memberships = result.scalars().all()
        return [UoWModel(membership, self.uow) for membership in memberships]

    async def mark_read(self, membership: UoWModel, read_at: datetime) -> UoWModel:
        membership.last_read_at = read_at
        await self.uow.commit()
        return membership
