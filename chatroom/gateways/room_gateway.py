# chatroom/gateways/room_gateway.py
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chatroom.domain.enums import RoomRole
from chatroom.gateways.interfaces import IRoomGateway
from chatroom.infrastructure import models, schemas
from chatroom.infrastructure.data_mappers import RoomMapper, RoomMemberMapper
from chatroom.infrastructure.uow import UnitOfWork, UoWModel


class RoomGateway(IRoomGateway):
    def __init__(self, session: AsyncSession, uow: UnitOfWork):
        self.session = session
        self.uow = uow
        uow.mappers[models.Room] = RoomMapper(session)
        uow.mappers[models.RoomMember] = RoomMemberMapper(session)

    async def get_room(self, room_id: int) -> UoWModel | None:
        stmt = select(models.Room).filter(models.Room.id == room_id)
        result = await self.session.execute(stmt)
        room = result.scalar_one_or_none()
        return UoWModel(room, self.uow) if room else None

    async def get_by_invite_code(self, invite_code: str) -> UoWModel | None:
        stmt = select(models.Room).filter(models.Room.invite_code == invite_code)
        result = await self.session.execute(stmt)
        room = result.scalar_one_or_none()
        return UoWModel(room, self.uow) if room else None

    async def invite_code_exists(self, invite_code: str) -> bool:
        stmt = select(models.Room.id).filter(models.Room.invite_code == invite_code)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def create_room(
        self, room: schemas.RoomCreate, creator_id: int, invite_code: str
    ) -> UoWModel:
        db_room = models.Room(
            name=room.name,
            description=room.description,
            is_private=room.is_private,
            invite_code=invite_code,
            created_by=creator_id,
        )
        # The creator's admin membership is flushed together with the room,
        # so neither row becomes visible without the other.
        db_room.members.append(
            models.RoomMember(user_id=creator_id, role=RoomRole.ADMIN.value)
        )
        uow_room = self.uow.register_new(db_room)
        await self.uow.commit()
        return uow_room

    async def set_invite_code(self, room: UoWModel, invite_code: str) -> UoWModel:
        room.invite_code = invite_code
        await self.uow.commit()
        return room
