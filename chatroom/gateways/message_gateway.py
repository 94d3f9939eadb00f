# chatroom/gateways/message_gateway.py
from collections.abc import Iterable
from datetime import UTC, datetime

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from chatroom.gateways.interfaces import IMessageGateway
from chatroom.infrastructure import models, schemas
from chatroom.infrastructure.data_mappers import MessageMapper
from chatroom.infrastructure.uow import UnitOfWork, UoWModel

NEWEST_FIRST = (models.Message.created_at.desc(), models.Message.id.desc())


class MessageGateway(IMessageGateway):
    def __init__(self, session: AsyncSession, uow: UnitOfWork):
        self.session = session
        self.uow = uow
        uow.mappers[models.Message] = MessageMapper(session)

    async def get_message(self, message_id: int) -> UoWModel | None:
        stmt = select(models.Message).filter(models.Message.id == message_id)
        result = await self.session.execute(stmt)
        message = result.scalar_one_or_none()
        return UoWModel(message, self.uow) if message else None

    async def create_message(
        self,
        message: schemas.MessageCreate,
        sender_id: int,
        room_id: int | None = None,
        recipient_id: int | None = None,
    ) -> UoWModel:
        if (room_id is None) == (recipient_id is None):
            raise ValueError("A message targets exactly one room or one recipient")

        db_message = models.Message(
            content=message.content,
            sender_id=sender_id,
            room_id=room_id,
            recipient_id=recipient_id,
            message_type=message.message_type.value,
            file_name=message.file_name,
            file_url=message.file_url,
            file_size=message.file_size,
            mime_type=message.mime_type,
            is_edited=False,
            is_deleted=False,
        )
        uow_message = self.uow.register_new(db_message)
        await self.uow.commit()
        await self.session.refresh(db_message, attribute_names=["sender"])
        return uow_message

    async def get_room_messages(self, room_id: int, limit: int = 50) -> list[UoWModel]:
        stmt = (
            select(models.Message)
            .filter(models.Message.room_id == room_id)
            .order_by(*NEWEST_FIRST)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        messages = list(result.scalars().all())
        messages.reverse()
        return [UoWModel(message, self.uow) for message in messages]

    async def get_direct_messages(
        self, user_id: int, other_user_id: int, limit: int = 50
    ) -> list[UoWModel]:
        stmt = (
            select(models.Message)
            .filter(
                models.Message.room_id.is_(None),
                or_(
                    and_(
                        models.Message.sender_id == user_id,
                        models.Message.recipient_id == other_user_id,
                    ),
                    and_(
                        models.Message.sender_id == other_user_id,
                        models.Message.recipient_id == user_id,
                    ),
                ),
            )
            .order_by(*NEWEST_FIRST)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        messages = list(result.scalars().all())
        messages.reverse()
        return [UoWModel(message, self.uow) for message in messages]

    async def edit_message(self, message: UoWModel, content: str) -> UoWModel:
        message.content = content
        message.is_edited = True
        message.edited_at = datetime.now(UTC)
        await self.uow.commit()
        return message

    async def soft_delete_message(self, message: UoWModel) -> UoWModel:
        # the row stays so conversation ordering is preserved
        message.is_deleted = True
        await self.uow.commit()
        return message

    async def get_latest_room_messages(
        self, room_ids: Iterable[int]
    ) -> dict[int, UoWModel]:
        room_ids = list(room_ids)
        if not room_ids:
            return {}
        ranked = (
            select(
                models.Message.id,
                func.row_number()
                .over(partition_by=models.Message.room_id, order_by=NEWEST_FIRST)
                .label("rank"),
            )
            .filter(models.Message.room_id.in_(room_ids))
            .subquery()
        )
        stmt = (
            select(models.Message)
            .join(ranked, models.Message.id == ranked.c.id)
            .filter(ranked.c.rank == 1)
        )
        result = await self.session.execute(stmt)
        return {
            message.room_id: UoWModel(message, self.uow)
            for message in result.scalars().all()
        }

    async def get_latest_direct_messages(self, user_id: int) -> dict[int, UoWModel]:
        partner = case(
            (models.Message.sender_id == user_id, models.Message.recipient_id),
            else_=models.Message.sender_id,
        )
        ranked = (
            select(
                models.Message.id,
                partner.label("partner_id"),
                func.row_number()
                .over(partition_by=partner, order_by=NEWEST_FIRST)
                .label("rank"),
            )
            .filter(
                models.Message.room_id.is_(None),
                or_(
                    models.Message.sender_id == user_id,
                    models.Message.recipient_id == user_id,
                ),
            )
            .subquery()
        )
        stmt = (
            select(models.Message, ranked.c.partner_id)
            .join(ranked, models.Message.id == ranked.c.id)
            .filter(ranked.c.rank == 1)
        )
        result = await self.session.execute(stmt)
        return {
            partner_id: UoWModel(message, self.uow)
            for message, partner_id in result.all()
        }

    async def count_unread_room_messages(
        self, room_id: int, user_id: int, since: datetime | None
    ) -> int:
        stmt = select(func.count(models.Message.id)).filter(
            models.Message.room_id == room_id,
            models.Message.sender_id != user_id,
            models.Message.is_deleted.is_(False),
        )
        if since is not None:
            stmt = stmt.filter(models.Message.created_at > since)
        result = await self.session.execute(stmt)
        return result.scalar_one()
