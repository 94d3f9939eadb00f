# chatroom/gateways/friendship_gateway.py
import logging

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from chatroom.domain.enums import FriendshipStatus
from chatroom.gateways.interfaces import IFriendshipGateway
from chatroom.infrastructure import models
from chatroom.infrastructure.data_mappers import FriendshipMapper
from chatroom.infrastructure.uow import UnitOfWork, UoWModel

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (FriendshipStatus.PENDING.value, FriendshipStatus.ACCEPTED.value)


class FriendshipGateway(IFriendshipGateway):
    def __init__(self, session: AsyncSession, uow: UnitOfWork):
        self.session = session
        self.uow = uow
        uow.mappers[models.Friendship] = FriendshipMapper(session)

    async def get_request(self, request_id: int) -> UoWModel | None:
        stmt = select(models.Friendship).filter(models.Friendship.id == request_id)
        result = await self.session.execute(stmt)
        friendship = result.scalar_one_or_none()
        return UoWModel(friendship, self.uow) if friendship else None

    async def find_active_between(
        self, user_id: int, other_user_id: int
    ) -> UoWModel | None:
        stmt = (
            select(models.Friendship)
            .filter(
                models.Friendship.status.in_(ACTIVE_STATUSES),
                or_(
                    and_(
                        models.Friendship.requester_id == user_id,
                        models.Friendship.addressee_id == other_user_id,
                    ),
                    and_(
                        models.Friendship.requester_id == other_user_id,
                        models.Friendship.addressee_id == user_id,
                    ),
                ),
            )
            .order_by(models.Friendship.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        friendship = result.scalar_one_or_none()
        return UoWModel(friendship, self.uow) if friendship else None

    async def create_request(
        self, requester_id: int, addressee_id: int
    ) -> UoWModel | None:
        db_friendship = models.Friendship(
            requester_id=requester_id,
            addressee_id=addressee_id,
            status=FriendshipStatus.PENDING.value,
        )
        uow_friendship = self.uow.register_new(db_friendship)
        try:
            async with self.session.begin_nested():
                await self.uow.commit()
        except IntegrityError:
            # Another request for the same pair was stored concurrently.
            self.uow.rollback()
            logger.info(
                "Friendship between %s and %s already exists", requester_id, addressee_id
            )
            return None
        await self.session.refresh(
            db_friendship, attribute_names=["requester", "addressee"]
        )
        return uow_friendship

    async def set_status(self, friendship: UoWModel, status: str) -> UoWModel:
        friendship.status = status
        await self.uow.commit()
        return friendship

    async def get_friends(self, user_id: int) -> list[UoWModel]:
        # friendships are stored once per pair, so look at both columns
        stmt = (
            select(models.User)
            .join(
                models.Friendship,
                or_(
                    models.User.id == models.Friendship.requester_id,
                    models.User.id == models.Friendship.addressee_id,
                ),
            )
            .filter(
                models.Friendship.status == FriendshipStatus.ACCEPTED.value,
                or_(
                    models.Friendship.requester_id == user_id,
                    models.Friendship.addressee_id == user_id,
                ),
                models.User.id != user_id,
            )
            .distinct()
            .order_by(models.User.display_name)
        )
        result = await self.session.execute(stmt)
        friends = result.scalars().all()
        return [UoWModel(friend, self.uow) for friend in friends]

    async def get_incoming_requests(self, user_id: int) -> list[UoWModel]:
        stmt = (
            select(models.Friendship)
            .filter(
                models.Friendship.addressee_id == user_id,
                models.Friendship.status == FriendshipStatus.PENDING.value,
            )
            .order_by(models.Friendship.created_at.desc(), models.Friendship.id.desc())
        )
        result = await self.session.execute(stmt)
        requests = result.scalars().all()
        return [UoWModel(request, self.uow) for request in requests]
