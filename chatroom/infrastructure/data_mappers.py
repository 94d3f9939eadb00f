# chatroom/infrastructure/data_mappers.py

from typing import Generic, Protocol, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from chatroom.infrastructure import models

ModelT_contra = TypeVar("ModelT_contra", contravariant=True)
ModelT = TypeVar("ModelT")


class DataMapper(Protocol[ModelT_contra]):
    async def insert(self, model: ModelT_contra):
        raise NotImplementedError

    async def delete(self, model: ModelT_contra):
        raise NotImplementedError

    async def update(self, model: ModelT_contra):
        raise NotImplementedError


class SessionMapper(DataMapper[ModelT], Generic[ModelT]):
    """Persists one model type through the request session.

    Inserts flush immediately so generated keys and column defaults are
    available to the caller; updates and deletes are left to the session's
    own flush on commit.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def insert(self, model: ModelT):
        self.session.add(model)
        await self.session.flush()

    async def delete(self, model: ModelT):
        await self.session.delete(model)
        await self.session.flush()

    async def update(self, model: ModelT):
        self.session.add(model)
        await self.session.flush()


class UserMapper(SessionMapper[models.User]):
    pass


class RoomMapper(SessionMapper[models.Room]):
    pass


class RoomMemberMapper(SessionMapper[models.RoomMember]):
    pass


class MessageMapper(SessionMapper[models.Message]):
    pass


class FriendshipMapper(SessionMapper[models.Friendship]):
    pass
