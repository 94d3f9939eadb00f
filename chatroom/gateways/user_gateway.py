# chatroom/gateways/user_gateway.py
from collections.abc import Iterable
from datetime import UTC, datetime

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from chatroom.gateways.interfaces import IUserGateway
from chatroom.infrastructure import models, schemas
from chatroom.infrastructure.data_mappers import UserMapper
from chatroom.infrastructure.security import SecurityService
from chatroom.infrastructure.uow import UnitOfWork, UoWModel


class UserGateway(IUserGateway):
    def __init__(self, session: AsyncSession, uow: UnitOfWork):
        self.session = session
        self.uow = uow
        uow.mappers[models.User] = UserMapper(session)

    async def get_user(self, user_id: int) -> UoWModel | None:
        stmt = select(models.User).filter(models.User.id == user_id)
        result = await self.session.execute(stmt)
        user = result.scalar_one_or_none()
        return UoWModel(user, self.uow) if user else None

    async def get_by_email(self, email: str) -> UoWModel | None:
        stmt = select(models.User).filter(
            func.lower(models.User.email) == func.lower(email)
        )
        result = await self.session.execute(stmt)
        user = result.scalar_one_or_none()
        return UoWModel(user, self.uow) if user else None

    async def create_user(
        self, user: schemas.UserCreate, security_service: SecurityService
    ) -> UoWModel | None:
        hashed_password = security_service.get_password_hash(user.password)
        db_user = models.User(
            email=user.email.lower(),
            display_name=user.display_name,
            hashed_password=hashed_password,
            status="online",
            last_seen=datetime.now(UTC),
        )
        uow_user = self.uow.register_new(db_user)
        try:
            async with self.session.begin_nested():
                await self.uow.commit()
        except IntegrityError:
            # a concurrent registration claimed the email first
            self.uow.rollback()
            return None
        return uow_user

    async def update_user(
        self,
        user: UoWModel,
        user_update: schemas.UserUpdate,
        security_service: SecurityService,
    ) -> UoWModel:
        user_update_data = user_update.model_dump(exclude_unset=True)
        if "password" in user_update_data:
            password = user_update_data.pop("password")
            if password is not None:
                user.hashed_password = security_service.get_password_hash(password)
        for key in ("display_name", "profile_picture", "status_message"):
            if key in user_update_data:
                value = user_update_data[key]
                if key == "display_name" and not value:
                    continue
                setattr(user, key, value)

        await self.uow.commit()
        return user

    async def update_status(self, user: UoWModel, status: str) -> UoWModel:
        user.status = status
        user.last_seen = datetime.now(UTC)
        await self.uow.commit()
        return user

    async def get_users_by_ids(self, user_ids: Iterable[int]) -> list[UoWModel]:
        user_ids = list(user_ids)
        if not user_ids:
            return []
        stmt = select(models.User).filter(models.User.id.in_(user_ids))
        result = await self.session.execute(stmt)
        return [UoWModel(user, self.uow) for user in result.scalars().all()]

    async def search_users(
        self, query: str, current_user_id: int, limit: int = 20
    ) -> list[UoWModel]:
        # wildcards typed by the user match literally
        escaped = (
            query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        )
        pattern = f"%{escaped}%"
        stmt = (
            select(models.User)
            .filter(
                models.User.id != current_user_id,
                or_(
                    models.User.email.ilike(pattern, escape="\\"),
                    models.User.display_name.ilike(pattern, escape="\\"),
                ),
            )
            .order_by(models.User.display_name)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        users = result.scalars().all()
        return [UoWModel(user, self.uow) for user in users]

    async def verify_password(
        self, user: UoWModel, password: str, security_service: SecurityService
    ) -> bool:
        return security_service.verify_password(password, user._model.hashed_password)
