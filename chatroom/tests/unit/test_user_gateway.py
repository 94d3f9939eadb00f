# chatroom/tests/unit/test_user_gateway.py
from unittest.mock import AsyncMock, Mock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from chatroom.gateways.user_gateway import UserGateway
from chatroom.infrastructure import models, schemas
from chatroom.infrastructure.security import SecurityService
from chatroom.infrastructure.uow import UnitOfWork, UoWModel


@pytest.fixture
def mock_session():
    session = Mock(spec=AsyncSession)
    session.execute = AsyncMock()
    return session


@pytest.fixture
def mock_uow():
    uow = Mock(spec=UnitOfWork)
    uow.mappers = {}
    uow.commit = AsyncMock()
    uow.register_new = Mock()
    uow.register_dirty = Mock()
    uow.register_deleted = Mock()
    uow.new = {}
    return uow


@pytest.fixture
def mock_security_service():
    service = Mock(spec=SecurityService)
    service.get_password_hash = Mock(return_value="new_hash")
    service.verify_password = Mock(return_value=True)
    return service


@pytest.fixture
def user_gateway(mock_session, mock_uow):
    return UserGateway(mock_session, mock_uow)


@pytest.fixture
def mock_user():
    user = Mock(spec=models.User)
    user.id = 1
    user.email = "alice@example.com"
    user.display_name = "Alice"
    user.hashed_password = "old_hash"
    user.status = "offline"
    user.last_seen = None
    return user


@pytest.fixture
def mock_uow_user(mock_user, mock_uow):
    return UoWModel(mock_user, mock_uow)


def scalar_result(value):
    result = Mock()
    result.scalar_one_or_none.return_value = value
    return result


class TestUserGateway:
    def test_registers_mapper(self, user_gateway, mock_uow):
        assert models.User in mock_uow.mappers

    async def test_get_user_found(self, user_gateway, mock_session, mock_user):
        mock_session.execute.return_value = scalar_result(mock_user)

        result = await user_gateway.get_user(1)

        assert isinstance(result, UoWModel)
        assert result._model == mock_user
        mock_session.execute.assert_called_once()

    async def test_get_user_not_found(self, user_gateway, mock_session):
        mock_session.execute.return_value = scalar_result(None)

        assert await user_gateway.get_user(999) is None

    async def test_get_by_email(self, user_gateway, mock_session, mock_user):
        mock_session.execute.return_value = scalar_result(mock_user)

        result = await user_gateway.get_by_email("ALICE@example.com")

        assert result.email == "alice@example.com"

    async def test_update_user_rehashes_password(
        self, user_gateway, mock_uow_user, mock_user, mock_security_service, mock_uow
    ):
        update = schemas.UserUpdate(display_name="Alicia", password="secret99")

        result = await user_gateway.update_user(
            mock_uow_user, update, mock_security_service
        )

        mock_security_service.get_password_hash.assert_called_once_with("secret99")
        assert mock_user.hashed_password == "new_hash"
        assert mock_user.display_name == "Alicia"
        assert result is mock_uow_user
        mock_uow.commit.assert_awaited_once()

    async def test_update_user_leaves_unset_fields(
        self, user_gateway, mock_uow_user, mock_user, mock_security_service
    ):
        await user_gateway.update_user(
            mock_uow_user,
            schemas.UserUpdate(status_message="busy"),
            mock_security_service,
        )

        assert mock_user.status_message == "busy"
        assert mock_user.display_name == "Alice"
        assert mock_user.hashed_password == "old_hash"
        mock_security_service.get_password_hash.assert_not_called()

    async def test_update_status_stamps_last_seen(
        self, user_gateway, mock_uow_user, mock_user
    ):
        await user_gateway.update_status(mock_uow_user, "away")

        assert mock_user.status == "away"
        assert mock_user.last_seen is not None

    async def test_get_users_by_ids_empty(self, user_gateway, mock_session):
        assert await user_gateway.get_users_by_ids([]) == []
        mock_session.execute.assert_not_called()

    async def test_search_users(self, user_gateway, mock_session, mock_user):
        result = Mock()
        result.scalars.return_value.all.return_value = [mock_user]
        mock_session.execute.return_value = result

        users = await user_gateway.search_users("ali", current_user_id=2)

        assert [user._model for user in users] == [mock_user]

    async def test_verify_password(
        self, user_gateway, mock_uow_user, mock_security_service
    ):
        assert await user_gateway.verify_password(
            mock_uow_user, "pw", mock_security_service
        )
        mock_security_service.verify_password.assert_called_once_with("pw", "old_hash")


async def test_create_user_against_database(db_session, security_service, uow):
    gateway = UserGateway(db_session, uow)
    created = await gateway.create_user(
        schemas.UserCreate(
            email="Mixed.Case@Example.com", password="pw123456", display_name="Mixed"
        ),
        security_service,
    )

    assert created.id is not None
    assert created.email == "mixed.case@example.com"
    assert created.status == "online"
    assert security_service.verify_password("pw123456", created.hashed_password)


async def test_create_user_duplicate_email_returns_none(
    db_session, security_service, uow
):
    gateway = UserGateway(db_session, uow)
    payload = schemas.UserCreate(
        email="dup@example.com", password="pw123456", display_name="Dup"
    )
    assert await gateway.create_user(payload, security_service) is not None

    assert await gateway.create_user(payload, security_service) is None
    assert uow.new == {}
    assert (await gateway.get_by_email("dup@example.com")) is not None


async def test_search_treats_wildcards_literally(
    db_session, security_service, uow, test_user, test_user2
):
    gateway = UserGateway(db_session, uow)
    percent = await gateway.create_user(
        schemas.UserCreate(
            email="percent@example.com", password="pw123456", display_name="Percent 100%"
        ),
        security_service,
    )

    assert await gateway.search_users("Gat_way", test_user2.id) == []
    assert [user.id for user in await gateway.search_users("%", test_user2.id)] == [
        percent.id
    ]
    assert [user.id for user in await gateway.search_users("gateway", test_user2.id)] == [
        test_user.id
    ]
