# chatroom/tests/conftest.py

import random
import string

import pytest
from fakeredis import aioredis
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatroom.api import dependencies
from chatroom.config import AppConfig
from chatroom.gateways.room_gateway import RoomGateway
from chatroom.gateways.user_gateway import UserGateway
from chatroom.infrastructure import schemas
from chatroom.infrastructure.database import Base, build_engine, create_database
from chatroom.infrastructure.security import SecurityService
from chatroom.infrastructure.uow import UnitOfWork
from chatroom.main import Application

PASSWORD = "pw123456"


def random_suffix(k: int = 8) -> str:
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=k))


@pytest.fixture(scope="function")
def app_config():
    """
    Provide a test configuration with an in-memory SQLite database.
    """
    return AppConfig(
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        REDIS_HOST="localhost",
        REDIS_PORT=6379,
        REDIS_ENABLED=False,
        SECRET_KEY="test_secret_key",
        PROJECT_NAME="Test Chatroom API",
        API_PREFIX="/api",
        ALGORITHM="HS256",
        ACCESS_TOKEN_EXPIRE_DAYS=7,
        BCRYPT_ROUNDS=4,
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture(scope="function")
def security_service(app_config):
    return SecurityService(app_config)


@pytest.fixture(scope="function")
async def mock_redis():
    """Provide a fake Redis client for testing."""
    redis = aioredis.FakeRedis(decode_responses=True)
    yield redis
    await redis.flushall()
    await redis.aclose()


@pytest.fixture(scope="function")
async def engine(app_config):
    """Create a SQLAlchemy engine for testing with a single shared connection."""
    engine = build_engine(app_config.DATABASE_URL)
    async with engine.begin() as conn:
        from chatroom.infrastructure import models  # noqa: F401

        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(engine):
    """Provide a SQLAlchemy session for testing."""
    async_session_factory = async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False
    )
    session = async_session_factory()
    yield session
    await session.close()


@pytest.fixture(scope="function")
def uow():
    """Provide a UnitOfWork instance for testing."""
    return UnitOfWork()


@pytest.fixture(scope="function")
def override_get_db(db_session):
    """Override the get_session dependency to use the test session."""

    async def _override_get_db():
        yield db_session

    return _override_get_db


@pytest.fixture(scope="function")
def application(app_config, mock_redis, engine):
    application = Application(config=app_config)
    application.database = create_database(engine)
    application.redis_client.client = mock_redis
    return application


@pytest.fixture(scope="function")
def app(application):
    """Create the FastAPI app with the test database."""
    return application.create_app()


@pytest.fixture(scope="function")
async def app_with_db(app, override_get_db):
    """Override dependencies to use the test database session."""
    app.dependency_overrides[dependencies.get_session] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(app_with_db):
    """Provide an HTTP client with the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app_with_db), base_url="http://test"
    ) as ac:
        yield ac


@pytest.fixture(scope="function")
async def committed_client(app):
    """HTTP client whose requests run in real, separately committed sessions."""
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as ac:
        yield ac


async def register(client: AsyncClient, display_name: str) -> dict:
    email = f"{display_name.lower()}_{random_suffix()}@example.com"
    response = await client.post(
        "/api/auth/register",
        json={"email": email, "password": PASSWORD, "display_name": display_name},
    )
    assert response.status_code == 201, response.json()
    data = response.json()
    return {
        "email": email,
        "user": data["user"],
        "id": data["user"]["id"],
        "headers": {"Authorization": f"Bearer {data['token']}"},
    }


@pytest.fixture(scope="function")
def register_user(client):
    async def _register(display_name: str) -> dict:
        return await register(client, display_name)

    return _register


@pytest.fixture(scope="function")
def register_committed(committed_client):
    async def _register(display_name: str) -> dict:
        return await register(committed_client, display_name)

    return _register


@pytest.fixture(scope="function")
async def alice(client):
    return await register(client, "Alice")


@pytest.fixture(scope="function")
async def bob(client):
    return await register(client, "Bob")


@pytest.fixture(scope="function")
async def carol(client):
    return await register(client, "Carol")


@pytest.fixture(scope="function")
async def room(client, alice):
    """A public room created by Alice."""
    response = await client.post(
        "/api/rooms", headers=alice["headers"], json={"name": "Team"}
    )
    assert response.status_code == 201, response.json()
    return response.json()


@pytest.fixture(scope="function")
async def test_user(db_session, security_service, uow):
    """Create a user directly through the gateway."""
    user_create = schemas.UserCreate(
        email=f"gateway_{random_suffix()}@example.com",
        password=PASSWORD,
        display_name="Gateway User",
    )
    user_gateway = UserGateway(db_session, uow)
    return await user_gateway.create_user(user_create, security_service)


@pytest.fixture(scope="function")
async def test_user2(db_session, security_service, uow):
    user_create = schemas.UserCreate(
        email=f"gateway2_{random_suffix()}@example.com",
        password=PASSWORD,
        display_name="Second User",
    )
    user_gateway = UserGateway(db_session, uow)
    return await user_gateway.create_user(user_create, security_service)


@pytest.fixture(scope="function")
async def test_room(db_session, test_user, uow):
    room_gateway = RoomGateway(db_session, uow)
    return await room_gateway.create_room(
        schemas.RoomCreate(name=f"Room {random_suffix(4)}"), test_user.id, random_suffix()
    )
