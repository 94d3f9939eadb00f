import logging

import pytest
from fakeredis import FakeServer, aioredis
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatroom.gateways.room_gateway import RoomGateway
from chatroom.infrastructure import models

pytestmark = pytest.mark.asyncio


async def count_rows(engine, model) -> int:
    session_factory = async_sessionmaker(bind=engine, class_=AsyncSession)
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(model))


@pytest.fixture
def broken_create_room(monkeypatch):
    """Make room creation fail after the room rows have been flushed."""
    original = RoomGateway.create_room

    async def create_then_fail(self, *args, **kwargs):
        await original(self, *args, **kwargs)
        raise RuntimeError("storage failed after flush")

    monkeypatch.setattr(RoomGateway, "create_room", create_then_fail)


@pytest.fixture
async def redis_down(application):
    server = FakeServer()
    server.connected = False
    redis = aioredis.FakeRedis(server=server, decode_responses=True)
    application.redis_client.client = redis
    yield redis
    application.redis_client.client = None


async def test_successful_request_is_committed(
    committed_client: AsyncClient, register_committed, engine
):
    alice = await register_committed("Alice")
    response = await committed_client.post(
        "/api/rooms", headers=alice["headers"], json={"name": "Kept"}
    )
    assert response.status_code == 201

    assert await count_rows(engine, models.Room) == 1
    assert await count_rows(engine, models.RoomMember) == 1


async def test_failed_room_creation_is_rolled_back(
    committed_client: AsyncClient, register_committed, engine, broken_create_room
):
    alice = await register_committed("Alice")
    away = await committed_client.put(
        "/api/user/me/status", headers=alice["headers"], json={"status": "away"}
    )
    assert away.json()["status"] == "away"

    response = await committed_client.post(
        "/api/rooms", headers=alice["headers"], json={"name": "Lost"}
    )
    assert response.status_code == 500
    assert response.json()["kind"] == "internal"

    rooms = await committed_client.get("/api/rooms", headers=alice["headers"])
    assert rooms.json() == []
    assert await count_rows(engine, models.Room) == 0
    assert await count_rows(engine, models.RoomMember) == 0

    # the presence update made by the failed request is undone as well
    me = await committed_client.get("/api/user/me", headers=alice["headers"])
    assert me.json()["status"] == "away"


async def test_rejected_request_leaves_no_partial_writes(
    committed_client: AsyncClient, register_committed, engine
):
    alice = await register_committed("Alice")
    bob = await register_committed("Bob")
    room = (
        await committed_client.post(
            "/api/rooms", headers=alice["headers"], json={"name": "Members only"}
        )
    ).json()

    response = await committed_client.post(
        f"/api/rooms/{room['id']}/messages",
        headers=bob["headers"],
        json={"content": "let me in"},
    )
    assert response.status_code == 403
    assert await count_rows(engine, models.Message) == 0


async def test_room_message_survives_redis_outage(
    committed_client: AsyncClient, register_committed, redis_down, caplog
):
    caplog.set_level(logging.ERROR)
    alice = await register_committed("Alice")
    room = (
        await committed_client.post(
            "/api/rooms", headers=alice["headers"], json={"name": "Team"}
        )
    ).json()

    response = await committed_client.post(
        f"/api/rooms/{room['id']}/messages",
        headers=alice["headers"],
        json={"content": "still here"},
    )
    assert response.status_code == 201

    messages = await committed_client.get(
        f"/api/rooms/{room['id']}/messages", headers=alice["headers"]
    )
    assert [m["content"] for m in messages.json()] == ["still here"]
    assert f"Failed to publish to channel room:{room['id']}" in caplog.text


async def test_direct_message_and_friend_request_survive_redis_outage(
    committed_client: AsyncClient, register_committed, redis_down
):
    alice = await register_committed("Alice")
    bob = await register_committed("Bob")

    sent = await committed_client.post(
        f"/api/direct/{bob['id']}/messages",
        headers=alice["headers"],
        json={"content": "hey bob"},
    )
    assert sent.status_code == 201

    requested = await committed_client.post(
        f"/api/friends/{bob['id']}", headers=alice["headers"]
    )
    assert requested.status_code == 201

    messages = await committed_client.get(
        f"/api/direct/{alice['id']}/messages", headers=bob["headers"]
    )
    assert [m["content"] for m in messages.json()] == ["hey bob"]
    incoming = await committed_client.get(
        "/api/friends/requests", headers=bob["headers"]
    )
    assert len(incoming.json()) == 1
