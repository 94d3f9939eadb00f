# chatroom/tests/unit/test_redis_client.py

import logging
from unittest.mock import AsyncMock, patch

import pytest
import redis

from chatroom.infrastructure.redis_client import RedisClient


@pytest.fixture
def test_logger():
    logger = logging.getLogger("test_redis")
    logger.setLevel(logging.DEBUG)
    return logger


@pytest.fixture
def redis_client(test_logger):
    return RedisClient(host="localhost", port=6379, logger=test_logger)


async def test_redis_connect_and_publish(redis_client, caplog):
    caplog.set_level(logging.DEBUG)
    with patch("redis.asyncio.Redis", return_value=AsyncMock()) as mock_redis:
        mock_redis.return_value.ping.return_value = True
        await redis_client.connect()
        assert redis_client.client is not None
        assert "Successfully connected to Redis at localhost:6379" in caplog.text

        await redis_client.publish("room:1", "payload")
        redis_client.client.publish.assert_called_once_with("room:1", "payload")
        assert "Published message to channel room:1" in caplog.text


async def test_redis_connect_failure_is_raised(redis_client, caplog):
    failing = AsyncMock()
    failing.ping.side_effect = redis.ConnectionError("refused")
    with patch("redis.asyncio.Redis", return_value=failing):
        with pytest.raises(redis.ConnectionError):
            await redis_client.connect()
    assert redis_client.client is None
    assert "Failed to connect to Redis" in caplog.text


async def test_publish_without_connection_is_dropped(redis_client, caplog):
    caplog.set_level(logging.DEBUG)
    assert await redis_client.publish("room:1", "payload") == 0
    assert "Redis disabled" in caplog.text


async def test_disconnect_closes_client(redis_client):
    client = AsyncMock()
    redis_client.client = client
    await redis_client.disconnect()
    client.aclose.assert_awaited_once()
    assert not redis_client.connected

    # a second disconnect is harmless
    await redis_client.disconnect()


async def test_publish_reaches_subscriber(redis_client, mock_redis):
    redis_client.client = mock_redis
    pubsub = mock_redis.pubsub()
    await pubsub.subscribe("room:7")
    await pubsub.get_message(timeout=1.0)  # subscribe confirmation

    receivers = await redis_client.publish("room:7", '{"event": "message_created"}')
    assert receivers == 1

    message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
    assert message["channel"] == "room:7"
    assert message["data"] == '{"event": "message_created"}'
    await pubsub.aclose()


async def test_publish_failure_is_logged_and_dropped(redis_client, caplog):
    failing = AsyncMock()
    failing.publish.side_effect = redis.ConnectionError("Connection refused")
    redis_client.client = failing

    assert await redis_client.publish("room:1", "payload") == 0
    assert "Failed to publish to channel room:1" in caplog.text
    assert redis_client.connected
