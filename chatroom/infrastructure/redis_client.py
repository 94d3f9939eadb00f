# chatroom/infrastructure/redis_client.py
import logging

import redis.asyncio as redis


class RedisClient:
    """Publisher for chat events over Redis pub/sub.

    While disconnected (``REDIS_ENABLED=false`` or before startup) publishing
    is a no-op and clients keep polling. A publish that fails is logged and
    dropped; the message itself is already stored.

    Channels are ``room:{id}``, ``direct:{low_id}:{high_id}`` and
    ``user:{id}:friends``.
    """

    def __init__(self, host: str, port: int, logger: logging.Logger, db: int = 0):
        self.host = host
        self.port = port
        self.db = db
        self.client: redis.Redis | None = None
        self.logger = logger

    @property
    def connected(self) -> bool:
        return self.client is not None

    async def connect(self) -> None:
        client = redis.Redis(
            host=self.host, port=self.port, db=self.db, decode_responses=True
        )
        try:
            await client.ping()
        except redis.ConnectionError as e:
            self.logger.error(
                "Failed to connect to Redis at %s:%s: %s", self.host, self.port, e
            )
            await client.aclose()
            raise
        self.client = client
        self.logger.info("Successfully connected to Redis at %s:%s", self.host, self.port)

    async def disconnect(self) -> None:
        if self.client is None:
            return
        client, self.client = self.client, None
        await client.aclose()
        self.logger.info("Disconnected from Redis")

    async def publish(self, channel: str, message: str) -> int:
        if self.client is None:
            self.logger.debug("Redis disabled, dropping message for %s", channel)
            return 0
        try:
            receivers = await self.client.publish(channel, message)
        except redis.RedisError as e:
            self.logger.error("Failed to publish to channel %s: %s", channel, e)
            return 0
        self.logger.debug(
            "Published message to channel %s (%s receivers)", channel, receivers
        )
        return receivers
