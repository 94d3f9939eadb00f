# chatroom/infrastructure/event_handlers.py
import json
from typing import Any

from chatroom.domain.events import (
    DELETED_PLACEHOLDER,
    FriendRequestUpdated,
    MessageCreated,
    MessageDeleted,
    MessageEvent,
    MessageUpdated,
)


class EventHandlers:
    """Publishes domain events to Redis so clients may subscribe instead of polling."""

    def __init__(self, redis_client):
        self.redis_client = redis_client

    async def publish_message_event(
        self,
        event: MessageEvent,
        event_name: str,
        additional_data: dict[str, Any] | None = None,
    ):
        message_data = event.model_dump()
        message_data["id"] = message_data.pop("message_id")
        message_data["event"] = event_name

        if additional_data:
            message_data.update(additional_data)

        message_json = json.dumps(message_data, default=str)
        await self.redis_client.publish(event.channel, message_json)

    async def publish_message_created(self, event: MessageCreated):
        await self.publish_message_event(event, "message_created")

    async def publish_message_updated(self, event: MessageUpdated):
        await self.publish_message_event(
            event, "message_updated", {"edited_at": event.edited_at}
        )

    async def publish_message_deleted(self, event: MessageDeleted):
        await self.publish_message_event(
            event, "message_deleted", {"content": DELETED_PLACEHOLDER}
        )

    async def publish_friend_request_updated(self, event: FriendRequestUpdated):
        payload = json.dumps(event.model_dump())
        for user_id in (event.requester_id, event.addressee_id):
            await self.redis_client.publish(f"user:{user_id}:friends", payload)
