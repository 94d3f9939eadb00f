# chatroom/infrastructure/event_dispatcher.py
import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable

from chatroom.domain.events import Event

logger = logging.getLogger(__name__)

Handler = Callable[[Event], Awaitable[None]]


class EventDispatcher:
    """Routes domain events to the async handlers registered for their class."""

    def __init__(self) -> None:
        self.handlers: dict[type[Event], list[Handler]] = defaultdict(list)

    def register(self, event_type: type[Event], handler: Handler) -> None:
        self.handlers[event_type].append(handler)

    async def dispatch(self, event: Event) -> int:
        handlers = self.handlers.get(type(event), [])
        if not handlers:
            logger.debug("No handlers for %s", type(event).__name__)
        for handler in handlers:
            await handler(event)
        return len(handlers)


class EventOutbox:
    """Holds the events raised while handling one request.

    They are handed to the dispatcher by ``flush`` once the request's
    changes are committed, so subscribers never hear about rolled back rows.
    """

    def __init__(self, dispatcher: EventDispatcher) -> None:
        self.dispatcher = dispatcher
        self.pending: list[Event] = []

    def add(self, event: Event) -> None:
        self.pending.append(event)

    async def flush(self) -> int:
        events, self.pending = self.pending, []
        dispatched = 0
        for event in events:
            dispatched += await self.dispatcher.dispatch(event)
        return dispatched
