# chatroom_client/poller.py
import logging
import threading
import time


class ChatPoller:
    """Re-fetches watched conversations on one interval and sends the presence
    heartbeat on another, from a single daemon thread.

    ``on_messages(conversation, messages)`` is called only when the fetched
    list differs from the previous fetch; ``conversation`` is a
    ``("room", id)`` or ``("direct", user_id)`` tuple.
    """

    def __init__(
        self,
        api_client,
        on_messages,
        message_interval=3.0,
        heartbeat_interval=30.0,
        on_error=None,
    ):
        self.api_client = api_client
        self.on_messages = on_messages
        self.on_error = on_error
        self.message_interval = message_interval
        self.heartbeat_interval = heartbeat_interval
        self.logger = logging.getLogger("ChatPoller")

        self._lock = threading.Lock()
        self._watched = {}
        self._stop_event = threading.Event()
        self._thread = None
        self._next_poll = 0.0
        self._next_heartbeat = 0.0
        self.presence = "online"

    def watch_room(self, room_id):
        with self._lock:
            self._watched.setdefault(("room", room_id), None)

    def watch_direct(self, user_id):
        with self._lock:
            self._watched.setdefault(("direct", user_id), None)

    def unwatch(self, conversation):
        with self._lock:
            self._watched.pop(conversation, None)

    def _fetch(self, conversation):
        kind, target_id = conversation
        if kind == "room":
            return self.api_client.get_room_messages(target_id)
        return self.api_client.get_direct_messages(target_id)

    def poll_messages(self):
        with self._lock:
            conversations = list(self._watched)

        for conversation in conversations:
            response = self._fetch(conversation)
            if not response.success:
                self.logger.warning(
                    f"Polling {conversation} failed: {response.error}"
                )
                if self.on_error:
                    self.on_error(conversation, response)
                continue

            messages = response.data
            with self._lock:
                if conversation not in self._watched:
                    continue
                changed = self._watched[conversation] != messages
                self._watched[conversation] = messages
            if changed:
                self.on_messages(conversation, messages)

    def set_presence(self, status):
        """Choose the status the heartbeat keeps reporting, e.g. 'away'."""
        self.presence = status
        return self.send_heartbeat()

    def send_heartbeat(self):
        response = self.api_client.update_status(self.presence)
        if not response.success:
            self.logger.warning(f"Presence heartbeat failed: {response.error}")
        return response

    def tick(self, now=None):
        now = time.monotonic() if now is None else now
        if now >= self._next_heartbeat:
            self.send_heartbeat()
            self._next_heartbeat = now + self.heartbeat_interval
        if now >= self._next_poll:
            self.poll_messages()
            self._next_poll = now + self.message_interval

    def _run(self):
        self.logger.info("Polling started")
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                # the loop must outlive a single bad callback
                self.logger.exception("Polling iteration failed")
            wait = min(self._next_poll, self._next_heartbeat) - time.monotonic()
            self._stop_event.wait(max(wait, 0.05))
        self.logger.info("Polling stopped")

    def start(self):
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._next_poll = 0.0
        self._next_heartbeat = 0.0
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def stop(self, timeout=None):
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout)
            self._thread = None
