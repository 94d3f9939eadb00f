# chatroom_client/api_client.py
import json
import logging
import threading
from datetime import datetime, timedelta, timezone

import keyring
import redis
import requests
from keyring.errors import KeyringError, PasswordDeleteError

KEYRING_SERVICE = "chatroom"


class ApiResponse:
    def __init__(self, success, data=None, status_code=None, error=None, kind=None):
        self.success = success
        self.data = data
        self.status_code = status_code
        self.error = error
        self.kind = kind


class ApiClient:
    """Blocking client for the chatroom REST API.

    Every call goes through ``_request``, which attaches the bearer token to
    that one request. Nothing global about ``requests`` is modified.

    Given ``redis_host`` (or a ready ``redis_client``) it can also subscribe
    to the server's event channels for push updates. Without Redis the
    subscribe calls are refused and callers keep polling.
    """

    def __init__(
        self,
        base_url,
        timeout=10.0,
        session=None,
        redis_host=None,
        redis_port=6379,
        redis_client=None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.access_token = None
        self.token_expiry = None
        self.user = None

        self.logger = logging.getLogger("ApiClient")
        self.logger.setLevel(logging.INFO)
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                "[%(asctime)s] %(levelname)s:%(name)s: %(message)s"
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

        self.subscriptions = {}
        self.redis_client = redis_client
        if self.redis_client is None and redis_host:
            self.redis_client = self._connect_redis(redis_host, redis_port)
        self.pubsub = (
            self.redis_client.pubsub(ignore_subscribe_messages=True)
            if self.redis_client is not None
            else None
        )
        self._listener = None
        self._stop_listening = threading.Event()

        self._load_stored_token()

    def _load_stored_token(self):
        try:
            stored_token = keyring.get_password(KEYRING_SERVICE, "access_token")
            stored_expiry = keyring.get_password(KEYRING_SERVICE, "token_expiry")
        except KeyringError as e:
            self.logger.error(f"Error loading stored token: {e}")
            return

        if stored_token:
            self.access_token = stored_token
            self.logger.info("Loaded stored access token")
        if stored_expiry:
            try:
                self.token_expiry = datetime.fromisoformat(stored_expiry)
            except ValueError:
                self.logger.warning("Invalid stored token expiry format, ignoring")

    def _store_token(self):
        try:
            keyring.set_password(KEYRING_SERVICE, "access_token", self.access_token)
            if self.token_expiry:
                keyring.set_password(
                    KEYRING_SERVICE, "token_expiry", self.token_expiry.isoformat()
                )
            self.logger.info("Stored access token securely")
        except KeyringError as e:
            self.logger.error(f"Error storing token: {e}")

    def _clear_stored_token(self):
        for key in ("access_token", "token_expiry"):
            try:
                keyring.delete_password(KEYRING_SERVICE, key)
            except PasswordDeleteError:
                pass  # nothing stored
            except KeyringError as e:
                self.logger.error(f"Error clearing stored {key}: {e}")
        self.access_token = None
        self.token_expiry = None
        self.user = None
        self.logger.info("Cleared stored token")

    def is_authenticated(self):
        if not self.access_token:
            return False
        if self.token_expiry:
            # treat tokens about to expire as gone
            current_time = datetime.now(timezone.utc)
            if current_time >= self.token_expiry - timedelta(minutes=5):
                return False
        return True

    def _auth_headers(self):
        return {"Authorization": f"Bearer {self.access_token}"}

    def _handle_response(self, response):
        try:
            data = response.json() if response.content else {}
        except json.JSONDecodeError:
            data = {}

        if 200 <= response.status_code < 300:
            return ApiResponse(True, data=data, status_code=response.status_code)

        error = response.text
        kind = None
        if isinstance(data, dict):
            error = data.get("message", error)
            kind = data.get("kind")
        return ApiResponse(
            False, status_code=response.status_code, error=error, kind=kind
        )

    def _request(self, method, endpoint, auth_required=True, **kwargs):
        url = f"{self.base_url}{endpoint}"
        headers = dict(kwargs.pop("headers", None) or {})

        if auth_required:
            if not self.is_authenticated():
                return ApiResponse(
                    False,
                    status_code=401,
                    error="Not logged in. Please log in again.",
                    kind="unauthenticated",
                )
            headers.update(self._auth_headers())

        kwargs.setdefault("timeout", self.timeout)
        try:
            response = self.session.request(method, url, headers=headers, **kwargs)
        except requests.RequestException as e:
            self.logger.error(f"HTTP request exception: {e}")
            return ApiResponse(False, error=str(e))

        api_response = self._handle_response(response)
        if auth_required and api_response.status_code == 401:
            self.logger.warning("Token rejected by server, clearing it")
            self._clear_stored_token()
        return api_response

    def _accept_auth(self, response):
        if response.success:
            self.access_token = response.data.get("token")
            expires_at = response.data.get("expires_at")
            if expires_at:
                expiry = datetime.fromisoformat(expires_at.replace("Z", "+00:00"))
                if expiry.tzinfo is None:
                    expiry = expiry.replace(tzinfo=timezone.utc)
                self.token_expiry = expiry
            self.user = response.data.get("user")
            self._store_token()
        return response

    def register(self, email, password, display_name):
        response = self._request(
            "POST",
            "/auth/register",
            auth_required=False,
            json={"email": email, "password": password, "display_name": display_name},
        )
        if response.success:
            self.logger.info(f"User '{email}' registered successfully.")
        else:
            self.logger.error(f"Registration failed for '{email}': {response.error}")
        return self._accept_auth(response)

    def login(self, email, password):
        response = self._request(
            "POST",
            "/auth/login",
            auth_required=False,
            json={"email": email, "password": password},
        )
        if response.success:
            self.logger.info("Logged in successfully.")
        else:
            self.logger.error(f"Login failed: {response.error}")
        return self._accept_auth(response)

    def logout(self):
        response = self._request("POST", "/auth/logout")
        self._clear_stored_token()
        return response

    def get_current_user(self):
        return self._request("GET", "/user/me")

    def update_profile(self, **fields):
        return self._request("PUT", "/user/me", json=fields)

    def update_status(self, status):
        return self._request("PUT", "/user/me/status", json={"status": status})

    def search_users(self, query):
        return self._request("GET", "/users/search", params={"query": query})

    def get_user(self, user_id):
        return self._request("GET", f"/users/{user_id}")

    def get_rooms(self):
        return self._request("GET", "/rooms")

    def create_room(self, name, description=None, is_private=False):
        response = self._request(
            "POST",
            "/rooms",
            json={"name": name, "description": description, "is_private": is_private},
        )
        if response.success:
            self.logger.info(f"Room '{name}' created successfully.")
        else:
            self.logger.error(f"Failed to create room '{name}': {response.error}")
        return response

    def get_room(self, room_id):
        return self._request("GET", f"/rooms/{room_id}")

    def join_room(self, room_id):
        return self._request("POST", f"/rooms/{room_id}/join")

    def preview_invite(self, invite_code):
        return self._request("GET", f"/rooms/invite/{invite_code}")

    def join_by_invite_code(self, invite_code):
        return self._request("POST", f"/rooms/join/{invite_code}")

    def get_room_members(self, room_id):
        return self._request("GET", f"/rooms/{room_id}/members")

    def add_room_member(self, room_id, email):
        return self._request("POST", f"/rooms/{room_id}/members", json={"email": email})

    def remove_room_member(self, room_id, user_id):
        return self._request("DELETE", f"/rooms/{room_id}/members/{user_id}")

    def regenerate_invite_code(self, room_id):
        return self._request("POST", f"/rooms/{room_id}/invite")

    def mark_room_read(self, room_id):
        return self._request("POST", f"/rooms/{room_id}/read")

    def get_room_messages(self, room_id, limit=None):
        params = {"limit": limit} if limit else None
        return self._request("GET", f"/rooms/{room_id}/messages", params=params)

    def send_room_message(self, room_id, content="", **attachment):
        return self._request(
            "POST", f"/rooms/{room_id}/messages", json={"content": content, **attachment}
        )

    def get_direct_messages(self, user_id, limit=None):
        params = {"limit": limit} if limit else None
        return self._request("GET", f"/direct/{user_id}/messages", params=params)

    def send_direct_message(self, user_id, content="", **attachment):
        return self._request(
            "POST", f"/direct/{user_id}/messages", json={"content": content, **attachment}
        )

    def edit_message(self, message_id, content):
        return self._request("PUT", f"/messages/{message_id}", json={"content": content})

    def delete_message(self, message_id):
        return self._request("DELETE", f"/messages/{message_id}")

    def get_recent_chats(self):
        return self._request("GET", "/chats")

    def get_friends(self):
        return self._request("GET", "/friends")

    def get_friend_requests(self):
        return self._request("GET", "/friends/requests")

    def send_friend_request(self, user_id):
        return self._request("POST", f"/friends/{user_id}")

    def accept_friend_request(self, request_id):
        return self._request("PUT", f"/friends/requests/{request_id}/accept")

    def reject_friend_request(self, request_id):
        return self._request("PUT", f"/friends/requests/{request_id}/reject")

    # Push updates over Redis pub/sub

    def _connect_redis(self, host, port):
        client = redis.Redis(
            host=host, port=port, db=0, decode_responses=True, socket_connect_timeout=5
        )
        try:
            client.ping()
        except redis.ConnectionError as e:
            self.logger.error(
                f"Unable to connect to Redis at {host}:{port}, polling only: {e}"
            )
            client.close()
            return None
        self.logger.info(f"Successfully connected to Redis at {host}:{port}")
        return client

    @property
    def push_enabled(self):
        return self.pubsub is not None

    def subscribe(self, channel, callback):
        """Call ``callback(event)`` with each decoded event published on ``channel``."""
        if not self.pubsub:
            self.logger.warning(
                f"Cannot subscribe to '{channel}': Redis is not connected"
            )
            return False
        self.subscriptions[channel] = callback
        self.pubsub.subscribe(channel)
        self.logger.info(f"Subscribed to Redis channel '{channel}'")
        self._start_listener()
        return True

    def unsubscribe(self, channel):
        if not self.pubsub or self.subscriptions.pop(channel, None) is None:
            return False
        self.pubsub.unsubscribe(channel)
        self.logger.info(f"Unsubscribed from Redis channel '{channel}'")
        return True

    def handle_event_message(self, message):
        if message is None or message["type"] != "message":
            return False
        channel = message["channel"]
        callback = self.subscriptions.get(channel)
        if callback is None:
            return False
        try:
            event = json.loads(message["data"])
        except ValueError:
            self.logger.warning(f"Ignoring malformed event on channel '{channel}'")
            return False
        try:
            callback(event)
        except Exception:
            # one failing callback must not stop the listener
            self.logger.exception(f"Error in callback for channel '{channel}'")
        return True

    def _start_listener(self):
        if self._listener and self._listener.is_alive():
            return
        self._stop_listening.clear()
        self._listener = threading.Thread(target=self._listen, daemon=True)
        self._listener.start()

    def _listen(self):
        while not self._stop_listening.is_set():
            try:
                message = self.pubsub.get_message(timeout=1.0)
            except redis.ConnectionError as e:
                # the pubsub reconnects and resubscribes on the next read
                self.logger.error(f"Redis connection error: {e}, retrying in 5 seconds")
                self._stop_listening.wait(5)
                continue
            self.handle_event_message(message)

    def close(self):
        self._stop_listening.set()
        if self._listener:
            self._listener.join(timeout=5)
            self._listener = None
        if self.pubsub:
            self.pubsub.close()
            self.pubsub = None
        if self.redis_client:
            self.redis_client.close()
            self.redis_client = None
        self.subscriptions.clear()


def room_channel(room_id):
    return f"room:{room_id}"


def direct_channel(user_id, other_user_id):
    low, high = sorted((user_id, other_user_id))
    return f"direct:{low}:{high}"


def friends_channel(user_id):
    return f"user:{user_id}:friends"
