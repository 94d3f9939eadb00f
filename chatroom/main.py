# chatroom/main.py
import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from chatroom.api import auth, chats, direct, friends, messages, rooms, users
from chatroom.config import AppConfig
from chatroom.domain.events import (
    FriendRequestUpdated,
    MessageCreated,
    MessageDeleted,
    MessageUpdated,
)
from chatroom.domain.exceptions import ChatError
from chatroom.infrastructure.database import build_engine, create_database
from chatroom.infrastructure.event_dispatcher import EventDispatcher
from chatroom.infrastructure.event_handlers import EventHandlers
from chatroom.infrastructure.redis_client import RedisClient
from chatroom.infrastructure.security import SecurityService

HTTP_STATUS_KINDS = {
    400: "invalid_argument",
    401: "unauthenticated",
    403: "forbidden",
    404: "not_found",
    409: "conflict",
}


def error_response(status_code: int, message: str, kind: str, headers=None):
    return JSONResponse(
        status_code=status_code,
        content={"message": message, "kind": kind},
        headers=headers,
    )


def validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    message = str(first.get("msg", "Invalid request"))
    if message.startswith("Value error, "):
        return message[len("Value error, "):]
    location = [str(part) for part in first.get("loc", ()) if part != "body"]
    if location:
        return f"{'.'.join(location)}: {message}"
    return message


class Application:
    def __init__(self, config: AppConfig):
        self.config = config
        self.logger = self.setup_logger()
        self.database = create_database(build_engine(config.DATABASE_URL))
        self.redis_client = RedisClient(
            config.REDIS_HOST, config.REDIS_PORT, self.logger
        )
        self.event_dispatcher = EventDispatcher()
        self.security_service = SecurityService(config)
        self.event_handlers = EventHandlers(self.redis_client)

        self.event_dispatcher.register(
            MessageCreated, self.event_handlers.publish_message_created
        )
        self.event_dispatcher.register(
            MessageUpdated, self.event_handlers.publish_message_updated
        )
        self.event_dispatcher.register(
            MessageDeleted, self.event_handlers.publish_message_deleted
        )
        self.event_dispatcher.register(
            FriendRequestUpdated, self.event_handlers.publish_friend_request_updated
        )

    @asynccontextmanager
    async def lifespan(self, app: FastAPI):
        await self.database.connect()
        if self.config.REDIS_ENABLED:
            await self.redis_client.connect()
        yield
        await self.database.disconnect()
        await self.redis_client.disconnect()

    def setup_logger(self):
        logger = logging.getLogger("ChatroomAPI")
        logger.setLevel(self.config.LOG_LEVEL.upper())

        if not logger.handlers:
            c_handler = logging.StreamHandler(sys.stdout)
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            )
            c_handler.setFormatter(formatter)
            logger.addHandler(c_handler)

        # module loggers under the package share the same output
        package_logger = logging.getLogger("chatroom")
        package_logger.setLevel(self.config.LOG_LEVEL.upper())
        if not package_logger.handlers:
            package_logger.handlers = list(logger.handlers)

        return logger

    def register_exception_handlers(self, app: FastAPI) -> None:
        logger = self.logger

        @app.exception_handler(ChatError)
        async def chat_error_handler(request: Request, exc: ChatError):
            headers = None
            if exc.status_code == 401:
                headers = {"WWW-Authenticate": "Bearer"}
            return error_response(exc.status_code, exc.message, exc.kind, headers)

        @app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(
            request: Request, exc: StarletteHTTPException
        ):
            kind = HTTP_STATUS_KINDS.get(
                exc.status_code,
                "internal" if exc.status_code >= 500 else "invalid_argument",
            )
            return error_response(
                exc.status_code, str(exc.detail), kind, getattr(exc, "headers", None)
            )

        @app.exception_handler(RequestValidationError)
        async def validation_exception_handler(
            request: Request, exc: RequestValidationError
        ):
            return error_response(400, validation_message(exc), "invalid_argument")

        @app.exception_handler(Exception)
        async def global_exception_handler(request: Request, exc: Exception):
            logger.exception(
                "Unhandled error on %s %s", request.method, request.url.path
            )
            return error_response(500, "Internal server error", "internal")

    def create_app(self) -> FastAPI:
        prefix = self.config.API_PREFIX
        app = FastAPI(
            title=self.config.PROJECT_NAME,
            version=self.config.PROJECT_VERSION,
            description=self.config.PROJECT_DESCRIPTION,
            openapi_url=f"{prefix}/openapi.json",
            lifespan=self.lifespan,
        )

        app.state.config = self.config
        app.state.security_service = self.security_service
        app.state.event_dispatcher = self.event_dispatcher
        app.state.database = self.database
        app.state.logger = self.logger

        app.include_router(auth.router, prefix=f"{prefix}/auth", tags=["auth"])
        app.include_router(users.me_router, prefix=f"{prefix}/user", tags=["users"])
        app.include_router(users.router, prefix=f"{prefix}/users", tags=["users"])
        app.include_router(rooms.router, prefix=f"{prefix}/rooms", tags=["rooms"])
        app.include_router(direct.router, prefix=f"{prefix}/direct", tags=["direct"])
        app.include_router(
            messages.router, prefix=f"{prefix}/messages", tags=["messages"]
        )
        app.include_router(chats.router, prefix=f"{prefix}/chats", tags=["chats"])
        app.include_router(
            friends.router, prefix=f"{prefix}/friends", tags=["friends"]
        )

        self.register_exception_handlers(app)

        @app.get("/")
        async def root():
            return {"message": f"Welcome to the {self.config.PROJECT_NAME}"}

        return app


def create(config: AppConfig | None = None):
    application = Application(config or AppConfig())
    app = application.create_app()
    application.logger.info("Application created and configured")

    return app


app = create()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)
