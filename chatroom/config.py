# chatroom/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    PROJECT_NAME: str = "Chatroom API"
    PROJECT_VERSION: str = "1.0.0"
    PROJECT_DESCRIPTION: str = "Rooms, direct messages and friends over a REST API"
    API_PREFIX: str = "/api"
    SECRET_KEY: str = "dev-secret-key-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7
    BCRYPT_ROUNDS: int = 10
    DATABASE_URL: str = "sqlite+aiosqlite:///:memory:"
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_ENABLED: bool = True
    LOG_LEVEL: str = "INFO"
    MESSAGE_PAGE_SIZE: int = 50
    MESSAGE_PAGE_MAX: int = 200
    INVITE_CODE_LENGTH: int = 8

    model_config = SettingsConfigDict(env_file=".env", extra="allow")
