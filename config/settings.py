from typing import Any

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Redis (default points at a local dev instance)
    REDIS_URL: str = "redis://localhost:6379/0"
    # Seconds; applies to connect and to each command
    REDIS_SOCKET_TIMEOUT: float = 1.0
    REDIS_MAX_CONNECTIONS: int = 50

    # Session token transport: same name for query param and cookie
    TOKEN_NAME: str = "token"
    SESSION_EXPIRE_SECONDS: int = 3600 * 24 * 2

    # Access limiting
    # True: single Lua script (create / incr-below-ceiling / deny), no overshoot.
    # False: GET then SET/INCR, two round-trips, may overshoot under contention.
    ACCESS_ATOMIC_COUNTER: bool = True
    # Behavior when Redis is unreachable during the gate: False = reject with 503
    ACCESS_FAIL_OPEN: bool = False
    # Extra per-path policies, e.g. {"/api/v1/vote": {"seconds": 60, "max_count": 3}}
    ACCESS_LIMITS: dict[str, dict[str, Any]] = {}

    # App
    APP_NAME: str = "Flash Sale Access Gate"
    DEBUG: bool = False  # Safe default for production; set DEBUG=True in .env for local dev
    LOG_LEVEL: str = "INFO"


settings = Settings()
