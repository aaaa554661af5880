# app/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Postgres connection string, or sqlite:// for local runs)
      - JWT_SECRET (secret used by the auth service to sign access tokens)

    Optional:
      - DB_POOL_SIZE / DB_MAX_OVERFLOW / DB_POOL_TIMEOUT (connection pool bounds)
      - DB_STATEMENT_TIMEOUT_MS (Postgres statement_timeout per connection)
      - RESTOCK_ON_CANCEL (give stock back when an order is cancelled)
    """

    PROJECT_NAME: str = "Shop Orders Backend"
    API_V1_STR: str = "/api/v1"

    # DB config
    DATABASE_URL: str
    DATABASE_SSL_REQUIRED: bool = True
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 5
    DB_POOL_TIMEOUT: float = 10.0
    DB_STATEMENT_TIMEOUT_MS: int = 15000

    # JWT verification (backend-side)
    JWT_SECRET: str
    JWT_ALG: str = "HS256"

    LOG_LEVEL: str = "INFO"

    # Orders
    RESTOCK_ON_CANCEL: bool = True

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
