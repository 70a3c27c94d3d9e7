"""Application configuration via pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ── General ────────────────────────────────────────────
    ENVIRONMENT: str = "production"
    ALLOWED_ORIGINS: str = "http://localhost"
    API_V1_PREFIX: str = "/api/v1"

    # ── Database ───────────────────────────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./catalog.sqlite3"

    @property
    def sync_database_url(self) -> str:
        return self.DATABASE_URL.replace("+aiosqlite", "").replace("+asyncpg", "")

    # ── Index engine ───────────────────────────────────────
    INDEX_BACKEND: str = "http"  # 'http' or 'memory'
    INDEX_ENGINE_URL: str = "http://localhost:8000"
    INDEX_ENGINE_TIMEOUT: float = 30.0
    INDEX_SLICE_SIZE: int = 5000
    INDEX_FLUSH_ATTEMPTS: int = 3
    INDEX_CLEAR_ON_REBUILD: bool = False

    # ── Search ─────────────────────────────────────────────
    DEFAULT_PAGE_SIZE: int = 24
    SEARCH_INCLUDE_MODE: Literal["all", "any"] = "all"

    # ── Celery ─────────────────────────────────────────────
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"

    # ── Observability ─────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # 'json' or 'console'

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


@lru_cache
def get_settings() -> Settings:
    return Settings()
