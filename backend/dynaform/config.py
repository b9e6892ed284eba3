"""Application Configuration - environment-driven settings via pydantic-settings.

Invariants:
    - Every setting can be overridden by an environment variable or .env entry
    - get_settings() is cached (lru_cache) - single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults work out of the box: local SQLite file, bundled asset directory
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dynaform.core.domain_types import ConflictResolutionStrategy, DEFAULT_AUTO_SAVE_STRATEGY


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = "sqlite+aiosqlite:///dynaform.db"

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted databases hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Form definitions
    forms_asset_dir: str = "assets/forms"

    # Auto-save
    auto_save_interval_seconds: float = 1.5
    auto_save_max_retries: int = 3
    auto_save_conflict_strategy: ConflictResolutionStrategy = DEFAULT_AUTO_SAVE_STRATEGY

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
